from dotenv import load_dotenv
from dataclasses import dataclass
from pathlib import Path
import json
import os

from site_audit.constants import (
    DEFAULT_ANALYZE_TIMEOUT_SECONDS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_PAGES,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RATE_LIMIT_SECONDS,
    MAX_STORED_AUDITS,
    TOP_KEYWORDS_COUNT,
    TOP_OUTBOUND_LINKS_COUNT,
)

load_dotenv()  # Loads variables from .env file


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    STORAGE_BACKEND = os.getenv("SITE_AUDIT_STORAGE_BACKEND", "json")  # 'json' or 'sqlite'
    STORAGE_PATH = os.getenv("SITE_AUDIT_STORAGE_PATH", ".site_audit")
    USER_AGENT = os.getenv("USER_AGENT", "Site-Audit-Bot/1.0")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()


@dataclass
class CrawlConfig:
    """Configurable limits for a site crawl."""

    # Traversal bounds
    max_pages: int = DEFAULT_MAX_PAGES
    max_depth: int = DEFAULT_MAX_DEPTH

    # Politeness
    rate_limit: float = DEFAULT_RATE_LIMIT_SECONDS  # seconds between analyses

    # Fetch-analyze
    analyze_timeout: float = DEFAULT_ANALYZE_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES

    # Reporting
    max_stored_audits: int = MAX_STORED_AUDITS
    top_keywords: int = TOP_KEYWORDS_COUNT
    top_outbound_links: int = TOP_OUTBOUND_LINKS_COUNT

    user_agent: str = "Site-Audit-Bot/1.0"

    @classmethod
    def from_env(cls) -> "CrawlConfig":
        """Load crawl configuration from environment variables.

        Environment variables should be prefixed with SITE_AUDIT_
        e.g., SITE_AUDIT_MAX_PAGES=100

        Returns:
            CrawlConfig with values from environment
        """
        config = cls(user_agent=settings.USER_AGENT)
        prefix = "SITE_AUDIT_"

        for field_name in config.__dataclass_fields__:
            env_key = f"{prefix}{field_name.upper()}"
            env_value = os.getenv(env_key)

            if env_value is not None:
                field_type = config.__dataclass_fields__[field_name].type
                try:
                    if field_type in (int, "int"):
                        setattr(config, field_name, int(env_value))
                    elif field_type in (float, "float"):
                        setattr(config, field_name, float(env_value))
                    else:
                        setattr(config, field_name, env_value)
                except ValueError:
                    pass  # Keep default if conversion fails

        return config

    @classmethod
    def from_file(cls, path: str) -> "CrawlConfig":
        """Load crawl configuration from a JSON file.

        Args:
            path: Path to JSON configuration file

        Returns:
            CrawlConfig with values from file
        """
        config = cls()
        file_path = Path(path)

        if not file_path.exists():
            return config

        with open(file_path, 'r') as f:
            data = json.load(f)

        crawl_config = data.get('crawl', data)

        for field_name in config.__dataclass_fields__:
            if field_name in crawl_config:
                setattr(config, field_name, crawl_config[field_name])

        return config

    def to_dict(self) -> dict:
        """Convert configuration to dictionary.

        Returns:
            Dictionary of all configuration values
        """
        return {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
        }

    def save_to_file(self, path: str) -> None:
        """Save current configuration to a JSON file.

        Args:
            path: Path to save configuration
        """
        with open(path, 'w') as f:
            json.dump({'crawl': self.to_dict()}, f, indent=2)

