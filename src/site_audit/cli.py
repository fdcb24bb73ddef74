"""Command-line interface for the site auditor."""

import asyncio
import json
import sys
from typing import Optional

from site_audit.analyzer import HtmlPageAnalyzer
from site_audit.audit_store import AuditStore
from site_audit.config import CrawlConfig, settings
from site_audit.link_extractor import SameSiteLinkExtractor
from site_audit.logging_config import get_logger, setup_logging
from site_audit.models import Audit
from site_audit.orchestrator import CrawlOrchestrator
from site_audit.storage import get_storage

logger = get_logger(__name__)


def _load_config(args) -> CrawlConfig:
    """Build the crawl config from file/env, then apply CLI overrides."""
    config = CrawlConfig.from_file(args.config) if getattr(args, "config", None) else CrawlConfig.from_env()

    for arg_name, field_name in (
        ("max_pages", "max_pages"),
        ("max_depth", "max_depth"),
        ("rate_limit", "rate_limit"),
        ("timeout", "analyze_timeout"),
    ):
        value = getattr(args, arg_name, None)
        if value is not None:
            setattr(config, field_name, value)

    logger.debug(f"Crawl config: {config.to_dict()}")
    return config


def print_audit_summary(audit: Optional[Audit]) -> None:
    """Print an audit summary in a formatted way.

    Args:
        audit: Audit to print, or None if the crawl produced none
    """
    if audit is None:
        print("\n❌ No audit was produced")
        return

    print(f"\n{'=' * 60}")
    print(f"Site Audit for: {audit.start_url}")
    print(f"{'=' * 60}")
    print(f"\n📊 Overall Score: {audit.overall_score}/100")
    print(f"Pages analyzed: {audit.page_count}")
    print(f"Started: {audit.start_time}")
    print(f"Finished: {audit.end_time}")

    stats = audit.aggregate_stats
    if stats:
        print(f"\nAverages:")
        print(f"  • Word count: {stats.averages.word_count}")
        print(f"  • Readability: {stats.averages.readability:.2f} (median {stats.median_readability:.2f})")
        print(f"  • SEO score: {stats.averages.seo_score:.2f}")
        print(f"\nImages: {stats.images.total} total, {stats.images.alt_percentage}% with alt text")
        print(
            f"Links: {stats.links.avg_internal_per_page} internal / "
            f"{stats.links.avg_external_per_page} external per page"
        )

        if stats.top_keywords:
            print(f"\n🔑 Top keywords:")
            for keyword, count in stats.top_keywords[:10]:
                print(f"  • {keyword} ({count})")

        if stats.schema_types:
            print(f"\n🧩 Structured data:")
            for schema_type, count in stats.schema_types.items():
                print(f"  • {schema_type}: {count}")

    print(f"\nAudit id: {audit.id}")
    print(f"\n{'=' * 60}\n")


async def _run_crawl(config: CrawlConfig, start_url: Optional[str]) -> Optional[Audit]:
    """Run (or resume, when start_url is None) a crawl to completion."""
    storage = get_storage()
    try:
        async with HtmlPageAnalyzer(
            user_agent=config.user_agent,
            request_timeout=config.analyze_timeout,
        ) as analyzer:
            orchestrator = CrawlOrchestrator.create(
                analyzer, SameSiteLinkExtractor(), storage, config
            )

            if start_url is None:
                if not orchestrator.restore():
                    print("No in-flight crawl to resume.")
                    return None
            else:
                response = orchestrator.start_crawl(start_url)
                if not response.success:
                    print(f"Error: {response.error}")
                    return None

            await orchestrator.wait_until_finished()
            return orchestrator.last_audit
    finally:
        storage.close()


def crawl_command(args):
    """Crawl a site and print the resulting audit."""
    config = _load_config(args)
    try:
        audit = asyncio.run(_run_crawl(config, args.url))
    except KeyboardInterrupt:
        logger.warning("Crawl interrupted; last checkpoint kept")
        print("\n\n⚠️  Crawl interrupted by user.")
        print("Progress is checkpointed after every page.")
        print("Resume with: site-audit resume")
        sys.exit(130)
    print_audit_summary(audit)


def resume_command(args):
    """Resume a crawl interrupted by a process exit."""
    args.url = None
    crawl_command(args)


def audits_command(args):
    """Inspect the stored audit history."""
    storage = get_storage()
    try:
        store = AuditStore(storage)

        if args.action == "list":
            audits = store.list()
            if not audits:
                print("No saved audits.")
                return
            for audit in audits:
                print(
                    f"{audit.id}  {audit.end_time}  score {audit.overall_score:>3}  "
                    f"{audit.page_count:>3} pages  {audit.start_url}"
                )

        elif args.action == "show":
            audit = store.get(args.audit_id)
            if audit is None:
                print(f"Audit not found: {args.audit_id}")
                sys.exit(1)
            if args.output == "json":
                print(json.dumps(audit.to_dict(), indent=2, default=str))
            else:
                print_audit_summary(audit)

        elif args.action == "delete":
            if store.delete(args.audit_id):
                print(f"Deleted audit {args.audit_id}")
            else:
                print(f"Audit not found: {args.audit_id}")
                sys.exit(1)
    finally:
        storage.close()


def main():
    """Main CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Site Audit - Crawl a website and report on its on-page SEO"
    )

    # Global flags (before subcommands)
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.LOG_LEVEL.upper(),
        help="Set logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to file in addition to console",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    crawl_parser = subparsers.add_parser("crawl", help="Crawl and audit a site.")
    crawl_parser.add_argument("url", help="URL to start crawling from")
    resume_parser = subparsers.add_parser("resume", help="Resume an interrupted crawl.")

    for sub in (crawl_parser, resume_parser):
        sub.add_argument("--config", help="JSON file with crawl settings")
        sub.add_argument("--max-pages", type=int, help="Maximum pages to visit (default: 50)")
        sub.add_argument("--max-depth", type=int, help="Maximum link depth (default: 3)")
        sub.add_argument(
            "--rate-limit",
            type=float,
            help="Seconds between page analyses (default: 0.8)",
        )
        sub.add_argument("--timeout", type=float, help="Per-page analyze timeout (default: 10)")

    crawl_parser.set_defaults(func=crawl_command)
    resume_parser.set_defaults(func=resume_command)

    audits_parser = subparsers.add_parser("audits", help="Inspect saved audits.")
    audits_sub = audits_parser.add_subparsers(dest="action", required=True)
    audits_sub.add_parser("list", help="List saved audits")
    show_parser = audits_sub.add_parser("show", help="Show one audit")
    show_parser.add_argument("audit_id")
    show_parser.add_argument(
        "--output",
        "-o",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    delete_parser = audits_sub.add_parser("delete", help="Delete one audit")
    delete_parser.add_argument("audit_id")
    audits_parser.set_defaults(func=audits_command)

    args = parser.parse_args()

    # Configure logging based on flags
    setup_logging(
        level=args.log_level,
        log_file=getattr(args, 'log_file', None),
    )

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
