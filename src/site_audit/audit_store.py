"""Bounded history of completed audits, most recent first."""

import logging
from typing import List, Optional

from site_audit.constants import AUDITS_KEY, MAX_STORED_AUDITS
from site_audit.models import Audit
from site_audit.storage import AbstractStorage

logger = logging.getLogger(__name__)


class AuditStore:
    """Audit history kept under a single storage key.

    Inserting beyond ``max_audits`` silently drops the oldest entries.
    """

    def __init__(
        self,
        storage: AbstractStorage,
        max_audits: int = MAX_STORED_AUDITS,
        key: str = AUDITS_KEY,
    ):
        """Initialize the audit store.

        Args:
            storage: Storage backend
            max_audits: Maximum number of audits kept
            key: Storage key holding the audit list
        """
        self.storage = storage
        self.max_audits = max_audits
        self.key = key

    def _load_raw(self) -> List[dict]:
        data = self.storage.get(self.key)
        return data if isinstance(data, list) else []

    def add(self, audit: Audit) -> None:
        """Insert an audit at the front of the history.

        Raises:
            StorageError: If the history cannot be written
        """
        audits = self._load_raw()
        audits.insert(0, audit.to_dict())
        del audits[self.max_audits:]
        self.storage.set(self.key, audits)
        logger.info(f"Saved audit {audit.id} for {audit.start_url} ({audit.page_count} pages)")

    def list(self) -> List[Audit]:
        """All stored audits, most recent first."""
        return [Audit.from_dict(item) for item in self._load_raw()]

    def latest(self) -> Optional[Audit]:
        audits = self._load_raw()
        return Audit.from_dict(audits[0]) if audits else None

    def get(self, audit_id: str) -> Optional[Audit]:
        for item in self._load_raw():
            if item.get("id") == audit_id:
                return Audit.from_dict(item)
        return None

    def delete(self, audit_id: str) -> bool:
        """Remove an audit by id.

        Returns:
            True if an audit was removed
        """
        audits = self._load_raw()
        remaining = [item for item in audits if item.get("id") != audit_id]
        if len(remaining) == len(audits):
            return False
        self.storage.set(self.key, remaining)
        return True

    def clear(self) -> None:
        self.storage.delete(self.key)

    def __len__(self) -> int:
        return len(self._load_raw())
