"""Checkpointing of the live crawl state."""

import logging
from typing import Optional

from site_audit.constants import CHECKPOINT_WRITE_ATTEMPTS, CRAWL_STATE_KEY, CRAWL_STATE_VERSION
from site_audit.models import CrawlState
from site_audit.storage import AbstractStorage, StorageError

logger = logging.getLogger(__name__)


class CrawlStateRepository:
    """Saves, loads and clears the single live CrawlState checkpoint.

    A failed write is retried once. If the retry fails too, ``save`` returns
    False instead of raising so the crawl can carry on; the caller reports
    the state as not durable until a later save succeeds.
    """

    def __init__(self, storage: AbstractStorage, key: str = CRAWL_STATE_KEY):
        self.storage = storage
        self.key = key

    def save(self, state: CrawlState) -> bool:
        """Write a checkpoint.

        Args:
            state: Current crawl state

        Returns:
            True if the checkpoint was written
        """
        payload = state.to_dict()
        last_error: Optional[StorageError] = None

        for attempt in range(1, CHECKPOINT_WRITE_ATTEMPTS + 1):
            try:
                self.storage.set(self.key, payload)
                logger.debug(
                    f"Checkpoint saved: {state.frontier.visited_count} visited, "
                    f"{len(state.frontier)} queued"
                )
                return True
            except StorageError as e:
                last_error = e
                logger.debug(f"Checkpoint write attempt {attempt} failed: {e}")

        logger.warning(f"Crawl state not durable, checkpoint write failed: {last_error}")
        return False

    def load(self) -> Optional[CrawlState]:
        """Load the checkpoint if one exists and is readable.

        Returns:
            The saved CrawlState, or None if absent or unusable
        """
        try:
            data = self.storage.get(self.key)
        except StorageError as e:
            logger.warning(f"Ignoring unreadable crawl state: {e}")
            return None

        if data is None:
            return None

        if not isinstance(data, dict):
            logger.warning(f"Ignoring crawl state that is not an object ({type(data).__name__})")
            return None

        if data.get("version") != CRAWL_STATE_VERSION:
            logger.warning(f"Ignoring crawl state with unsupported version {data.get('version')}")
            return None

        try:
            return CrawlState.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed crawl state: {e}")
            return None

    def clear(self) -> None:
        """Delete the checkpoint."""
        try:
            self.storage.delete(self.key)
        except StorageError as e:
            logger.warning(f"Failed to clear crawl state: {e}")
