"""Breadth-first work queue with visited-URL tracking."""

from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterable, Iterator, List, Optional, Set


@dataclass(frozen=True)
class FrontierEntry:
    """A URL waiting to be processed, with its link depth from the seed."""

    url: str
    depth: int

    def to_dict(self) -> dict:
        return {"url": self.url, "depth": self.depth}

    @classmethod
    def from_dict(cls, data: dict) -> "FrontierEntry":
        return cls(url=data["url"], depth=int(data["depth"]))


class Frontier:
    """FIFO queue of (url, depth) entries plus the set of visited URLs.

    Entries come out in the order they were discovered, which is what makes
    the traversal breadth-first. A URL is marked visited when it is popped
    for processing, not when it is queued, so the same URL may sit in the
    queue more than once if two pages link to it before either copy is
    popped; the visited check on pop discards the duplicate.
    """

    def __init__(
        self,
        entries: Optional[Iterable[FrontierEntry]] = None,
        visited: Optional[Iterable[str]] = None,
    ):
        self._queue: Deque[FrontierEntry] = deque(entries or [])
        self._visited: Set[str] = set(visited or [])

    def push(self, url: str, depth: int) -> bool:
        """Queue a URL unless it has already been visited.

        Args:
            url: URL to queue
            depth: Link depth of the URL

        Returns:
            True if the URL was queued
        """
        if url in self._visited:
            return False
        self._queue.append(FrontierEntry(url=url, depth=depth))
        return True

    def push_all(self, urls: Iterable[str], depth: int) -> int:
        """Queue every unvisited URL at the same depth.

        Returns:
            Number of URLs queued
        """
        return sum(1 for url in urls if self.push(url, depth))

    def pop(self) -> FrontierEntry:
        """Remove and return the oldest queued entry.

        Raises:
            IndexError: If the frontier is empty
        """
        return self._queue.popleft()

    def mark_visited(self, url: str) -> None:
        self._visited.add(url)

    def is_visited(self, url: str) -> bool:
        return url in self._visited

    @property
    def visited(self) -> Set[str]:
        return self._visited

    @property
    def visited_count(self) -> int:
        return len(self._visited)

    def entries(self) -> List[FrontierEntry]:
        """Queued entries in processing order."""
        return list(self._queue)

    def __len__(self) -> int:
        return len(self._queue)

    def __iter__(self) -> Iterator[FrontierEntry]:
        return iter(list(self._queue))
