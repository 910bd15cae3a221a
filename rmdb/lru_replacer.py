"""Frame replacement policies for the buffer pool."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections import OrderedDict


class Replacer(ABC):
    """Tracks which frames may be evicted."""

    @abstractmethod
    def victim(self) -> int | None:
        """Remove and return the frame to evict, or None if there is none."""

    @abstractmethod
    def pin(self, frame_id: int) -> None:
        """Mark a frame as in use so it cannot be evicted."""

    @abstractmethod
    def unpin(self, frame_id: int) -> None:
        """Mark a frame as evictable."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of evictable frames."""


class LRUReplacer(Replacer):
    """Evicts the frame that has been evictable for the longest time."""

    def __init__(self, num_pages: int) -> None:
        self.max_size = num_pages
        self._lock = threading.Lock()
        # Oldest unpinned frame first.
        self._frames: OrderedDict[int, None] = OrderedDict()

    def victim(self) -> int | None:
        with self._lock:
            if not self._frames:
                return None
            frame_id, _ = self._frames.popitem(last=False)
            return frame_id

    def pin(self, frame_id: int) -> None:
        with self._lock:
            self._frames.pop(frame_id, None)

    def unpin(self, frame_id: int) -> None:
        with self._lock:
            if frame_id not in self._frames:
                self._frames[frame_id] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._frames)