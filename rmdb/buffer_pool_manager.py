"""A fixed-size pool of page frames cached in memory."""

from __future__ import annotations

import threading
from collections import deque

from rmdb.disk_manager import DiskManager
from rmdb.lru_replacer import LRUReplacer, Replacer
from rmdb.page import INVALID_PAGE_ID, PAGE_SIZE, Page, PageId


def _is_valid(page_id: PageId) -> bool:
    return page_id.fd >= 0 and page_id.page_no != INVALID_PAGE_ID


class BufferPoolManager:
    """Caches disk pages in a fixed number of frames, evicting with a replacer."""

    def __init__(
        self,
        pool_size: int,
        disk_manager: DiskManager,
        replacer: Replacer | None = None,
    ) -> None:
        self.pool_size = pool_size
        self.disk_manager = disk_manager
        self.pages = [Page() for _ in range(pool_size)]
        self._page_table: dict[PageId, int] = {}
        self._free_list: deque[int] = deque(range(pool_size))
        self._replacer = replacer if replacer is not None else LRUReplacer(pool_size)
        self._lock = threading.RLock()

    @staticmethod
    def mark_dirty(page: Page) -> None:
        """Mark a page as modified."""
        page.is_dirty = True

    def _find_victim(self) -> int | None:
        if self._free_list:
            return self._free_list.popleft()
        return self._replacer.victim()

    def _write_back(self, page: Page) -> None:
        self.disk_manager.write_page(page.id.fd, page.id.page_no, page.data)

    def _update_page(self, page: Page, new_page_id: PageId, frame_id: int) -> None:
        """Write back a dirty page, then reassign its frame to new_page_id."""
        old_id = page.id
        if page.is_dirty and _is_valid(old_id):
            self._write_back(page)
        page.is_dirty = False
        if self._page_table.get(old_id) == frame_id:
            del self._page_table[old_id]
        page.reset_memory()
        page.id = new_page_id
        page.pin_count = 0
        if _is_valid(new_page_id):
            self._page_table[new_page_id] = frame_id

    def _release_frame(self, frame_id: int) -> None:
        page = self.pages[frame_id]
        if self._page_table.get(page.id) == frame_id:
            del self._page_table[page.id]
        page.reset_memory()
        page.id = PageId(fd=-1)
        page.is_dirty = False
        page.pin_count = 0
        self._replacer.pin(frame_id)
        self._free_list.append(frame_id)

    def fetch_page(self, page_id: PageId) -> Page | None:
        """Pin and return the page, reading it from disk if needed; None if no frame is free."""
        with self._lock:
            frame_id = self._page_table.get(page_id)
            if frame_id is not None:
                page = self.pages[frame_id]
                page.pin_count += 1
                self._replacer.pin(frame_id)
                return page
            frame_id = self._find_victim()
            if frame_id is None:
                return None
            page = self.pages[frame_id]
            self._update_page(page, page_id, frame_id)
            try:
                page.data[:] = self.disk_manager.read_page(
                    page_id.fd, page_id.page_no, PAGE_SIZE
                )
            except Exception:
                self._release_frame(frame_id)
                raise
            page.pin_count = 1
            self._replacer.pin(frame_id)
            return page

    def unpin_page(self, page_id: PageId, is_dirty: bool) -> bool:
        """Drop one pin of a cached page; False if it is not cached or not pinned."""
        with self._lock:
            frame_id = self._page_table.get(page_id)
            if frame_id is None:
                return False
            page = self.pages[frame_id]
            if page.pin_count <= 0:
                return False
            page.pin_count -= 1
            if page.pin_count == 0:
                self._replacer.unpin(frame_id)
            if is_dirty:
                page.is_dirty = True
            return True

    def flush_page(self, page_id: PageId) -> bool:
        """Write a cached page to disk whether or not it is in use."""
        with self._lock:
            frame_id = self._page_table.get(page_id)
            if frame_id is None:
                return False
            page = self.pages[frame_id]
            self._write_back(page)
            page.is_dirty = False
            return True

    def new_page(self, fd: int) -> Page | None:
        """Allocate a new page in the file and pin it; None if no frame is free."""
        with self._lock:
            frame_id = self._find_victim()
            if frame_id is None:
                return None
            page_no = self.disk_manager.allocate_page(fd)
            page = self.pages[frame_id]
            self._update_page(page, PageId(fd, page_no), frame_id)
            self._write_back(page)
            page.pin_count = 1
            self._replacer.pin(frame_id)
            return page

    def delete_page(self, page_id: PageId) -> bool:
        """Drop a page from the pool; False only if it is cached and still pinned."""
        with self._lock:
            frame_id = self._page_table.get(page_id)
            if frame_id is None:
                return True
            page = self.pages[frame_id]
            if page.pin_count != 0:
                return False
            if page.is_dirty:
                self._write_back(page)
            self._release_frame(frame_id)
            return True

    def flush_all_pages(self, fd: int) -> None:
        """Write every cached page of the file to disk."""
        with self._lock:
            for page_id, frame_id in list(self._page_table.items()):
                if page_id.fd == fd:
                    page = self.pages[frame_id]
                    self._write_back(page)
                    page.is_dirty = False