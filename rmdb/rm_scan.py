"""Sequential scan over the records of a table file."""

from __future__ import annotations

from collections.abc import Iterator

from rmdb.bitmap import next_bit
from rmdb.rm_defs import RM_FIRST_RECORD_PAGE, RM_NO_PAGE, Rid
from rmdb.rm_file_handle import RmFileHandle


class RmScan:
    """Walks the positions of all stored records in page and slot order."""

    def __init__(self, file_handle: RmFileHandle) -> None:
        self.file_handle = file_handle
        self.rid = Rid(RM_FIRST_RECORD_PAGE, -1)
        self._advance()

    def _advance(self) -> None:
        fh = self.file_handle
        n = fh.file_hdr.num_records_per_page
        page_no, slot_no = self.rid.page_no, self.rid.slot_no
        while page_no < fh.file_hdr.num_pages:
            handle = fh.fetch_page_handle(page_no)
            try:
                slot_no = next_bit(True, handle.bitmap, n, slot_no)
            finally:
                fh.buffer_pool_manager.unpin_page(handle.page.id, False)
            if slot_no < n:
                self.rid = Rid(page_no, slot_no)
                return
            page_no += 1
            slot_no = -1
        self.rid = Rid(RM_NO_PAGE, -1)

    def next(self) -> None:
        """Move to the next stored record."""
        if not self.is_end():
            self._advance()

    def is_end(self) -> bool:
        """True once every record has been passed."""
        return self.rid.page_no == RM_NO_PAGE

    def __iter__(self) -> Iterator[Rid]:
        while not self.is_end():
            yield self.rid
            self.next()