"""Record-level access to one table data file."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from rmdb.bitmap import first_bit, is_set, reset_bit, set_bit
from rmdb.buffer_pool_manager import BufferPoolManager
from rmdb.disk_manager import DiskManager, FileNotOpenError, InternalError, RMDBError
from rmdb.page import Page, PageId
from rmdb.rm_defs import (
    RM_FILE_HDR_PAGE,
    RM_FIRST_RECORD_PAGE,
    RM_NO_PAGE,
    Rid,
    RmFileHdr,
    RmPageHdr,
    RmRecord,
)


class PageNotExistError(RMDBError):
    """The page number is outside the record pages of the file."""

    def __init__(self, table_name: str, page_no: int) -> None:
        super().__init__(f"Page {page_no} does not exist in file {table_name}")
        self.table_name = table_name
        self.page_no = page_no


class RecordNotFoundError(RMDBError):
    """No record is stored at the given position."""

    def __init__(self, rid: Rid) -> None:
        super().__init__(f"Record not found: page {rid.page_no} slot {rid.slot_no}")
        self.rid = rid


class RmPageHandle:
    """A view of a record page: page header, bitmap and record slots."""

    _HDR_OFFSET = Page.OFFSET_PAGE_HDR
    _BITMAP_OFFSET = Page.OFFSET_PAGE_HDR + RmPageHdr.SIZE

    def __init__(self, file_hdr: RmFileHdr, page: Page) -> None:
        self.file_hdr = file_hdr
        self.page = page

    @property
    def page_hdr(self) -> RmPageHdr:
        return RmPageHdr.from_bytes(
            self.page.data[self._HDR_OFFSET:self._HDR_OFFSET + RmPageHdr.SIZE]
        )

    @page_hdr.setter
    def page_hdr(self, hdr: RmPageHdr) -> None:
        self.page.data[self._HDR_OFFSET:self._HDR_OFFSET + RmPageHdr.SIZE] = hdr.to_bytes()

    @property
    def bitmap(self) -> memoryview:
        """A writable view of the slot occupancy bitmap."""
        start = self._BITMAP_OFFSET
        return memoryview(self.page.data)[start:start + self.file_hdr.bitmap_size]

    @property
    def slots_offset(self) -> int:
        return self._BITMAP_OFFSET + self.file_hdr.bitmap_size

    def _slot_range(self, slot_no: int) -> slice:
        size = self.file_hdr.record_size
        start = self.slots_offset + slot_no * size
        return slice(start, start + size)

    def get_slot(self, slot_no: int) -> bytes:
        """The bytes stored in the slot."""
        return bytes(self.page.data[self._slot_range(slot_no)])

    def set_slot(self, slot_no: int, data: bytes) -> None:
        """Store data, exactly one record long, in the slot."""
        if len(data) != self.file_hdr.record_size:
            raise ValueError(
                f"record must be {self.file_hdr.record_size} bytes, got {len(data)}"
            )
        self.page.data[self._slot_range(slot_no)] = data


class RmFileHandle:
    """Inserts, reads, updates and deletes the records of one table file."""

    def __init__(
        self,
        disk_manager: DiskManager,
        buffer_pool_manager: BufferPoolManager,
        fd: int,
    ) -> None:
        self.disk_manager = disk_manager
        self.buffer_pool_manager = buffer_pool_manager
        self.fd = fd
        raw = disk_manager.read_page(fd, RM_FILE_HDR_PAGE, RmFileHdr.SIZE)
        self.file_hdr = RmFileHdr.from_bytes(raw)
        disk_manager.set_fd2pageno(fd, self.file_hdr.num_pages)

    def _file_name(self) -> str:
        try:
            return self.disk_manager.get_file_name(self.fd)
        except FileNotOpenError:
            return str(self.fd)

    def _unpin(self, handle: RmPageHandle, dirty: bool) -> None:
        self.buffer_pool_manager.unpin_page(handle.page.id, dirty)

    @contextmanager
    def _page(self, page_no: int, dirty: bool) -> Iterator[RmPageHandle]:
        handle = self.fetch_page_handle(page_no)
        try:
            yield handle
        finally:
            self._unpin(handle, dirty)

    def _check_slot(self, handle: RmPageHandle, rid: Rid) -> None:
        n = self.file_hdr.num_records_per_page
        if not 0 <= rid.slot_no < n or not is_set(handle.bitmap, rid.slot_no):
            raise RecordNotFoundError(rid)

    def is_record(self, rid: Rid) -> bool:
        """True if a record is stored at rid."""
        with self._page(rid.page_no, dirty=False) as handle:
            n = self.file_hdr.num_records_per_page
            return 0 <= rid.slot_no < n and is_set(handle.bitmap, rid.slot_no)

    def get_record(self, rid: Rid) -> RmRecord:
        """The record stored at rid."""
        with self._page(rid.page_no, dirty=False) as handle:
            self._check_slot(handle, rid)
            return RmRecord(handle.get_slot(rid.slot_no))

    def insert_record(self, buf: bytes) -> Rid:
        """Store a record in the first free slot and return its position."""
        handle = self._create_page_handle()
        try:
            n = self.file_hdr.num_records_per_page
            slot_no = first_bit(False, handle.bitmap, n)
            handle.set_slot(slot_no, buf)
            set_bit(handle.bitmap, slot_no)
            hdr = handle.page_hdr
            hdr.num_records += 1
            handle.page_hdr = hdr
            if hdr.num_records == n:
                self.file_hdr.first_free_page_no = hdr.next_free_page_no
            return Rid(handle.page.id.page_no, slot_no)
        finally:
            self._unpin(handle, True)

    def insert_record_at(self, rid: Rid, buf: bytes) -> None:
        """Store a record at the given position."""
        with self._page(rid.page_no, dirty=True) as handle:
            n = self.file_hdr.num_records_per_page
            if not 0 <= rid.slot_no < n:
                raise ValueError(f"slot {rid.slot_no} out of range")
            handle.set_slot(rid.slot_no, buf)
            if is_set(handle.bitmap, rid.slot_no):
                return
            set_bit(handle.bitmap, rid.slot_no)
            hdr = handle.page_hdr
            hdr.num_records += 1
            handle.page_hdr = hdr
            if hdr.num_records == n:
                self._unlink_free_page(rid.page_no, hdr.next_free_page_no)

    def delete_record(self, rid: Rid) -> None:
        """Remove the record stored at rid."""
        with self._page(rid.page_no, dirty=True) as handle:
            self._check_slot(handle, rid)
            reset_bit(handle.bitmap, rid.slot_no)
            hdr = handle.page_hdr
            hdr.num_records -= 1
            handle.page_hdr = hdr
            if hdr.num_records == self.file_hdr.num_records_per_page - 1:
                self._release_page_handle(handle)

    def update_record(self, rid: Rid, buf: bytes) -> None:
        """Overwrite the record stored at rid."""
        with self._page(rid.page_no, dirty=True) as handle:
            self._check_slot(handle, rid)
            handle.set_slot(rid.slot_no, buf)

    def fetch_page_handle(self, page_no: int) -> RmPageHandle:
        """Pin a record page and return its handle; the caller must unpin it."""
        if not RM_FIRST_RECORD_PAGE <= page_no < self.file_hdr.num_pages:
            raise PageNotExistError(self._file_name(), page_no)
        page = self.buffer_pool_manager.fetch_page(PageId(self.fd, page_no))
        if page is None:
            raise InternalError("RmFileHandle: no free frame in the buffer pool")
        return RmPageHandle(self.file_hdr, page)

    def create_new_page_handle(self) -> RmPageHandle:
        """Append a new empty record page, pinned; the caller must unpin it."""
        page = self.buffer_pool_manager.new_page(self.fd)
        if page is None:
            raise InternalError("RmFileHandle: no free frame in the buffer pool")
        handle = RmPageHandle(self.file_hdr, page)
        handle.page_hdr = RmPageHdr(
            next_free_page_no=self.file_hdr.first_free_page_no, num_records=0
        )
        BufferPoolManager.mark_dirty(page)
        self.file_hdr.num_pages += 1
        self.file_hdr.first_free_page_no = page.id.page_no
        return handle

    def _create_page_handle(self) -> RmPageHandle:
        if self.file_hdr.first_free_page_no == RM_NO_PAGE:
            return self.create_new_page_handle()
        return self.fetch_page_handle(self.file_hdr.first_free_page_no)

    def _release_page_handle(self, handle: RmPageHandle) -> None:
        """Put a page that just stopped being full at the head of the free list."""
        hdr = handle.page_hdr
        hdr.next_free_page_no = self.file_hdr.first_free_page_no
        handle.page_hdr = hdr
        self.file_hdr.first_free_page_no = handle.page.id.page_no

    def _unlink_free_page(self, page_no: int, next_page_no: int) -> None:
        """Remove a page that became full from the free list."""
        if self.file_hdr.first_free_page_no == page_no:
            self.file_hdr.first_free_page_no = next_page_no
            return
        prev = self.file_hdr.first_free_page_no
        while prev != RM_NO_PAGE:
            with self._page(prev, dirty=False) as handle:
                hdr = handle.page_hdr
                if hdr.next_free_page_no == page_no:
                    hdr.next_free_page_no = next_page_no
                    handle.page_hdr = hdr
                    BufferPoolManager.mark_dirty(handle.page)
                    return
                prev = hdr.next_free_page_no