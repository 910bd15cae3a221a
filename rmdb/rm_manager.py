"""Creation, opening and removal of table data files."""

from __future__ import annotations

from rmdb.bitmap import BITMAP_WIDTH
from rmdb.buffer_pool_manager import BufferPoolManager
from rmdb.disk_manager import DiskManager, RMDBError
from rmdb.page import PAGE_SIZE, PageId
from rmdb.rm_defs import RM_FILE_HDR_PAGE, RM_MAX_RECORD_SIZE, RM_NO_PAGE, RmFileHdr
from rmdb.rm_file_handle import RmFileHandle


class InvalidRecordSizeError(RMDBError):
    """The record size is out of the supported range."""

    def __init__(self, record_size: int) -> None:
        super().__init__(f"Invalid record size: {record_size}")
        self.record_size = record_size


class RmManager:
    """Manages the data files that hold table records."""

    def __init__(
        self, disk_manager: DiskManager, buffer_pool_manager: BufferPoolManager
    ) -> None:
        self.disk_manager = disk_manager
        self.buffer_pool_manager = buffer_pool_manager

    def create_file(self, filename: str, record_size: int) -> None:
        """Create a data file for records of the given size."""
        if record_size < 1 or record_size > RM_MAX_RECORD_SIZE:
            raise InvalidRecordSizeError(record_size)
        self.disk_manager.create_file(filename)
        fd = self.disk_manager.open_file(filename)
        try:
            num_records_per_page = (
                BITMAP_WIDTH * (PAGE_SIZE - 1 - RmFileHdr.SIZE) + 1
            ) // (1 + record_size * BITMAP_WIDTH)
            file_hdr = RmFileHdr(
                record_size=record_size,
                num_pages=1,
                num_records_per_page=num_records_per_page,
                first_free_page_no=RM_NO_PAGE,
                bitmap_size=(num_records_per_page + BITMAP_WIDTH - 1) // BITMAP_WIDTH,
            )
            self.disk_manager.write_page(fd, RM_FILE_HDR_PAGE, file_hdr.to_bytes())
        finally:
            self.disk_manager.close_file(fd)

    def destroy_file(self, filename: str) -> None:
        """Delete a data file."""
        self.disk_manager.destroy_file(filename)

    def open_file(self, filename: str) -> RmFileHandle:
        """Open a data file and return a handle for its records."""
        fd = self.disk_manager.open_file(filename)
        return RmFileHandle(self.disk_manager, self.buffer_pool_manager, fd)

    def close_file(self, file_handle: RmFileHandle) -> None:
        """Write the header and cached pages to disk and close the file."""
        fd = file_handle.fd
        self.disk_manager.write_page(fd, RM_FILE_HDR_PAGE, file_handle.file_hdr.to_bytes())
        self.buffer_pool_manager.flush_all_pages(fd)
        for page_no in range(file_handle.file_hdr.num_pages):
            self.buffer_pool_manager.delete_page(PageId(fd, page_no))
        self.disk_manager.close_file(fd)