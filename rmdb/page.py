"""Page identifiers and in-memory page frames."""

from __future__ import annotations

import struct
from dataclasses import dataclass

PAGE_SIZE = 4096
INVALID_PAGE_ID = -1
INVALID_LSN = -1

_LSN = struct.Struct("<i")


@dataclass(frozen=True, order=True)
class PageId:
    """Identifies a page by the descriptor of its open file and its page number."""

    fd: int
    page_no: int = INVALID_PAGE_ID

    @property
    def key(self) -> int:
        """A single integer combining the file descriptor and page number."""
        return (self.fd << 16) | self.page_no

    def __str__(self) -> str:
        return f"{{fd: {self.fd} page_no: {self.page_no}}}"


class Page:
    """A page-sized block of data held in a buffer pool frame."""

    OFFSET_PAGE_START = 0
    OFFSET_LSN = 0
    OFFSET_PAGE_HDR = 4

    def __init__(self) -> None:
        self.id = PageId(fd=-1)
        self.data = bytearray(PAGE_SIZE)
        self.is_dirty = False
        self.pin_count = 0

    def reset_memory(self) -> None:
        """Fill the page data with zero bytes."""
        self.data[:] = bytes(PAGE_SIZE)

    @property
    def page_lsn(self) -> int:
        return _LSN.unpack_from(self.data, self.OFFSET_LSN)[0]

    @page_lsn.setter
    def page_lsn(self, lsn: int) -> None:
        _LSN.pack_into(self.data, self.OFFSET_LSN, lsn)

    def __repr__(self) -> str:
        return f"Page(id={self.id}, is_dirty={self.is_dirty}, pin_count={self.pin_count})"