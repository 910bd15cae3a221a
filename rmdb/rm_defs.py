"""On-disk structures of table data files."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar

RM_NO_PAGE = -1
RM_FILE_HDR_PAGE = 0
RM_FIRST_RECORD_PAGE = 1
RM_MAX_RECORD_SIZE = 512

_FILE_HDR = struct.Struct("<5i")
_PAGE_HDR = struct.Struct("<2i")
_RECORD_SIZE = struct.Struct("<i")


@dataclass(frozen=True, order=True)
class Rid:
    """Position of a record: page number and slot number."""

    page_no: int = RM_NO_PAGE
    slot_no: int = -1


@dataclass
class RmFileHdr:
    """Metadata of a table data file, stored in its page 0."""

    record_size: int = 0
    num_pages: int = 1
    num_records_per_page: int = 0
    first_free_page_no: int = RM_NO_PAGE
    bitmap_size: int = 0

    SIZE: ClassVar[int] = _FILE_HDR.size

    def to_bytes(self) -> bytes:
        return _FILE_HDR.pack(
            self.record_size,
            self.num_pages,
            self.num_records_per_page,
            self.first_free_page_no,
            self.bitmap_size,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> RmFileHdr:
        return cls(*_FILE_HDR.unpack_from(data))


@dataclass
class RmPageHdr:
    """Metadata at the start of each record page."""

    next_free_page_no: int = RM_NO_PAGE
    num_records: int = 0

    SIZE: ClassVar[int] = _PAGE_HDR.size

    def to_bytes(self) -> bytes:
        return _PAGE_HDR.pack(self.next_free_page_no, self.num_records)

    @classmethod
    def from_bytes(cls, data: bytes) -> RmPageHdr:
        return cls(*_PAGE_HDR.unpack_from(data))


@dataclass
class RmRecord:
    """The raw bytes of one record."""

    data: bytes

    def __post_init__(self) -> None:
        self.data = bytes(self.data)

    @property
    def size(self) -> int:
        return len(self.data)

    def serialize(self) -> bytes:
        """The size as a 4-byte integer followed by the data."""
        return _RECORD_SIZE.pack(len(self.data)) + self.data

    @classmethod
    def deserialize(cls, data: bytes) -> RmRecord:
        """Read a record written by serialize; trailing bytes are ignored."""
        if len(data) < _RECORD_SIZE.size:
            raise ValueError("record data is truncated")
        (size,) = _RECORD_SIZE.unpack_from(data)
        end = _RECORD_SIZE.size + size
        if size < 0 or len(data) < end:
            raise ValueError("record data is truncated")
        return cls(bytes(data[_RECORD_SIZE.size:end]))