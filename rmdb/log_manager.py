"""Write-ahead log records, the log buffer and the log manager."""

from __future__ import annotations

import struct
import threading
from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar

from rmdb.disk_manager import DiskManager
from rmdb.page import INVALID_LSN, PAGE_SIZE
from rmdb.rm_defs import Rid, RmRecord

INVALID_TXN_ID = -1
LOG_BUFFER_SIZE = 1024 * PAGE_SIZE
FLUSH_TIMEOUT = 3.0

OFFSET_LOG_TYPE = 0
OFFSET_LSN = 4
OFFSET_LOG_TOT_LEN = 8
OFFSET_LOG_TID = 12
OFFSET_PREV_LSN = 16
OFFSET_LOG_DATA = 20
LOG_HEADER_SIZE = OFFSET_LOG_DATA

_HEADER = struct.Struct("<iiIii")
_INT = struct.Struct("<i")
_RID = struct.Struct("<ii")
_SIZE_T = struct.Struct("<Q")


class LogType(IntEnum):
    """The operation a log record describes."""

    UPDATE = 0
    INSERT = 1
    DELETE = 2
    BEGIN = 3
    COMMIT = 4
    ABORT = 5


_RECORD_TYPES: dict[LogType, type[LogRecord]] = {}


@dataclass
class LogRecord:
    """A log record: a fixed header followed by type-specific data."""

    lsn: int = INVALID_LSN
    log_tid: int = INVALID_TXN_ID
    prev_lsn: int = INVALID_LSN

    LOG_TYPE: ClassVar[LogType]

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        log_type = cls.__dict__.get("LOG_TYPE")
        if log_type is not None:
            _RECORD_TYPES[log_type] = cls

    @property
    def log_type(self) -> LogType:
        try:
            return self.LOG_TYPE
        except AttributeError:
            raise TypeError(f"{type(self).__name__} has no log type") from None

    def _body(self) -> bytes:
        return b""

    @classmethod
    def _from_body(cls, body: bytes) -> LogRecord:
        return cls()

    @property
    def log_tot_len(self) -> int:
        """Length of the whole serialized record in bytes."""
        return LOG_HEADER_SIZE + len(self._body())

    def serialize(self) -> bytes:
        """The header followed by the record data."""
        body = self._body()
        header = _HEADER.pack(
            self.log_type,
            self.lsn,
            LOG_HEADER_SIZE + len(body),
            self.log_tid,
            self.prev_lsn,
        )
        return header + body

    @classmethod
    def deserialize(cls, data: bytes) -> LogRecord:
        """Read one record from the start of data; trailing bytes are ignored."""
        if len(data) < LOG_HEADER_SIZE:
            raise ValueError("log record header is truncated")
        raw_type, lsn, tot_len, tid, prev_lsn = _HEADER.unpack_from(data)
        try:
            log_type = LogType(raw_type)
        except ValueError:
            raise ValueError(f"unknown log type {raw_type}") from None
        record_cls = _RECORD_TYPES.get(log_type)
        if record_cls is None:
            raise ValueError(f"unsupported log type {log_type.name}")
        if not issubclass(record_cls, cls):
            raise ValueError(f"log record of type {log_type.name} is not a {cls.__name__}")
        if tot_len < LOG_HEADER_SIZE or len(data) < tot_len:
            raise ValueError("log record is truncated")
        record = record_cls._from_body(bytes(data[LOG_HEADER_SIZE:tot_len]))
        record.lsn = lsn
        record.log_tid = tid
        record.prev_lsn = prev_lsn
        return record

    def format(self) -> str:
        """A readable description of the record, for debugging."""
        return "\n".join(
            [
                "Print Log Record:",
                f"log_type_: {self.log_type.name}",
                f"lsn: {self.lsn}",
                f"log_tot_len: {self.log_tot_len}",
                f"log_tid: {self.log_tid}",
                f"prev_lsn: {self.prev_lsn}",
            ]
        )


@dataclass
class BeginLogRecord(LogRecord):
    """Start of a transaction."""

    LOG_TYPE: ClassVar[LogType] = LogType.BEGIN


@dataclass
class CommitLogRecord(LogRecord):
    """Commit of a transaction."""

    LOG_TYPE: ClassVar[LogType] = LogType.COMMIT


@dataclass
class AbortLogRecord(LogRecord):
    """Abort of a transaction."""

    LOG_TYPE: ClassVar[LogType] = LogType.ABORT


@dataclass
class InsertLogRecord(LogRecord):
    """Insertion of a record into a table."""

    LOG_TYPE: ClassVar[LogType] = LogType.INSERT

    insert_value: RmRecord = field(default_factory=lambda: RmRecord(b""))
    rid: Rid = field(default_factory=Rid)
    table_name: str = ""

    def _body(self) -> bytes:
        name = self.table_name.encode()
        return (
            self.insert_value.serialize()
            + _RID.pack(self.rid.page_no, self.rid.slot_no)
            + _SIZE_T.pack(len(name))
            + name
        )

    @classmethod
    def _from_body(cls, body: bytes) -> InsertLogRecord:
        value = RmRecord.deserialize(body)
        offset = _INT.size + value.size
        try:
            page_no, slot_no = _RID.unpack_from(body, offset)
            offset += _RID.size
            (name_len,) = _SIZE_T.unpack_from(body, offset)
            offset += _SIZE_T.size
        except struct.error:
            raise ValueError("insert log record is truncated") from None
        name = body[offset:offset + name_len]
        if len(name) != name_len:
            raise ValueError("insert log record is truncated")
        return cls(insert_value=value, rid=Rid(page_no, slot_no), table_name=name.decode())

    def format(self) -> str:
        shown = self.insert_value.data.split(b"\0", 1)[0].decode(errors="replace")
        return "\n".join(
            [
                "insert record",
                super().format(),
                f"insert_value: {shown}",
                f"insert rid: {self.rid.page_no}, {self.rid.slot_no}",
                f"table name: {self.table_name}",
            ]
        )


class LogBuffer:
    """A single in-memory buffer that log records are appended to."""

    def __init__(self, size: int = LOG_BUFFER_SIZE) -> None:
        self.size = size
        self.buffer = bytearray(size)
        self.offset = 0

    def is_full(self, append_size: int) -> bool:
        """True if append_size more bytes would not fit."""
        return self.offset + append_size > self.size

    def append(self, data: bytes) -> None:
        if self.is_full(len(data)):
            raise ValueError("log buffer is full")
        self.buffer[self.offset:self.offset + len(data)] = data
        self.offset += len(data)

    def contents(self) -> bytes:
        return bytes(self.buffer[:self.offset])

    def clear(self) -> None:
        self.offset = 0


class LogManager:
    """Assigns log sequence numbers and writes records through the buffer to disk."""

    def __init__(self, disk_manager: DiskManager, buffer_size: int = LOG_BUFFER_SIZE) -> None:
        self.disk_manager = disk_manager
        self.log_buffer = LogBuffer(buffer_size)
        self._lock = threading.Lock()
        self._global_lsn = 0
        self.persist_lsn = INVALID_LSN

    @property
    def global_lsn(self) -> int:
        """The sequence number the next record will get."""
        return self._global_lsn

    def add_log_to_buffer(self, log_record: LogRecord) -> int:
        """Give the record the next sequence number, buffer it and return the number."""
        with self._lock:
            size = log_record.log_tot_len
            if size > self.log_buffer.size:
                raise ValueError(
                    f"log record of {size} bytes exceeds the log buffer of {self.log_buffer.size}"
                )
            if self.log_buffer.is_full(size):
                self._flush()
            lsn = self._global_lsn
            self._global_lsn += 1
            log_record.lsn = lsn
            self.log_buffer.append(log_record.serialize())
            return lsn

    def flush_log_to_disk(self) -> None:
        """Append the buffered records to the log file and empty the buffer."""
        with self._lock:
            self._flush()

    def _flush(self) -> None:
        if self.log_buffer.offset:
            self.disk_manager.write_log(self.log_buffer.contents())
        self.log_buffer.clear()
        self.persist_lsn = self._global_lsn - 1