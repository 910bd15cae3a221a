"""File, page and log I/O on disk."""

from __future__ import annotations

import os
import shutil
import stat
import threading

from rmdb.page import PAGE_SIZE

LOG_FILE_NAME = "db.log"
MAX_FD = 8192


class RMDBError(Exception):
    """Base class of all database errors."""

    def __init__(self, msg: str) -> None:
        super().__init__(msg)
        self.msg = msg


class InternalError(RMDBError):
    """An unexpected failure inside the storage layer."""


class UnixError(RMDBError):
    """A failure reported by the operating system."""

    def __init__(self, msg: str = "Unix error") -> None:
        super().__init__(msg)


class DbFileExistsError(RMDBError):
    """The file to be created already exists."""


class DbFileNotFoundError(RMDBError):
    """The file does not exist."""


class FileNotOpenError(RMDBError):
    """The file descriptor does not belong to an open file."""

    def __init__(self, fd: int) -> None:
        super().__init__(f"Invalid file descriptor: {fd}")
        self.fd = fd


class DiskManager:
    """Reads and writes pages, files and the write-ahead log on disk."""

    MAX_FD = MAX_FD

    def __init__(self, log_file_name: str = LOG_FILE_NAME) -> None:
        self.log_file_name = log_file_name
        self.log_fd = -1
        self._path2fd: dict[str, int] = {}
        self._fd2path: dict[int, str] = {}
        self._fd2pageno: dict[int, int] = {}
        self._pageno_lock = threading.Lock()

    # Pages

    def write_page(self, fd: int, page_no: int, data: bytes) -> None:
        """Write data at the start of the given page of the file."""
        try:
            os.lseek(fd, page_no * PAGE_SIZE, os.SEEK_SET)
        except OSError as exc:
            raise InternalError("DiskManager::write_page Error - lseek failed") from exc
        try:
            written = os.write(fd, bytes(data))
        except OSError as exc:
            raise InternalError("DiskManager::write_page Error - write failed") from exc
        if written != len(data):
            raise InternalError("DiskManager::write_page Error - write failed")

    def read_page(self, fd: int, page_no: int, num_bytes: int) -> bytes:
        """Read num_bytes from the start of the given page of the file."""
        try:
            os.lseek(fd, page_no * PAGE_SIZE, os.SEEK_SET)
        except OSError as exc:
            raise InternalError("DiskManager::read_page Error - lseek failed") from exc
        try:
            data = os.read(fd, num_bytes)
        except OSError as exc:
            raise InternalError("DiskManager::read_page Error") from exc
        if len(data) != num_bytes:
            raise InternalError("DiskManager::read_page Error")
        return data

    def allocate_page(self, fd: int) -> int:
        """Return the next free page number of the file."""
        if not 0 <= fd < MAX_FD:
            raise InternalError(f"DiskManager::allocate_page Error - bad fd {fd}")
        with self._pageno_lock:
            page_no = self._fd2pageno.get(fd, 0)
            self._fd2pageno[fd] = page_no + 1
            return page_no

    def deallocate_page(self, page_no: int) -> None:
        """Release a page number; pages are never reused."""

    def set_fd2pageno(self, fd: int, start_page_no: int) -> None:
        with self._pageno_lock:
            self._fd2pageno[fd] = start_page_no

    def get_fd2pageno(self, fd: int) -> int:
        with self._pageno_lock:
            return self._fd2pageno.get(fd, 0)

    # Directories

    def is_dir(self, path: str) -> bool:
        try:
            return stat.S_ISDIR(os.stat(path).st_mode)
        except OSError:
            return False

    def create_dir(self, path: str) -> None:
        try:
            os.mkdir(path)
        except OSError as exc:
            raise UnixError(str(exc)) from exc

    def destroy_dir(self, path: str) -> None:
        try:
            shutil.rmtree(path)
        except OSError as exc:
            raise UnixError(str(exc)) from exc

    # Files

    def is_file(self, path: str) -> bool:
        try:
            return stat.S_ISREG(os.stat(path).st_mode)
        except OSError:
            return False

    def create_file(self, path: str) -> None:
        try:
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_RDWR, 0o600)
        except OSError as exc:
            raise DbFileExistsError(
                "DiskManager::create_file Error - File creation failed"
            ) from exc
        os.close(fd)

    def destroy_file(self, path: str) -> None:
        try:
            os.unlink(path)
        except OSError as exc:
            raise DbFileNotFoundError(
                "DiskManager::destroy_file Error - File destroying failed"
            ) from exc

    def open_file(self, path: str) -> int:
        """Open a file for reading and writing; an open file keeps its descriptor."""
        if path in self._path2fd:
            return self._path2fd[path]
        try:
            fd = os.open(path, os.O_RDWR)
        except OSError as exc:
            raise DbFileNotFoundError(
                "DiskManager::open_file Error - File opening failed"
            ) from exc
        self._path2fd[path] = fd
        self._fd2path[fd] = path
        return fd

    def close_file(self, fd: int) -> None:
        """Close an open file; descriptors that are not open are ignored."""
        path = self._fd2path.pop(fd, None)
        if path is None:
            return
        del self._path2fd[path]
        os.close(fd)
        if fd == self.log_fd:
            self.log_fd = -1

    def get_file_size(self, file_name: str) -> int:
        """Size of the file in bytes, or -1 if it cannot be examined."""
        try:
            return os.stat(file_name).st_size
        except OSError:
            return -1

    def get_file_name(self, fd: int) -> str:
        try:
            return self._fd2path[fd]
        except KeyError:
            raise FileNotOpenError(fd) from None

    def get_file_fd(self, file_name: str) -> int:
        if file_name not in self._path2fd:
            return self.open_file(file_name)
        return self._path2fd[file_name]

    # Log

    def read_log(self, size: int, offset: int) -> bytes | None:
        """Read up to size bytes of the log from offset; None if offset is past the end."""
        if self.log_fd == -1:
            self.log_fd = self.open_file(self.log_file_name)
        file_size = self.get_file_size(self.log_file_name)
        if offset > file_size:
            return None
        size = min(size, file_size - offset)
        if size == 0:
            return b""
        os.lseek(self.log_fd, offset, os.SEEK_SET)
        data = os.read(self.log_fd, size)
        if len(data) != size:
            raise InternalError("DiskManager::read_log Error")
        return data

    def write_log(self, log_data: bytes) -> None:
        """Append data to the end of the log file."""
        if self.log_fd == -1:
            self.log_fd = self.open_file(self.log_file_name)
        try:
            os.lseek(self.log_fd, 0, os.SEEK_END)
            written = os.write(self.log_fd, bytes(log_data))
        except OSError as exc:
            raise UnixError(str(exc)) from exc
        if written != len(log_data):
            raise UnixError("DiskManager::write_log Error")