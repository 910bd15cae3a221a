import pytest

from rmdb.disk_manager import (
    DbFileExistsError,
    DbFileNotFoundError,
    DiskManager,
    FileNotOpenError,
    InternalError,
    RMDBError,
    UnixError,
)
from rmdb.page import PAGE_SIZE


@pytest.fixture
def dm(tmp_path):
    manager = DiskManager(log_file_name=str(tmp_path / "db.log"))
    opened = []
    original_open = manager.open_file

    yield manager
    for path in list(manager._path2fd):
        manager.close_file(manager._path2fd[path])
    del opened, original_open


def test_create_open_and_page_round_trip(dm, tmp_path):
    path = str(tmp_path / "table")
    dm.create_file(path)
    assert dm.is_file(path)
    fd = dm.open_file(path)
    dm.write_page(fd, 2, b"hello page")
    assert dm.read_page(fd, 2, 10) == b"hello page"
    assert dm.get_file_size(path) == 2 * PAGE_SIZE + 10


def test_open_twice_returns_same_fd(dm, tmp_path):
    path = str(tmp_path / "t")
    dm.create_file(path)
    fd = dm.open_file(path)
    assert dm.open_file(path) == fd
    assert dm.get_file_fd(path) == fd
    assert dm.get_file_name(fd) == path


def test_close_file_forgets_descriptor(dm, tmp_path):
    path = str(tmp_path / "t")
    dm.create_file(path)
    fd = dm.open_file(path)
    dm.close_file(fd)
    with pytest.raises(FileNotOpenError):
        dm.get_file_name(fd)


def test_create_existing_file_fails(dm, tmp_path):
    path = str(tmp_path / "t")
    dm.create_file(path)
    with pytest.raises(DbFileExistsError):
        dm.create_file(path)


def test_destroy_file(dm, tmp_path):
    path = str(tmp_path / "t")
    dm.create_file(path)
    dm.destroy_file(path)
    assert not dm.is_file(path)
    with pytest.raises(DbFileNotFoundError):
        dm.destroy_file(path)


def test_open_missing_file_fails(dm, tmp_path):
    with pytest.raises(DbFileNotFoundError):
        dm.open_file(str(tmp_path / "missing"))


def test_read_past_end_fails(dm, tmp_path):
    path = str(tmp_path / "t")
    dm.create_file(path)
    fd = dm.open_file(path)
    with pytest.raises(InternalError):
        dm.read_page(fd, 5, 16)


def test_get_file_size_of_missing_file(dm, tmp_path):
    assert dm.get_file_size(str(tmp_path / "missing")) == -1


def test_allocate_page_counts_up(dm):
    dm.set_fd2pageno(7, 1)
    assert dm.allocate_page(7) == 1
    assert dm.allocate_page(7) == 2
    assert dm.get_fd2pageno(7) == 3


def test_allocate_page_rejects_bad_fd(dm):
    with pytest.raises(InternalError):
        dm.allocate_page(DiskManager.MAX_FD)


def test_directories(dm, tmp_path):
    path = str(tmp_path / "db")
    assert not dm.is_dir(path)
    dm.create_dir(path)
    assert dm.is_dir(path)
    assert not dm.is_file(path)
    dm.destroy_dir(path)
    assert not dm.is_dir(path)


def test_create_existing_dir_fails(dm, tmp_path):
    with pytest.raises(UnixError):
        dm.create_dir(str(tmp_path))


def test_log_append_and_read(dm):
    dm.create_file(dm.log_file_name)
    dm.write_log(b"first")
    dm.write_log(b"second")
    assert dm.read_log(100, 0) == b"firstsecond"
    assert dm.read_log(3, 5) == b"sec"
    assert dm.read_log(10, 11) == b""
    assert dm.read_log(10, 12) is None


def test_errors_share_base_class():
    assert issubclass(DbFileNotFoundError, RMDBError)
    assert FileNotOpenError(4).fd == 4