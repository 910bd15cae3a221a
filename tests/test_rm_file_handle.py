import pytest

from rmdb.buffer_pool_manager import BufferPoolManager
from rmdb.disk_manager import DiskManager
from rmdb.page import PAGE_SIZE
from rmdb.rm_defs import RM_FIRST_RECORD_PAGE, RM_NO_PAGE, Rid
from rmdb.rm_file_handle import PageNotExistError, RecordNotFoundError
from rmdb.rm_manager import RmManager

RECORD_SIZE = 8


def rec(i):
    return i.to_bytes(RECORD_SIZE, "little")


@pytest.fixture
def env(tmp_path):
    dm = DiskManager()
    bpm = BufferPoolManager(16, dm)
    rm = RmManager(dm, bpm)
    path = str(tmp_path / "tab")
    rm.create_file(path, RECORD_SIZE)
    fh = rm.open_file(path)
    yield rm, fh, path
    dm.close_file(fh.fd)


def test_insert_and_get(env):
    _, fh, _ = env
    rid = fh.insert_record(rec(7))
    assert fh.is_record(rid)
    assert fh.get_record(rid).data == rec(7)
    assert rid.page_no == RM_FIRST_RECORD_PAGE


def test_delete(env):
    _, fh, _ = env
    rid = fh.insert_record(rec(1))
    fh.delete_record(rid)
    assert not fh.is_record(rid)
    with pytest.raises(RecordNotFoundError):
        fh.get_record(rid)
    with pytest.raises(RecordNotFoundError):
        fh.delete_record(rid)


def test_update(env):
    _, fh, _ = env
    rid = fh.insert_record(rec(1))
    fh.update_record(rid, rec(2))
    assert fh.get_record(rid).data == rec(2)


def test_wrong_size_rejected(env):
    _, fh, _ = env
    with pytest.raises(ValueError):
        fh.insert_record(b"short")


def test_invalid_pages(env):
    _, fh, _ = env
    with pytest.raises(PageNotExistError):
        fh.fetch_page_handle(0)
    with pytest.raises(PageNotExistError):
        fh.fetch_page_handle(fh.file_hdr.num_pages)
    with pytest.raises(PageNotExistError):
        fh.get_record(Rid(fh.file_hdr.num_pages, 0))


def test_records_spill_to_next_page(env):
    _, fh, _ = env
    n = fh.file_hdr.num_records_per_page
    rids = [fh.insert_record(rec(i)) for i in range(n + 1)]
    assert len(set(rids)) == n + 1
    assert {r.page_no for r in rids} == {RM_FIRST_RECORD_PAGE, RM_FIRST_RECORD_PAGE + 1}
    assert all(fh.get_record(r).data == rec(i) for i, r in enumerate(rids))


def test_freed_slot_is_reused(env):
    _, fh, _ = env
    n = fh.file_hdr.num_records_per_page
    rids = [fh.insert_record(rec(i)) for i in range(n)]
    assert fh.file_hdr.first_free_page_no == RM_NO_PAGE
    victim = rids[n // 2]
    fh.delete_record(victim)
    assert fh.file_hdr.first_free_page_no == victim.page_no
    assert fh.insert_record(rec(999)) == victim


def test_insert_at_restores_record_and_free_list(env):
    _, fh, _ = env
    n = fh.file_hdr.num_records_per_page
    rids = [fh.insert_record(rec(i)) for i in range(n)]
    fh.delete_record(rids[0])
    fh.insert_record_at(rids[0], rec(0))
    assert fh.get_record(rids[0]).data == rec(0)
    assert fh.file_hdr.first_free_page_no == RM_NO_PAGE


def test_new_page_handle_layout(env):
    _, fh, _ = env
    pages_before = fh.file_hdr.num_pages
    handle = fh.create_new_page_handle()
    try:
        assert handle.page_hdr.num_records == 0
        assert handle.page.id.page_no == pages_before
        assert fh.file_hdr.first_free_page_no == handle.page.id.page_no
        assert fh.file_hdr.num_pages == pages_before + 1
        end = handle.slots_offset + fh.file_hdr.num_records_per_page * RECORD_SIZE
        assert end <= PAGE_SIZE
        handle.set_slot(0, rec(5))
        assert handle.get_slot(0) == rec(5)
    finally:
        fh.buffer_pool_manager.unpin_page(handle.page.id, True)


def test_records_persist_after_reopen(env):
    rm, fh, path = env
    rids = [fh.insert_record(rec(i)) for i in range(10)]
    hdr = fh.file_hdr
    rm.close_file(fh)
    fh2 = rm.open_file(path)
    try:
        assert fh2.file_hdr == hdr
        assert [fh2.get_record(r).data for r in rids] == [rec(i) for i in range(10)]
    finally:
        rm.close_file(fh2)