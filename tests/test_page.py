from rmdb.page import INVALID_PAGE_ID, PAGE_SIZE, Page, PageId


def test_page_id_default_page_no_is_invalid():
    assert PageId(fd=3).page_no == INVALID_PAGE_ID


def test_page_id_string_form():
    assert str(PageId(fd=3, page_no=7)) == "{fd: 3 page_no: 7}"


def test_page_id_equality_and_hashing():
    table = {PageId(1, 2): "a"}
    assert table[PageId(1, 2)] == "a"
    assert PageId(1, 2) != PageId(2, 1)


def test_page_id_key_distinguishes_files():
    assert PageId(1, 0).key != PageId(2, 0).key
    assert PageId(0, 5).key == 5


def test_page_id_ordering_by_fd_then_page():
    ids = [PageId(2, 0), PageId(1, 5), PageId(1, 1)]
    assert sorted(ids) == [PageId(1, 1), PageId(1, 5), PageId(2, 0)]


def test_new_page_is_clean_and_zeroed():
    page = Page()
    assert len(page.data) == PAGE_SIZE
    assert not any(page.data)
    assert page.is_dirty is False
    assert page.pin_count == 0


def test_reset_memory_clears_data():
    page = Page()
    page.data[10:14] = b"abcd"
    page.reset_memory()
    assert page.data == bytearray(PAGE_SIZE)


def test_page_lsn_round_trip():
    page = Page()
    page.page_lsn = 12345
    assert page.page_lsn == 12345
    page.page_lsn = -1
    assert page.page_lsn == -1


def test_page_lsn_does_not_touch_header_area():
    page = Page()
    page.page_lsn = 99
    assert page.page_lsn == 99
    rest = page.data[Page.OFFSET_PAGE_HDR:]
    assert rest == bytearray(PAGE_SIZE - Page.OFFSET_PAGE_HDR)