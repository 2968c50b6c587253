import pytest

from chatadmin.schemas.pagination import Pagination
from chatadmin.services.envelopes import (
    extract_list,
    extract_members,
    extract_notifications,
    extract_pagination,
    infer_page_state,
    is_send_success,
)

from conftest import member_row

ROWS = [member_row(1), member_row(2)]


@pytest.mark.parametrize(
    "body",
    [
        {"members": ROWS},
        {"data": {"members": ROWS}},
        {"data": ROWS},
        ROWS,
    ],
    ids=["members", "data.members", "data-list", "bare-list"],
)
def test_members_found_in_every_known_shape(body):
    assert extract_members(body) == ROWS


def test_members_prefers_top_level_key():
    body = {"members": ROWS[:1], "data": {"members": ROWS}}
    assert extract_members(body) == ROWS[:1]


@pytest.mark.parametrize("body", [{"rows": ROWS}, {"data": "nope"}, None, "members"])
def test_members_unknown_shape_is_empty(body, caplog):
    with caplog.at_level("WARNING"):
        assert extract_members(body) == []
    assert any(r.getMessage() == "envelope.shape_mismatch" for r in caplog.records)


def test_extract_list_accepts_bare_and_wrapped():
    assert extract_list([1, 2], "ctx") == [1, 2]
    assert extract_list({"data": [3]}, "ctx") == [3]
    assert extract_list({"data": {"x": 1}}, "ctx") == []


def test_pagination_from_nested_data_uses_request_defaults():
    body = {"data": {"members": ROWS, "pagination": {"totalPages": 4, "totalCount": 52}}}
    pagination = extract_pagination(body, page=2, limit=15)
    assert pagination == Pagination(page=2, limit=15, total_pages=4, total_count=52)


def test_pagination_notification_spelling():
    body = {"pagination": {"currentPage": 3, "totalPages": 7, "totalNotifications": 61, "limit": 10}}
    pagination = extract_pagination(body, page=1, limit=10)
    assert pagination.page == 3
    assert pagination.total_pages == 7
    assert pagination.total_count == 61


def test_pagination_missing_is_none():
    assert extract_pagination({"members": ROWS}, 1, 15) is None
    assert extract_pagination(ROWS, 1, 15) is None


def test_notifications_shapes():
    rows = [{"id": 1}, {"id": 2}]
    assert extract_notifications(rows) == (rows, None)
    assert extract_notifications({"data": rows}) == (rows, None)

    found, container = extract_notifications({"notifications": rows, "pagination": {"totalPages": 1}})
    assert found == rows
    assert container["pagination"] == {"totalPages": 1}

    nested = {"notifications": rows, "pagination": {"currentPage": 1}}
    found, container = extract_notifications({"success": True, "data": nested})
    assert found == rows
    assert container is nested


@pytest.mark.parametrize("body", [{"message": "oops"}, {"data": {"foo": 1}}])
def test_notifications_unknown_dict_is_empty_and_logged(body, caplog):
    with caplog.at_level("WARNING"):
        rows, _ = extract_notifications(body)
    assert rows == []
    assert any(r.getMessage() == "envelope.shape_mismatch" for r in caplog.records)


@pytest.mark.parametrize(
    "body, expected",
    [
        ({"message": "sent"}, True),
        ({"success": True}, True),
        ({"success": False, "message": "no"}, False),
        ({"success": "true"}, False),
        (None, True),
        ([], True),
    ],
)
def test_is_send_success(body, expected):
    assert is_send_success(body) is expected


class TestInferPageState:
    def test_full_page_is_not_last(self):
        state = infer_page_state(page=1, limit=15, item_count=15)
        assert not state.is_last_page
        assert state.has_next
        assert state.total_pages == 2
        assert state.estimated

    def test_short_page_is_last(self):
        state = infer_page_state(page=1, limit=15, item_count=14)
        assert state.is_last_page
        assert not state.has_next
        assert state.total_pages == 1
        assert state.total_count == 14

    def test_short_later_page_counts_earlier_rows(self):
        state = infer_page_state(page=3, limit=10, item_count=4)
        assert state.total_pages == 3
        assert state.total_count == 24
        assert state.has_previous

    def test_backend_totals_win(self):
        pagination = Pagination(page=1, limit=15, total_pages=1, total_count=15)
        state = infer_page_state(page=1, limit=15, item_count=15, pagination=pagination)
        assert state.is_last_page
        assert state.total_pages == 1
        assert not state.estimated

    def test_known_page_count_is_not_shrunk(self):
        state = infer_page_state(page=2, limit=10, item_count=10, previous_total_pages=6)
        assert state.total_pages == 6
        assert not state.is_last_page

    def test_empty_first_page(self):
        state = infer_page_state(page=1, limit=10, item_count=0)
        assert state.is_last_page
        assert state.total_count == 0

    def test_backend_count_without_page_total(self):
        pagination = Pagination(page=1, limit=15, total_count=31)

        first = infer_page_state(page=1, limit=15, item_count=15, pagination=pagination)
        last = infer_page_state(page=3, limit=15, item_count=1, pagination=pagination)

        assert first.total_pages == 3
        assert not first.is_last_page
        assert not first.estimated
        assert last.is_last_page
        assert last.total_count == 31
