import pytest

from backend.common.pagination import page_info, paginate, parse_pagination


@pytest.mark.parametrize("args, expected", [
    ({}, (0, 10)),
    ({"skip": "20", "limit": "5"}, (20, 5)),
    ({"skip": "abc", "limit": "xyz"}, (0, 10)),
    ({"skip": "-3", "limit": "0"}, (0, 10)),
    ({"limit": "-7"}, (0, 10)),
    ({"skip": "4"}, (4, 10)),
    ({"skip": "99999999999999999999", "limit": "99999999999999999999"}, (0, 10)),
])
def test_parse_pagination_defaults(args, expected):
    assert parse_pagination(args) == expected


def test_default_limit_is_per_endpoint():
    assert parse_pagination({}, default_limit=5) == (0, 5)
    assert parse_pagination({"limit": "nope"}, default_limit=5) == (0, 5)


def test_no_upper_bound_unless_configured(monkeypatch):
    monkeypatch.delenv("MAX_PAGE_LIMIT", raising=False)
    assert parse_pagination({"limit": "5000"}) == (0, 5000)

    monkeypatch.setenv("MAX_PAGE_LIMIT", "100")
    assert parse_pagination({"limit": "5000"}) == (0, 100)


def test_has_more():
    assert page_info(0, 10, 25)["hasMore"] is True
    assert page_info(20, 10, 25)["hasMore"] is False
    assert page_info(15, 10, 25)["hasMore"] is False
    assert page_info(50, 10, 25) == {"skip": 50, "limit": 10, "total": 25, "hasMore": False}


def test_paginate_shape():
    body = paginate("events", [{"id": "a"}], 0, 1, 2)
    assert body == {
        "events": [{"id": "a"}],
        "pagination": {"skip": 0, "limit": 1, "total": 2, "hasMore": True},
    }


def test_largest_bigint_is_accepted():
    assert parse_pagination({"skip": str(2 ** 63 - 1)}) == (2 ** 63 - 1, 10)
