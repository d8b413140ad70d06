"""
Tests for ImageFetcher: placeholder handling, URL optimization, the single
fallback retry and batch fetching. No network access: the session is mocked.
"""
from unittest.mock import MagicMock

import pytest
import requests

from core.linesheet_generator.assets.image_fetcher import ImageFetcher


def _response(content=b"img", error=None):
    response = MagicMock()
    response.content = content
    if error:
        response.raise_for_status.side_effect = error
    return response


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.mark.parametrize("ref", [None, "", "   ", "/api/placeholder/120/120", "https://cdn.example.com/placeholder.png"])
def test_placeholders_skip_network(session, ref):
    fetcher = ImageFetcher(session=session)
    assert fetcher.fetch(ref) is None
    session.get.assert_not_called()


def test_optimized_url_inserts_suffix_and_keeps_query():
    fetcher = ImageFetcher(session=MagicMock())
    assert fetcher.optimized_url("https://cdn.example.com/x/shoe.jpg?v=3") == \
        "https://cdn.example.com/x/shoe_200x200.jpg?v=3"
    assert fetcher.optimized_url("https://cdn.example.com/x/shoe.png") == \
        "https://cdn.example.com/x/shoe_200x200.png"


def test_optimized_url_without_extension_is_unchanged():
    fetcher = ImageFetcher(session=MagicMock())
    assert fetcher.optimized_url("https://cdn.example.com/images/12345") == "https://cdn.example.com/images/12345"


def test_optimized_url_is_not_applied_twice():
    fetcher = ImageFetcher(session=MagicMock())
    url = "https://cdn.example.com/shoe_200x200.jpg"
    assert fetcher.optimized_url(url) == url


def test_fetch_uses_optimized_url_first(session):
    session.get.return_value = _response(b"small")
    fetcher = ImageFetcher(session=session, timeout=5)

    assert fetcher.fetch("https://cdn.example.com/shoe.jpg") == b"small"
    session.get.assert_called_once_with("https://cdn.example.com/shoe_200x200.jpg", timeout=5)


def test_fetch_falls_back_to_original_url(session):
    session.get.side_effect = [
        _response(error=requests.HTTPError("404 Not Found")),
        _response(b"original"),
    ]
    fetcher = ImageFetcher(session=session)

    assert fetcher.fetch("https://cdn.example.com/shoe.jpg") == b"original"
    assert [c.args[0] for c in session.get.call_args_list] == [
        "https://cdn.example.com/shoe_200x200.jpg",
        "https://cdn.example.com/shoe.jpg",
    ]


def test_fetch_returns_none_after_both_attempts_fail(session):
    session.get.side_effect = requests.Timeout("timed out")
    fetcher = ImageFetcher(session=session)

    assert fetcher.fetch("https://cdn.example.com/shoe.jpg") is None
    assert session.get.call_count == 2


def test_fetch_without_extension_tries_once(session):
    session.get.side_effect = requests.ConnectionError("refused")
    fetcher = ImageFetcher(session=session)

    assert fetcher.fetch("https://cdn.example.com/images/12345") is None
    assert session.get.call_count == 1


def test_empty_body_counts_as_failure(session):
    session.get.side_effect = [_response(b""), _response(b"")]
    fetcher = ImageFetcher(session=session)
    assert fetcher.fetch("https://cdn.example.com/shoe.jpg") is None


def test_fetch_many_dedupes_and_skips_placeholders(session):
    session.get.return_value = _response(b"data")
    fetcher = ImageFetcher(session=session, max_workers=4)

    refs = [
        "https://cdn.example.com/a.jpg",
        "https://cdn.example.com/a.jpg",
        "/api/placeholder/120/120",
        "https://cdn.example.com/b.jpg",
    ]
    result = fetcher.fetch_many(refs)

    assert result == {
        "https://cdn.example.com/a.jpg": b"data",
        "/api/placeholder/120/120": None,
        "https://cdn.example.com/b.jpg": b"data",
    }
    assert session.get.call_count == 2


def test_fetch_many_with_only_placeholders_makes_no_requests(session):
    fetcher = ImageFetcher(session=session)
    assert fetcher.fetch_many(["", "/api/placeholder/1/1"]) == {"": None, "/api/placeholder/1/1": None}
    session.get.assert_not_called()
