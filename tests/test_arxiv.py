from datetime import datetime, timezone
from pathlib import Path
import sys

import pytest
import requests


PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

import arxiv
from arxiv import ArxivFeed, FeedDocument
from errors import FeedError, FeedFetchError, FeedParseError


ATOM_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title type="html">ArXiv Query: search_query=all:bidding</title>
  <id>http://arxiv.org/api/query-id</id>
  <updated>2024-01-03T00:00:00-05:00</updated>
  <entry>
    <id>http://arxiv.org/abs/2401.00001v1</id>
    <updated>2024-01-02T10:00:00Z</updated>
    <published>2024-01-02T03:04:05Z</published>
    <title>Real-Time Bidding
      with Budgets</title>
    <summary>  We study 2 auctions
      in depth.  </summary>
    <author><name>Ada Lovelace</name></author>
    <author><name>Alan Turing</name></author>
  </entry>
  <entry>
    <id>http://arxiv.org/abs/2401.00002v2</id>
    <updated>2024-01-01T00:00:00Z</updated>
    <title>Online Advertising</title>
    <summary>Short.</summary>
    <author><name>Grace Hopper</name></author>
  </entry>
</feed>
"""


class FakeResponse:
    def __init__(self, text="", status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


def test_parse_atom_feed():
    document = arxiv.parse(ATOM_FEED)

    assert document.title == "ArXiv Query: search_query=all:bidding"
    assert len(document.entries) == 2
    first = document.entries[0]
    assert first.id == "http://arxiv.org/abs/2401.00001v1"
    assert first.title == "Real-Time Bidding with Budgets"
    assert first.summary == "We study 2 auctions in depth."
    assert first.authors == ["Ada Lovelace", "Alan Turing"]
    assert first.published == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_published_falls_back_to_updated():
    document = arxiv.parse(ATOM_FEED)

    assert document.entries[1].published == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_document_string_summary():
    document = FeedDocument(title="ArXiv Query", entries=[])

    assert str(document) == "title: ArXiv Query num_entries: 0"
    assert str(arxiv.parse(ATOM_FEED)).endswith("num_entries: 2")


def test_parse_rejects_non_feed_body():
    with pytest.raises(FeedParseError):
        arxiv.parse("this is not a feed")


def test_parse_rejects_entry_without_id_and_title():
    body = (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<feed xmlns="http://www.w3.org/2005/Atom"><title>Q</title>'
        "<entry><summary>orphan</summary></entry></feed>"
    )

    with pytest.raises(FeedParseError):
        arxiv.parse(body)


def test_fetch_returns_body(monkeypatch):
    captured = {}

    def fake_get(url, timeout):
        captured["url"] = url
        captured["timeout"] = timeout
        return FakeResponse(ATOM_FEED)

    monkeypatch.setattr(arxiv.requests, "get", fake_get)
    feed = ArxivFeed("http://example.test/query", timeout=5.0)

    document = feed.load()

    assert captured == {"url": "http://example.test/query", "timeout": 5.0}
    assert len(document.entries) == 2


def test_fetch_connection_error(monkeypatch):
    def fake_get(url, timeout):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(arxiv.requests, "get", fake_get)

    with pytest.raises(FeedFetchError) as exc_info:
        ArxivFeed("http://example.test/query").fetch()
    assert "unreachable" in str(exc_info.value)


def test_fetch_http_error_status(monkeypatch):
    monkeypatch.setattr(arxiv.requests, "get", lambda url, timeout: FakeResponse("", 503))

    with pytest.raises(FeedError):
        ArxivFeed("http://example.test/query").fetch()


def test_fetch_uses_session_when_given():
    class FakeSession:
        def get(self, url, timeout):
            return FakeResponse("body")

    assert ArxivFeed("http://example.test", session=FakeSession()).fetch() == "body"


def test_from_config_uses_feed_settings(monkeypatch):
    import config

    monkeypatch.setattr(config, "get_feed_url", lambda: "http://configured.test/q")
    monkeypatch.setattr(config, "get_feed_timeout", lambda: 7.5)

    feed = ArxivFeed.from_config()

    assert feed.url == "http://configured.test/q"
    assert feed.timeout == 7.5
