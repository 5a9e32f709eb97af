# File: arxiv.py
# Fetches the arXiv Atom query feed and parses it into title/author/summary records.

import logging
from datetime import datetime, timezone
from typing import List, Optional, Protocol

import feedparser
import requests
from pydantic import BaseModel, Field

from errors import FeedFetchError, FeedParseError

logger = logging.getLogger(__name__)


class FeedEntry(BaseModel):
    """One arXiv paper in the query feed."""

    authors: List[str] = Field(default_factory=list)
    id: str
    published: Optional[datetime] = None
    title: str
    summary: str = ""


class FeedDocument(BaseModel):
    title: str
    entries: List[FeedEntry] = Field(default_factory=list)

    def __str__(self) -> str:
        return f"title: {self.title} num_entries: {len(self.entries)}"


class FeedSource(Protocol):
    def fetch(self) -> str:
        ...

    def parse(self, body: str) -> FeedDocument:
        ...


def _clean(value: Optional[str]) -> str:
    return " ".join((value or "").split())


def _published(entry) -> Optional[datetime]:
    for field_name in ("published_parsed", "updated_parsed"):
        parsed = entry.get(field_name)
        if parsed:
            try:
                return datetime(*parsed[:6], tzinfo=timezone.utc)
            except (TypeError, ValueError):
                continue
    return None


def parse(body: str) -> FeedDocument:
    """
    Parse an Atom feed body into a FeedDocument.

    Raises:
        FeedParseError: the body is not a feed, or an entry has no id/title.
    """
    feed = feedparser.parse(body)

    if feed.bozo and not feed.entries and not feed.feed.get("title"):
        raise FeedParseError(f"Unparseable feed body: {feed.get('bozo_exception')}")
    if "title" not in feed.feed:
        raise FeedParseError("Feed has no title element.")

    entries: List[FeedEntry] = []
    for index, entry in enumerate(feed.entries):
        entry_id = entry.get("id")
        title = _clean(entry.get("title"))
        if not entry_id or not title:
            raise FeedParseError(f"Entry {index} is missing its id or title.")
        entries.append(
            FeedEntry(
                authors=[author.get("name", "") for author in entry.get("authors", []) if author.get("name")],
                id=entry_id,
                published=_published(entry),
                title=title,
                summary=_clean(entry.get("summary")),
            )
        )

    document = FeedDocument(title=_clean(feed.feed.get("title")), entries=entries)
    logger.info("Parsed feed %s", document)
    return document


class ArxivFeed:
    """The configured arXiv query, fetched over HTTP."""

    def __init__(self, url: str, timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session

    @classmethod
    def from_config(cls) -> "ArxivFeed":
        from config import get_feed_timeout, get_feed_url

        return cls(get_feed_url(), timeout=get_feed_timeout())

    def fetch(self) -> str:
        """
        Download the feed body.

        Raises:
            FeedFetchError: on connection errors, timeouts or non-2xx responses.
        """
        getter = self.session.get if self.session is not None else requests.get
        logger.info("Fetching arXiv feed: %s", self.url)
        try:
            response = getter(self.url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FeedFetchError(f"Error requesting feed '{self.url}': {exc}") from exc
        return response.text

    def parse(self, body: str) -> FeedDocument:
        return parse(body)

    def load(self) -> FeedDocument:
        return self.parse(self.fetch())
