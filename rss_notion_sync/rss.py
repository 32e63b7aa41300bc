"""RSS Feed Processing module for RSS Notion Sync."""

import warnings
from datetime import UTC
from urllib.parse import urlparse

import feedparser
import requests
from bs4 import BeautifulSoup
from dateutil import parser as date_parser
from dateutil.parser import UnknownTimezoneWarning

from .logging_config import create_execution_logger
from .models import CanonicalRecord, FeedEntry
from .thumbnail import extract_first_image

DEFAULT_TITLE = "(no title)"


class FeedError(RuntimeError):
    """Raised when a feed document cannot be parsed at all."""


def _alternate_link(raw_entry) -> str | None:
    # feedparser also fills entry.link from a permalink <guid>; only
    # a real <link> element lands in entry.links.
    for link in raw_entry.get("links") or []:
        if link.get("rel", "alternate") == "alternate" and link.get("href"):
            return link["href"]
    return None


def to_iso_instant(pub_date: str) -> str:
    """Convert an RFC-822-like date into an ISO-8601 UTC instant.

    ``Mon, 01 Jan 2024 00:00:00 GMT`` becomes ``2024-01-01T00:00:00.000Z``.
    Dates without a timezone are taken as UTC.

    Raises:
        ValueError: If the date cannot be parsed or names an unknown zone
    """
    with warnings.catch_warnings():
        warnings.simplefilter("error", UnknownTimezoneWarning)
        try:
            published = date_parser.parse(pub_date)
        except UnknownTimezoneWarning as e:
            raise ValueError(f"Unknown timezone in date {pub_date!r}: {e}") from e

    if published.tzinfo is None:
        published = published.replace(tzinfo=UTC)
    published = published.astimezone(UTC)

    millis = published.microsecond // 1000
    return f"{published.strftime('%Y-%m-%dT%H:%M:%S')}.{millis:03d}Z"


class FeedProcessor:
    """Handles RSS feed download and entry normalization."""

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: int = 30,
        max_items: int = 20,
        summary_max_length: int = 800,
        execution_id: str | None = None,
    ):
        """Initialize FeedProcessor with configuration.

        Args:
            session: HTTP session shared with other components
            timeout: HTTP request timeout in seconds
            max_items: Number of most recent entries to keep
            summary_max_length: Hard cut applied to summaries
            execution_id: Execution ID for logging context
        """
        self.timeout = timeout
        self.max_items = max_items
        self.summary_max_length = summary_max_length
        self.logger = create_execution_logger("feed_processor", execution_id)
        self.session = session or requests.Session()
        self.session.headers.update(
            {"User-Agent": "RSS-Notion-Sync/1.0 (+blog to Notion mirror)"}
        )

        self.logger.info(
            "FeedProcessor initialized", timeout=timeout, max_items=max_items
        )

    def fetch_entries(self, feed_url: str) -> list[FeedEntry]:
        """Download a feed and return its most recent entries.

        Args:
            feed_url: URL of the RSS feed

        Returns:
            Entries in document order (newest first), at most ``max_items``

        Raises:
            ValueError: If feed URL is not HTTPS
            requests.RequestException: If feed download fails
            FeedError: If the document is not a readable feed
        """
        parsed_url = urlparse(feed_url)
        if parsed_url.scheme != "https":
            error_msg = f"Feed URL must use HTTPS protocol: {feed_url}"
            self.logger.error(error_msg, feed_url=feed_url, scheme=parsed_url.scheme)
            raise ValueError(error_msg)

        try:
            self.logger.info("Downloading feed content", feed_url=feed_url)
            response = self.session.get(feed_url, timeout=self.timeout)
            response.raise_for_status()
            self.logger.info(
                "Feed downloaded successfully",
                feed_url=feed_url,
                status_code=response.status_code,
                content_length=len(response.content),
            )
        except requests.RequestException as e:
            self.logger.error(
                f"Failed to download feed {feed_url}: {e}",
                feed_url=feed_url,
                error=str(e),
            )
            raise

        entries = self.parse_entries(response.content, feed_url)
        return entries[: self.max_items]

    def parse_entries(self, document: bytes | str, feed_url: str = "") -> list[FeedEntry]:
        """Parse a feed document into FeedEntry objects.

        A feed with a single item still yields a one-element list.

        Raises:
            FeedError: If nothing could be recovered from a malformed document
        """
        feed = feedparser.parse(document)

        if feed.bozo:
            bozo_exception = feed.get("bozo_exception")
            if not feed.entries:
                raise FeedError(f"Unable to parse feed {feed_url}: {bozo_exception}")
            self.logger.warning(
                f"Feed parsing warning for {feed_url}: {bozo_exception}",
                feed_url=feed_url,
                bozo_exception=str(bozo_exception),
            )

        return [self._to_feed_entry(raw_entry) for raw_entry in feed.entries]

    @staticmethod
    def _to_feed_entry(raw_entry) -> FeedEntry:
        content = raw_entry.get("content") or []
        content_html = content[0].get("value") if content else None

        return FeedEntry(
            title=raw_entry.get("title"),
            link=_alternate_link(raw_entry),
            pub_date=raw_entry.get("published"),
            content_html=content_html,
            description=raw_entry.get("summary"),
        )

    def normalize_entry(self, entry: FeedEntry) -> CanonicalRecord | None:
        """Normalize a FeedEntry into the record written to Notion.

        Args:
            entry: Entry produced by ``parse_entries``

        Returns:
            CanonicalRecord, or None when the entry has no link or date

        Raises:
            ValueError: If the publication date cannot be parsed
        """
        if not entry.link or not entry.pub_date:
            return None

        title = entry.title if entry.title is not None else DEFAULT_TITLE
        html = entry.content_html or entry.description or ""

        return CanonicalRecord(
            title=title,
            link=entry.link,
            published_iso=to_iso_instant(entry.pub_date),
            summary=self.clean_html_content(html)[: self.summary_max_length],
            thumbnail_candidate=extract_first_image(html),
        )

    def clean_html_content(self, content: str | None) -> str:
        """Reduce HTML to a single line of plain text.

        ``script`` and ``style`` bodies are dropped, entities are decoded and
        any bracket left over afterwards is removed.
        """
        if not content:
            return ""

        soup = BeautifulSoup(content, "html.parser")
        for element in soup(["script", "style"]):
            element.decompose()

        text = soup.get_text(separator=" ").replace("<", "").replace(">", "")
        return " ".join(text.split())
