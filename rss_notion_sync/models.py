"""Data models for RSS Notion Sync."""

from dataclasses import dataclass


@dataclass
class FeedEntry:
    """A single RSS item as read from the feed; every field may be absent."""

    title: str | None = None
    link: str | None = None
    pub_date: str | None = None
    content_html: str | None = None  # content:encoded
    description: str | None = None


@dataclass
class CanonicalRecord:
    """Represents one synced entry as stored in the Notion database."""

    title: str
    link: str
    published_iso: str
    summary: str
    thumbnail: str | None = None
    # First <img src> of the entry content, before proxying. Never persisted.
    thumbnail_candidate: str | None = None


@dataclass
class ExistingRecord:
    """A page already present in the Notion database."""

    page_id: str
    title: str
    link: str | None
