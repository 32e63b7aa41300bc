"""Configuration management for RSS Notion Sync."""

import os
from dataclasses import dataclass

DEFAULT_FEED_URL = "https://v2.velog.io/rss/@pigpgw"
DEFAULT_IMAGE_PROXY_URL = "https://images.weserv.nl/"

TRUTHY_VALUES = frozenset({"1", "true", "yes", "y", "on"})


class ConfigurationError(ValueError):
    """Raised when required configuration is missing."""


def parse_bool_flag(value: str | None) -> bool:
    """Interpret an environment flag such as ``BACKFILL_THUMBNAILS``.

    Accepted truthy spellings are 1, true, yes, y and on (case-insensitive).
    Anything else, including an unset variable, is false.
    """
    if value is None:
        return False
    return value.strip().lower() in TRUTHY_VALUES


@dataclass
class SyncConfig:
    """Settings shared by every component of a sync run."""

    notion_token: str
    database_id: str
    feed_url: str = DEFAULT_FEED_URL
    backfill_thumbnails: bool = False
    max_items: int = 20
    summary_max_length: int = 800
    backfill_page_size: int = 50
    image_proxy_url: str = DEFAULT_IMAGE_PROXY_URL
    http_timeout: int = 30
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """Build configuration from environment variables.

        Raises:
            ConfigurationError: If NOTION_TOKEN or DATABASE_ID is missing
        """
        notion_token = os.getenv("NOTION_TOKEN", "").strip()
        database_id = os.getenv("DATABASE_ID", "").strip()

        missing = [
            name
            for name, value in (
                ("NOTION_TOKEN", notion_token),
                ("DATABASE_ID", database_id),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing env: {' / '.join(missing)}")

        return cls(
            notion_token=notion_token,
            database_id=database_id,
            feed_url=os.getenv("RSS_URL", "").strip() or DEFAULT_FEED_URL,
            backfill_thumbnails=parse_bool_flag(os.getenv("BACKFILL_THUMBNAILS")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
