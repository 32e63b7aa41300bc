"""Feed-to-Notion synchronization for RSS Notion Sync."""

from typing import Any

import requests

from .config import SyncConfig
from .logging_config import create_execution_logger
from .notion_store import NotionStore
from .rss import FeedProcessor
from .thumbnail import ThumbnailResolver


class NotionSync:
    """Mirrors feed entries into Notion and backfills missing thumbnails.

    Everything runs sequentially: each entry's existence check and write
    finish before the next entry is looked at. Errors from the feed download
    or from Notion abort the run; thumbnail lookups never do.
    """

    def __init__(
        self,
        config: SyncConfig,
        feed_processor: FeedProcessor | None = None,
        store: NotionStore | None = None,
        resolver: ThumbnailResolver | None = None,
        execution_id: str | None = None,
    ):
        self.config = config
        self.logger = create_execution_logger("sync", execution_id)

        session = requests.Session()
        self.feed_processor = feed_processor or FeedProcessor(
            session=session,
            timeout=config.http_timeout,
            max_items=config.max_items,
            summary_max_length=config.summary_max_length,
            execution_id=execution_id,
        )
        self.store = store or NotionStore(
            config.database_id,
            auth_token=config.notion_token,
            execution_id=execution_id,
        )
        self.resolver = resolver or ThumbnailResolver(
            session=session,
            proxy_base=config.image_proxy_url,
            timeout=config.http_timeout,
            execution_id=execution_id,
        )

        self.metrics: dict[str, Any] = {
            "items_found": 0,
            "items_added": 0,
            "items_skipped": 0,
            "items_without_thumbnail": 0,
            "thumbnails_backfilled": 0,
        }

    def run(self) -> dict[str, Any]:
        """Sync the feed, then backfill thumbnails when enabled.

        Returns:
            Metrics collected during the run
        """
        self.sync_feed()
        if self.config.backfill_thumbnails:
            self.backfill_thumbnails()
        return self.metrics

    def sync_feed(self) -> int:
        """Create a Notion page for every recent entry not yet in the database.

        Returns:
            Number of pages created
        """
        entries = self.feed_processor.fetch_entries(self.config.feed_url)
        self.metrics["items_found"] = len(entries)
        self.logger.info(f"RSS items: {len(entries)}", items_count=len(entries))

        added = 0
        for entry in entries:
            record = self.feed_processor.normalize_entry(entry)
            if record is None:
                continue

            if self.store.exists_by_link(record.link):
                self.metrics["items_skipped"] += 1
                self.logger.log_item_processing(record.title, "skip")
                continue

            record.thumbnail = self.resolver.resolve(
                record.link, record.thumbnail_candidate
            )
            if record.thumbnail is None:
                self.metrics["items_without_thumbnail"] += 1
                self.logger.log_item_processing(record.title, "no thumb")

            self.store.create_item(record)
            added += 1
            self.metrics["items_added"] += 1
            self.logger.log_item_processing(record.title, "added")

        return added

    def backfill_thumbnails(self) -> int:
        """Attach a thumbnail to every page that still lacks one.

        Only the page's own link is scraped, so images embedded in the
        original feed content are not considered here.

        Returns:
            Number of pages updated
        """
        updated = 0
        for existing in self.store.iter_records_missing_thumbnail(
            page_size=self.config.backfill_page_size
        ):
            thumbnail = self.resolver.resolve(existing.link)
            if thumbnail is None:
                self.logger.log_item_processing(existing.title, "no thumb")
                continue

            self.store.update_thumbnail(existing.page_id, thumbnail)
            updated += 1
            self.logger.log_item_processing(existing.title, "thumb")

        self.metrics["thumbnails_backfilled"] = updated
        self.logger.info(f"backfill done: {updated}", updated_count=updated)
        return updated
