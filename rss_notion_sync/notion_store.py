"""Notion database access for RSS Notion Sync."""

from collections.abc import Iterator
from typing import Any

from notion_client import Client

from .logging_config import create_execution_logger
from .models import CanonicalRecord, ExistingRecord


def _rich_text(content: str) -> list[dict[str, Any]]:
    return [{"text": {"content": content}}]


def _external_cover(url: str) -> dict[str, Any]:
    return {"type": "external", "external": {"url": url}}


def _plain_text(prop: dict[str, Any] | None) -> str:
    if not prop:
        return ""
    parts = prop.get(prop.get("type", "title")) or []
    return "".join(part.get("plain_text", "") for part in parts)


class NotionStore:
    """Reads and writes synced entries in a Notion database.

    The database is the only record of what has already been synced.
    Every API error propagates to the caller.
    """

    def __init__(
        self,
        database_id: str,
        client: Client | None = None,
        auth_token: str | None = None,
        execution_id: str | None = None,
    ):
        """Initialize the store.

        Args:
            database_id: ID of the target Notion database
            client: Preconfigured Notion client; built from auth_token if omitted
            auth_token: Notion integration token
            execution_id: Execution ID for logging context
        """
        self.database_id = database_id
        self.logger = create_execution_logger("notion_store", execution_id)
        self.client = client or Client(auth=auth_token)

        self.logger.info("NotionStore initialized", database_id=database_id)

    def exists_by_link(self, link: str) -> bool:
        """Check whether a page with this Link is already in the database."""
        response = self.client.databases.query(
            database_id=self.database_id,
            filter={"property": "Link", "url": {"equals": link}},
            page_size=1,
        )
        exists = len(response.get("results", [])) > 0
        self.logger.debug("Checked for existing page", link=link, exists=exists)
        return exists

    def create_item(self, record: CanonicalRecord) -> dict[str, Any]:
        """Create a page for a new entry.

        The caller must have checked ``exists_by_link`` first.
        """
        properties: dict[str, Any] = {
            "Title": {"title": _rich_text(record.title)},
            "Link": {"url": record.link},
            "Published": {"date": {"start": record.published_iso}},
            "Summary": {"rich_text": _rich_text(record.summary)},
        }
        kwargs: dict[str, Any] = {}
        if record.thumbnail:
            properties["Thumbnail"] = {"url": record.thumbnail}
            kwargs["cover"] = _external_cover(record.thumbnail)

        page = self.client.pages.create(
            parent={"database_id": self.database_id},
            properties=properties,
            **kwargs,
        )
        self.logger.debug("Created page", link=record.link, page_id=page.get("id"))
        return page

    def update_thumbnail(self, page_id: str, thumbnail: str) -> dict[str, Any]:
        """Set the Thumbnail property and cover image of an existing page."""
        page = self.client.pages.update(
            page_id=page_id,
            properties={"Thumbnail": {"url": thumbnail}},
            cover=_external_cover(thumbnail),
        )
        self.logger.debug("Updated thumbnail", page_id=page_id)
        return page

    def iter_records_missing_thumbnail(
        self, page_size: int = 50
    ) -> Iterator[ExistingRecord]:
        """Yield every page whose Thumbnail is empty, one result page at a time."""
        query: dict[str, Any] = {
            "database_id": self.database_id,
            "filter": {"property": "Thumbnail", "url": {"is_empty": True}},
            "page_size": page_size,
        }

        while True:
            response = self.client.databases.query(**query)
            results = response.get("results", [])
            self.logger.debug("Fetched pages without thumbnail", count=len(results))

            for page in results:
                properties = page.get("properties", {})
                yield ExistingRecord(
                    page_id=page["id"],
                    title=_plain_text(properties.get("Title")),
                    link=(properties.get("Link") or {}).get("url"),
                )

            next_cursor = response.get("next_cursor")
            if not response.get("has_more") or not next_cursor:
                break
            query["start_cursor"] = next_cursor
