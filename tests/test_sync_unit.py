"""Unit tests for the feed-to-Notion sync loop and the thumbnail backfill."""

import logging
from unittest.mock import Mock

import pytest
import requests

from fakes import FakeNotionClient, FakeSession, build_rss, make_page
from rss_notion_sync.config import SyncConfig
from rss_notion_sync.notion_store import NotionStore
from rss_notion_sync.rss import FeedProcessor
from rss_notion_sync.sync import NotionSync
from rss_notion_sync.thumbnail import ThumbnailResolver

FEED_URL = "https://v2.velog.io/rss/@pigpgw"
PROXY = "https://images.weserv.nl/"


def _sync(bodies, client, backfill=False) -> NotionSync:
    session = FakeSession(bodies)
    config = SyncConfig(
        notion_token="secret_abc",
        database_id="db123",
        feed_url=FEED_URL,
        backfill_thumbnails=backfill,
    )
    return NotionSync(
        config,
        feed_processor=FeedProcessor(session=session),
        store=NotionStore("db123", client=client),
        resolver=ThumbnailResolver(session=session),
    )


class TestSyncFeedUnit:
    """Unit tests for NotionSync.sync_feed."""

    def test_single_item_into_empty_database(self):
        xml = build_rss(
            [
                {
                    "title": "T",
                    "link": "https://blog/x",
                    "pubDate": "Mon, 01 Jan 2024 00:00:00 GMT",
                    "description": "<p>hi</p>",
                }
            ]
        )
        client = FakeNotionClient()

        added = _sync({FEED_URL: xml}, client).sync_feed()

        assert added == 1
        assert client.create_calls == [
            {
                "parent": {"database_id": "db123"},
                "properties": {
                    "Title": {"title": [{"text": {"content": "T"}}]},
                    "Link": {"url": "https://blog/x"},
                    "Published": {"date": {"start": "2024-01-01T00:00:00.000Z"}},
                    "Summary": {"rich_text": [{"text": {"content": "hi"}}]},
                },
            }
        ]

    def test_existing_link_skipped(self, caplog):
        caplog.set_level(logging.INFO, logger="rss_notion_sync")
        xml = build_rss(
            [
                {
                    "title": "Old",
                    "link": "https://blog/old",
                    "pubDate": "Mon, 01 Jan 2024 00:00:00 GMT",
                }
            ]
        )
        client = FakeNotionClient([make_page("p1", "Old", "https://blog/old")])
        sync = _sync({FEED_URL: xml}, client)

        assert sync.sync_feed() == 0
        assert client.create_calls == []
        assert sync.metrics["items_skipped"] == 1
        assert "skip: Old" in caplog.messages

    def test_inline_image_used_without_scraping(self):
        xml = build_rss(
            [
                {
                    "title": "Pic",
                    "link": "https://blog/pic",
                    "pubDate": "Mon, 01 Jan 2024 00:00:00 GMT",
                    "content": '<p>look</p><img src="https://img.velog.io/a.png">',
                }
            ]
        )
        client = FakeNotionClient()
        sync = _sync({FEED_URL: xml}, client)

        sync.sync_feed()

        thumb = f"{PROXY}?url=img.velog.io%2Fa.png"
        call = client.create_calls[0]
        assert call["properties"]["Thumbnail"] == {"url": thumb}
        assert call["cover"] == {"type": "external", "external": {"url": thumb}}
        assert sync.resolver.session.requested == [FEED_URL]

    def test_article_page_scraped_when_content_has_no_image(self):
        xml = build_rss(
            [
                {
                    "title": "Og",
                    "link": "https://blog/og",
                    "pubDate": "Mon, 01 Jan 2024 00:00:00 GMT",
                    "description": "<p>text only</p>",
                }
            ]
        )
        page = '<meta property="og:image" content="https://img/og.png">'
        client = FakeNotionClient()

        _sync({FEED_URL: xml, "https://blog/og": page}, client).sync_feed()

        assert client.create_calls[0]["properties"]["Thumbnail"] == {
            "url": f"{PROXY}?url=img%2Fog.png"
        }

    def test_malformed_entries_skipped_quietly(self, caplog):
        caplog.set_level(logging.DEBUG, logger="rss_notion_sync")
        xml = build_rss(
            [
                {"title": "No link", "pubDate": "Mon, 01 Jan 2024 00:00:00 GMT"},
                {"title": "No date", "link": "https://blog/nodate"},
                {
                    "title": "Good",
                    "link": "https://blog/good",
                    "pubDate": "Mon, 01 Jan 2024 00:00:00 GMT",
                },
            ]
        )
        client = FakeNotionClient()
        sync = _sync({FEED_URL: xml}, client)

        assert sync.sync_feed() == 1
        assert [c["properties"]["Link"]["url"] for c in client.create_calls] == [
            "https://blog/good"
        ]
        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]

    def test_bad_date_aborts_run(self):
        xml = build_rss(
            [{"title": "Bad", "link": "https://blog/bad", "pubDate": "someday soon"}]
        )
        client = FakeNotionClient()

        with pytest.raises(ValueError):
            _sync({FEED_URL: xml}, client).sync_feed()
        assert client.create_calls == []

    def test_guid_only_item_creates_no_page(self):
        xml = build_rss(
            [
                {
                    "guid": "post-123",
                    "title": "No link",
                    "pubDate": "Mon, 01 Jan 2024 00:00:00 GMT",
                }
            ]
        )
        client = FakeNotionClient()

        assert _sync({FEED_URL: xml}, client).sync_feed() == 0
        assert client.create_calls == []
        assert client.query_calls == []

    def test_unknown_timezone_aborts_run(self):
        xml = build_rss(
            [
                {
                    "title": "Seoul",
                    "link": "https://blog/kst",
                    "pubDate": "Mon, 01 Jan 2024 00:00:00 KST",
                }
            ]
        )
        client = FakeNotionClient()

        with pytest.raises(ValueError):
            _sync({FEED_URL: xml}, client).sync_feed()
        assert client.create_calls == []

    def test_write_failure_aborts_remaining_entries(self):
        xml = build_rss(
            [
                {
                    "title": f"Post {i}",
                    "link": f"https://blog/{i}",
                    "pubDate": "Mon, 01 Jan 2024 00:00:00 GMT",
                }
                for i in range(3)
            ]
        )
        client = Mock()
        client.databases.query.return_value = {"results": [], "has_more": False}
        client.pages.create.side_effect = [{"id": "p0"}, RuntimeError("rate limited")]

        with pytest.raises(RuntimeError):
            _sync({FEED_URL: xml}, client).sync_feed()
        assert client.pages.create.call_count == 2

    def test_feed_download_failure_aborts_run(self):
        with pytest.raises(requests.ConnectionError):
            _sync({}, FakeNotionClient()).sync_feed()


class TestBackfillUnit:
    """Unit tests for NotionSync.backfill_thumbnails."""

    def test_three_records_two_with_og_image(self, caplog):
        caplog.set_level(logging.INFO, logger="rss_notion_sync")
        client = FakeNotionClient(
            [
                make_page("p1", "First", "https://blog/1"),
                make_page("p2", "Second", "https://blog/2"),
                make_page("p3", "Third", "https://blog/3"),
            ]
        )
        bodies = {
            "https://blog/1": '<meta property="og:image" content="https://img/1.png">',
            "https://blog/2": '<meta property="og:image" content="http://img/2.png">',
            "https://blog/3": "<p>no pictures here</p>",
        }

        updated = _sync(bodies, client).backfill_thumbnails()

        assert updated == 2
        first, second, third = client.rows
        assert first["properties"]["Thumbnail"]["url"] == f"{PROXY}?url=img%2F1.png"
        assert first["cover"]["external"]["url"] == f"{PROXY}?url=img%2F1.png"
        assert second["properties"]["Thumbnail"]["url"] == f"{PROXY}?url=img%2F2.png"
        assert second["cover"]["external"]["url"] == f"{PROXY}?url=img%2F2.png"
        assert third["properties"]["Thumbnail"]["url"] is None
        assert third["cover"] is None
        assert "no thumb: Third" in caplog.messages
        assert "backfill done: 2" in caplog.messages

    def test_backfill_ignores_pages_with_thumbnail(self):
        client = FakeNotionClient(
            [
                make_page("p1", "Done", "https://blog/1", thumbnail="https://x/1.png"),
                make_page("p2", "Todo", "https://blog/2"),
            ]
        )
        bodies = {"https://blog/2": '<img src="https://img/2.png">'}
        sync = _sync(bodies, client)

        assert sync.backfill_thumbnails() == 1
        assert [c["page_id"] for c in client.update_calls] == ["p2"]
        assert sync.resolver.session.requested == ["https://blog/2"]

    def test_backfill_pages_through_large_tables(self):
        rows = [make_page(f"p{i}", f"Post {i}", f"https://blog/{i}") for i in range(120)]
        bodies = {
            f"https://blog/{i}": f'<meta property="og:image" content="https://img/{i}.png">'
            for i in range(120)
        }
        client = FakeNotionClient(rows)

        assert _sync(bodies, client).backfill_thumbnails() == 120
        assert [c["page_size"] for c in client.query_calls] == [50, 50, 50]
        assert all(row["properties"]["Thumbnail"]["url"] for row in client.rows)


class TestRunUnit:
    """Unit tests for NotionSync.run."""

    def test_backfill_only_when_enabled(self):
        xml = build_rss([])
        client = FakeNotionClient([make_page("p1", "Todo", "https://blog/1")])
        bodies = {FEED_URL: xml, "https://blog/1": '<img src="https://img/1.png">'}

        metrics = _sync(bodies, client, backfill=False).run()
        assert metrics["thumbnails_backfilled"] == 0
        assert client.update_calls == []

        metrics = _sync(bodies, client, backfill=True).run()
        assert metrics["thumbnails_backfilled"] == 1
        assert len(client.update_calls) == 1
