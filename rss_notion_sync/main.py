"""Command-line entry point for RSS Notion Sync.

Env vars:
  NOTION_TOKEN          Notion integration token (required)
  DATABASE_ID           Target Notion database (required)
  BACKFILL_THUMBNAILS   1/true/yes/y/on to run the thumbnail backfill
  RSS_URL               Feed to mirror (default: the blog's velog feed)
  LOG_LEVEL             DEBUG, INFO, WARNING or ERROR (default: INFO)

Exit status is 0 on success and 1 on missing configuration or any error.
"""

import argparse
import os
import sys
from dataclasses import replace
from datetime import UTC, datetime

from .config import ConfigurationError, SyncConfig
from .logging_config import create_execution_logger, setup_structured_logging
from .sync import NotionSync


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rss-notion-sync",
        description="Mirror a blog's RSS feed into a Notion database.",
    )
    parser.add_argument("--feed-url", help="Override RSS_URL")
    parser.add_argument(
        "--backfill",
        action="store_true",
        help="Run the thumbnail backfill regardless of BACKFILL_THUMBNAILS",
    )
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run one sync and return the process exit code."""
    args = build_parser().parse_args(argv)

    setup_structured_logging(args.log_level or os.getenv("LOG_LEVEL", "INFO"))

    execution_id = f"sync_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
    main_logger = create_execution_logger("main", execution_id)

    try:
        config = SyncConfig.from_env()
    except ConfigurationError as e:
        main_logger.error(str(e), error=str(e))
        return 1

    if args.feed_url:
        config = replace(config, feed_url=args.feed_url)
    if args.backfill:
        config = replace(config, backfill_thumbnails=True)

    main_logger.log_execution_start(
        feed_url=config.feed_url, backfill=config.backfill_thumbnails
    )

    try:
        metrics = NotionSync(config, execution_id=execution_id).run()
    except Exception as e:
        error_msg = f"Sync failed: {e}"
        main_logger.error(error_msg, error=str(e), error_type=type(e).__name__)
        main_logger.log_execution_end(success=False, error=error_msg)
        return 1

    main_logger.log_metrics(metrics)
    main_logger.info("done")
    main_logger.log_execution_end(success=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
