"""
Sheet synchronization job: fetch, decode, normalize, reconcile.
"""
from datetime import datetime
from typing import Callable, Optional

from .config import Config
from .feed import decode_feed, feed_variant_for_url, fetch_feed
from .logging import get_logger
from .normalizer import normalize_rows
from .orders import OrderStore
from .reconcile import SyncResult, reconcile

logger = get_logger('sync')


def run_sync(
    cfg: Config,
    store: Optional[OrderStore] = None,
    purge: bool = False,
    sheet_url: Optional[str] = None,
    fetch: Callable[..., bytes] = fetch_feed,
    now: Optional[datetime] = None
) -> SyncResult:
    """
    Run one synchronization from the intake sheet into the orders table.

    Args:
        cfg: Configuration for this invocation; validated before any I/O
        store: Order store, built from cfg when omitted
        purge: Delete orders that are not (or no longer) in the sheet
        sheet_url: Feed URL override
        fetch: Feed fetcher, called as fetch(url, timeout=...)
        now: Evaluation time

    Returns:
        SyncResult

    Raises:
        ConfigError, FetchFailure, MalformedFeed, MissingColumn, StoreFailure
    """
    cfg.validate('ORDERS_TABLE')
    store = store or OrderStore(cfg)

    url = sheet_url or cfg.SHEET_URL
    variant = feed_variant_for_url(url)
    logger.info(f"Starting sheet sync: variant={variant} purge={purge}")

    payload = fetch(url, timeout=cfg.FEED_TIMEOUT_SECONDS)
    feed = decode_feed(payload, variant)
    rows = normalize_rows(feed.rows)
    logger.info(f"Parsed {feed.total_rows} feed rows, {len(rows)} with content")

    return reconcile(
        store,
        rows,
        total_rows=feed.total_rows,
        purge=purge,
        now=now,
        chunk_size=cfg.PURGE_CHUNK_SIZE
    )
