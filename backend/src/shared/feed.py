"""
Feed decoding and fetching for the published intake sheet.

Two variants exist:
  - array: a JSON array of objects keyed by header text (OpenSheet export)
  - wrapped: the Google Visualization JSONP payload, setResponse({...})
"""
import json
import time
import urllib.error
import urllib.request
from typing import Any, Dict, List, Union
from urllib.parse import urlparse

from .errors import FetchFailure, MalformedFeed, MissingColumn
from .logging import get_logger
from .normalizer import (
    ArrayRowAccessor,
    REQUIRED_WRAPPED_HEADERS,
    RowAccessor,
    WrappedRowAccessor,
)

logger = get_logger('feed')

ARRAY_VARIANT = 'array'
WRAPPED_VARIANT = 'wrapped'

ARRAY_FEED_HOSTS = ('opensheet.elk.sh',)
WRAPPED_PREFIX = 'setResponse('


class ParsedFeed:
    """Raw row records of one feed snapshot."""

    def __init__(self, variant: str, rows: List[RowAccessor], total_rows: int):
        self.variant = variant
        self.rows = rows
        self.total_rows = total_rows

    def __len__(self):
        return len(self.rows)


def _as_text(payload: Union[bytes, str]) -> str:
    if isinstance(payload, bytes):
        try:
            return payload.decode('utf-8')
        except UnicodeDecodeError as e:
            raise MalformedFeed(f"Feed is not valid UTF-8: {e}")
    return payload


def decode_array_feed(payload: Union[bytes, str, list]) -> ParsedFeed:
    """
    Decode the array variant.

    Args:
        payload: Raw feed bytes/text, or an already decoded list

    Returns:
        ParsedFeed with one ArrayRowAccessor per row
    """
    if isinstance(payload, (bytes, str)):
        try:
            payload = json.loads(_as_text(payload))
        except json.JSONDecodeError as e:
            raise MalformedFeed(f"Invalid feed JSON: {e}")

    if not isinstance(payload, list):
        raise MalformedFeed('OpenSheet response not an array')

    rows = [ArrayRowAccessor(row if isinstance(row, dict) else {}) for row in payload]
    return ParsedFeed(ARRAY_VARIANT, rows, len(payload))


def unwrap_jsonp(text: str) -> Dict[str, Any]:
    """Slice the JSON object out of setResponse(...) and decode it."""
    start = text.find(WRAPPED_PREFIX)
    end = text.rfind(')')
    if start == -1 or end == -1 or end < start + len(WRAPPED_PREFIX):
        raise MalformedFeed('Invalid GViz JSONP')
    try:
        decoded = json.loads(text[start + len(WRAPPED_PREFIX):end])
    except json.JSONDecodeError as e:
        raise MalformedFeed(f"Invalid GViz JSON: {e}")
    if not isinstance(decoded, dict):
        raise MalformedFeed('GViz payload is not an object')
    return decoded


def decode_wrapped_feed(payload: Union[bytes, str]) -> ParsedFeed:
    """
    Decode the wrapped variant.

    Raises:
        MalformedFeed: envelope, JSON or table shape is invalid
        MissingColumn: a required header is absent
    """
    decoded = unwrap_jsonp(_as_text(payload))
    table = decoded.get('table')
    if not isinstance(table, dict):
        raise MalformedFeed('GViz payload has no table')
    cols = table.get('cols')
    rows = table.get('rows')
    if not isinstance(cols, list) or not isinstance(rows, list):
        raise MalformedFeed('GViz table is missing cols or rows')

    column_index = {}
    for idx, col in enumerate(cols):
        if isinstance(col, dict):
            column_index[col.get('label')] = idx

    for label in REQUIRED_WRAPPED_HEADERS:
        if label not in column_index:
            raise MissingColumn(label)

    accessors = [
        WrappedRowAccessor(row if isinstance(row, dict) else {}, column_index)
        for row in rows
    ]
    return ParsedFeed(WRAPPED_VARIANT, accessors, len(rows))


DECODERS = {
    ARRAY_VARIANT: decode_array_feed,
    WRAPPED_VARIANT: decode_wrapped_feed,
}


def feed_variant_for_url(url: str) -> str:
    """Pick the decoder by feed URL shape."""
    host = (urlparse(url).hostname or '').lower()
    if host in ARRAY_FEED_HOSTS:
        return ARRAY_VARIANT
    return WRAPPED_VARIANT


def decode_feed(payload: Union[bytes, str], variant: str) -> ParsedFeed:
    try:
        decoder = DECODERS[variant]
    except KeyError:
        raise ValueError(f"Unknown feed variant: {variant}")
    return decoder(payload)


def with_cache_bust(url: str, now_ms: int = None) -> str:
    """Append cacheBust=<ms> so intermediaries never serve a stale sheet."""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    joiner = '&' if '?' in url else '?'
    return f"{url}{joiner}cacheBust={stamp}"


def fetch_feed(url: str, timeout: float = 30) -> bytes:
    """
    GET the feed with cache busting and a no-cache header.

    Raises:
        FetchFailure: non-2xx status or transport error
    """
    target = with_cache_bust(url)
    request = urllib.request.Request(
        target,
        headers={'Cache-Control': 'no-cache'},
        method='GET'
    )
    logger.info(f"Fetching sheet feed: {target}")
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            status = getattr(response, 'status', 200)
            if status < 200 or status >= 300:
                raise FetchFailure(f"Sheet fetch failed: {status}", status=status)
            return response.read()
    except urllib.error.HTTPError as e:
        raise FetchFailure(f"Sheet fetch failed: {e.code}", status=e.code)
    except (urllib.error.URLError, TimeoutError, OSError) as e:
        raise FetchFailure(f"Sheet fetch failed: {e}")
