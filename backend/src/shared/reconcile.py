"""
Reconciliation of parsed sheet rows into persisted orders.

New identities are inserted as available orders. Known identities get their
descriptive fields refreshed; workflow fields (status, assignee, completion
data) are never written here, so in-flight work survives sheet edits. Purge
mode additionally deletes non-sheet orders and sheet orders whose identity
left the feed.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .budget import parse_budget
from .identity import resolve_row_id
from .logging import get_logger
from .models import OrderSource, OrderStatus, WORKFLOW_FIELDS
from .normalizer import SheetRow
from .timeline import format_due_date, timeline_to_due_date
from .utils import to_dynamo

logger = get_logger('sync')

DEFAULT_PURGE_CHUNK_SIZE = 1000


class SyncResult:
    """Counts reported by one reconciliation run."""

    def __init__(self, inserted: int = 0, updated: int = 0, purged: int = 0, total_rows: int = 0):
        self.inserted = inserted
        self.updated = updated
        self.purged = purged
        self.total_rows = total_rows

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ok': True,
            'inserted': self.inserted,
            'updated': self.updated,
            'purged': self.purged,
            'totalRows': self.total_rows,
        }

    def __repr__(self):
        return (
            f"SyncResult(inserted={self.inserted}, updated={self.updated}, "
            f"purged={self.purged}, total_rows={self.total_rows})"
        )


class SyncPlan:
    """Partition of one feed snapshot against the persisted index."""

    def __init__(self, new_records, existing_records, stale_order_ids):
        self.new_records = new_records
        self.existing_records = existing_records
        self.stale_order_ids = stale_order_ids


def build_record(row: SheetRow, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Descriptive order fields derived from one sheet row.

    Args:
        row: Normalized sheet row
        now: Evaluation time for the due date

    Returns:
        Dict of order attributes keyed by table attribute name
    """
    return {
        'sheetRowId': resolve_row_id(
            row.timestamp,
            row.full_name,
            row.service,
            row.description,
            row.budget_text,
            row.timeline_text
        ),
        'clientName': row.full_name,
        'requirementText': row.requirement_text,
        'price': parse_budget(row.budget_text),
        'dueDate': format_due_date(timeline_to_due_date(row.timeline_text, now)),
        'rawSheetJson': to_dynamo(row.raw),
        'source': OrderSource.GOOGLE_SHEET,
    }


def dedupe_records(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Keep one record per identity; the last occurrence in the sheet wins."""
    by_id = {}
    for record in records:
        by_id[record['sheetRowId']] = record
    return list(by_id.values())


def plan_sync(records: List[Dict[str, Any]], index: Dict[str, List[Dict[str, Any]]]) -> SyncPlan:
    """
    Split records into new and existing, and find stale sheet orders.

    Args:
        records: Deduplicated records from build_record
        index: sheetRowId -> persisted orders, from OrderStore.load_sheet_index

    Returns:
        SyncPlan
    """
    new_records = [r for r in records if r['sheetRowId'] not in index]
    existing_records = [r for r in records if r['sheetRowId'] in index]

    current_ids = {r['sheetRowId'] for r in records}
    stale_order_ids = [
        entry['orderId']
        for sheet_row_id, entries in index.items()
        if sheet_row_id not in current_ids
        for entry in entries
        if entry.get('source') == OrderSource.GOOGLE_SHEET
    ]
    return SyncPlan(new_records, existing_records, stale_order_ids)


def new_order_item(record: Dict[str, Any], timestamp: str) -> Dict[str, Any]:
    item = dict(record)
    item.update({
        'orderId': str(uuid.uuid4()),
        'status': OrderStatus.AVAILABLE,
        'createdAt': timestamp,
        'updatedAt': timestamp,
    })
    return item


def descriptive_update(record: Dict[str, Any], timestamp: str) -> Dict[str, Any]:
    fields = {k: v for k, v in record.items() if k != 'sheetRowId' and k not in WORKFLOW_FIELDS}
    fields['updatedAt'] = timestamp
    return fields


def chunked(values: List[Any], size: int):
    for i in range(0, len(values), size):
        yield values[i:i + size]


def reconcile(
    store,
    rows: List[SheetRow],
    total_rows: int,
    purge: bool = False,
    now: Optional[datetime] = None,
    chunk_size: int = DEFAULT_PURGE_CHUNK_SIZE
) -> SyncResult:
    """
    Merge a feed snapshot into the orders table.

    Not transactional: a failure part way leaves earlier writes in place, and a
    rerun converges because every write is keyed by the row identity.

    Args:
        store: OrderStore (or any object with the same sync methods)
        rows: Normalized sheet rows
        total_rows: Row count of the raw feed, blank rows included
        purge: Also delete non-sheet orders and orders missing from the feed
        now: Evaluation time for due dates and timestamps
        chunk_size: Max identities per stale-order delete batch

    Returns:
        SyncResult with inserted/updated/purged counts
    """
    now = now or datetime.now(timezone.utc)
    timestamp = now.isoformat()

    records = dedupe_records([build_record(row, now) for row in rows])
    index = store.load_sheet_index()
    plan = plan_sync(records, index)
    logger.info(
        f"Sync plan: {len(plan.new_records)} new, {len(plan.existing_records)} existing, "
        f"{len(plan.stale_order_ids)} stale"
    )

    result = SyncResult(total_rows=total_rows)

    if plan.new_records:
        result.inserted = store.insert_orders(
            [new_order_item(record, timestamp) for record in plan.new_records]
        )

    for record in plan.existing_records:
        fields = descriptive_update(record, timestamp)
        for entry in index[record['sheetRowId']]:
            store.update_order(entry['orderId'], fields)
        result.updated += 1

    if purge:
        result.purged += store.delete_non_sheet_orders()
        for chunk in chunked(plan.stale_order_ids, chunk_size):
            result.purged += store.delete_orders(chunk)

    logger.info(f"Sync finished: {result!r}")
    return result
