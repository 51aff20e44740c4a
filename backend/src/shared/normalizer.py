"""
Field normalization for intake sheet rows.

Both feed variants are read through a row accessor, so field extraction is
written once. Header text is not stable across form versions, so each field
has a list of acceptable spellings tried in order.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Full form question first, then the short header used by re-exported sheets
NAME_HEADERS = ('What is your full name?', 'Full Name')
SERVICE_HEADERS = ('What type of service you want ?', 'Service')
DESCRIPTION_HEADERS = ('Could you briefly describe your project or needs?', 'Description')
BUDGET_HEADERS = ('What is your estimated budget for this project?', 'Budget')
TIMELINE_HEADERS = ('What is your preferred timeline for project completion?', 'Timeline')
TIMESTAMP_HEADERS = ('Timestamp', 'timestamp')

# Headers the wrapped feed must carry
REQUIRED_WRAPPED_HEADERS = (
    SERVICE_HEADERS[0],
    DESCRIPTION_HEADERS[0],
    BUDGET_HEADERS[0],
    TIMELINE_HEADERS[0],
    NAME_HEADERS[0],
    TIMESTAMP_HEADERS[0],
)

DEFAULT_CLIENT_NAME = 'Client'


class RowAccessor:
    """Reads a cell from one raw feed row by column label."""

    raw: Any = None

    def get(self, label: str) -> Any:
        raise NotImplementedError


class ArrayRowAccessor(RowAccessor):
    """Row from the array feed: a dict keyed by header text."""

    def __init__(self, row: Dict[str, Any]):
        self.raw = row

    def get(self, label: str) -> Any:
        return self.raw.get(label)


class WrappedRowAccessor(RowAccessor):
    """
    Row from the wrapped feed: {"c": [{"v": raw, "f": formatted}, ...]}.
    The formatted string wins over the raw value when both exist.
    """

    def __init__(self, row: Dict[str, Any], column_index: Dict[str, int]):
        self.raw = row
        self.column_index = column_index

    def get(self, label: str) -> Any:
        idx = self.column_index.get(label)
        if idx is None:
            return None
        cells = (self.raw or {}).get('c') or []
        if idx >= len(cells):
            return None
        cell = cells[idx]
        if not isinstance(cell, dict):
            return None
        formatted = cell.get('f')
        if formatted is not None:
            return formatted
        return cell.get('v')


@dataclass
class SheetRow:
    """Business fields pulled out of one feed row."""
    full_name: str
    service: str
    description: str
    budget_text: str
    timeline_text: str
    timestamp: str
    raw: Any = field(default=None, repr=False)

    @property
    def requirement_text(self) -> str:
        return ' — '.join(part for part in (self.service, self.description) if part)


def first_value(accessor: RowAccessor, labels) -> str:
    """First non-null value among the label spellings, stringified and stripped."""
    for label in labels:
        value = accessor.get(label)
        if value is not None:
            return str(value).strip()
    return ''


def normalize_row(accessor: RowAccessor) -> Optional[SheetRow]:
    """
    Extract the business fields from one raw row.

    Returns:
        SheetRow, or None for blank form rows (no service and no description)
    """
    service = first_value(accessor, SERVICE_HEADERS)
    description = first_value(accessor, DESCRIPTION_HEADERS)
    if not service and not description:
        return None

    return SheetRow(
        full_name=first_value(accessor, NAME_HEADERS) or DEFAULT_CLIENT_NAME,
        service=service,
        description=description,
        budget_text=first_value(accessor, BUDGET_HEADERS),
        timeline_text=first_value(accessor, TIMELINE_HEADERS),
        timestamp=first_value(accessor, TIMESTAMP_HEADERS),
        raw=accessor.raw,
    )


def normalize_rows(accessors: List[RowAccessor]) -> List[SheetRow]:
    """Normalize every row, dropping blank ones."""
    rows = []
    for accessor in accessors:
        row = normalize_row(accessor)
        if row is not None:
            rows.append(row)
    return rows
