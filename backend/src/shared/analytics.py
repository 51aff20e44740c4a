"""
Admin dashboard aggregates, computed over scanned order rows.
"""
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .models import OrderStatus, is_failed, is_successful
from .normalizer import (
    ArrayRowAccessor,
    BUDGET_HEADERS,
    DESCRIPTION_HEADERS,
    NAME_HEADERS,
    SERVICE_HEADERS,
    TIMELINE_HEADERS,
    TIMESTAMP_HEADERS,
    first_value,
)
from .utils import to_number

UNCATEGORIZED = 'Uncategorized'
REQUIREMENT_SEPARATOR = ' — '
TOP_CATEGORIES = 8
DETAILED_ORDERS_LIMIT = 200

# Column order of the intake sheet as stored in wrapped-feed rows
SHEET_FIELDS = (
    'timestamp',
    'service',
    'description',
    'budget',
    'timeline',
    'fullName',
    'email',
    'phone',
    'whatsapp',
)

ARRAY_SHEET_HEADERS = {
    'timestamp': TIMESTAMP_HEADERS,
    'service': SERVICE_HEADERS,
    'description': DESCRIPTION_HEADERS,
    'budget': BUDGET_HEADERS,
    'timeline': TIMELINE_HEADERS,
    'fullName': NAME_HEADERS,
    'email': ('Email', 'Email Address', 'email'),
    'phone': ('Phone', 'Phone Number', 'phone'),
    'whatsapp': ('WhatsApp', 'Whatsapp', 'WhatsApp Number'),
}


def _parse_time(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def billed_amount(order: Dict[str, Any]) -> float:
    """Actual amount when recorded, otherwise the quoted price."""
    actual = order.get('actualAmount')
    if actual is not None and actual != '':
        return to_number(actual)
    return to_number(order.get('price'))


def month_bounds(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """[start of this month, start of next month) in UTC."""
    now = now or datetime.now(timezone.utc)
    start = now.astimezone(timezone.utc).replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def order_stats(orders: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Headline counts and revenue from successful completions."""
    return {
        'totalOrders': len(orders),
        'availableOrders': sum(1 for o in orders if o.get('status') == OrderStatus.AVAILABLE),
        'takenOrders': sum(1 for o in orders if o.get('status') == OrderStatus.TAKEN),
        'completedOrders': sum(1 for o in orders if is_successful(o)),
        'failedOrders': sum(1 for o in orders if is_failed(o)),
        'totalRevenue': sum(billed_amount(o) for o in orders if is_successful(o)),
    }


def monthly_revenue(
    orders: List[Dict[str, Any]],
    threshold: float,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Revenue billed this month against the admin threshold.

    Args:
        orders: Order rows
        threshold: Revenue goal for the month
        now: Reference time, defaults to the current UTC time

    Returns:
        revenue, threshold and progress percent clamped to [0, 100]
    """
    start, end = month_bounds(now)
    revenue = 0.0
    for order in orders:
        if not is_successful(order):
            continue
        completed_at = _parse_time(order.get('completedAt'))
        if completed_at and start <= completed_at < end:
            revenue += billed_amount(order)

    if threshold <= 0:
        percent = 0.0
    else:
        percent = min(100.0, max(0.0, revenue / threshold * 100))
    return {'revenue': revenue, 'threshold': threshold, 'percent': round(percent, 2)}


def profile_name(profile: Optional[Dict[str, Any]]) -> Optional[str]:
    if not profile:
        return None
    return profile.get('fullName') or profile.get('email')


def editor_revenue(orders: List[Dict[str, Any]], profiles: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Billed revenue and completed order count per editor."""
    names = {p.get('userId'): profile_name(p) for p in profiles}
    revenue = OrderedDict()
    for order in orders:
        editor_id = order.get('takenBy')
        if not editor_id or not is_successful(order):
            continue
        entry = revenue.setdefault(editor_id, {
            'editorId': editor_id,
            'editorName': names.get(editor_id) or 'Unknown',
            'revenue': 0.0,
            'orderCount': 0,
        })
        entry['revenue'] += billed_amount(order)
        entry['orderCount'] += 1
    return list(revenue.values())


def editor_performance(orders: List[Dict[str, Any]], editors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Per-editor totals, sorted by revenue."""
    performance = []
    for editor in editors:
        editor_id = editor.get('userId')
        mine = [o for o in orders if o.get('takenBy') == editor_id]
        completed = [o for o in mine if o.get('status') == OrderStatus.COMPLETED]
        performance.append({
            'userId': editor_id,
            'fullName': profile_name(editor),
            'email': editor.get('email'),
            'totalOrders': len(mine),
            'completedOrders': len(completed),
            'inProgress': sum(1 for o in mine if o.get('status') == OrderStatus.TAKEN),
            'totalRevenue': sum(to_number(o.get('price')) for o in completed),
        })
    performance.sort(key=lambda e: e['totalRevenue'], reverse=True)
    return performance


def editors_overview(orders: List[Dict[str, Any]], editors: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Current workload per editor, busiest first."""
    counts = {e.get('userId'): {'taken': 0, 'completed': 0} for e in editors}
    for order in orders:
        editor_id = order.get('takenBy')
        if editor_id not in counts:
            continue
        if order.get('status') == OrderStatus.TAKEN:
            counts[editor_id]['taken'] += 1
        elif order.get('status') == OrderStatus.COMPLETED:
            counts[editor_id]['completed'] += 1

    overview = [
        {
            'userId': e.get('userId'),
            'fullName': profile_name(e),
            'email': e.get('email'),
            'currentTaken': counts[e.get('userId')]['taken'],
            'completed': counts[e.get('userId')]['completed'],
        }
        for e in editors
    ]
    overview.sort(key=lambda e: e['currentTaken'], reverse=True)
    return {
        'editors': overview,
        'totalEditors': len(overview),
        'currentlyWorking': sum(1 for e in overview if e['currentTaken'] > 0),
    }


def extract_category(requirement_text: Optional[str]) -> str:
    """Service part of the requirement text."""
    if not requirement_text:
        return UNCATEGORIZED
    first = str(requirement_text).split(REQUIREMENT_SEPARATOR)[0].strip()
    return first or UNCATEGORIZED


def category_breakdown(orders: List[Dict[str, Any]], limit: int = TOP_CATEGORIES) -> List[Dict[str, Any]]:
    """Top categories by order count."""
    categories = {}
    for order in orders:
        name = extract_category(order.get('requirementText'))
        entry = categories.setdefault(name, {
            'name': name, 'value': 0, 'revenue': 0.0, 'success': 0, 'failed': 0,
        })
        entry['value'] += 1
        if is_failed(order):
            entry['failed'] += 1
        elif order.get('status') == OrderStatus.COMPLETED:
            entry['revenue'] += to_number(order.get('price'))
            entry['success'] += 1
    ranked = sorted(categories.values(), key=lambda e: e['value'], reverse=True)
    return ranked[:limit]


def extract_sheet_fields(raw: Any) -> Dict[str, Any]:
    """
    Intake answers from a stored sheet row.
    Wrapped-feed rows are read by column position, array-feed rows by header.
    """
    if isinstance(raw, dict) and 'c' not in raw:
        accessor = ArrayRowAccessor(raw)
        return {
            name: first_value(accessor, headers) or None
            for name, headers in ARRAY_SHEET_HEADERS.items()
        }

    cells = raw.get('c') if isinstance(raw, dict) else None
    fields = {}
    for idx, name in enumerate(SHEET_FIELDS):
        value = None
        if isinstance(cells, list) and idx < len(cells) and isinstance(cells[idx], dict):
            cell = cells[idx]
            value = cell.get('f') if cell.get('f') is not None else cell.get('v')
        fields[name] = value
    return fields


def detailed_orders(
    orders: List[Dict[str, Any]],
    profiles: List[Dict[str, Any]],
    limit: int = DETAILED_ORDERS_LIMIT
) -> List[Dict[str, Any]]:
    """Latest orders with editor names, failure flag and intake answers."""
    names = {p.get('userId'): profile_name(p) for p in profiles}
    latest = sorted(orders, key=lambda o: o.get('createdAt') or '', reverse=True)[:limit]
    rows = []
    for order in latest:
        editor_id = order.get('takenBy')
        row = {k: v for k, v in order.items() if k != 'rawSheetJson'}
        row['isFailed'] = is_failed(order)
        row['editor'] = (names.get(editor_id) or editor_id) if editor_id else '-'
        row['sheet'] = extract_sheet_fields(order.get('rawSheetJson'))
        rows.append(row)
    return rows
