"""
Editor workflow on orders: claim, complete, release and fail.

Each transition is a single conditional update, so concurrent claimants race
safely: exactly one sees its update applied, the others get OrderUnavailable.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from .logging import get_logger
from .models import AssignmentAction, FAILED_DELIVERABLE, OrderStatus

logger = get_logger('workflow')


def _now_iso(now: Optional[datetime] = None) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def new_assignment(order_id: str, user_id: str, action: str, timestamp: str) -> Dict[str, Any]:
    """Audit record for the assignments table."""
    return {
        'assignmentId': str(uuid.uuid4()),
        'orderId': order_id,
        'userId': user_id,
        'action': action,
        'timestamp': timestamp,
    }


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Parse the actual billed amount entered by an editor.

    Returns:
        Decimal amount, or None when blank

    Raises:
        ValueError: not a finite non-negative number
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value}")
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"Invalid amount: {value}")
    return amount


def take_order(store, order_id: str, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Claim an available order for an editor.

    Raises:
        OrderUnavailable: someone else claimed it first, or it does not exist
    """
    timestamp = _now_iso(now)
    store.transition(
        order_id,
        set_fields={
            'status': OrderStatus.TAKEN,
            'takenBy': user_id,
            'takenAt': timestamp,
        },
        expected_status=OrderStatus.AVAILABLE,
        assignment=new_assignment(order_id, user_id, AssignmentAction.TAKEN, timestamp)
    )
    logger.info(f"Order {order_id} taken by {user_id}")
    return {'orderId': order_id, 'status': OrderStatus.TAKEN, 'takenBy': user_id, 'takenAt': timestamp}


def complete_order(
    store,
    order_id: str,
    user_id: str,
    deliverable_link: Optional[str] = None,
    actual_amount: Any = None,
    feedback: Optional[str] = None,
    as_admin: bool = False,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Mark a taken order as completed.

    Editors may only complete their own orders; admins may complete any taken order.
    """
    if deliverable_link == FAILED_DELIVERABLE:
        raise ValueError('Use fail_order to close an order as failed')

    amount = parse_amount(actual_amount)
    timestamp = _now_iso(now)
    fields = {
        'status': OrderStatus.COMPLETED,
        'completedAt': timestamp,
        'deliverableLink': deliverable_link or None,
        'actualAmount': amount,
        'editorFeedback': feedback or None,
        'updatedAt': timestamp,
    }
    store.transition(
        order_id,
        set_fields=fields,
        expected_status=OrderStatus.TAKEN,
        expected_taken_by=None if as_admin else user_id,
        assignment=new_assignment(order_id, user_id, AssignmentAction.COMPLETED, timestamp)
    )
    logger.info(f"Order {order_id} completed by {user_id}")
    return dict(fields, orderId=order_id)


def release_order(
    store,
    order_id: str,
    user_id: str,
    as_admin: bool = False,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Hand a taken order back to the pool, clearing the assignee."""
    store.transition(
        order_id,
        set_fields={'status': OrderStatus.AVAILABLE, 'updatedAt': _now_iso(now)},
        remove_fields=('takenBy', 'takenAt'),
        expected_status=OrderStatus.TAKEN,
        expected_taken_by=None if as_admin else user_id
    )
    logger.info(f"Order {order_id} released by {user_id}")
    return {'orderId': order_id, 'status': OrderStatus.AVAILABLE}


def fail_order(
    store,
    order_id: str,
    user_id: str,
    as_admin: bool = False,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Close a taken order as failed (completed with the FAILED deliverable)."""
    timestamp = _now_iso(now)
    fields = {
        'status': OrderStatus.COMPLETED,
        'completedAt': timestamp,
        'deliverableLink': FAILED_DELIVERABLE,
        'updatedAt': timestamp,
    }
    store.transition(
        order_id,
        set_fields=fields,
        expected_status=OrderStatus.TAKEN,
        expected_taken_by=None if as_admin else user_id
    )
    logger.info(f"Order {order_id} marked failed by {user_id}")
    return dict(fields, orderId=order_id)

