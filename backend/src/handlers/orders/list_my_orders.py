"""
List My Orders Handler.
GET /orders/mine
Returns the caller's orders split into in-progress, completed and failed.
"""
from shared.auth import get_user_sub
from shared.errors import OrdersError
from shared.logging import logger, log_event
from shared.models import OrderStatus, is_failed, is_successful
from shared.orders import OrderStore
from shared.utils import format_response, is_preflight, preflight_response

store = OrderStore()


def group_orders(orders: list) -> dict:
    """Split an editor's orders by workflow state, newest claim first."""
    ordered = sorted(orders, key=lambda o: o.get('takenAt') or '', reverse=True)
    return {
        'taken': [o for o in ordered if o.get('status') == OrderStatus.TAKEN],
        'completed': [o for o in ordered if is_successful(o)],
        'failed': [o for o in ordered if is_failed(o)],
    }


def handler(event, context):
    if is_preflight(event):
        return preflight_response()

    log_event(event)

    user_id = get_user_sub(event)
    if not user_id:
        return format_response(401, {'error': 'Unauthorized'})

    try:
        orders = store.list_orders(taken_by=user_id)
        return format_response(200, group_orders(orders))

    except OrdersError as e:
        logger.error(f"Error listing orders for {user_id}: {e}")
        return format_response(500, {'error': 'Failed to fetch your orders'})
