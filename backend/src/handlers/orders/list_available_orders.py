"""
List Available Orders Handler.
GET /orders/available
Returns orders nobody has claimed yet, newest first.
"""
from shared.auth import get_user_sub
from shared.errors import OrdersError
from shared.logging import logger, log_event
from shared.models import OrderStatus
from shared.orders import OrderStore
from shared.utils import format_response, is_preflight, preflight_response

store = OrderStore()


def handler(event, context):
    if is_preflight(event):
        return preflight_response()

    log_event(event)

    if not get_user_sub(event):
        return format_response(401, {'error': 'Unauthorized'})

    try:
        orders = store.list_orders(status=OrderStatus.AVAILABLE)
        orders.sort(key=lambda o: o.get('createdAt') or '', reverse=True)
        return format_response(200, {'orders': orders, 'totalOrders': len(orders)})

    except OrdersError as e:
        logger.error(f"Error listing available orders: {e}")
        return format_response(500, {'error': 'Failed to fetch orders'})
