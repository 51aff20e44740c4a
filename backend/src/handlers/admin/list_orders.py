"""
Admin Orders Handler.
GET /admin/orders?limit=200
Latest orders with editor names, failure flags and the original intake answers.
"""
from shared.analytics import DETAILED_ORDERS_LIMIT, detailed_orders
from shared.auth import is_admin
from shared.errors import OrdersError
from shared.logging import logger, log_event
from shared.orders import OrderStore
from shared.utils import format_response, get_query_param, is_preflight, preflight_response

store = OrderStore()


def handler(event, context):
    if is_preflight(event):
        return preflight_response()

    log_event(event)

    if not is_admin(event):
        return format_response(403, {'error': 'Admin access required'})

    try:
        limit = int(get_query_param(event, 'limit', DETAILED_ORDERS_LIMIT))
    except (TypeError, ValueError):
        return format_response(400, {'error': 'limit must be an integer'})
    limit = max(1, min(limit, DETAILED_ORDERS_LIMIT))

    try:
        orders = store.list_orders()
        profiles = store.list_profiles()
        return format_response(200, {'orders': detailed_orders(orders, profiles, limit=limit)})

    except OrdersError as e:
        logger.error(f"Error listing orders for admin: {e}")
        return format_response(500, {'error': str(e)})
