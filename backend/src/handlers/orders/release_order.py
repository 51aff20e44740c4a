"""
Release Order Handler.
POST /orders/{orderId}/release
Hands a taken order back to the available pool.
"""
from shared.auth import get_user_sub, is_admin
from shared.errors import OrderUnavailable, OrdersError
from shared.logging import logger, log_event
from shared.orders import OrderStore
from shared.utils import format_response, get_path_param, is_preflight, preflight_response
from shared.workflow import release_order

store = OrderStore()


def handler(event, context):
    if is_preflight(event):
        return preflight_response()

    log_event(event)

    user_id = get_user_sub(event)
    if not user_id:
        return format_response(401, {'error': 'Unauthorized'})

    order_id = get_path_param(event, 'orderId')
    if not order_id:
        return format_response(400, {'error': 'Missing orderId'})

    try:
        order = release_order(store, order_id, user_id, as_admin=is_admin(event))
        return format_response(200, {'message': 'Order released back to available', 'order': order})

    except OrderUnavailable:
        return format_response(409, {'error': 'Order is not taken by you'})
    except OrdersError as e:
        logger.error(f"Error releasing order {order_id}: {e}")
        return format_response(500, {'error': 'Failed to leave order'})
