"""
Take Order Handler.
POST /orders/{orderId}/take
Claims an available order for the calling editor. First claimant wins.
"""
from shared.auth import get_user_sub
from shared.errors import OrderUnavailable, OrdersError
from shared.logging import logger, log_event
from shared.orders import OrderStore
from shared.utils import format_response, get_path_param, is_preflight, preflight_response
from shared.workflow import take_order

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
        order = take_order(store, order_id, user_id)
        return format_response(200, {'message': 'Order taken successfully', 'order': order})

    except OrderUnavailable:
        return format_response(409, {'error': 'This order has already been taken by someone else'})
    except OrdersError as e:
        logger.error(f"Error taking order {order_id}: {e}")
        return format_response(500, {'error': 'Failed to take order'})
