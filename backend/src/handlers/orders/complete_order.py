"""
Complete Order Handler.
POST /orders/{orderId}/complete
Body: { "deliverableLink": "...", "actualAmount": 12000, "feedback": "..." }
"""
from shared.auth import get_user_sub, is_admin
from shared.errors import OrderUnavailable, OrdersError
from shared.logging import logger, log_event
from shared.orders import OrderStore
from shared.utils import format_response, get_path_param, is_preflight, parse_body, preflight_response
from shared.workflow import complete_order

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

    body = parse_body(event)

    try:
        order = complete_order(
            store,
            order_id,
            user_id,
            deliverable_link=body.get('deliverableLink'),
            actual_amount=body.get('actualAmount'),
            feedback=body.get('feedback'),
            as_admin=is_admin(event)
        )
        return format_response(200, {'message': 'Order marked as completed', 'order': order})

    except ValueError as e:
        return format_response(400, {'error': str(e)})
    except OrderUnavailable:
        return format_response(409, {'error': 'Order is not taken by you'})
    except OrdersError as e:
        logger.error(f"Error completing order {order_id}: {e}")
        return format_response(500, {'error': 'Failed to complete order'})
