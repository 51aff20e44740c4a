"""
Admin Stats Handler.
GET /admin/stats
Headline counts, monthly revenue progress, top categories and revenue per editor.
"""
from shared.analytics import category_breakdown, editor_revenue, monthly_revenue, order_stats
from shared.auth import is_admin
from shared.errors import OrdersError
from shared.logging import logger, log_event
from shared.orders import OrderStore
from shared.utils import format_response, is_preflight, preflight_response

store = OrderStore()


def handler(event, context):
    if is_preflight(event):
        return preflight_response()

    log_event(event)

    if not is_admin(event):
        return format_response(403, {'error': 'Admin access required'})

    try:
        orders = store.list_orders()
        profiles = store.list_profiles()
        threshold = store.revenue_threshold()

        return format_response(200, {
            'stats': order_stats(orders),
            'monthlyRevenue': monthly_revenue(orders, threshold),
            'categories': category_breakdown(orders),
            'editorRevenue': editor_revenue(orders, profiles),
        })

    except OrdersError as e:
        logger.error(f"Error computing admin stats: {e}")
        return format_response(500, {'error': str(e)})
