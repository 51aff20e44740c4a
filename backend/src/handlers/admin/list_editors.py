"""
Admin Editors Handler.
GET /admin/editors
Per-editor performance and current workload.
"""
from shared.analytics import editor_performance, editors_overview
from shared.auth import is_admin
from shared.errors import OrdersError
from shared.logging import logger, log_event
from shared.models import Role
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
        editors = store.list_profiles(role=Role.EDITOR)
        orders = store.list_orders()

        overview = editors_overview(orders, editors)
        overview['performance'] = editor_performance(orders, editors)
        return format_response(200, overview)

    except OrdersError as e:
        logger.error(f"Error listing editors: {e}")
        return format_response(500, {'error': str(e)})
