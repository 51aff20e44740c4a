"""
Sync Sheet Handler.
Copies new intake-sheet submissions into the orders table.
Invoked over HTTP (POST /orders/sync) or by an EventBridge schedule.
Body: { "purge": false, "sheetUrl": "..." } (both optional)
"""
from shared.config import Config
from shared.errors import OrdersError
from shared.logging import logger, log_event
from shared.sync import run_sync
from shared.utils import format_response, is_preflight, parse_body, preflight_response


def read_options(event: dict) -> tuple:
    """
    Pull purge / sheetUrl from an HTTP body or a scheduled event.

    Returns:
        (purge, sheet_url)
    """
    if 'httpMethod' in event or 'requestContext' in event:
        body = parse_body(event)
    else:
        body = event or {}

    purge = bool(body.get('purge', False))
    sheet_url = body.get('sheetUrl')
    if not isinstance(sheet_url, str) or not sheet_url:
        sheet_url = None
    return purge, sheet_url


def handler(event, context):
    if is_preflight(event):
        return preflight_response()

    log_event(event)
    event = event or {}

    try:
        cfg = Config.from_env()
        purge, sheet_url = read_options(event)
        result = run_sync(cfg, purge=purge, sheet_url=sheet_url)
        return format_response(200, result.to_dict())

    except OrdersError as e:
        logger.error(f"Sheet sync failed: {e}")
        return format_response(500, {'ok': False, 'error': str(e)})
    except Exception as e:
        logger.exception(f"Unexpected error during sheet sync: {e}")
        return format_response(500, {'ok': False, 'error': str(e)})
