"""
Logging utilities for Lambda handlers and the sheet sync job.
"""
import logging
import json
import os

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def resolve_level(name) -> int:
    """Numeric level for a level name, INFO when the name is unknown."""
    level = logging.getLevelName(str(name or '').strip().upper())
    return level if isinstance(level, int) else logging.INFO


# Configure logger
logger = logging.getLogger('orders')
logger.setLevel(resolve_level(os.environ.get('LOG_LEVEL', 'INFO')))

# Add handler if not already configured
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)


def get_logger(component: str) -> logging.Logger:
    """Child logger, e.g. orders.sync, sharing the root handler."""
    return logger.getChild(component)


def log_event(event: dict) -> None:
    """
    Log an incoming event without body, headers or token claims.

    API Gateway events are reduced to method, path, path parameters, query and
    caller sub. Scheduled events are logged as they are.
    """
    try:
        event = event or {}
        if 'httpMethod' in event or 'requestContext' in event:
            claims = ((event.get('requestContext') or {}).get('authorizer') or {}).get('claims') or {}
            summary = {
                'method': event.get('httpMethod'),
                'path': event.get('path') or event.get('resource'),
                'pathParameters': event.get('pathParameters'),
                'query': event.get('queryStringParameters'),
                'sub': claims.get('sub'),
            }
        else:
            summary = {k: v for k, v in event.items() if k not in ['body', 'headers']}
        logger.info(f"Lambda event: {json.dumps(summary, default=str)}")
    except (TypeError, ValueError, AttributeError) as e:
        logger.warning(f"Could not log event: {e}")
