"""
Common utility functions for Lambda handlers.
"""
import json
from decimal import Decimal
from typing import Any, Dict, Optional

from .config import config


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal types from DynamoDB."""

    def default(self, o):
        if isinstance(o, Decimal):
            # Convert to int if it's a whole number, otherwise float
            if o % 1 == 0:
                return int(o)
            return float(o)
        return super().default(o)


def format_response(
    status_code: int,
    body: Any = None,
    headers: Dict[str, str] = None
) -> Dict[str, Any]:
    """
    Format a standard API Gateway response with CORS headers.

    Args:
        status_code: HTTP status code
        body: Response body (will be JSON serialized); None sends an empty body
        headers: Additional headers to include

    Returns:
        API Gateway response dict
    """
    default_headers = config.cors_headers()
    if body is not None:
        default_headers['Content-Type'] = 'application/json'

    if headers:
        default_headers.update(headers)

    return {
        'statusCode': status_code,
        'headers': default_headers,
        'body': json.dumps(body, cls=DecimalEncoder) if body is not None else ''
    }


def preflight_response() -> Dict[str, Any]:
    """Empty 204 answer for CORS preflight requests."""
    return format_response(204)


def is_preflight(event: dict) -> bool:
    method = (event or {}).get('httpMethod') or (
        ((event or {}).get('requestContext') or {}).get('http') or {}
    ).get('method')
    return str(method or '').upper() == 'OPTIONS'


def parse_body(event: dict) -> dict:
    """
    Safely parse JSON body from API Gateway event.

    Args:
        event: API Gateway Lambda proxy event

    Returns:
        Parsed body dict or empty dict if invalid
    """
    try:
        body = event.get('body') or '{}'
        if isinstance(body, str):
            body = json.loads(body)
        return body if isinstance(body, dict) else {}
    except (json.JSONDecodeError, TypeError, AttributeError):
        return {}


def get_path_param(event: dict, param_name: str) -> Optional[str]:
    """Extract path parameter from event."""
    try:
        return event['pathParameters'][param_name]
    except (KeyError, TypeError):
        return None


def get_query_param(event: dict, param_name: str, default: str = None) -> Optional[str]:
    """Extract query string parameter from event."""
    try:
        params = event.get('queryStringParameters') or {}
        return params.get(param_name, default)
    except (KeyError, TypeError, AttributeError):
        return default


def to_dynamo(value: Any) -> Any:
    """
    Make an arbitrary JSON-like value storable in DynamoDB.
    Floats become Decimal; anything not JSON serializable becomes its string form.
    """
    return json.loads(json.dumps(value, default=str), parse_float=Decimal)


def to_number(value: Any) -> float:
    """Coerce a stored amount (Decimal, int, str or None) to float, 0 when unusable."""
    if value is None or value == '':
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError, ArithmeticError):
        return 0.0
