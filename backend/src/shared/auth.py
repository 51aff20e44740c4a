"""
Caller identity from Cognito claims.

REST APIs put the claims under requestContext.authorizer.claims; HTTP APIs with a
JWT authorizer put them under requestContext.authorizer.jwt.claims and render
cognito:groups as "[admin editor]".
"""
from typing import Any, Dict, List, Optional

from .models import Role


def get_claims(event: dict) -> Dict[str, Any]:
    """Token claims of the caller, empty when the request is unauthenticated."""
    try:
        authorizer = event['requestContext']['authorizer'] or {}
    except (KeyError, TypeError):
        return {}
    claims = authorizer.get('claims')
    if claims is None:
        claims = (authorizer.get('jwt') or {}).get('claims')
    return claims if isinstance(claims, dict) else {}


def get_user_sub(event: dict) -> Optional[str]:
    """
    Extract user sub (unique ID) from Cognito claims.

    Args:
        event: API Gateway Lambda proxy event

    Returns:
        User sub string or None if not authenticated
    """
    return get_claims(event).get('sub') or None


def get_user_groups(event: dict) -> List[str]:
    """Cognito groups of the caller (editor, admin)."""
    groups = get_claims(event).get('cognito:groups') or []
    if isinstance(groups, str):
        groups = groups.strip('[]').replace(',', ' ').split()
    return [str(g).strip() for g in groups if str(g).strip()]


def is_admin(event: dict) -> bool:
    return Role.ADMIN in get_user_groups(event)
