"""
Data models and status constants for the order marketplace.
Based on the order lifecycle: Available → Taken → Completed (or released back to Available)
"""
from typing import Any, Dict


class OrderStatus:
    """Order lifecycle statuses."""
    AVAILABLE = 'available'
    TAKEN = 'taken'
    COMPLETED = 'completed'


class AssignmentAction:
    """Actions recorded in the assignments audit table."""
    TAKEN = 'taken'
    COMPLETED = 'completed'


class OrderSource:
    """Where an order row came from."""
    GOOGLE_SHEET = 'google_sheet'


class Role:
    """User roles."""
    EDITOR = 'editor'
    ADMIN = 'admin'


# A completed order carrying this deliverable link is a failed engagement
FAILED_DELIVERABLE = 'FAILED'

# Attributes owned by the editor workflow; sheet sync never writes them on existing rows
WORKFLOW_FIELDS = (
    'status',
    'takenBy',
    'takenAt',
    'completedAt',
    'deliverableLink',
    'actualAmount',
    'editorFeedback',
)


def is_failed(order: Dict[str, Any]) -> bool:
    """True for orders closed as failed."""
    return (
        order.get('status') == OrderStatus.COMPLETED
        and order.get('deliverableLink') == FAILED_DELIVERABLE
    )


def is_successful(order: Dict[str, Any]) -> bool:
    """True for orders completed with a real deliverable."""
    return order.get('status') == OrderStatus.COMPLETED and not is_failed(order)
