"""
Maps free-text urgency answers to a concrete due date.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

# Evaluated top to bottom, first match wins
TIMELINE_RULES = (
    (('urgent', '1-3'), 3),
    (('week', '3-7'), 7),
    (('month', '1-4'), 28),
)


def timeline_to_due_date(text: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Classify a timeline answer into a due date.

    The offset is counted from the evaluation time, not from any date in the row,
    so re-running the sync later moves the due date forward.

    Args:
        text: Free-text timeline answer (may be None)
        now: Evaluation time, defaults to the current UTC time

    Returns:
        Timezone-aware due date, or None when no rule matches
    """
    if not text:
        return None

    lowered = str(text).lower()
    for triggers, days in TIMELINE_RULES:
        if any(trigger in lowered for trigger in triggers):
            base = now or datetime.now(timezone.utc)
            return base + timedelta(days=days)
    return None


def format_due_date(due: Optional[datetime]) -> Optional[str]:
    """ISO-8601 form stored on the order, or None."""
    if due is None:
        return None
    if due.tzinfo is None:
        due = due.replace(tzinfo=timezone.utc)
    return due.astimezone(timezone.utc).isoformat()
