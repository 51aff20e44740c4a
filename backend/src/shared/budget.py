"""
Budget parsing for free-text intake answers.

Clients type budgets like "₹15,000 - 20k", "2.5 cr" or "around 10L". The
parser pulls every number out of the text, applies the magnitude suffix that
follows it, and returns the largest value, so a range resolves to its upper
bound.
"""
import math
import re
from typing import List, Optional

# ASCII digits only; longest suffix alternatives first so "lakhs" is not read as "l"
BUDGET_PATTERN = re.compile(
    r'([0-9]{1,3}(?:[,\s][0-9]{2,3})+|[0-9]+(?:\.[0-9]+)?)\s*(lakhs|lakh|lac|crore|cr|k|m|l)?'
)

DASHES = re.compile('[–—−]')

SUFFIX_MULTIPLIERS = {
    'k': 1_000,
    'm': 1_000_000,
    'l': 100_000,
    'lac': 100_000,
    'lakh': 100_000,
    'lakhs': 100_000,
    'cr': 10_000_000,
    'crore': 10_000_000,
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def extract_amounts(text: Optional[str]) -> List[int]:
    """
    Return every scaled amount found in the text, in order of appearance.

    Args:
        text: Free-text budget answer (may be None)

    Returns:
        List of non-negative integer amounts
    """
    if not text:
        return []

    normalized = DASHES.sub('-', str(text).lower().strip())
    amounts = []
    for match in BUDGET_PATTERN.finditer(normalized):
        digits = re.sub(r'[\s,]', '', match.group(1))
        try:
            value = float(digits)
        except ValueError:
            continue
        if not math.isfinite(value):
            continue
        value *= SUFFIX_MULTIPLIERS.get(match.group(2) or '', 1)
        if not math.isfinite(value):
            continue
        amounts.append(_round_half_up(value))
    return amounts


def parse_budget(text: Optional[str]) -> int:
    """
    Convert a free-text budget into a single amount.

    Args:
        text: Free-text budget answer (may be None)

    Returns:
        The largest amount mentioned, or 0 if nothing numeric was found
    """
    amounts = extract_amounts(text)
    if not amounts:
        return 0
    return max(amounts)
