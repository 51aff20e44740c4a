"""
Row identity resolution for sheet rows.
"""

FINGERPRINT_SEPARATOR = '|'
BASE36_DIGITS = '0123456789abcdefghijklmnopqrstuvwxyz'


def _utf16_units(text: str):
    data = text.encode('utf-16-le')
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def djb2_hash(text: str) -> int:
    """
    djb2 over UTF-16 code units with 32-bit wrap-around.

    Returns:
        The hash as an unsigned 32-bit integer
    """
    value = 5381
    for unit in _utf16_units(text):
        value = ((value << 5) + value + unit) & 0xFFFFFFFF
    return value


def to_base36(number: int) -> str:
    if number == 0:
        return '0'
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_DIGITS[remainder])
    return ''.join(reversed(digits))


def fingerprint(name: str, service: str, description: str, budget_text: str, timeline_text: str) -> str:
    return FINGERPRINT_SEPARATOR.join([name, service, description, budget_text, timeline_text])


def resolve_row_id(
    timestamp: str,
    name: str,
    service: str,
    description: str,
    budget_text: str,
    timeline_text: str
) -> str:
    """
    Stable dedup key for a sheet row.

    The form timestamp is used verbatim when present. Otherwise the row's visible
    content is hashed, so two blank-timestamp rows with identical content share
    one identity.
    """
    if timestamp:
        return timestamp
    return to_base36(djb2_hash(fingerprint(name, service, description, budget_text, timeline_text)))
