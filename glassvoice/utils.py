"""Shared utilities used across the voice assistant."""

import re
from typing import Optional

NUMBER_WORDS: dict[str, int] = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
    "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19,
    "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
    "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
    "hundred": 100, "a dozen": 12, "dozen": 12,
}

NUMBER_PATTERN = (
    r"(\d+(?:\.\d+)?|"
    + "|".join(sorted((re.escape(w) for w in NUMBER_WORDS), key=len, reverse=True))
    + r")"
)

_ORDER_REF_RE = re.compile(r"\b(ORD-[A-Z0-9]+(?:-[A-Z0-9]+)*)\b", re.IGNORECASE)
_ORDER_NUMBER_RE = re.compile(r"\border\s*(?:number|no\.?|#)?\s*#?\s*(\d{1,6})\b", re.IGNORECASE)


def parse_number(token: str) -> Optional[float]:
    """Parse a digit string or an English number word.

    Examples:
        >>> parse_number("1200")
        1200.0
        >>> parse_number("Five")
        5.0
        >>> parse_number("lots") is None
        True
    """
    token = token.strip().lower()
    if not token:
        return None
    try:
        return float(token)
    except ValueError:
        pass
    value = NUMBER_WORDS.get(token)
    return float(value) if value is not None else None


def normalize_key(value: str) -> str:
    """Lower-case a label and collapse spaces, dashes and dots to underscores.

    Examples:
        >>> normalize_key("CREATE ORDER")
        'create_order'
        >>> normalize_key(" low-e ")
        'low_e'
    """
    return re.sub(r"[\s\-\.]+", "_", value.strip().lower()).strip("_")


def extract_order_reference(text: str) -> Optional[str]:
    """Find an order reference in free text.

    Accepts full order numbers (``ORD-20250115-001``) and short spoken
    forms ("order 42", "order number 7").

    Examples:
        >>> extract_order_reference("where is ord-20250115-001?")
        'ORD-20250115-001'
        >>> extract_order_reference("check order number 42")
        '42'
    """
    match = _ORDER_REF_RE.search(text)
    if match:
        return match.group(1).upper()
    match = _ORDER_NUMBER_RE.search(text)
    if match:
        return match.group(1)
    return None


def format_money(amount: float, currency: str = "USD") -> str:
    """Render an amount for speech.

    Examples:
        >>> format_money(112.5)
        '$112.50'
        >>> format_money(10, "EUR")
        '10.00 EUR'
    """
    if currency.upper() == "USD":
        return f"${amount:,.2f}"
    return f"{amount:,.2f} {currency.upper()}"


_ACTION_MARKER_RE = re.compile(r"\[ACTION:(\w+)\]")
_BRACKET_RE = re.compile(r"\[.*?\]")


def extract_action_marker(text: str) -> tuple[str, Optional[str]]:
    """Split a generated reply into spoken text and its ``[ACTION:x]`` marker.

    Every bracketed tag is removed from the spoken text; only the first
    action marker is reported.

    Examples:
        >>> extract_action_marker("Bye for now! [ACTION:end_conversation]")
        ('Bye for now!', 'end_conversation')
        >>> extract_action_marker("Sure thing.")
        ('Sure thing.', None)
    """
    match = _ACTION_MARKER_RE.search(text)
    action = match.group(1) if match else None
    cleaned = re.sub(r"\s{2,}", " ", _BRACKET_RE.sub("", text)).strip()
    return cleaned, action
