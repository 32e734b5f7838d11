"""
Field extractors for order details spoken in free text.

One function per field, each with a small documented grammar. An
extractor returns None when it finds nothing; it never raises. The
order builder decides which extractor runs first and whether a result
may overwrite a field that is already set.

Grammars (case-insensitive):
    glass type   catalog keyword or alias ("tempered", "double glazed", "low-e")
    dimensions   "W by H" | "W x H" | "W mm and H mm" | "width W (and) height H"
                 with optional mm / cm / m units, converted to millimeters
    quantity     "N pieces|panes|sheets|units|panels|pcs" | "quantity (of|is|to) N"
                 | "N of them"; a bare number only when the quantity step is active
    thickness    "N mm thick" | "thickness (of) N (mm)"
    customer     "customer (name) is X" | "for customer X"; in the customer step
                 also "name is X" | "it's for X" | "this is X", or a run of
                 capitalized words that are not question words, pronouns or verbs
    yes / no     a leading yes or no word decides; otherwise any negative word
                 means no, negated agreement ("not right") means neither, and
                 any agreement word means yes
"""

import re
from typing import Optional

from glassvoice.schemas.order_schema import GlassType
from glassvoice.tools.catalog import GLASS_ALIASES
from glassvoice.utils import NUMBER_PATTERN, parse_number

_NUM = NUMBER_PATTERN
_UNIT = r"\s*(mm|millimet(?:er|re)s?|cm|centimet(?:er|re)s?|m|met(?:er|re)s?)?"

_GLASS_RE = re.compile(
    r"\b("
    + "|".join(sorted((re.escape(a) for a in GLASS_ALIASES), key=len, reverse=True))
    + r")\b",
    re.IGNORECASE,
)

_DIM_BY_RE = re.compile(rf"\b{_NUM}{_UNIT}\s*(?:by|x|×|\*)\s*{_NUM}{_UNIT}\b", re.IGNORECASE)
_DIM_AND_RE = re.compile(
    rf"\b{_NUM}\s*(mm|millimet(?:er|re)s?|cm|centimet(?:er|re)s?)\s*(?:and|,)\s*{_NUM}{_UNIT}\b",
    re.IGNORECASE,
)
_DIM_NAMED_RE = re.compile(
    rf"\bwidth\s*(?:of|is|:)?\s*{_NUM}{_UNIT}[\s,]*(?:and\s+)?(?:a\s+)?height\s*(?:of|is|:)?\s*{_NUM}{_UNIT}\b",
    re.IGNORECASE,
)

_QTY_UNIT_RE = re.compile(
    rf"\b{_NUM}\s+(?:\w+\s+){{0,2}}?(pieces?|panes?|sheets?|units?|panels?|pcs|windows?|of them)\b",
    re.IGNORECASE,
)
_QTY_LABEL_RE = re.compile(rf"\bquantity\s*(?:of|is|to|:)?\s*{_NUM}\b", re.IGNORECASE)
_BARE_NUMBER_RE = re.compile(rf"\b{_NUM}\b", re.IGNORECASE)

_THICKNESS_RE = re.compile(
    rf"\b{_NUM}\s*(?:mm|millimet(?:er|re)s?)\s*thick\b"
    rf"|\bthickness\s*(?:of|is|:)?\s*{_NUM}\s*(?:mm|millimet(?:er|re)s?)?",
    re.IGNORECASE,
)

_CUSTOMER_MARKER_RE = re.compile(
    r"\b(?:customer(?:\s+name)?\s*(?:is|:)|for\s+customer|customer\s+called)\s+"
    r"([A-Za-z0-9][\w&.'\- ]{0,60})",
    re.IGNORECASE,
)
_ANSWER_MARKER_RE = re.compile(
    r"\b(?:(?:the\s+)?name\s+is|it'?s\s+for|this\s+is\s+for|this\s+is|it'?s)\s+"
    r"([A-Za-z0-9][\w&.'\- ]{0,60})",
    re.IGNORECASE,
)
_CAPITALIZED_RUN_RE = re.compile(r"\b([A-Z][\w&.'\-]*(?:\s+(?:&\s+)?[A-Z][\w&.'\-]*)*)")
_TRAILING_FILLER_RE = re.compile(
    r"[\s,.!?]+(?:please|thanks|thank you|ok|okay)?[\s,.!?]*$", re.IGNORECASE
)

_NOT_NAMES = {
    "yes", "no", "ok", "okay", "sure", "please", "thanks", "thank", "the", "a", "an",
    "i", "it", "it's", "its", "um", "uh", "hi", "hello", "create", "order",
    # question words
    "how", "what", "when", "where", "why", "who", "which",
    # pronouns
    "me", "my", "we", "our", "you", "your", "he", "she", "they", "them", "this", "that",
    # verbs a caller opens a sentence with
    "can", "could", "would", "will", "is", "are", "do", "does", "did", "put", "make",
    "use", "call", "send", "bill", "charge", "let", "let's", "just", "actually",
}

_CANCEL_RE = re.compile(
    r"\b(cancel|stop|abort|never\s*mind|nevermind|forget\s+it|scrap\s+(?:it|that))\b",
    re.IGNORECASE,
)
_NEGATIVE_RE = re.compile(
    r"\b(no(?!\s+(?:problem|worries|changes?))|nope|nah|don'?t|do\s+not|cancel|stop|negative)\b",
    re.IGNORECASE,
)
_AFFIRMATIVE_RE = re.compile(
    r"\b(yes|yeah|yep|yup|sure|confirm(?:ed)?|create(?:\s+it)?|correct|go\s+ahead|"
    r"do\s+it|ok(?:ay)?|absolutely|right|perfect|sounds\s+good|place\s+it)\b",
    re.IGNORECASE,
)
_LEADING_YES_RE = re.compile(
    r"^\W*(yes|yeah|yep|yup|sure|absolutely|confirm(?:ed)?|correct)\b", re.IGNORECASE
)
_LEADING_NO_RE = re.compile(
    r"^\W*(no(?!\s+(?:problem|worries))|nope|nah|negative)\b", re.IGNORECASE
)
_NEGATED_AGREEMENT_RE = re.compile(
    r"\b(not|never|isn'?t|wasn'?t|aren'?t|ain'?t)\s+(?:\w+\s+){0,2}?"
    r"(right|correct|ok(?:ay)?|good|fine|perfect|sure|what\s+i\s+(?:said|wanted|meant))\b",
    re.IGNORECASE,
)


def _to_mm(value: float, unit: Optional[str]) -> float:
    unit = (unit or "mm").lower()
    if unit.startswith("c"):
        return value * 10
    if unit == "m" or unit.startswith("met"):
        return value * 1000
    return value


def extract_glass_type(text: str) -> Optional[GlassType]:
    """First catalog keyword or alias mentioned, longest alias first."""
    match = _GLASS_RE.search(text)
    if not match:
        return None
    return GLASS_ALIASES[match.group(1).lower()]


def extract_dimensions(text: str) -> Optional[tuple[float, float]]:
    """Return (width_mm, height_mm) or None.

    A unit written only after the second number applies to both
    ("120 by 80 cm").
    """
    match = _DIM_NAMED_RE.search(text) or _DIM_BY_RE.search(text)
    if match:
        w_raw, w_unit, h_raw, h_unit = match.groups()
    else:
        match = _DIM_AND_RE.search(text)
        if not match:
            return None
        w_raw, w_unit, h_raw, h_unit = match.groups()
    width, height = parse_number(w_raw), parse_number(h_raw)
    if not width or not height:
        return None
    w_unit = w_unit or h_unit
    h_unit = h_unit or w_unit
    return _to_mm(width, w_unit), _to_mm(height, h_unit)


def _strip_measurements(text: str) -> str:
    for pattern in (_DIM_NAMED_RE, _DIM_BY_RE, _DIM_AND_RE, _THICKNESS_RE):
        text = pattern.sub(" ", text)
    return text


def extract_quantity(text: str, expecting: bool = False) -> Optional[int]:
    """Return a positive whole quantity or None.

    Numbers belonging to a dimension or thickness phrase are never
    counted. When ``expecting`` is set (the builder just asked "how
    many?"), a bare number or number word is accepted.
    """
    text = _strip_measurements(text)
    match = _QTY_UNIT_RE.search(text) or _QTY_LABEL_RE.search(text)
    candidate = match.group(1) if match else None
    if candidate is None and expecting:
        bare = _BARE_NUMBER_RE.search(text)
        candidate = bare.group(1) if bare else None
    if candidate is None:
        return None
    value = parse_number(candidate)
    if value is None or value <= 0 or value != int(value):
        return None
    return int(value)


def extract_thickness(text: str) -> Optional[float]:
    match = _THICKNESS_RE.search(text)
    if not match:
        return None
    raw = match.group(1) or match.group(2)
    value = parse_number(raw) if raw else None
    return value if value and value > 0 else None


def _clean_name(raw: str) -> Optional[str]:
    name = _TRAILING_FILLER_RE.sub("", raw.strip())
    name = re.split(r"\s+(?:and|with|please)\s+", name, maxsplit=1, flags=re.IGNORECASE)[0]
    name = name.strip(" ,.!?'\"")
    if not name or name.lower() in _NOT_NAMES or not re.search(r"[A-Za-z]", name):
        return None
    return name


def extract_customer_name(text: str, expecting: bool = False) -> Optional[str]:
    """Return a customer name or None.

    Explicit customer markers always work. Everything else is only
    tried when ``expecting`` is set (the builder just asked for the
    customer): answer phrases such as "it's for X", then a run of
    capitalized words. Anything else leaves the name unset so the
    builder asks again.
    """
    match = _CUSTOMER_MARKER_RE.search(text)
    if match:
        name = _clean_name(match.group(1))
        if name:
            return name
    if not expecting:
        return None
    match = _ANSWER_MARKER_RE.search(text)
    if match:
        name = _clean_name(match.group(1))
        if name:
            return name[0].upper() + name[1:]
    for run in _CAPITALIZED_RUN_RE.findall(text):
        words = run.split()
        # A run that opens with a question word or verb is a sentence, not a name.
        if words[0].lower() in _NOT_NAMES:
            continue
        name = _clean_name(run)
        if name:
            return name
    return None


def is_cancellation(text: str) -> bool:
    """True for "cancel", "stop", "never mind", "forget it" and similar."""
    return bool(_CANCEL_RE.search(text))


def confirmation_answer(text: str) -> Optional[bool]:
    """Read a yes/no answer: True, False, or None when it is neither.

    Examples:
        >>> confirmation_answer("Yes, no changes needed")
        True
        >>> confirmation_answer("That's not right") is None
        True
    """
    if _LEADING_NO_RE.search(text):
        return False
    if _LEADING_YES_RE.search(text):
        return True
    if _NEGATIVE_RE.search(text):
        return False
    if _NEGATED_AGREEMENT_RE.search(text):
        return None
    if _AFFIRMATIVE_RE.search(text):
        return True
    return None


def is_negative(text: str) -> bool:
    return confirmation_answer(text) is False


def is_affirmative(text: str) -> bool:
    return confirmation_answer(text) is True


def extract_order_fields(text: str) -> dict[str, object]:
    """Every order field any extractor can find, without step context."""
    fields: dict[str, object] = {}
    glass_type = extract_glass_type(text)
    if glass_type:
        fields["glass_type"] = glass_type
    dims = extract_dimensions(text)
    if dims:
        fields["width"], fields["height"] = dims
    quantity = extract_quantity(text)
    if quantity:
        fields["quantity"] = quantity
    thickness = extract_thickness(text)
    if thickness:
        fields["thickness"] = thickness
    customer = extract_customer_name(text)
    if customer:
        fields["customer_name"] = customer
    return fields
