"""Glass catalog with spoken aliases and per-type price multipliers."""

import logging
from typing import Optional

from glassvoice.schemas.order_schema import GlassType

logger = logging.getLogger(__name__)

GLASS_CATALOG: dict[GlassType, dict] = {
    GlassType.FLOAT: {
        "name": "Float Glass",
        "description": "Standard clear annealed glass for general glazing.",
        "thicknesses_mm": [3, 4, 5, 6, 8, 10, 12],
    },
    GlassType.TEMPERED: {
        "name": "Tempered Glass",
        "description": "Heat-strengthened safety glass, about four times stronger than float.",
        "thicknesses_mm": [4, 5, 6, 8, 10, 12],
    },
    GlassType.LAMINATED: {
        "name": "Laminated Glass",
        "description": "Two panes bonded with an interlayer that holds together when broken.",
        "thicknesses_mm": [6.38, 8.38, 10.38, 12.38],
    },
    GlassType.INSULATED: {
        "name": "Insulated Glass Unit",
        "description": "Double or triple glazed unit with a sealed air or gas gap.",
        "thicknesses_mm": [20, 24, 28],
    },
    GlassType.LOW_E: {
        "name": "Low-E Glass",
        "description": "Coated glass that reflects heat while letting light through.",
        "thicknesses_mm": [4, 6, 8],
    },
    GlassType.REFLECTIVE: {
        "name": "Reflective Glass",
        "description": "Mirror-coated glass for solar control and privacy.",
        "thicknesses_mm": [6, 8, 10],
    },
    GlassType.TINTED: {
        "name": "Tinted Glass",
        "description": "Body-tinted glass in bronze, grey, green or blue.",
        "thicknesses_mm": [4, 5, 6, 8],
    },
    GlassType.FROSTED: {
        "name": "Frosted Glass",
        "description": "Acid-etched or sandblasted glass for diffused light.",
        "thicknesses_mm": [4, 5, 6, 10],
    },
    GlassType.PATTERNED: {
        "name": "Patterned Glass",
        "description": "Rolled glass with a textured decorative surface.",
        "thicknesses_mm": [4, 5, 6],
    },
    GlassType.BULLETPROOF: {
        "name": "Bullet-Resistant Glass",
        "description": "Multi-layer laminated security glass.",
        "thicknesses_mm": [21, 32, 40],
    },
}

GLASS_ALIASES: dict[str, GlassType] = {
    "float": GlassType.FLOAT, "clear": GlassType.FLOAT, "annealed": GlassType.FLOAT,
    "regular": GlassType.FLOAT, "standard": GlassType.FLOAT, "plain": GlassType.FLOAT,
    "tempered": GlassType.TEMPERED, "toughened": GlassType.TEMPERED,
    "safety": GlassType.TEMPERED,
    "laminated": GlassType.LAMINATED, "laminate": GlassType.LAMINATED,
    "insulated": GlassType.INSULATED, "insulating": GlassType.INSULATED,
    "double glazed": GlassType.INSULATED, "double glazing": GlassType.INSULATED,
    "double pane": GlassType.INSULATED, "igu": GlassType.INSULATED,
    "low e": GlassType.LOW_E, "low-e": GlassType.LOW_E, "lowe": GlassType.LOW_E,
    "low emissivity": GlassType.LOW_E,
    "reflective": GlassType.REFLECTIVE, "mirrored": GlassType.REFLECTIVE,
    "tinted": GlassType.TINTED, "tint": GlassType.TINTED,
    "frosted": GlassType.FROSTED, "obscure": GlassType.FROSTED, "etched": GlassType.FROSTED,
    "patterned": GlassType.PATTERNED, "textured": GlassType.PATTERNED,
    "bulletproof": GlassType.BULLETPROOF, "bullet proof": GlassType.BULLETPROOF,
    "bullet resistant": GlassType.BULLETPROOF, "bullet-resistant": GlassType.BULLETPROOF,
}

TYPE_MULTIPLIERS: dict[GlassType, float] = {
    GlassType.FLOAT: 1.0,
    GlassType.TEMPERED: 1.5,
    GlassType.LAMINATED: 1.8,
    GlassType.INSULATED: 2.2,
}

DEFAULT_MULTIPLIER = 1.0


def coerce_glass_type(value: object) -> Optional[GlassType]:
    """Turn an enum, enum value or spoken alias into a GlassType."""
    if value is None:
        return None
    if isinstance(value, GlassType):
        return value
    key = str(value).strip().lower().replace("_", " ")
    if not key:
        return None
    if key in GLASS_ALIASES:
        return GLASS_ALIASES[key]
    try:
        return GlassType(key.upper().replace(" ", "_").replace("-", "_"))
    except ValueError:
        return None


def get_glass_details(glass_type: GlassType) -> dict:
    """Return the catalog entry for a glass type."""
    return GLASS_CATALOG[glass_type]


def list_glass_types() -> list[str]:
    """Spoken names of every glass type in the catalog."""
    return [entry["name"] for entry in GLASS_CATALOG.values()]


def type_multiplier(glass_type: Optional[GlassType]) -> float:
    return TYPE_MULTIPLIERS.get(glass_type, DEFAULT_MULTIPLIER) if glass_type else DEFAULT_MULTIPLIER


def calculate_price(
    glass_type: Optional[GlassType],
    width_mm: float,
    height_mm: float,
    quantity: int,
    base_price: float = 50.0,
) -> tuple[float, float]:
    """Compute (unit_price, total_price) for a pane size and quantity.

    The unit price is base price times area in square meters times the
    glass type multiplier, rounded to cents. The total is the rounded unit
    price times quantity, rounded again.

    Examples:
        >>> calculate_price(GlassType.TEMPERED, 500, 300, 10)
        (11.25, 112.5)
    """
    area_m2 = (width_mm * height_mm) / 1_000_000
    unit_price = round(base_price * area_m2 * type_multiplier(glass_type), 2)
    total_price = round(unit_price * quantity, 2)
    logger.debug(
        "Priced %s %gx%g mm x%d: unit=%.2f total=%.2f",
        glass_type.value if glass_type else "unknown", width_mm, height_mm, quantity,
        unit_price, total_price,
    )
    return unit_price, total_price
