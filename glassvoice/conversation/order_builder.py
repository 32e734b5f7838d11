"""
Order builder: a small state machine that collects an order across turns.

Steps follow a fixed priority: glass type, then both dimensions, then
quantity, then customer. The current step is always the first field
still missing, so it is a pure function of which fields are set. Once
all four are known the price is computed and the builder waits for a
yes or no.

    glass_type -> dimensions -> quantity -> customer -> confirm -> complete
                                                              \\-> cancelled

Usage:
    builder = OrderBuilder()
    builder.seed({}, "Create a new order for tempered glass")
    outcome = builder.handle("1200 by 800")
    assert builder.step == BuilderStep.QUANTITY
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from glassvoice.conversation.extractors import (
    confirmation_answer,
    extract_customer_name,
    extract_dimensions,
    extract_glass_type,
    extract_quantity,
    extract_thickness,
)
from glassvoice.exceptions import InvalidTransitionError
from glassvoice.prompts.prompt_templates import (
    ORDER_CANCELLED_REPLY,
    STEP_PROMPTS,
    build_order_summary,
)
from glassvoice.schemas.order_schema import GlassType
from glassvoice.tools.catalog import calculate_price, coerce_glass_type

logger = logging.getLogger(__name__)


class BuilderStep(str, Enum):
    GLASS_TYPE = "glass_type"
    DIMENSIONS = "dimensions"
    QUANTITY = "quantity"
    CUSTOMER = "customer"
    CONFIRM = "confirm"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


TERMINAL_STEPS = frozenset({BuilderStep.COMPLETE, BuilderStep.CANCELLED})


def next_step(
    glass_type: Optional[GlassType],
    width: Optional[float],
    height: Optional[float],
    quantity: Optional[int],
    customer_name: Optional[str],
) -> BuilderStep:
    """First missing field in priority order, or confirm when none is missing."""
    if glass_type is None:
        return BuilderStep.GLASS_TYPE
    if width is None or height is None:
        return BuilderStep.DIMENSIONS
    if quantity is None:
        return BuilderStep.QUANTITY
    if not customer_name:
        return BuilderStep.CUSTOMER
    return BuilderStep.CONFIRM


@dataclass
class StepEntry:
    """Recorded history entry for a step visit."""
    step: BuilderStep
    entered_at: datetime
    trigger: str


@dataclass
class BuilderOutcome:
    """What one turn did to the builder and what to say next."""
    step: BuilderStep
    prompt: str
    updated: list[str] = field(default_factory=list)
    ready_to_create: bool = False
    cancelled: bool = False

    @property
    def progressed(self) -> bool:
        return bool(self.updated)


def _glass_label(glass_type: GlassType) -> str:
    return glass_type.value.lower().replace("_", "-")


class OrderBuilder:
    """Collects glass type, size, quantity and customer, then asks to confirm."""

    def __init__(
        self,
        base_price: float = 50.0,
        currency: str = "USD",
        default_thickness: float = 6.0,
    ) -> None:
        self.base_price = base_price
        self.currency = currency
        self.glass_type: Optional[GlassType] = None
        self.width: Optional[float] = None
        self.height: Optional[float] = None
        self.thickness: float = default_thickness
        self.quantity: Optional[int] = None
        self.customer_name: Optional[str] = None
        self.unit_price: Optional[float] = None
        self.total_price: Optional[float] = None
        self._step = BuilderStep.GLASS_TYPE
        self._history: list[StepEntry] = [
            StepEntry(BuilderStep.GLASS_TYPE, datetime.now(timezone.utc), "start")
        ]

    @property
    def step(self) -> BuilderStep:
        return self._step

    def is_terminal(self) -> bool:
        return self._step in TERMINAL_STEPS

    def get_history(self) -> list[StepEntry]:
        return list(self._history)

    def get_step_trace(self) -> list[str]:
        """Return ordered list of step names visited."""
        return [entry.step.value for entry in self._history]

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _move_to(self, step: BuilderStep, trigger: str) -> None:
        if step == self._step:
            return
        logger.debug("Order builder: %s -> %s (%s)", self._step.value, step.value, trigger)
        self._step = step
        self._history.append(StepEntry(step, datetime.now(timezone.utc), trigger))

    def _ensure_active(self) -> None:
        if self.is_terminal():
            raise InvalidTransitionError(
                f"Order builder is already {self._step.value}; no further input accepted"
            )

    def _advance(self, trigger: str, reprice: bool = False) -> None:
        step = next_step(self.glass_type, self.width, self.height, self.quantity, self.customer_name)
        if step == BuilderStep.CONFIRM and (reprice or self.unit_price is None):
            self.unit_price, self.total_price = calculate_price(
                self.glass_type, self.width, self.height, self.quantity, self.base_price
            )
        self._move_to(step, trigger)

    def _set(self, name: str, value: Any, overwrite: bool, updated: list[str]) -> None:
        if value is None:
            return
        if getattr(self, name) is not None and not overwrite:
            return
        if getattr(self, name) == value:
            return
        setattr(self, name, value)
        updated.append(name)

    def _extract(self, text: str, overwrite: bool) -> list[str]:
        """Run the extractors, the current step's one first."""
        updated: list[str] = []
        current = None if overwrite else self._step

        def glass() -> None:
            self._set("glass_type", extract_glass_type(text), overwrite, updated)

        def dimensions() -> None:
            dims = extract_dimensions(text)
            if dims:
                self._set("width", dims[0], overwrite, updated)
                self._set("height", dims[1], overwrite, updated)

        def quantity() -> None:
            value = extract_quantity(text, expecting=current == BuilderStep.QUANTITY)
            self._set("quantity", value, overwrite, updated)

        def customer() -> None:
            value = extract_customer_name(text, expecting=current == BuilderStep.CUSTOMER)
            self._set("customer_name", value, overwrite, updated)

        extractors: dict[BuilderStep, Callable[[], None]] = {
            BuilderStep.GLASS_TYPE: glass,
            BuilderStep.DIMENSIONS: dimensions,
            BuilderStep.QUANTITY: quantity,
            BuilderStep.CUSTOMER: customer,
        }
        if current in extractors:
            extractors[current]()
        for step, extractor in extractors.items():
            if step != current:
                extractor()

        thickness = extract_thickness(text)
        if thickness and thickness != self.thickness:
            self.thickness = thickness
            updated.append("thickness")
        return updated

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def seed(self, entities: Optional[dict[str, Any]] = None, text: str = "") -> BuilderOutcome:
        """Start the build from whatever the opening request already contained."""
        self._ensure_active()
        updated: list[str] = []
        entities = entities or {}

        self._set("glass_type", coerce_glass_type(entities.get("glass_type")), False, updated)
        dims = None
        if entities.get("dimensions"):
            dims = extract_dimensions(str(entities["dimensions"]))
        width = _as_float(entities.get("width")) or (dims[0] if dims else None)
        height = _as_float(entities.get("height")) or (dims[1] if dims else None)
        if width and height:
            self._set("width", width, False, updated)
            self._set("height", height, False, updated)
        quantity = _as_float(entities.get("quantity"))
        if quantity and quantity == int(quantity) and quantity > 0:
            self._set("quantity", int(quantity), False, updated)
        customer = entities.get("customer_name") or entities.get("customer")
        if isinstance(customer, str) and customer.strip():
            self._set("customer_name", customer.strip(), False, updated)
        thickness = _as_float(entities.get("thickness"))
        if thickness and thickness > 0:
            self.thickness = thickness

        if text:
            updated.extend(u for u in self._extract(text, overwrite=False) if u not in updated)
        self._advance("seed")
        if updated and self._step != BuilderStep.CONFIRM:
            return BuilderOutcome(self._step, f"{self._acknowledge(updated)} {self.prompt()}", updated)
        return BuilderOutcome(self._step, self.prompt(), updated)

    def handle(self, text: str) -> BuilderOutcome:
        """Apply one user utterance to the build.

        Raises:
            InvalidTransitionError: If the builder is already complete or cancelled.
        """
        self._ensure_active()

        if self._step == BuilderStep.CONFIRM:
            answer = confirmation_answer(text)
            if answer is False:
                self.cancel()
                return BuilderOutcome(self._step, ORDER_CANCELLED_REPLY, cancelled=True)
            if answer is True:
                return BuilderOutcome(self._step, "", ready_to_create=True)
            updated = self._extract(text, overwrite=True)
            if updated:
                self._advance("correction", reprice=True)
                return BuilderOutcome(self._step, f"Okay, updated. {self.prompt()}", updated)
            return BuilderOutcome(
                self._step,
                f"Just say yes to create the order, or no to cancel. {self.summary()}",
            )

        updated = self._extract(text, overwrite=False)
        self._advance("input")
        if not updated:
            return BuilderOutcome(self._step, f"Sorry, I didn't catch that. {self.prompt()}")
        return BuilderOutcome(self._step, f"{self._acknowledge(updated)} {self.prompt()}", updated)

    def cancel(self) -> None:
        self._ensure_active()
        self._move_to(BuilderStep.CANCELLED, "cancel")
        logger.info("Order build cancelled")

    def mark_complete(self) -> None:
        """Record that the order was created. Only valid from confirm."""
        if self._step != BuilderStep.CONFIRM:
            raise InvalidTransitionError(
                f"Cannot complete order build from step '{self._step.value}'"
            )
        self._move_to(BuilderStep.COMPLETE, "created")

    # ------------------------------------------------------------------
    # Speech
    # ------------------------------------------------------------------

    def prompt(self) -> str:
        if self._step == BuilderStep.CONFIRM:
            return self.summary()
        if self._step == BuilderStep.CANCELLED:
            return ORDER_CANCELLED_REPLY
        return STEP_PROMPTS.get(self._step.value, "")

    def summary(self) -> str:
        if self.unit_price is None:
            return ""
        return build_order_summary(
            _glass_label(self.glass_type),
            self.width,
            self.height,
            self.quantity,
            self.customer_name,
            self.unit_price,
            self.total_price,
            self.currency,
        )

    def _acknowledge(self, updated: list[str]) -> str:
        parts = []
        if "glass_type" in updated:
            parts.append(f"{_glass_label(self.glass_type)} glass")
        if "width" in updated or "height" in updated:
            parts.append(f"{self.width:g} by {self.height:g} millimeters")
        if "quantity" in updated:
            parts.append(f"{self.quantity} pieces")
        if "customer_name" in updated:
            parts.append(f"for {self.customer_name}")
        if not parts:
            return "Got it."
        return f"Got it, {', '.join(parts)}."

    def to_order_fields(self) -> dict[str, Any]:
        return {
            "glass_type": self.glass_type,
            "width": self.width,
            "height": self.height,
            "thickness": self.thickness,
            "quantity": self.quantity,
            "customer_name": self.customer_name,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
        }


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
