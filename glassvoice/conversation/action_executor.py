"""
Action executor: the side effects behind each canonical intent.

One dispatch table maps an intent to one handler, and each handler
reports one action name:

    place_order                   -> order_step | order_created
    check_order                   -> order_found
    modify_order, update_order    -> order_updated
    cancel_order                  -> order_cancelled
    get_quote                     -> quote_provided
    search_orders                 -> search_results
    generate_report               -> pdf_generated | report_generated
    goodbye, end_conversation     -> end_conversation

Greeting, clarification and general inquiry have no side effect. Any
failure inside a collaborator (order store, customer store, report
generator) is logged with its traceback and turned into a degraded
reply; it never reaches the caller.

Usage:
    executor = ActionExecutor.with_demo_data()
    result = await executor.execute(intent, "show me pending orders", session)
    print(result.action, result.message)
"""

import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional

from glassvoice.config import settings
from glassvoice.conversation.extractors import (
    extract_customer_name,
    extract_dimensions,
    extract_glass_type,
    extract_quantity,
)
from glassvoice.conversation.intent_classifier import normalize_intent_name
from glassvoice.conversation.order_builder import BuilderStep, OrderBuilder
from glassvoice.conversation.session_store import Session
from glassvoice.exceptions import ActionExecutionError
from glassvoice.prompts.prompt_templates import (
    CLOSING_REPLY,
    NEW_ORDER_INTRO,
    ORDER_CANCELLED_REPLY,
)
from glassvoice.schemas.conversation_schema import ActionResult
from glassvoice.schemas.intent_schema import CanonicalIntent, Intent
from glassvoice.schemas.order_schema import (
    PRIORITY_RANK,
    GlassType,
    OrderRecord,
    OrderRequest,
    OrderStatus,
)
from glassvoice.tools.catalog import calculate_price, coerce_glass_type
from glassvoice.tools.customers import CustomerStore, InMemoryCustomerStore, demo_customers
from glassvoice.tools.orders import InMemoryOrderStore, OrderStore, demo_orders
from glassvoice.tools.reports import ReportGenerator, SummaryReportGenerator
from glassvoice.utils import extract_order_reference, format_money, parse_number

logger = logging.getLogger(__name__)

Handler = Callable[[Intent, str, Session], Awaitable[ActionResult]]

SEARCH_LIMIT = 10

# Checked in order; the first keyword found decides the status.
STATUS_KEYWORDS: tuple[tuple[re.Pattern, OrderStatus], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), status)
    for pattern, status in (
        (r"\b(in production|production|manufacturing|processing)\b", OrderStatus.IN_PRODUCTION),
        (r"\b(quality check|quality control|inspection|qc)\b", OrderStatus.QUALITY_CHECK),
        (r"\b(ready for delivery|ready to ship|ready|shipped|dispatched)\b",
         OrderStatus.READY_FOR_DELIVERY),
        (r"\b(delivered|completed|complete|finished)\b", OrderStatus.DELIVERED),
        (r"\b(on hold|hold|paused)\b", OrderStatus.ON_HOLD),
        (r"\b(cancell?ed|cancel)\b", OrderStatus.CANCELLED),
        (r"\b(confirmed|confirm|approved)\b", OrderStatus.CONFIRMED),
        (r"\b(pending|waiting)\b", OrderStatus.PENDING),
    )
)

# Action markers a generated reply may carry that are safe to run unasked.
MARKER_INTENTS = frozenset({
    CanonicalIntent.SEARCH_ORDERS,
    CanonicalIntent.GENERATE_REPORT,
    CanonicalIntent.END_CONVERSATION,
    CanonicalIntent.GOODBYE,
})

_MONEY = r"\$?\s*(\d[\d,]*(?:\.\d+)?)"
_MIN_TOTAL_RE = re.compile(rf"\b(?:over|above|more than|greater than|at least)\s+{_MONEY}", re.IGNORECASE)
_MAX_TOTAL_RE = re.compile(rf"\b(?:under|below|less than|cheaper than|at most)\s+{_MONEY}", re.IGNORECASE)
_CHEAPEST_RE = re.compile(r"\b(cheapest|least expensive|lowest|smallest)\b", re.IGNORECASE)
_EXPENSIVE_RE = re.compile(r"\b(most expensive|expensive|costliest|biggest|highest|largest)\b", re.IGNORECASE)
_TOP_N_RE = re.compile(r"\btop\s+(\d+|\w+)\b", re.IGNORECASE)
_SEARCH_CUSTOMER_RE = re.compile(
    r"\b(?:for|from|by|of)\s+([A-Z][\w&.'\-]*(?:\s+[A-Z][\w&.'\-]*)*)"
)
_TODAY_RE = re.compile(r"\b(today|today's)\b", re.IGNORECASE)
_WEEK_RE = re.compile(r"\b(this week|last week|past week|week|last 7 days)\b", re.IGNORECASE)
_MONTH_RE = re.compile(r"\b(this month|last month|past month|month|last 30 days)\b", re.IGNORECASE)


def match_status(text: str) -> Optional[OrderStatus]:
    """Map free text onto an order status via the fixed keyword table."""
    for pattern, status in STATUS_KEYWORDS:
        if pattern.search(text):
            return status
    return None


def _status_label(status: OrderStatus) -> str:
    return status.value.lower().replace("_", " ")


def _by_priority_then_recency(orders: list[OrderRecord]) -> list[OrderRecord]:
    newest_first = sorted(orders, key=lambda o: o.order_date, reverse=True)
    return sorted(newest_first, key=lambda o: PRIORITY_RANK.get(o.priority, len(PRIORITY_RANK)))


@dataclass
class SearchCriteria:
    """The single filter a search utterance resolved to."""
    label: str
    filters: dict[str, Any] = field(default_factory=dict)
    sort: Callable[[list[OrderRecord]], list[OrderRecord]] = _by_priority_then_recency
    limit: int = SEARCH_LIMIT


def parse_search(text: str, entities: Optional[dict[str, Any]] = None, now: Optional[datetime] = None) -> SearchCriteria:
    """Resolve a search request to one predicate; the first that matches wins.

    Order: status, glass type, price threshold or ranking, customer name,
    relative date window. With none of those the result is every order
    sorted by priority, then newest first.
    """
    entities = entities or {}
    now = now or datetime.now(timezone.utc)
    limit = SEARCH_LIMIT
    top = _TOP_N_RE.search(text)
    if top:
        wanted = parse_number(top.group(1))
        if wanted and wanted > 0:
            limit = min(int(wanted), SEARCH_LIMIT)

    status = match_status(text)
    if status is not None:
        return SearchCriteria(_status_label(status), {"status": status}, limit=limit)

    glass_type = extract_glass_type(text) or coerce_glass_type(entities.get("glass_type"))
    if glass_type is not None:
        return SearchCriteria(
            f"{glass_type.value.lower().replace('_', '-')} glass", {"glass_type": glass_type}, limit=limit
        )

    minimum = _MIN_TOTAL_RE.search(text)
    if minimum:
        amount = float(minimum.group(1).replace(",", ""))
        return SearchCriteria(
            f"over {format_money(amount)}", {"min_total": amount},
            sort=lambda orders: sorted(orders, key=lambda o: o.total_price, reverse=True), limit=limit,
        )
    maximum = _MAX_TOTAL_RE.search(text)
    if maximum:
        amount = float(maximum.group(1).replace(",", ""))
        return SearchCriteria(
            f"under {format_money(amount)}", {"max_total": amount},
            sort=lambda orders: sorted(orders, key=lambda o: o.total_price), limit=limit,
        )
    if _CHEAPEST_RE.search(text):
        return SearchCriteria(
            "cheapest", sort=lambda orders: sorted(orders, key=lambda o: o.total_price), limit=limit
        )
    if _EXPENSIVE_RE.search(text):
        return SearchCriteria(
            "most expensive",
            sort=lambda orders: sorted(orders, key=lambda o: o.total_price, reverse=True),
            limit=limit,
        )

    customer = entities.get("customer_name") or extract_customer_name(text)
    if not customer:
        match = _SEARCH_CUSTOMER_RE.search(text)
        customer = match.group(1) if match else None
    if isinstance(customer, str) and customer.strip():
        return SearchCriteria(customer.strip(), {"customer_name": customer.strip()}, limit=limit)

    if _TODAY_RE.search(text):
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return SearchCriteria("today's", {"since": start}, limit=limit)
    if _WEEK_RE.search(text):
        return SearchCriteria("this week's", {"since": now - timedelta(days=7)}, limit=limit)
    if _MONTH_RE.search(text):
        return SearchCriteria("this month's", {"since": now - timedelta(days=30)}, limit=limit)

    return SearchCriteria("recent", limit=limit)


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None
    parsed = parse_number(str(value).split()[0]) if str(value).split() else None
    return parsed if parsed and parsed > 0 else None


def _builder_data(builder: OrderBuilder) -> dict[str, Any]:
    fields = builder.to_order_fields()
    if isinstance(fields.get("glass_type"), GlassType):
        fields["glass_type"] = fields["glass_type"].value
    return {"step": builder.step.value, "fields": fields}


class ActionExecutor:
    """Runs the side effect for a classified intent against the order backend."""

    def __init__(
        self,
        order_store: OrderStore,
        customer_store: CustomerStore,
        report_generator: ReportGenerator,
        base_price: Optional[float] = None,
        currency: Optional[str] = None,
        default_thickness: Optional[float] = None,
        demo_mode: Optional[bool] = None,
    ) -> None:
        pricing = settings.pricing
        self.order_store = order_store
        self.customer_store = customer_store
        self.report_generator = report_generator
        self.base_price = pricing.base_price if base_price is None else base_price
        self.currency = pricing.currency if currency is None else currency
        self.default_thickness = (
            pricing.default_thickness_mm if default_thickness is None else default_thickness
        )
        self.demo_mode = settings.conversation.demo_mode if demo_mode is None else demo_mode
        self._handlers: dict[CanonicalIntent, Handler] = {
            CanonicalIntent.PLACE_ORDER: self._place_order,
            CanonicalIntent.CHECK_ORDER: self._check_order,
            CanonicalIntent.MODIFY_ORDER: self._update_order,
            CanonicalIntent.UPDATE_ORDER: self._update_order,
            CanonicalIntent.CANCEL_ORDER: self._cancel_order,
            CanonicalIntent.GET_QUOTE: self._get_quote,
            CanonicalIntent.SEARCH_ORDERS: self._search_orders,
            CanonicalIntent.GENERATE_REPORT: self._generate_report,
            CanonicalIntent.GOODBYE: self._end_conversation,
            CanonicalIntent.END_CONVERSATION: self._end_conversation,
        }

    @classmethod
    def with_demo_data(cls, **kwargs: Any) -> "ActionExecutor":
        """Executor over in-memory stores seeded with the demo customers and orders."""
        return cls(
            InMemoryOrderStore(demo_orders()),
            InMemoryCustomerStore(demo_customers()),
            SummaryReportGenerator(),
            **kwargs,
        )

    def handles(self, name: CanonicalIntent) -> bool:
        return name in self._handlers

    def new_builder(self) -> OrderBuilder:
        return OrderBuilder(self.base_price, self.currency, self.default_thickness)

    # ------------------------------------------------------------------ #
    # Dispatch
    # ------------------------------------------------------------------ #

    async def execute(self, intent: Intent, utterance: str, session: Session) -> ActionResult:
        """Run the handler for ``intent``. Intents without one yield an empty result."""
        handler = self._handlers.get(intent.name)
        if handler is None:
            return ActionResult()
        try:
            return await handler(intent, utterance, session)
        except Exception:
            logger.exception("Action for intent %s failed", intent.name.value)
            return ActionResult(
                message="Sorry, I couldn't complete that right now. Could you try again in a moment?",
                success=False,
                degraded=True,
            )

    async def execute_marker(self, marker: str, intent: Intent, utterance: str, session: Session) -> ActionResult:
        """Run the action a generated reply asked for with ``[ACTION:x]``.

        Raises:
            ActionExecutionError: If the marker names no action that may run unasked.
        """
        name = normalize_intent_name(marker)
        if name not in MARKER_INTENTS:
            raise ActionExecutionError(marker, "action cannot be triggered from a reply marker")
        return await self.execute(intent.model_copy(update={"name": name}), utterance, session)

    # ------------------------------------------------------------------ #
    # Order building
    # ------------------------------------------------------------------ #

    async def _place_order(self, intent: Intent, utterance: str, session: Session) -> ActionResult:
        builder = self.new_builder()
        outcome = builder.seed(intent.entities, utterance)
        if outcome.step == BuilderStep.CONFIRM:
            # Everything was given up front.
            result = await self.create_order(builder.to_order_fields())
            builder.mark_complete()
            return result
        session.order_builder = builder
        return ActionResult(
            action="order_step",
            message=f"{NEW_ORDER_INTRO} {outcome.prompt}",
            data=_builder_data(builder),
        )

    async def advance_order(self, session: Session, utterance: str) -> ActionResult:
        """Feed one utterance to the session's active order builder."""
        builder = session.order_builder
        if builder is None:
            raise ActionExecutionError("order_step", "no order is being built in this session")
        outcome = builder.handle(utterance)
        if outcome.ready_to_create:
            result = await self.create_order(builder.to_order_fields())
            builder.mark_complete()
            session.order_builder = None
            return result
        if outcome.cancelled:
            session.order_builder = None
            return ActionResult(action="order_step", message=outcome.prompt, data={"step": outcome.step.value})
        return ActionResult(action="order_step", message=outcome.prompt, data=_builder_data(builder))

    def cancel_order_build(self, session: Session) -> ActionResult:
        builder = session.order_builder
        if builder is not None and not builder.is_terminal():
            builder.cancel()
        session.order_builder = None
        return ActionResult(
            action="order_step", message=ORDER_CANCELLED_REPLY, data={"step": BuilderStep.CANCELLED.value}
        )

    async def create_order(self, fields: dict[str, Any]) -> ActionResult:
        """Create an order from collected fields, resolving the customer first.

        A failing collaborator never surfaces: the order is acknowledged in
        demo mode instead (or as a plain failure when demo mode is off).
        """
        try:
            name = fields["customer_name"]
            glass_type = coerce_glass_type(fields["glass_type"])
            customer = await self.customer_store.find_by_name(name)
            if customer is None:
                customer = await self.customer_store.create(name)
            request = OrderRequest(
                customer_name=customer.name,
                glass_type=glass_type,
                width=fields["width"],
                height=fields["height"],
                quantity=fields["quantity"],
                thickness=fields.get("thickness") or self.default_thickness,
                unit_price=fields["unit_price"],
                total_price=fields["total_price"],
                currency=self.currency,
                notes=f"Voice order: {glass_type.value.lower()} glass via {settings.assistant.name}",
            )
            order = await self.order_store.create(request, customer.id)
        except Exception:
            logger.exception("Order creation failed for %s", fields.get("customer_name"))
            return self._degraded_order(fields)

        return ActionResult(
            action="order_created",
            message=(
                f"Done! Order {order.order_number} has been created for {order.customer_name}, "
                f"{format_money(order.total_price, order.currency)} in total. "
                "Is there anything else I can help with?"
            ),
            data={"order": order.model_dump(mode="json"), "message": "Order created successfully"},
        )

    def _degraded_order(self, fields: dict[str, Any]) -> ActionResult:
        if not self.demo_mode:
            return ActionResult(
                action="order_created",
                message="Sorry, I couldn't create that order right now. Please try again in a moment.",
                success=False,
                degraded=True,
            )
        order_number = f"ORD-DEMO-{int(time.time() * 1000)}"
        logger.info("Order acknowledged in demo mode: %s", order_number)
        return ActionResult(
            action="order_created",
            message=(
                f"Your order {order_number} has been created in demo mode. "
                "Is there anything else I can help with?"
            ),
            data={
                "id": order_number,
                "order_number": order_number,
                "message": "Order created successfully (demo mode - database unavailable)",
            },
            degraded=True,
        )

    # ------------------------------------------------------------------ #
    # Existing orders
    # ------------------------------------------------------------------ #

    @staticmethod
    def _reference(intent: Intent, utterance: str) -> Optional[str]:
        ref = intent.entities.get("order_id") or intent.entities.get("order_number")
        return str(ref) if ref else extract_order_reference(utterance)

    async def _check_order(self, intent: Intent, utterance: str, session: Session) -> ActionResult:
        ref = self._reference(intent, utterance)
        if not ref:
            return ActionResult(message="Sure. What's the order number you'd like me to check?")
        order = await self.order_store.get(ref)
        if order is None:
            return ActionResult(
                message=f"I couldn't find order {ref}. Could you double-check the number?",
                success=False,
            )
        return ActionResult(
            action="order_found",
            message=f"{order.summary()}.",
            data={"order": order.model_dump(mode="json")},
        )

    async def _update_order(self, intent: Intent, utterance: str, session: Session) -> ActionResult:
        ref = self._reference(intent, utterance)
        entity_status = intent.entities.get("status")
        status = match_status(utterance) or (match_status(str(entity_status)) if entity_status else None)
        if not ref:
            return ActionResult(message="Which order would you like to update? Please give me the order number.")
        if status is None:
            return ActionResult(
                message=(
                    f"What should I change on order {ref}? I can set it to confirmed, "
                    "in production, ready for delivery, delivered or on hold."
                )
            )
        order = await self.order_store.update_status(ref, status)
        if order is None:
            return ActionResult(
                message=f"I couldn't find order {ref}. Could you double-check the number?",
                success=False,
            )
        return ActionResult(
            action="order_updated",
            message=f"Order {order.order_number} is now {_status_label(order.status)}.",
            data={"order": order.model_dump(mode="json")},
        )

    async def _cancel_order(self, intent: Intent, utterance: str, session: Session) -> ActionResult:
        ref = self._reference(intent, utterance)
        if not ref:
            return ActionResult(message="Which order would you like to cancel? Please give me the order number.")
        order = await self.order_store.update_status(ref, OrderStatus.CANCELLED)
        if order is None:
            return ActionResult(
                message=f"I couldn't find order {ref}. Could you double-check the number?",
                success=False,
            )
        return ActionResult(
            action="order_cancelled",
            message=f"Order {order.order_number} for {order.customer_name} has been cancelled.",
            data={"order": order.model_dump(mode="json")},
        )

    # ------------------------------------------------------------------ #
    # Quotes, search and reports
    # ------------------------------------------------------------------ #

    async def _get_quote(self, intent: Intent, utterance: str, session: Session) -> ActionResult:
        entities = intent.entities
        glass_type = coerce_glass_type(entities.get("glass_type")) or extract_glass_type(utterance)
        dims = extract_dimensions(utterance)
        width = _number(entities.get("width")) or (dims[0] if dims else None)
        height = _number(entities.get("height")) or (dims[1] if dims else None)
        quantity = _number(entities.get("quantity")) or extract_quantity(utterance) or 1
        if glass_type is None or not width or not height:
            return ActionResult(
                message=(
                    "Happy to quote that. I need the glass type and the size, "
                    "for example tempered, 1200 by 800 millimeters."
                )
            )
        unit_price, total_price = calculate_price(
            glass_type, float(width), float(height), int(quantity), self.base_price
        )
        label = glass_type.value.lower().replace("_", "-")
        return ActionResult(
            action="quote_provided",
            message=(
                f"For {int(quantity)} {'piece' if int(quantity) == 1 else 'pieces'} of {label} glass "
                f"at {float(width):g} by {float(height):g} millimeters, that's "
                f"{format_money(unit_price, self.currency)} per piece, "
                f"{format_money(total_price, self.currency)} in total."
            ),
            data={
                "glass_type": glass_type.value,
                "width": float(width),
                "height": float(height),
                "quantity": int(quantity),
                "unit_price": unit_price,
                "total_price": total_price,
                "currency": self.currency,
            },
        )

    async def _search_orders(self, intent: Intent, utterance: str, session: Session) -> ActionResult:
        criteria = parse_search(utterance, intent.entities)
        found = await self.order_store.search(**criteria.filters)
        orders = criteria.sort(found)[:criteria.limit]
        total_cost = round(sum(o.total_price for o in orders), 2)
        data = {
            "orders": [o.model_dump(mode="json") for o in orders],
            "count": len(orders),
            "total_cost": total_cost,
            "filter": criteria.label,
        }
        if not orders:
            return ActionResult(
                action="search_results",
                message=f"I couldn't find any {criteria.label} orders.",
                data=data,
            )
        listed = "; ".join(
            f"{o.order_number} for {o.customer_name}, {format_money(o.total_price, o.currency)}"
            for o in orders[:3]
        )
        noun = "order" if len(orders) == 1 else "orders"
        return ActionResult(
            action="search_results",
            message=(
                f"I found {len(orders)} {criteria.label} {noun}, "
                f"{format_money(total_cost, self.currency)} in total. {listed}."
            ),
            data=data,
        )

    async def _generate_report(self, intent: Intent, utterance: str, session: Session) -> ActionResult:
        ref = self._reference(intent, utterance)
        if ref:
            order = await self.order_store.get(ref)
            if order is None:
                return ActionResult(
                    message=f"I couldn't find order {ref}. Could you double-check the number?",
                    success=False,
                )
            document = await self.report_generator.generate_order_pdf(order)
            return ActionResult(
                action="pdf_generated",
                message=f"The PDF for order {order.order_number} is ready.",
                data=document,
            )

        orders = await self.order_store.list_orders()
        report = await self.report_generator.generate_summary_report(orders)
        pending = report["orders_by_status"].get(OrderStatus.PENDING.value, 0)
        return ActionResult(
            action="report_generated",
            message=(
                f"Here's your summary: {report['order_count']} orders worth "
                f"{format_money(report['total_revenue'], self.currency)} in total, "
                f"{pending} still pending."
            ),
            data=report,
        )

    async def _end_conversation(self, intent: Intent, utterance: str, session: Session) -> ActionResult:
        session.clear_history()
        session.order_builder = None
        return ActionResult(action="end_conversation", message=CLOSING_REPLY)
