"""
Mock order store.

In production, this would be the order service of the glass business
backend (the source of truth for orders). The in-memory store keeps the
same async contract so the conversation engine does not care which one
it talks to.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

from glassvoice.schemas.order_schema import (
    GlassType,
    OrderRecord,
    OrderRequest,
    OrderStatus,
    Priority,
)

logger = logging.getLogger(__name__)


class OrderStore(Protocol):
    async def create(self, request: OrderRequest, customer_id: str) -> OrderRecord: ...

    async def get(self, reference: str) -> Optional[OrderRecord]: ...

    async def update_status(self, reference: str, status: OrderStatus) -> Optional[OrderRecord]: ...

    async def list_orders(self) -> list[OrderRecord]: ...

    async def search(
        self,
        *,
        status: Optional[OrderStatus] = None,
        glass_type: Optional[GlassType] = None,
        customer_name: Optional[str] = None,
        min_total: Optional[float] = None,
        max_total: Optional[float] = None,
        since: Optional[datetime] = None,
    ) -> list[OrderRecord]: ...

    async def generate_order_number(self) -> str: ...


class InMemoryOrderStore:
    """Orders held in a dict keyed by order number."""

    def __init__(self, orders: Optional[list[OrderRecord]] = None) -> None:
        self._orders: dict[str, OrderRecord] = {}
        for order in orders or []:
            self._orders[order.order_number] = order

    async def generate_order_number(self, now: Optional[datetime] = None) -> str:
        """Next ``ORD-YYYYMMDD-NNN`` number for the given day."""
        now = now or datetime.now(timezone.utc)
        prefix = f"ORD-{now:%Y%m%d}-"
        sequences = [
            int(number.rsplit("-", 1)[1])
            for number in self._orders
            if number.startswith(prefix) and number.rsplit("-", 1)[1].isdigit()
        ]
        return f"{prefix}{max(sequences, default=0) + 1:03d}"

    async def create(self, request: OrderRequest, customer_id: str) -> OrderRecord:
        order_number = await self.generate_order_number()
        order = OrderRecord(
            id=uuid.uuid4().hex,
            order_number=order_number,
            customer_id=customer_id,
            customer_name=request.customer_name,
            glass_type=request.glass_type,
            thickness=request.thickness,
            width=request.width,
            height=request.height,
            quantity=request.quantity,
            unit_price=request.unit_price,
            total_price=request.total_price,
            currency=request.currency,
            priority=request.priority,
            order_date=datetime.now(timezone.utc),
            notes=request.notes,
        )
        self._orders[order_number] = order
        logger.info(
            "Order created: %s for %s (%d x %s, total %.2f)",
            order_number, request.customer_name, request.quantity,
            request.glass_type.value, request.total_price,
        )
        return order

    async def get(self, reference: str) -> Optional[OrderRecord]:
        """Find an order by full number, by id, or by its trailing sequence number."""
        ref = reference.strip().upper()
        if ref in self._orders:
            return self._orders[ref]
        for order in self._orders.values():
            if order.id == reference:
                return order
        if ref.isdigit():
            for order in self._orders.values():
                tail = order.order_number.rsplit("-", 1)[-1]
                if tail.isdigit() and int(tail) == int(ref):
                    return order
        return None

    async def update_status(self, reference: str, status: OrderStatus) -> Optional[OrderRecord]:
        order = await self.get(reference)
        if order is None:
            return None
        updated = order.model_copy(update={"status": status})
        self._orders[order.order_number] = updated
        logger.info("Order %s status: %s -> %s", order.order_number, order.status.value, status.value)
        return updated

    async def list_orders(self) -> list[OrderRecord]:
        return list(self._orders.values())

    async def search(
        self,
        *,
        status: Optional[OrderStatus] = None,
        glass_type: Optional[GlassType] = None,
        customer_name: Optional[str] = None,
        min_total: Optional[float] = None,
        max_total: Optional[float] = None,
        since: Optional[datetime] = None,
    ) -> list[OrderRecord]:
        results = []
        for order in self._orders.values():
            if status is not None and order.status != status:
                continue
            if glass_type is not None and order.glass_type != glass_type:
                continue
            if customer_name and customer_name.lower() not in order.customer_name.lower():
                continue
            if min_total is not None and order.total_price < min_total:
                continue
            if max_total is not None and order.total_price > max_total:
                continue
            if since is not None and order.order_date < since:
                continue
            results.append(order)
        return results

    def reset(self) -> None:
        """Clear all orders. Used by test fixtures for isolation."""
        self._orders.clear()


def demo_orders(now: Optional[datetime] = None) -> list[OrderRecord]:
    """Seed data used by the console demo and the tests."""
    now = now or datetime.now(timezone.utc)
    return [
        OrderRecord(
            id="1", order_number="ORD-001", customer_id="CUST-ACME",
            customer_name="Acme Glass Co", glass_type=GlassType.TEMPERED,
            thickness=6.0, width=1200, height=800, quantity=5,
            unit_price=90.0, total_price=450.0, status=OrderStatus.PENDING,
            priority=Priority.HIGH, order_date=now - timedelta(days=2),
        ),
        OrderRecord(
            id="2", order_number="ORD-002", customer_id="CUST-GSL",
            customer_name="Glass Solutions Ltd", glass_type=GlassType.LAMINATED,
            thickness=8.38, width=1000, height=600, quantity=3,
            unit_price=106.67, total_price=320.0, status=OrderStatus.DELIVERED,
            priority=Priority.LOW, order_date=now - timedelta(days=20),
        ),
        OrderRecord(
            id="3", order_number="ORD-003", customer_id="CUST-MWI",
            customer_name="Modern Windows Inc", glass_type=GlassType.FLOAT,
            thickness=6.0, width=1500, height=900, quantity=8,
            unit_price=85.0, total_price=680.0, status=OrderStatus.IN_PRODUCTION,
            priority=Priority.URGENT, order_date=now,
        ),
    ]
