"""
Mock customer directory.

In production, this would be backed by the order system's customer
table. Lookups are case-insensitive on the customer or company name.
"""

import logging
import uuid
from typing import Optional, Protocol

from glassvoice.schemas.order_schema import Customer

logger = logging.getLogger(__name__)


class CustomerStore(Protocol):
    async def find_by_name(self, name: str) -> Optional[Customer]: ...

    async def create(self, name: str, email: Optional[str] = None) -> Customer: ...


class InMemoryCustomerStore:
    """Customer directory held in a dict, keyed by customer id."""

    def __init__(self, customers: Optional[list[Customer]] = None) -> None:
        self._customers: dict[str, Customer] = {}
        for customer in customers or []:
            self._customers[customer.id] = customer

    async def find_by_name(self, name: str) -> Optional[Customer]:
        wanted = name.strip().lower()
        for customer in self._customers.values():
            if customer.name.lower() == wanted or (
                customer.company and customer.company.lower() == wanted
            ):
                return customer
        return None

    async def create(self, name: str, email: Optional[str] = None) -> Customer:
        customer = Customer(id=f"CUST-{uuid.uuid4().hex[:8].upper()}", name=name.strip(), email=email)
        self._customers[customer.id] = customer
        logger.info("Customer created: %s (%s)", customer.name, customer.id)
        return customer

    async def get(self, customer_id: str) -> Optional[Customer]:
        return self._customers.get(customer_id)

    def reset(self) -> None:
        """Clear all customers. Used by test fixtures for isolation."""
        self._customers.clear()


def demo_customers() -> list[Customer]:
    return [
        Customer(id="CUST-ACME", name="Acme Glass Co", company="Acme Glass Co",
                 email="orders@acmeglass.example"),
        Customer(id="CUST-GSL", name="Glass Solutions Ltd", company="Glass Solutions Ltd",
                 email="purchasing@glasssolutions.example"),
        Customer(id="CUST-MWI", name="Modern Windows Inc", company="Modern Windows Inc",
                 email="ops@modernwindows.example"),
    ]
