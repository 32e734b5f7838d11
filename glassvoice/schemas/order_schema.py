"""Glass order and customer data models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class GlassType(str, Enum):
    FLOAT = "FLOAT"
    TEMPERED = "TEMPERED"
    LAMINATED = "LAMINATED"
    INSULATED = "INSULATED"
    LOW_E = "LOW_E"
    REFLECTIVE = "REFLECTIVE"
    TINTED = "TINTED"
    FROSTED = "FROSTED"
    PATTERNED = "PATTERNED"
    BULLETPROOF = "BULLETPROOF"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PRODUCTION = "IN_PRODUCTION"
    QUALITY_CHECK = "QUALITY_CHECK"
    READY_FOR_DELIVERY = "READY_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    ON_HOLD = "ON_HOLD"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


PRIORITY_RANK: dict[Priority, int] = {
    Priority.URGENT: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}


class Customer(BaseModel):
    """Customer record from the order system."""
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None


class OrderRequest(BaseModel):
    """Validated data needed to create an order."""
    customer_name: str
    glass_type: GlassType
    width: float = Field(gt=0)
    height: float = Field(gt=0)
    quantity: int = Field(gt=0)
    thickness: float = Field(default=6.0, gt=0)
    unit_price: float = Field(ge=0)
    total_price: float = Field(ge=0)
    currency: str = "USD"
    priority: Priority = Priority.MEDIUM
    notes: Optional[str] = None


class OrderRecord(BaseModel):
    """Full order record as stored by the order system."""
    id: str
    order_number: str
    customer_id: str
    customer_name: str
    glass_type: GlassType
    thickness: float
    width: float
    height: float
    quantity: int
    unit_price: float
    total_price: float
    currency: str = "USD"
    status: OrderStatus = OrderStatus.PENDING
    priority: Priority = Priority.MEDIUM
    order_date: datetime
    notes: Optional[str] = None

    def summary(self) -> str:
        """One-line spoken summary of the order."""
        return (
            f"Order {self.order_number} for {self.customer_name}: "
            f"{self.quantity} x {self.glass_type.value.lower().replace('_', '-')} glass "
            f"{self.width:g} by {self.height:g} millimeters, "
            f"status {self.status.value.lower().replace('_', ' ')}"
        )
