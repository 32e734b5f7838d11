"""
Mock report and PDF generator.

Rendering is done by the backend's PDF service; this module only
assembles the structured data a report is built from and records what
was requested.
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Protocol

from glassvoice.schemas.order_schema import OrderRecord

logger = logging.getLogger(__name__)


class ReportGenerator(Protocol):
    async def generate_order_pdf(self, order: OrderRecord) -> dict[str, Any]: ...

    async def generate_summary_report(self, orders: list[OrderRecord]) -> dict[str, Any]: ...


class SummaryReportGenerator:
    """Builds report payloads in memory and keeps a log of generated documents."""

    def __init__(self, base_url: str = "/api/pdf") -> None:
        self.base_url = base_url.rstrip("/")
        self.generated: list[dict[str, Any]] = []

    async def generate_order_pdf(self, order: OrderRecord) -> dict[str, Any]:
        document = {
            "type": "order_pdf",
            "order_number": order.order_number,
            "filename": f"{order.order_number}.pdf",
            "url": f"{self.base_url}/orders/{order.id}",
            "generated_at": datetime.now(timezone.utc).isoformat(),
        }
        self.generated.append(document)
        logger.info("PDF requested for order %s", order.order_number)
        return document

    async def generate_summary_report(self, orders: list[OrderRecord]) -> dict[str, Any]:
        by_status = Counter(order.status.value for order in orders)
        by_glass = Counter(order.glass_type.value for order in orders)
        revenue = round(sum(order.total_price for order in orders), 2)
        report = {
            "type": "summary_report",
            "order_count": len(orders),
            "total_revenue": revenue,
            "orders_by_status": dict(by_status),
            "glass_type_distribution": dict(by_glass),
            "generated_at": datetime.now(timezone.utc).isoformat(),
        }
        self.generated.append(report)
        logger.info("Summary report generated over %d orders (revenue %.2f)", len(orders), revenue)
        return report
