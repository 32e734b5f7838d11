"""Tests for the intent -> side effect dispatch."""

from datetime import timedelta

import pytest

from glassvoice.conversation.action_executor import (
    SEARCH_LIMIT,
    ActionExecutor,
    match_status,
    parse_search,
)
from glassvoice.conversation.order_builder import BuilderStep
from glassvoice.conversation.session_store import Session
from glassvoice.exceptions import ActionExecutionError
from glassvoice.prompts.prompt_templates import (
    CLOSING_REPLY,
    NEW_ORDER_INTRO,
    ORDER_CANCELLED_REPLY,
    STEP_PROMPTS,
)
from glassvoice.schemas.conversation_schema import Speaker
from glassvoice.schemas.intent_schema import CanonicalIntent
from glassvoice.schemas.order_schema import GlassType, OrderStatus
from glassvoice.tools.customers import InMemoryCustomerStore, demo_customers
from glassvoice.tools.reports import SummaryReportGenerator
from tests.conftest import FIXED_NOW, FailingOrderStore, make_intent


def make_failing_executor(demo_mode: bool) -> ActionExecutor:
    return ActionExecutor(
        FailingOrderStore(),
        InMemoryCustomerStore(demo_customers()),
        SummaryReportGenerator(),
        base_price=50.0,
        demo_mode=demo_mode,
    )


class TestMatchStatus:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("set it to in production", OrderStatus.IN_PRODUCTION),
            ("it's being manufactured, processing now", OrderStatus.IN_PRODUCTION),
            ("ready for delivery", OrderStatus.READY_FOR_DELIVERY),
            ("it was delivered", OrderStatus.DELIVERED),
            ("put it on hold", OrderStatus.ON_HOLD),
            ("mark as confirmed", OrderStatus.CONFIRMED),
            ("pending ones", OrderStatus.PENDING),
            ("quality check", OrderStatus.QUALITY_CHECK),
        ],
    )
    def test_keywords(self, text, expected):
        assert match_status(text) == expected

    def test_no_status(self):
        assert match_status("hello there") is None


class TestParseSearch:
    def test_status_wins_over_everything(self):
        criteria = parse_search("pending laminated orders over $100")
        assert criteria.filters == {"status": OrderStatus.PENDING}
        assert criteria.label == "pending"

    def test_glass_type(self):
        criteria = parse_search("show me the laminated orders")
        assert criteria.filters == {"glass_type": GlassType.LAMINATED}

    def test_min_total(self):
        criteria = parse_search("orders over $1,000")
        assert criteria.filters == {"min_total": 1000.0}
        assert criteria.label == "over $1,000.00"

    def test_max_total(self):
        assert parse_search("orders under 400").filters == {"max_total": 400.0}

    def test_customer_name(self):
        criteria = parse_search("find orders for Acme Glass Co")
        assert criteria.filters == {"customer_name": "Acme Glass Co"}

    def test_customer_from_entities(self):
        criteria = parse_search("find their orders", {"customer_name": "Modern Windows Inc"})
        assert criteria.filters == {"customer_name": "Modern Windows Inc"}

    def test_today(self):
        criteria = parse_search("orders from today", now=FIXED_NOW)
        assert criteria.filters == {"since": FIXED_NOW.replace(hour=0, minute=0)}
        assert criteria.label == "today's"

    def test_this_week(self):
        criteria = parse_search("this week's orders", now=FIXED_NOW)
        assert criteria.filters == {"since": FIXED_NOW - timedelta(days=7)}

    def test_this_month(self):
        criteria = parse_search("orders this month", now=FIXED_NOW)
        assert criteria.filters == {"since": FIXED_NOW - timedelta(days=30)}

    def test_default_is_recent(self):
        criteria = parse_search("show me all orders")
        assert criteria.label == "recent"
        assert criteria.filters == {}

    def test_top_n_is_capped(self):
        assert parse_search("top 3 orders").limit == 3
        assert parse_search("top 50 orders").limit == SEARCH_LIMIT


class TestSearchOrders:
    @pytest.mark.asyncio
    async def test_pending(self, executor, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.SEARCH_ORDERS), "Show me pending orders", session
        )
        assert result.action == "search_results"
        assert result.data["count"] == 1
        assert result.data["filter"] == "pending"
        assert result.message == (
            "I found 1 pending order, $450.00 in total. ORD-001 for Acme Glass Co, $450.00."
        )

    @pytest.mark.asyncio
    async def test_most_expensive_sorted_descending(self, executor, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.SEARCH_ORDERS), "Find the most expensive orders", session
        )
        numbers = [o["order_number"] for o in result.data["orders"]]
        assert numbers == ["ORD-003", "ORD-001", "ORD-002"]
        assert result.data["total_cost"] == 1450.0

    @pytest.mark.asyncio
    async def test_cheapest(self, executor, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.SEARCH_ORDERS), "show the cheapest orders", session
        )
        assert result.data["orders"][0]["order_number"] == "ORD-002"

    @pytest.mark.asyncio
    async def test_default_sorted_by_priority(self, executor, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.SEARCH_ORDERS), "show me all orders", session
        )
        numbers = [o["order_number"] for o in result.data["orders"]]
        assert numbers == ["ORD-003", "ORD-001", "ORD-002"]

    @pytest.mark.asyncio
    async def test_over_amount(self, executor, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.SEARCH_ORDERS), "orders over $400", session
        )
        assert result.data["count"] == 2

    @pytest.mark.asyncio
    async def test_customer(self, executor, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.SEARCH_ORDERS), "find orders for Acme Glass Co", session
        )
        assert [o["customer_name"] for o in result.data["orders"]] == ["Acme Glass Co"]

    @pytest.mark.asyncio
    async def test_top_n_limits_results(self, executor, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.SEARCH_ORDERS), "top 2 most expensive orders", session
        )
        assert result.data["count"] == 2

    @pytest.mark.asyncio
    async def test_nothing_found(self, executor, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.SEARCH_ORDERS), "show cancelled orders", session
        )
        assert result.data["count"] == 0
        assert result.message == "I couldn't find any cancelled orders."

    @pytest.mark.asyncio
    async def test_store_failure_degrades(self, session):
        executor = make_failing_executor(demo_mode=True)
        result = await executor.execute(
            make_intent(CanonicalIntent.SEARCH_ORDERS), "show pending orders", session
        )
        assert result.degraded
        assert not result.success
        assert result.message.startswith("Sorry, I couldn't complete that")


class TestExistingOrders:
    @pytest.mark.asyncio
    async def test_check_order(self, executor, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.CHECK_ORDER, {"order_id": "3"}), "check order 3", session
        )
        assert result.action == "order_found"
        assert result.message == (
            "Order ORD-003 for Modern Windows Inc: 8 x float glass 1500 by 900 millimeters, "
            "status in production."
        )

    @pytest.mark.asyncio
    async def test_check_order_asks_for_number(self, executor, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.CHECK_ORDER), "check my order", session
        )
        assert result.action is None
        assert "order number" in result.message

    @pytest.mark.asyncio
    async def test_check_unknown_order(self, executor, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.CHECK_ORDER), "check order 99", session
        )
        assert not result.success
        assert result.message == "I couldn't find order 99. Could you double-check the number?"

    @pytest.mark.asyncio
    async def test_update_status(self, executor, order_store, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.UPDATE_ORDER), "Update order 1 to in production", session
        )
        assert result.action == "order_updated"
        assert result.message == "Order ORD-001 is now in production."
        assert (await order_store.get("ORD-001")).status == OrderStatus.IN_PRODUCTION

    @pytest.mark.asyncio
    async def test_modify_uses_same_handler(self, executor, order_store, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.MODIFY_ORDER, {"status": "on hold"}),
            "change order 2",
            session,
        )
        assert result.action == "order_updated"
        assert (await order_store.get("ORD-002")).status == OrderStatus.ON_HOLD

    @pytest.mark.asyncio
    async def test_update_without_status_asks(self, executor, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.UPDATE_ORDER), "update order 1", session
        )
        assert result.action is None
        assert result.message.startswith("What should I change on order 1?")

    @pytest.mark.asyncio
    async def test_update_without_reference_asks(self, executor, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.UPDATE_ORDER), "update the status", session
        )
        assert result.message.startswith("Which order would you like to update?")

    @pytest.mark.asyncio
    async def test_cancel_order(self, executor, order_store, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.CANCEL_ORDER), "cancel order 2", session
        )
        assert result.action == "order_cancelled"
        assert result.message == "Order ORD-002 for Glass Solutions Ltd has been cancelled."
        assert (await order_store.get("2")).status == OrderStatus.CANCELLED


class TestQuote:
    @pytest.mark.asyncio
    async def test_quote_from_text(self, executor, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.GET_QUOTE),
            "How much for 4 pieces of laminated glass 1000 by 500?",
            session,
        )
        assert result.action == "quote_provided"
        assert result.data["unit_price"] == 45.0
        assert result.data["total_price"] == 180.0
        assert result.message == (
            "For 4 pieces of laminated glass at 1000 by 500 millimeters, "
            "that's $45.00 per piece, $180.00 in total."
        )

    @pytest.mark.asyncio
    async def test_quote_from_string_entities(self, executor, session):
        intent = make_intent(
            CanonicalIntent.GET_QUOTE,
            {"glass_type": "tempered", "width": "1200", "height": "800", "quantity": "5"},
        )
        result = await executor.execute(intent, "quote please", session)
        assert (result.data["unit_price"], result.data["total_price"]) == (72.0, 360.0)

    @pytest.mark.asyncio
    async def test_quantity_defaults_to_one(self, executor, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.GET_QUOTE), "price for float glass 1000 by 1000", session
        )
        assert result.data["quantity"] == 1
        assert result.message.startswith("For 1 piece of float glass")

    @pytest.mark.asyncio
    async def test_missing_details_asks(self, executor, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.GET_QUOTE), "how much is glass", session
        )
        assert result.action is None
        assert "glass type and the size" in result.message


class TestReports:
    @pytest.mark.asyncio
    async def test_summary_report(self, executor, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.GENERATE_REPORT), "Generate a report", session
        )
        assert result.action == "report_generated"
        assert result.data["order_count"] == 3
        assert result.message == (
            "Here's your summary: 3 orders worth $1,450.00 in total, 1 still pending."
        )

    @pytest.mark.asyncio
    async def test_order_pdf(self, executor, report_generator, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.GENERATE_REPORT), "generate the pdf for order 2", session
        )
        assert result.action == "pdf_generated"
        assert result.message == "The PDF for order ORD-002 is ready."
        assert report_generator.generated[0]["filename"] == "ORD-002.pdf"


class TestPlaceOrder:
    @pytest.mark.asyncio
    async def test_starts_builder(self, executor, session):
        result = await executor.execute(
            make_intent(CanonicalIntent.PLACE_ORDER), "Create a new order", session
        )
        assert result.action == "order_step"
        assert result.message == f"{NEW_ORDER_INTRO} {STEP_PROMPTS['glass_type']}"
        assert session.order_builder is not None
        assert result.data["step"] == "glass_type"

    @pytest.mark.asyncio
    async def test_everything_up_front_creates_directly(self, executor, order_store, session):
        intent = make_intent(CanonicalIntent.PLACE_ORDER, {"customer_name": "Acme Glass Co"})
        result = await executor.execute(intent, "5 pieces of tempered glass 1200 by 800", session)
        assert result.action == "order_created"
        assert result.message.startswith("Done! Order ORD-")
        assert session.order_builder is None
        order = result.data["order"]
        assert order["customer_id"] == "CUST-ACME"
        assert order["total_price"] == 360.0
        assert len(await order_store.list_orders()) == 4

    @pytest.mark.asyncio
    async def test_step_by_step_then_yes_creates_one_order(
        self, executor, order_store, customer_store, session
    ):
        await executor.execute(make_intent(CanonicalIntent.PLACE_ORDER), "Create a new order", session)
        for answer in ("Tempered glass", "1200 by 800 millimeters", "5 pieces", "Test Customer Inc"):
            result = await executor.advance_order(session, answer)
            assert result.action == "order_step"
        assert result.data["step"] == "confirm"

        result = await executor.advance_order(session, "Yes, create it")
        assert result.action == "order_created"
        assert "$360.00 in total" in result.message
        assert session.order_builder is None
        assert len(await order_store.list_orders()) == 4
        assert await customer_store.find_by_name("Test Customer Inc") is not None

    @pytest.mark.asyncio
    async def test_no_at_confirm_creates_nothing(self, executor, order_store, session):
        await executor.execute(
            make_intent(CanonicalIntent.PLACE_ORDER, {"customer_name": "Acme Glass Co"}),
            "new order for tempered glass 1200 by 800",
            session,
        )
        await executor.advance_order(session, "5 pieces")
        result = await executor.advance_order(session, "No")
        assert result.message == ORDER_CANCELLED_REPLY
        assert result.data == {"step": "cancelled"}
        assert session.order_builder is None
        assert len(await order_store.list_orders()) == 3

    @pytest.mark.asyncio
    async def test_advance_without_builder_raises(self, executor, session):
        with pytest.raises(ActionExecutionError):
            await executor.advance_order(session, "tempered")

    def test_cancel_order_build(self, executor, session):
        session.order_builder = executor.new_builder()
        builder = session.order_builder
        result = executor.cancel_order_build(session)
        assert result.message == ORDER_CANCELLED_REPLY
        assert session.order_builder is None
        assert builder.step == BuilderStep.CANCELLED


class TestCreateOrderDegraded:
    FIELDS = {
        "glass_type": GlassType.TEMPERED,
        "width": 1200.0,
        "height": 800.0,
        "thickness": 6.0,
        "quantity": 5,
        "customer_name": "Acme Glass Co",
        "unit_price": 72.0,
        "total_price": 360.0,
    }

    @pytest.mark.asyncio
    async def test_demo_mode_acknowledges_order(self):
        executor = make_failing_executor(demo_mode=True)
        result = await executor.create_order(dict(self.FIELDS))
        assert result.action == "order_created"
        assert result.degraded
        assert result.data["order_number"].startswith("ORD-DEMO-")
        assert result.data["message"] == "Order created successfully (demo mode - database unavailable)"
        assert executor.order_store.create_calls == 1

    @pytest.mark.asyncio
    async def test_without_demo_mode_reports_failure(self):
        executor = make_failing_executor(demo_mode=False)
        result = await executor.create_order(dict(self.FIELDS))
        assert not result.success
        assert result.degraded
        assert "couldn't create that order" in result.message


class TestDispatch:
    @pytest.mark.asyncio
    async def test_intent_without_handler_is_empty(self, executor, session):
        result = await executor.execute(make_intent(CanonicalIntent.GREETING), "hi", session)
        assert result.action is None
        assert result.message is None
        assert result.success

    def test_handles(self, executor):
        assert executor.handles(CanonicalIntent.SEARCH_ORDERS)
        assert not executor.handles(CanonicalIntent.CLARIFICATION)

    @pytest.mark.asyncio
    async def test_end_conversation_clears_history(self, executor):
        session = Session(key="s")
        session.add_turn(Speaker.USER, "hello")
        session.order_builder = executor.new_builder()
        result = await executor.execute(
            make_intent(CanonicalIntent.END_CONVERSATION), "bye", session
        )
        assert result.action == "end_conversation"
        assert result.message == CLOSING_REPLY
        assert session.turns == []
        assert session.order_builder is None

    @pytest.mark.asyncio
    async def test_goodbye_ends_conversation(self, executor, session):
        result = await executor.execute(make_intent(CanonicalIntent.GOODBYE), "bye", session)
        assert result.action == "end_conversation"

    @pytest.mark.asyncio
    async def test_marker_runs_benign_action(self, executor, session):
        intent = make_intent(CanonicalIntent.GENERAL_INQUIRY)
        result = await executor.execute_marker("search_orders", intent, "show pending orders", session)
        assert result.action == "search_results"

    @pytest.mark.asyncio
    async def test_marker_cannot_place_orders(self, executor, session):
        intent = make_intent(CanonicalIntent.GENERAL_INQUIRY)
        with pytest.raises(ActionExecutionError):
            await executor.execute_marker("create_order", intent, "yes", session)

    def test_demo_executor(self):
        executor = ActionExecutor.with_demo_data(base_price=60.0)
        assert executor.base_price == 60.0
        assert executor.new_builder().base_price == 60.0
