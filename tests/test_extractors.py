"""Tests for the free-text order field extractors."""

from glassvoice.conversation.extractors import (
    confirmation_answer,
    extract_customer_name,
    extract_dimensions,
    extract_glass_type,
    extract_order_fields,
    extract_quantity,
    extract_thickness,
    is_affirmative,
    is_cancellation,
    is_negative,
)
from glassvoice.schemas.order_schema import GlassType


class TestGlassType:
    def test_keyword(self):
        assert extract_glass_type("I need tempered glass") is GlassType.TEMPERED

    def test_multi_word_alias(self):
        assert extract_glass_type("some double glazed units") is GlassType.INSULATED

    def test_case_insensitive(self):
        assert extract_glass_type("LAMINATED please") is GlassType.LAMINATED

    def test_not_found(self):
        assert extract_glass_type("just some glass") is None


class TestDimensions:
    def test_by(self):
        assert extract_dimensions("1200 by 800") == (1200.0, 800.0)

    def test_x_with_units(self):
        assert extract_dimensions("1200mm x 800mm") == (1200.0, 800.0)

    def test_trailing_unit_applies_to_both(self):
        assert extract_dimensions("120 by 80 cm") == (1200.0, 800.0)

    def test_meters(self):
        assert extract_dimensions("2 by 1 meters") == (2000.0, 1000.0)

    def test_named_width_and_height(self):
        assert extract_dimensions("width 900 and height 600") == (900.0, 600.0)

    def test_mm_and_mm(self):
        assert extract_dimensions("1200 mm and 800 mm") == (1200.0, 800.0)

    def test_none(self):
        assert extract_dimensions("five pieces please") is None


class TestQuantity:
    def test_pieces(self):
        assert extract_quantity("5 pieces") == 5

    def test_number_word(self):
        assert extract_quantity("ten panes") == 10

    def test_labelled(self):
        assert extract_quantity("quantity of 12") == 12

    def test_labelled_with_to(self):
        assert extract_quantity("change the quantity to 20") == 20

    def test_dimension_numbers_ignored(self):
        assert extract_quantity("1200 by 800") is None

    def test_bare_number_only_when_expecting(self):
        assert extract_quantity("7") is None
        assert extract_quantity("7", expecting=True) == 7

    def test_bare_word_when_expecting(self):
        assert extract_quantity("three", expecting=True) == 3

    def test_fraction_rejected(self):
        assert extract_quantity("2.5 pieces") is None


class TestThickness:
    def test_mm_thick(self):
        assert extract_thickness("10mm thick") == 10.0

    def test_labelled(self):
        assert extract_thickness("thickness of 8 mm") == 8.0

    def test_none(self):
        assert extract_thickness("1200 by 800") is None


class TestCustomerName:
    def test_explicit_marker(self):
        assert extract_customer_name("customer name is Acme Glass Co") == "Acme Glass Co"

    def test_for_customer(self):
        assert extract_customer_name("put it under for customer Bob Smith") == "Bob Smith"

    def test_unmarked_ignored_unless_expecting(self):
        assert extract_customer_name("Test Customer Inc") is None

    def test_capitalized_run_when_expecting(self):
        assert extract_customer_name("Test Customer Inc", expecting=True) == "Test Customer Inc"

    def test_answer_phrase(self):
        assert extract_customer_name("it's for modern windows", expecting=True) == "Modern windows"

    def test_name_after_leading_question_word(self):
        assert extract_customer_name("Can you put it under Acme Glass", expecting=True) == "Acme Glass"

    def test_question_is_not_a_name(self):
        assert extract_customer_name("how much will it cost", expecting=True) is None
        assert extract_customer_name("How much will it cost?", expecting=True) is None

    def test_unmarked_lowercase_answer_ignored(self):
        assert extract_customer_name("acme glass", expecting=True) is None

    def test_filler_only_rejected(self):
        assert extract_customer_name("okay", expecting=True) is None


class TestYesNoCancel:
    def test_affirmative(self):
        assert is_affirmative("Yes, create it")
        assert is_affirmative("sounds good")

    def test_negative(self):
        assert is_negative("No thanks")
        assert is_negative("don't do that")

    def test_neither(self):
        assert not is_affirmative("hmm")
        assert not is_negative("hmm")

    def test_leading_yes_wins(self):
        assert confirmation_answer("Yes, no changes needed") is True
        assert is_affirmative("Yes, no changes needed")

    def test_leading_no_wins(self):
        assert confirmation_answer("No, that looks right but wait") is False

    def test_negated_agreement_is_neither(self):
        for text in ("That's not right", "not correct", "that isn't what I wanted"):
            assert confirmation_answer(text) is None
            assert not is_affirmative(text)
            assert not is_negative(text)

    def test_no_problem_is_not_a_refusal(self):
        assert confirmation_answer("no problem, go ahead") is True

    def test_cancellation(self):
        assert is_cancellation("never mind")
        assert is_cancellation("cancel that")
        assert not is_cancellation("no")


class TestExtractOrderFields:
    def test_everything_at_once(self):
        fields = extract_order_fields("5 pieces of tempered glass 1200 by 800, 8mm thick")
        assert fields["glass_type"] is GlassType.TEMPERED
        assert fields["width"] == 1200.0
        assert fields["height"] == 800.0
        assert fields["quantity"] == 5
        assert fields["thickness"] == 8.0

    def test_nothing(self):
        assert extract_order_fields("hello there") == {}
