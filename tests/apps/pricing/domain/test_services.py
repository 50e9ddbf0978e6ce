import pytest
from decimal import Decimal

from apps.pricing.domain.errors import InvalidInput, InvalidTransition, MissingReferenceData
from apps.pricing.domain.models import PricingMode
from apps.pricing.domain.services import OrderService, QuoteService
from apps.pricing.infrastructure.persistence.models import (
    CuttingFee,
    ExchangeRate,
    Order,
    OrderStatus,
)

STANDARD_PAYLOAD = {
    "product_type": "kuse",
    "width_cm": Decimal("70"),
    "length_cm": Decimal("100"),
    "weight_gsm": Decimal("80"),
    "package_count": 2,
}


@pytest.mark.django_db
class TestBuildContext:

    def test_context_reflects_stored_reference_data(self, reference_data):
        context = QuoteService.build_context()

        assert context.rate_for("USD") == Decimal("34.50")
        assert context.rate_for("EUR") == Decimal("37.80")
        assert context.formula_for("kuse").base_price_foreign == Decimal("1.00")
        assert context.require_cutting_fee().fee_per_package == Decimal("100")
        assert context.captured_at is not None

    def test_inactive_reference_data_is_not_loaded(self, reference_data):
        reference_data["standard_formula"].is_active = False
        reference_data["standard_formula"].save()
        CuttingFee.objects.update(is_active=False)

        context = QuoteService.build_context()

        with pytest.raises(MissingReferenceData):
            context.formula_for("kuse")
        with pytest.raises(MissingReferenceData):
            context.require_cutting_fee()

    def test_context_is_a_snapshot(self, reference_data):
        context = QuoteService.build_context()
        ExchangeRate.objects.filter(currency="USD").update(rate=Decimal("40"))

        assert context.rate_for("USD") == Decimal("34.50")


@pytest.mark.django_db
class TestQuoteService:

    def test_standard_quote(self, reference_data):
        outcome = QuoteService.quote(PricingMode.STANDARD, STANDARD_PAYLOAD)

        assert outcome.result.total == Decimal("82.80")
        assert outcome.quantity == 2
        assert outcome.product_id is None
        assert outcome.product_details["product_type"] == "kuse"

    def test_custom_cut_quote_uses_product_data(self, reference_data, cut_product):
        payload = {
            "product_id": cut_product.pk,
            "width_cm": Decimal("33"),
            "height_cm": Decimal("48.7"),
            "package_count": 1,
        }

        outcome = QuoteService.quote("custom_cut", payload)
        display = outcome.result.as_display()

        assert display["subtotal"] == "206.04"
        assert display["total"] == "247.25"
        assert outcome.product_id == str(cut_product.pk)
        assert outcome.product_details["custom_size"] == "33x48.7"

    def test_box_quote(self, exchange_rates, box_product):
        outcome = QuoteService.quote("box", {"product_id": box_product.pk, "quantity": 3})

        assert outcome.result.total == Decimal("1247.40")
        assert outcome.product_details["brand"] == "Copier"

    def test_sheet_quote_below_moq(self, exchange_rates, sticker_product):
        with pytest.raises(InvalidInput) as exc:
            QuoteService.quote("sheet", {"product_id": sticker_product.pk, "quantity": 10})

        assert exc.value.field == "sheet_count"

    def test_formula_quote_defaults_to_product_dimensions(self, formula_product):
        outcome = QuoteService.quote("formula", {"product_id": formula_product.pk, "quantity": 1})

        assert outcome.result.subtotal == Decimal("476")
        assert outcome.result.as_display()["total"] == "571.20"
        assert outcome.product_details["width_cm"] == "70"

    def test_formula_quote_with_custom_size(self, formula_product):
        payload = {"product_id": formula_product.pk, "quantity": 1, "width_cm": Decimal("35"), "height_cm": Decimal("100")}

        outcome = QuoteService.quote("formula", payload)

        assert outcome.result.subtotal == Decimal("238")

    def test_formula_quote_with_zero_width_is_rejected(self, formula_product):
        payload = {"product_id": formula_product.pk, "quantity": 1, "width_cm": Decimal("0"), "height_cm": Decimal("100")}

        with pytest.raises(InvalidInput) as exc:
            QuoteService.quote("formula", payload)

        assert exc.value.field == "width"

    def test_formula_quote_fills_only_the_missing_dimension(self, formula_product):
        outcome = QuoteService.quote(
            "formula", {"product_id": formula_product.pk, "quantity": 1, "width_cm": Decimal("35")}
        )

        assert outcome.product_details["width_cm"] == "35"
        assert outcome.product_details["height_cm"] == "100"
        assert outcome.result.subtotal == Decimal("238")

    def test_formula_quote_with_inactive_formula(self, formula_product, price_formula):
        price_formula.is_active = False
        price_formula.save()

        with pytest.raises(MissingReferenceData) as exc:
            QuoteService.quote("formula", {"product_id": formula_product.pk, "quantity": 1})

        assert exc.value.kind == "price_formula"

    def test_unknown_product(self, reference_data):
        with pytest.raises(InvalidInput) as exc:
            QuoteService.quote("box", {"product_id": "7b0f1f57-8f3e-4c7f-9d2c-3f8b5b1f2a10", "quantity": 1})

        assert exc.value.field == "product_id"

    def test_inactive_product(self, reference_data, cut_product):
        cut_product.is_active = False
        cut_product.save()

        payload = {"product_id": cut_product.pk, "width_cm": 33, "height_cm": 48, "package_count": 1}
        with pytest.raises(InvalidInput):
            QuoteService.quote("custom_cut", payload)

    def test_missing_cutting_fee(self, exchange_rates, cut_product):
        payload = {"product_id": cut_product.pk, "width_cm": 33, "height_cm": 48, "package_count": 1}

        with pytest.raises(MissingReferenceData) as exc:
            QuoteService.quote("custom_cut", payload)

        assert exc.value.kind == "cutting_fee"


@pytest.mark.django_db(transaction=True)
class TestPlaceOrder:

    def test_order_stores_rounded_totals_and_snapshot(self, reference_data, contact):
        order = OrderService.place_order("standard", STANDARD_PAYLOAD, contact)

        assert order.status == OrderStatus.PENDING
        assert order.order_number.startswith("ORD-")
        assert order.subtotal == Decimal("69.00")
        assert order.vat_amount == Decimal("13.80")
        assert order.total == Decimal("82.80")
        assert order.exchange_rate == Decimal("34.50")
        assert order.customer_name == "Ayse Yilmaz"
        assert order.pricing["mode"] == "standard"
        assert Decimal(order.pricing["exchange_rates"]["USD"]) == Decimal("34.50")
        assert order.pricing["captured_at"]

    def test_order_total_is_frozen(self, reference_data, contact):
        order = OrderService.place_order("standard", STANDARD_PAYLOAD, contact)

        ExchangeRate.objects.filter(currency="USD").update(rate=Decimal("40.00"))
        order.refresh_from_db()
        fresh_quote = QuoteService.quote("standard", STANDARD_PAYLOAD)

        assert order.total == Decimal("82.80")
        assert fresh_quote.result.total == Decimal("96.00")

    def test_stored_total_adds_up_after_rounding(self, reference_data, contact):
        payload = dict(STANDARD_PAYLOAD, weight_gsm=Decimal("81"), package_count=1)

        order = OrderService.place_order("standard", payload, contact)

        assert order.subtotal == Decimal("34.85")
        assert order.vat_amount == Decimal("6.97")
        assert order.total == Decimal("41.82")
        assert order.total == order.subtotal + order.vat_amount

    def test_failed_quote_creates_no_order(self, reference_data, contact):
        with pytest.raises(InvalidInput):
            OrderService.place_order("standard", {**STANDARD_PAYLOAD, "package_count": 0}, contact)

        assert Order.objects.count() == 0

    def test_missing_rate_creates_no_order(self, standard_formula, contact):
        with pytest.raises(MissingReferenceData):
            OrderService.place_order("standard", STANDARD_PAYLOAD, contact)

        assert Order.objects.count() == 0

    def test_order_numbers_are_sequential(self, reference_data, contact):
        first = OrderService.place_order("standard", STANDARD_PAYLOAD, contact)
        second = OrderService.place_order("standard", STANDARD_PAYLOAD, contact)

        assert first.order_number.endswith("-0001")
        assert second.order_number.endswith("-0002")

    def test_box_order_references_product(self, exchange_rates, box_product, contact):
        order = OrderService.place_order("box", {"product_id": box_product.pk, "quantity": 3}, contact)

        order.refresh_from_db()
        assert order.product_id == box_product.pk
        assert order.quantity == 3
        assert order.total == Decimal("1247.40")


@pytest.mark.django_db(transaction=True)
class TestOrderTransitions:

    @pytest.fixture
    def order(self, reference_data, contact):
        return OrderService.place_order("standard", STANDARD_PAYLOAD, contact)

    def test_pending_to_processing_to_completed(self, order):
        OrderService.transition(order, OrderStatus.PROCESSING)
        OrderService.transition(order, OrderStatus.COMPLETED)

        order.refresh_from_db()
        assert order.status == OrderStatus.COMPLETED

    def test_pending_can_be_cancelled(self, order):
        OrderService.transition(order, OrderStatus.CANCELLED)

        assert Order.objects.get(pk=order.pk).status == OrderStatus.CANCELLED

    def test_pending_cannot_complete_directly(self, order):
        with pytest.raises(InvalidTransition):
            OrderService.transition(order, OrderStatus.COMPLETED)

        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING

    @pytest.mark.parametrize("terminal", [OrderStatus.COMPLETED, OrderStatus.CANCELLED])
    def test_terminal_statuses_are_final(self, order, terminal):
        OrderService.transition(order, OrderStatus.PROCESSING)
        OrderService.transition(order, terminal)

        with pytest.raises(InvalidTransition) as exc:
            OrderService.transition(order, OrderStatus.PENDING)

        assert exc.value.current == terminal
