import pytest
from decimal import Decimal

from apps.pricing.domain.errors import MissingReferenceData
from apps.pricing.domain.models import (
    ExchangeRateSnapshot,
    PricingContext,
    PricingMode,
    QuoteResult,
    round_money,
)


class TestPricingContext:

    def test_base_currency_rate_is_one(self):
        assert PricingContext().rate_for("TRY") == Decimal("1")

    def test_codes_are_case_insensitive(self):
        context = PricingContext(exchange_rates={"usd": Decimal("34.50")})

        assert context.rate_for("USD") == Decimal("34.50")
        assert context.rate_for("usd") == Decimal("34.50")

    def test_float_rates_are_converted_exactly(self):
        context = PricingContext(exchange_rates={"USD": 34.5})

        assert context.rate_for("USD") == Decimal("34.5")

    def test_missing_rate(self):
        with pytest.raises(MissingReferenceData) as exc:
            PricingContext().rate_for("GBP")

        assert exc.value.as_dict() == {
            "error": "Reference data not loaded: exchange_rate 'GBP'",
            "code": "missing_reference_data",
            "kind": "exchange_rate",
            "key": "GBP",
        }

    def test_non_positive_rate_counts_as_missing(self):
        with pytest.raises(MissingReferenceData):
            PricingContext(exchange_rates={"USD": Decimal("0")}).rate_for("USD")

    def test_mappings_are_read_only(self):
        rates = {"USD": Decimal("34.50")}
        context = PricingContext(exchange_rates=rates)

        with pytest.raises(TypeError):
            context.exchange_rates["USD"] = Decimal("1")

        rates["USD"] = Decimal("99")
        assert context.rate_for("USD") == Decimal("34.50")

    def test_formula_variables(self):
        context = PricingContext(exchange_rates={"USD": Decimal("34.50")})

        assert context.variables() == {"usd_rate": Decimal("34.50")}


class TestExchangeRateSnapshot:

    def test_valid_snapshot(self):
        snapshot = ExchangeRateSnapshot(currency="USD", rate=Decimal("34.50"))

        assert snapshot.rate == Decimal("34.50")

    @pytest.mark.parametrize("currency,rate", [("US", Decimal("1")), ("USD", Decimal("0"))])
    def test_invalid_snapshot(self, currency, rate):
        with pytest.raises(ValueError):
            ExchangeRateSnapshot(currency=currency, rate=rate)


class TestQuoteResultRendering:

    @pytest.fixture
    def result(self):
        return QuoteResult(
            mode=PricingMode.CUSTOM_CUT,
            subtotal=Decimal("206.038466875"),
            vat_rate=Decimal("20"),
            vat_amount=Decimal("41.207693375"),
            total=Decimal("247.24616025"),
            details={
                "base_price": Decimal("106.038466875"),
                "total_area_m2": Decimal("40.1775"),
                "total_sheets": 250,
            },
        )

    def test_display_rounds_money_half_up(self, result):
        display = result.as_display()

        assert display["mode"] == "custom_cut"
        assert display["subtotal"] == "206.04"
        assert display["vat_amount"] == "41.21"
        assert display["total"] == "247.25"
        assert display["details"]["base_price"] == "106.04"

    def test_display_keeps_measurements_unrounded(self, result):
        display = result.as_display()

        assert display["details"]["total_area_m2"] == "40.1775"
        assert display["details"]["total_sheets"] == 250

    def test_snapshot_is_unrounded(self, result):
        snapshot = result.as_snapshot()

        assert snapshot["total"] == "247.24616025"
        assert snapshot["details"]["base_price"] == "106.038466875"

    def test_round_money_half_up(self):
        assert round_money(Decimal("0.125")) == Decimal("0.13")
        assert round_money(Decimal("0.135")) == Decimal("0.14")

    def test_displayed_total_is_sum_of_rounded_parts(self):
        result = QuoteResult(
            mode=PricingMode.BOX,
            subtotal=Decimal("1.125"),
            vat_rate=Decimal("20"),
            vat_amount=Decimal("0.225"),
            total=Decimal("1.35"),
        )

        display = result.as_display()

        assert (display["subtotal"], display["vat_amount"], display["total"]) == ("1.13", "0.23", "1.36")
        assert Decimal(display["total"]) == Decimal(display["subtotal"]) + Decimal(display["vat_amount"])
        assert result.rounded_totals() == (Decimal("1.13"), Decimal("0.23"), Decimal("1.36"))
