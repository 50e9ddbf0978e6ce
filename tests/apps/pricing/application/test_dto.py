from decimal import Decimal

from apps.pricing.application.dto import OrderContactDTO, QuoteOutcomeDTO, RateRefreshResultDTO
from apps.pricing.domain.models import PricingMode, QuoteResult


def test_rate_refresh_result_as_dict():
    dto = RateRefreshResultDTO(
        success=True,
        rates_updated={"USD": Decimal("34.50")},
        errors=[],
        provider_used="MockProvider",
    )

    assert dto.as_dict() == {
        "success": True,
        "rates_updated": {"USD": "34.50"},
        "errors": [],
        "provider_used": "MockProvider",
    }


def test_quote_outcome_defaults():
    result = QuoteResult(
        mode=PricingMode.BOX,
        subtotal=Decimal("10"),
        vat_rate=Decimal("0"),
        vat_amount=Decimal("0"),
        total=Decimal("10"),
    )

    outcome = QuoteOutcomeDTO(result=result, quantity=1)

    assert outcome.product_id is None
    assert outcome.product_details == {}


def test_order_contact_optional_fields():
    contact = OrderContactDTO(
        customer_name="Ayse",
        customer_email="ayse@example.com",
        delivery_address="Ataturk Cad. No 1",
        delivery_city="Istanbul",
        delivery_phone="05321234567",
    )

    assert contact.company_name == ""
    assert contact.notes == ""
