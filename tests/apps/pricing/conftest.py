import pytest
from decimal import Decimal

from rest_framework.test import APIClient

from apps.pricing.application.dto import OrderContactDTO
from apps.pricing.infrastructure.persistence.models import (
    BoxProduct,
    CuttingFee,
    ExchangeRate,
    FormulaKind,
    PriceFormula,
    Product,
    StandardPriceFormula,
    StickerProduct,
)


@pytest.fixture
def api_client():
    """DRF API client."""
    return APIClient()


@pytest.fixture
def exchange_rates(db):
    """USD/TRY and EUR/TRY as used across the pricing examples."""
    return {
        "USD": ExchangeRate.objects.create(currency="USD", rate=Decimal("34.50")),
        "EUR": ExchangeRate.objects.create(currency="EUR", rate=Decimal("37.80")),
    }


@pytest.fixture
def standard_formula(db):
    return StandardPriceFormula.objects.create(
        product_type="kuse",
        base_price_foreign=Decimal("1.00"),
        weight_factor=Decimal("0.01"),
        vat_rate=Decimal("20"),
        currency="USD",
    )


@pytest.fixture
def cutting_fee(db):
    return CuttingFee.objects.create(fee_per_package=Decimal("100"))


@pytest.fixture
def reference_data(exchange_rates, standard_formula, cutting_fee):
    """Everything a quote can need."""
    return {
        "exchange_rates": exchange_rates,
        "standard_formula": standard_formula,
        "cutting_fee": cutting_fee,
    }


@pytest.fixture
def cut_product(db):
    """90g digital print paper priced per ton in USD."""
    return Product.objects.create(
        name="Digital print 90g",
        product_type="kuse",
        dimensions="70x100",
        weight=Decimal("90"),
        ton_price=Decimal("850"),
        currency="USD",
        sheets_per_package=250,
        vat_rate=Decimal("20"),
    )


@pytest.fixture
def box_product(db):
    return BoxProduct.objects.create(
        brand="Copier",
        price_per_box=Decimal("10.00"),
        currency="EUR",
        vat_rate=Decimal("10"),
        stock_quantity=50,
    )


@pytest.fixture
def sticker_product(db):
    return StickerProduct.objects.create(
        brand="Fasson",
        type="Glossy",
        price_per_sheet=Decimal("0.50"),
        currency="EUR",
        vat_rate=Decimal("20"),
        moq=50,
        stock_quantity=1000,
    )


@pytest.fixture
def price_formula(db):
    return PriceFormula.objects.create(
        name="Paper by weight",
        kind=FormulaKind.STANDARD,
        formula="(width * height * weight * quantity * ton_price) / 1000000",
    )


@pytest.fixture
def formula_product(price_formula):
    """TRY priced product so formula quotes need no exchange rate."""
    return Product.objects.create(
        name="Bristol 80g",
        product_type="bristol",
        dimensions="70x100",
        weight=Decimal("80"),
        ton_price=Decimal("850"),
        currency="TRY",
        vat_rate=Decimal("20"),
        formula=price_formula,
    )


@pytest.fixture
def contact():
    return OrderContactDTO(
        customer_name="Ayse Yilmaz",
        customer_email="ayse@example.com",
        delivery_address="Ataturk Cad. No 1",
        delivery_city="Istanbul",
        delivery_phone="05321234567",
        company_name="Yilmaz Matbaa",
    )


@pytest.fixture
def contact_payload(contact):
    return {
        "customer_name": contact.customer_name,
        "customer_email": contact.customer_email,
        "delivery_address": contact.delivery_address,
        "delivery_city": contact.delivery_city,
        "delivery_phone": contact.delivery_phone,
        "company_name": contact.company_name,
    }
