"""
Model registration entry point for Django.
The ORM models live in the infrastructure layer.
"""

from apps.pricing.infrastructure.persistence.models import (  # noqa: F401
    Banner,
    BoxProduct,
    CuttingFee,
    ExchangeRate,
    Order,
    PriceFormula,
    Product,
    ProductCategory,
    RollWidth,
    StandardPriceFormula,
    StickerProduct,
)
