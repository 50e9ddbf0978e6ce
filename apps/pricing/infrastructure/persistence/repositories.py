"""
Repository pattern implementation.
Abstracts database access to decouple domain logic from persistence.
"""

import logging
from decimal import Decimal
from typing import Dict, Optional

from django.db import IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone

from apps.pricing.domain.models import CuttingFee as CuttingFeeValue
from apps.pricing.domain.models import StandardFormula
from apps.pricing.infrastructure.persistence.models import (
    CuttingFee,
    ExchangeRate,
    Order,
    PriceFormula,
    Product,
    StandardPriceFormula,
)

logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS = 5


class ExchangeRateRepository:
    """Repository for ExchangeRate rows."""

    @staticmethod
    def get_rates_map() -> Dict[str, Decimal]:
        """Current TRY multiplier per foreign currency code."""
        return {r.currency: r.rate for r in ExchangeRate.objects.all()}

    @staticmethod
    def upsert(currency: str, rate: Decimal) -> ExchangeRate:
        """Last write wins; one row per currency."""
        obj, _ = ExchangeRate.objects.update_or_create(
            currency=currency.upper(),
            defaults={"rate": rate},
        )
        return obj


class FormulaRepository:
    """Repository for standard formulas and admin price formulas."""

    @staticmethod
    def get_active_standard_formulas() -> Dict[str, StandardFormula]:
        return {
            f.product_type: StandardFormula(
                product_type=f.product_type,
                base_price_foreign=f.base_price_foreign,
                weight_factor=f.weight_factor,
                vat_rate=f.vat_rate,
                currency=f.currency,
                reference_weight=f.reference_weight,
                reference_width_cm=f.reference_width_cm,
                reference_height_cm=f.reference_height_cm,
            )
            for f in StandardPriceFormula.objects.filter(is_active=True)
        }

    @staticmethod
    def get_active_formula(formula_id) -> Optional[PriceFormula]:
        return PriceFormula.objects.filter(pk=formula_id, is_active=True).first()


class CuttingFeeRepository:
    """Repository for the flat cutting fee."""

    @staticmethod
    def get_active() -> Optional[CuttingFeeValue]:
        fee = CuttingFee.objects.filter(is_active=True).order_by("-updated_at").first()
        if fee is None:
            return None
        return CuttingFeeValue(
            fee_per_package=fee.fee_per_package,
            currency=fee.currency,
            is_active=fee.is_active,
        )

    @staticmethod
    def set_active(fee_per_package: Decimal) -> CuttingFee:
        """Replace the active fee; the previous one is kept inactive."""
        CuttingFee.objects.filter(is_active=True).update(is_active=False)
        return CuttingFee.objects.create(fee_per_package=fee_per_package, is_active=True)


class ProductRepository:
    """Repository for catalogue products."""

    @staticmethod
    def get_active(product_id) -> Optional[Product]:
        return (
            Product.objects.select_related("formula", "category")
            .filter(pk=product_id, is_active=True)
            .first()
        )


class OrderRepository:
    """Repository for Order aggregate."""

    @staticmethod
    def next_order_number() -> str:
        """ORD-YYYYMMDD-NNNN, sequential per day."""
        today = timezone.localdate()
        prefix = f"ORD-{today:%Y%m%d}-"
        last = (
            Order.objects.filter(order_number__startswith=prefix)
            .order_by("-order_number")
            .values_list("order_number", flat=True)
            .first()
        )
        sequence = int(last.rsplit("-", 1)[1]) + 1 if last else 1
        return f"{prefix}{sequence:04d}"

    @staticmethod
    def create(**fields) -> Order:
        """
        Insert with the next free order number. A number taken by a
        concurrent checkout is retried inside a savepoint.
        """
        for attempt in range(ORDER_NUMBER_ATTEMPTS):
            order_number = OrderRepository.next_order_number()
            try:
                with transaction.atomic():
                    return Order.objects.create(order_number=order_number, **fields)
            except IntegrityError:
                if attempt == ORDER_NUMBER_ATTEMPTS - 1:
                    raise
                logger.warning("Order number %s already taken, retrying", order_number)

    @staticmethod
    def update_status(order: Order, status: str) -> Order:
        order.status = status
        order.save(update_fields=["status", "updated_at"])
        return order

    @staticmethod
    def by_status(status: Optional[str] = None) -> QuerySet:
        queryset = Order.objects.all()
        if status:
            queryset = queryset.filter(status=status)
        return queryset
