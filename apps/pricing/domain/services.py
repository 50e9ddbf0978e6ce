"""
Domain services - quote orchestration and order placement.
Loads reference data into a PricingContext, maps stored products onto
calculator requests, and freezes quotes into orders.
"""

import logging
from dataclasses import asdict
from decimal import Decimal
from typing import Any, Mapping, Optional

from django.db import transaction
from django.utils import timezone

from apps.pricing.application.dto import OrderContactDTO, QuoteOutcomeDTO
from apps.pricing.domain.calculator import calculate_quote
from apps.pricing.domain.errors import InvalidInput, InvalidTransition, MissingReferenceData
from apps.pricing.domain.models import (
    BoxProductRequest,
    CustomCutRequest,
    FormulaRequest,
    PricingContext,
    PricingMode,
    SheetProductRequest,
    StandardPaperRequest,
)
from apps.pricing.infrastructure.persistence.models import (
    BoxProduct,
    Order,
    Product,
    StickerProduct,
)
from apps.pricing.infrastructure.persistence.repositories import (
    CuttingFeeRepository,
    ExchangeRateRepository,
    FormulaRepository,
    OrderRepository,
    ProductRepository,
)

logger = logging.getLogger(__name__)


class QuoteService:
    """
    Builds calculator requests from request payloads and stored products.

    Payload keys per mode:
    - standard: product_type, width_cm, length_cm, weight_gsm, package_count
    - custom_cut: product_id, width_cm, height_cm, package_count, waste_rate?
    - box: product_id, quantity
    - sheet: product_id, quantity
    - formula: product_id, quantity, width_cm?, height_cm?, waste_rate?
    """

    @staticmethod
    def build_context() -> PricingContext:
        """Snapshot of the current reference data (last fetched wins)."""
        return PricingContext(
            exchange_rates=ExchangeRateRepository.get_rates_map(),
            standard_formulas=FormulaRepository.get_active_standard_formulas(),
            cutting_fee=CuttingFeeRepository.get_active(),
            captured_at=timezone.now(),
        )

    @staticmethod
    def quote(
        mode: PricingMode | str,
        payload: Mapping[str, Any],
        context: Optional[PricingContext] = None,
    ) -> QuoteOutcomeDTO:
        mode = PricingMode(mode)
        if context is None:
            context = QuoteService.build_context()

        builder = {
            PricingMode.STANDARD: QuoteService._standard,
            PricingMode.CUSTOM_CUT: QuoteService._custom_cut,
            PricingMode.BOX: QuoteService._box,
            PricingMode.SHEET: QuoteService._sheet,
            PricingMode.FORMULA: QuoteService._formula,
        }[mode]

        request, outcome_fields = builder(payload)
        result = calculate_quote(mode, request, context)
        logger.debug("Quoted %s: subtotal=%s total=%s", mode.value, result.subtotal, result.total)
        return QuoteOutcomeDTO(result=result, **outcome_fields)

    @staticmethod
    def _standard(payload):
        request = StandardPaperRequest(
            product_type=payload.get("product_type", ""),
            width_cm=payload.get("width_cm"),
            length_cm=payload.get("length_cm"),
            weight_gsm=payload.get("weight_gsm"),
            package_count=payload.get("package_count"),
        )
        details = {
            "product_type": request.product_type,
            "width_cm": str(request.width_cm),
            "length_cm": str(request.length_cm),
            "weight_gsm": str(request.weight_gsm),
        }
        return request, {"quantity": request.package_count, "product_details": details}

    @staticmethod
    def _custom_cut(payload):
        product = QuoteService._get_product(payload.get("product_id"))
        request = CustomCutRequest(
            width_cm=payload.get("width_cm"),
            height_cm=payload.get("height_cm"),
            weight_gsm=product.weight,
            ton_price=product.ton_price,
            currency=product.currency,
            sheets_per_package=product.sheets_per_package,
            package_count=payload.get("package_count"),
            vat_rate=product.vat_rate,
            waste_rate=payload.get("waste_rate") or Decimal("0"),
        )
        details = {
            "name": product.name,
            "product_type": product.product_type,
            "custom_size": f"{request.width_cm}x{request.height_cm}",
            "weight": str(product.weight),
            "ton_price": str(product.ton_price),
            "currency": product.currency,
            "sheets_per_package": product.sheets_per_package,
        }
        return request, {
            "quantity": request.package_count,
            "product_id": str(product.pk),
            "product_details": details,
        }

    @staticmethod
    def _box(payload):
        product = QuoteService._get_active(BoxProduct, payload.get("product_id"))
        request = BoxProductRequest(
            price_per_box=product.price_per_box,
            currency=product.currency,
            box_count=payload.get("quantity"),
            vat_rate=product.vat_rate,
            stock_quantity=product.stock_quantity,
        )
        details = {
            "brand": product.brand,
            "size": product.size,
            "weight": str(product.weight),
            "price_per_box": str(product.price_per_box),
            "currency": product.currency,
        }
        return request, {
            "quantity": request.box_count,
            "product_id": str(product.pk),
            "product_details": details,
        }

    @staticmethod
    def _sheet(payload):
        product = QuoteService._get_active(StickerProduct, payload.get("product_id"))
        request = SheetProductRequest(
            price_per_sheet=product.price_per_sheet,
            currency=product.currency,
            sheet_count=payload.get("quantity"),
            vat_rate=product.vat_rate,
            min_order_quantity=product.moq,
            stock_quantity=product.stock_quantity,
        )
        details = {
            "brand": product.brand,
            "type": product.type,
            "price_per_sheet": str(product.price_per_sheet),
            "currency": product.currency,
        }
        return request, {
            "quantity": request.sheet_count,
            "product_id": str(product.pk),
            "product_details": details,
        }

    @staticmethod
    def _formula(payload):
        product = QuoteService._get_product(payload.get("product_id"))
        formula = FormulaRepository.get_active_formula(product.formula_id) if product.formula_id else None
        if formula is None:
            raise MissingReferenceData("price_formula", product.name)

        width, height = payload.get("width_cm"), payload.get("height_cm")
        if width is None or height is None:
            try:
                default_width, default_height = product.dimensions_cm()
            except ValueError as e:
                raise InvalidInput("dimensions", str(e))
            width = default_width if width is None else width
            height = default_height if height is None else height
        variables = {
            "width": width,
            "height": height,
            "weight": product.weight,
            "ton_price": product.ton_price,
            "quantity": payload.get("quantity"),
        }
        request = FormulaRequest(
            expression=formula.formula,
            variables=variables,
            vat_rate=product.vat_rate,
            kind=formula.kind,
            waste_rate=payload.get("waste_rate") or Decimal("0"),
            min_order_quantity=product.min_order_quantity,
            stock_quantity=product.stock_quantity,
        )
        details = {
            "name": product.name,
            "formula": formula.name,
            "width_cm": str(variables["width"]),
            "height_cm": str(variables["height"]),
            "weight": str(product.weight),
            "ton_price": str(product.ton_price),
        }
        return request, {
            "quantity": variables["quantity"],
            "product_id": str(product.pk),
            "product_details": details,
        }

    @staticmethod
    def _get_product(product_id) -> Product:
        product = ProductRepository.get_active(product_id) if product_id else None
        if product is None:
            raise InvalidInput("product_id", f"Unknown or inactive product '{product_id}'")
        return product

    @staticmethod
    def _get_active(model, product_id):
        product = model.objects.filter(pk=product_id, is_active=True).first() if product_id else None
        if product is None:
            raise InvalidInput("product_id", f"Unknown or inactive product '{product_id}'")
        return product


class OrderService:
    """Places orders from a fresh quote and manages their status."""

    @staticmethod
    def place_order(mode: PricingMode | str, payload: Mapping[str, Any], contact: OrderContactDTO) -> Order:
        """
        Re-quote against freshly loaded reference data and persist the order
        with that quote frozen. Nothing is written when the quote fails.
        """
        mode = PricingMode(mode)
        context = QuoteService.build_context()
        outcome = QuoteService.quote(mode, payload, context)
        result = outcome.result

        pricing = result.as_snapshot()
        pricing["exchange_rates"] = {code: str(rate) for code, rate in context.exchange_rates.items()}
        pricing["captured_at"] = context.captured_at.isoformat() if context.captured_at else None

        exchange_rate = result.details.get("exchange_rate")
        subtotal, vat_amount, total = result.rounded_totals()

        with transaction.atomic():
            order = OrderRepository.create(
                order_type=mode.value,
                product_id=outcome.product_id,
                product_details=outcome.product_details,
                quantity=int(outcome.quantity),
                subtotal=subtotal,
                vat_rate=result.vat_rate,
                vat_amount=vat_amount,
                total=total,
                exchange_rate=exchange_rate if isinstance(exchange_rate, Decimal) else None,
                pricing=pricing,
                **asdict(contact),
            )

        logger.info("Order %s created (%s, total=%s TRY)", order.order_number, mode.value, order.total)
        return order

    @staticmethod
    def transition(order: Order, status: str) -> Order:
        if not order.can_transition_to(status):
            raise InvalidTransition(order.status, status)
        previous = order.status
        OrderRepository.update_status(order, status)
        logger.info("Order %s: %s -> %s", order.order_number, previous, status)
        return order
