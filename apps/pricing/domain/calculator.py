"""
Quote calculators.

One pure function per pricing mode. Each validates its request before doing
any arithmetic, computes a TRY subtotal and hands it to a single shared VAT
tail. Nothing is rounded here; rounding happens when a QuoteResult is
rendered.
"""

from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from apps.pricing.domain.errors import InvalidInput
from apps.pricing.domain.formula import parse_formula, allowed_variables
from apps.pricing.domain.models import (
    BoxProductRequest,
    CustomCutRequest,
    FormulaRequest,
    PricingContext,
    PricingMode,
    QuoteResult,
    SheetProductRequest,
    StandardPaperRequest,
)

HUNDRED = Decimal("100")
THOUSAND = Decimal("1000")
CM2_PER_M2 = Decimal("10000")


def calculate_standard(request: StandardPaperRequest, context: PricingContext) -> QuoteResult:
    """Paper sold by package against the active formula for its product type."""
    width = _positive(request.width_cm, "width_cm")
    length = _positive(request.length_cm, "length_cm")
    weight = _positive(request.weight_gsm, "weight_gsm")
    packages = _quantity(request.package_count, "package_count")

    formula = context.formula_for(request.product_type)
    rate = context.rate_for(formula.currency)

    roll_area = width * length
    sheets_per_roll = int(roll_area // formula.sheet_area)
    if sheets_per_roll < 1:
        raise InvalidInput(
            "width_cm",
            f"Roll area {roll_area} cm² is smaller than one {formula.reference_width_cm}x"
            f"{formula.reference_height_cm} sheet",
        )

    price_per_sheet_foreign = formula.base_price_foreign * (
        1 + (weight - formula.reference_weight) * formula.weight_factor
    )
    if price_per_sheet_foreign <= 0:
        raise InvalidInput(
            "weight_gsm",
            f"Weight {weight} g/m² is outside the priced range of the '{formula.product_type}' formula",
        )
    price_per_sheet_try = price_per_sheet_foreign * rate
    subtotal = price_per_sheet_try * sheets_per_roll * packages

    return _finalize(
        PricingMode.STANDARD,
        subtotal,
        formula.vat_rate,
        {
            "roll_area": roll_area,
            "sheet_area": formula.sheet_area,
            "sheets_per_roll": sheets_per_roll,
            "total_sheets": sheets_per_roll * packages,
            "price_per_sheet_foreign": price_per_sheet_foreign,
            "price_per_sheet_try": price_per_sheet_try,
            "price_per_unit": price_per_sheet_try,
            "currency": formula.currency,
            "exchange_rate": rate,
        },
    )


def calculate_custom_cut(request: CustomCutRequest, context: PricingContext) -> QuoteResult:
    """Arbitrary width x height cut from a product priced per ton."""
    width = _positive(request.width_cm, "width_cm")
    height = _positive(request.height_cm, "height_cm")
    weight = _positive(request.weight_gsm, "weight_gsm")
    ton_price = _positive(request.ton_price, "ton_price")
    sheets_per_package = _quantity(request.sheets_per_package, "sheets_per_package")
    packages = _quantity(request.package_count, "package_count")
    vat_rate = _vat_rate(request.vat_rate)
    waste_rate = _waste_rate(request.waste_rate)

    rate = context.rate_for(request.currency)
    fee = context.require_cutting_fee()

    area_per_sheet = width * height / CM2_PER_M2
    total_sheets = sheets_per_package * packages
    total_area = area_per_sheet * total_sheets
    total_weight_kg = total_area * (weight / THOUSAND)
    base_price = total_weight_kg * (ton_price / THOUSAND) * rate
    waste_amount = base_price * waste_rate
    cutting_fee_total = fee.fee_per_package * packages
    subtotal = base_price + waste_amount + cutting_fee_total

    return _finalize(
        PricingMode.CUSTOM_CUT,
        subtotal,
        vat_rate,
        {
            "area_per_sheet_m2": area_per_sheet,
            "total_sheets": total_sheets,
            "total_area_m2": total_area,
            "total_weight_kg": total_weight_kg,
            "base_price": base_price,
            "waste_rate": waste_rate,
            "waste_amount": waste_amount,
            "cutting_fee_per_package": fee.fee_per_package,
            "cutting_fee_total": cutting_fee_total,
            "price_per_unit": subtotal / total_sheets,
            "currency": request.currency.upper(),
            "exchange_rate": rate,
        },
    )


def calculate_box(request: BoxProductRequest, context: PricingContext) -> QuoteResult:
    """Fixed-unit products (ream boxes) with a foreign unit price."""
    boxes = _quantity(request.box_count, "box_count")
    _check_bounds(boxes, "box_count", minimum=1, maximum=request.stock_quantity)
    price = _positive(request.price_per_box, "price_per_box")
    vat_rate = _vat_rate(request.vat_rate)

    rate = context.rate_for(request.currency)

    subtotal_foreign = price * boxes
    subtotal = subtotal_foreign * rate

    return _finalize(
        PricingMode.BOX,
        subtotal,
        vat_rate,
        {
            "quantity": boxes,
            "subtotal_foreign": subtotal_foreign,
            "price_per_unit": price * rate,
            "currency": request.currency.upper(),
            "exchange_rate": rate,
        },
    )


def calculate_sheet(request: SheetProductRequest, context: PricingContext) -> QuoteResult:
    """Per-sheet products (stickers) with a minimum order quantity."""
    sheets = _quantity(request.sheet_count, "sheet_count")
    minimum = _quantity(request.min_order_quantity or 1, "min_order_quantity")
    _check_bounds(sheets, "sheet_count", minimum=minimum, maximum=request.stock_quantity)
    price = _positive(request.price_per_sheet, "price_per_sheet")
    vat_rate = _vat_rate(request.vat_rate)

    rate = context.rate_for(request.currency)

    subtotal_foreign = price * sheets
    subtotal = subtotal_foreign * rate

    return _finalize(
        PricingMode.SHEET,
        subtotal,
        vat_rate,
        {
            "quantity": sheets,
            "subtotal_foreign": subtotal_foreign,
            "price_per_unit": price * rate,
            "currency": request.currency.upper(),
            "exchange_rate": rate,
        },
    )


def calculate_formula(request: FormulaRequest, context: PricingContext) -> QuoteResult:
    """
    Evaluate an admin formula for the pre-VAT subtotal.

    Rate variables come from the context and ``cutting_fee`` from the active
    fee, so a formula can only see the reference data of this request. When
    the expression does not use ``waste_rate`` itself, the waste adjustment is
    applied to its result.
    """
    formula = parse_formula(request.expression, allowed_variables(request.kind))
    vat_rate = _vat_rate(request.vat_rate)
    waste_rate = _waste_rate(request.waste_rate)

    bindings: dict[str, object] = {}
    for name in ("width", "height", "weight", "ton_price"):
        if name in request.variables:
            bindings[name] = _positive(request.variables[name], name)
    if "quantity" in request.variables:
        quantity = _quantity(request.variables["quantity"], "quantity")
        _check_bounds(
            quantity,
            "quantity",
            minimum=request.min_order_quantity or 1,
            maximum=request.stock_quantity,
        )
        bindings["quantity"] = quantity

    for name in ("usd_rate", "eur_rate"):
        if formula.references(name):
            bindings[name] = context.rate_for(name[:3])
    if formula.references("cutting_fee"):
        bindings["cutting_fee"] = context.require_cutting_fee().fee_per_package
    if formula.references("waste_rate"):
        bindings["waste_rate"] = waste_rate

    result = formula.evaluate(bindings)
    subtotal = result if formula.references("waste_rate") else result * (1 + waste_rate)
    if subtotal < 0:
        raise InvalidInput("expression", f"Formula produced a negative subtotal ({subtotal})")

    return _finalize(
        PricingMode.FORMULA,
        subtotal,
        vat_rate,
        {
            "formula_result": result,
            "waste_rate": waste_rate,
            "variables": sorted(formula.names),
        },
    )


CALCULATORS: dict[PricingMode, Callable[..., QuoteResult]] = {
    PricingMode.STANDARD: calculate_standard,
    PricingMode.CUSTOM_CUT: calculate_custom_cut,
    PricingMode.BOX: calculate_box,
    PricingMode.SHEET: calculate_sheet,
    PricingMode.FORMULA: calculate_formula,
}


def calculate_quote(mode: PricingMode, request, context: PricingContext) -> QuoteResult:
    """Single entry point over every pricing mode."""
    return CALCULATORS[PricingMode(mode)](request, context)


def _finalize(mode: PricingMode, subtotal: Decimal, vat_rate: Decimal, details: dict) -> QuoteResult:
    vat_rate = _vat_rate(vat_rate)
    vat_amount = subtotal * (vat_rate / HUNDRED)
    return QuoteResult(
        mode=mode,
        subtotal=subtotal,
        vat_rate=vat_rate,
        vat_amount=vat_amount,
        total=subtotal + vat_amount,
        details=details,
    )


def _to_decimal(value, field: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise InvalidInput(field, f"{field} must be a number")
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidInput(field, f"{field} must be a number, got {value!r}")
    if not number.is_finite():
        raise InvalidInput(field, f"{field} must be a finite number")
    return number


def _positive(value, field: str) -> Decimal:
    number = _to_decimal(value, field)
    if number <= 0:
        raise InvalidInput(field, f"{field} must be greater than zero")
    return number


def _quantity(value, field: str) -> int:
    number = _positive(value, field)
    if number != number.to_integral_value():
        raise InvalidInput(field, f"{field} must be a whole number")
    return int(number)


def _vat_rate(value) -> Decimal:
    rate = _to_decimal(value, "vat_rate")
    if rate < 0 or rate > HUNDRED:
        raise InvalidInput("vat_rate", "vat_rate must be between 0 and 100")
    return rate


def _waste_rate(value) -> Decimal:
    rate = _to_decimal(value if value is not None else 0, "waste_rate")
    if rate < 0 or rate >= 1:
        raise InvalidInput("waste_rate", "waste_rate must be a fraction in [0, 1)")
    return rate


def _check_bounds(quantity: int, field: str, minimum: int = 1, maximum: Optional[int] = None) -> None:
    if quantity < minimum:
        raise InvalidInput(field, f"Minimum order quantity is {minimum}, got {quantity}")
    if maximum is not None and quantity > maximum:
        raise InvalidInput(field, f"Only {maximum} in stock, requested {quantity}")
