"""
Pure domain entities (POPOs).
No dependency on Django or the ORM.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from apps.pricing.domain.errors import MissingReferenceData

BASE_CURRENCY = "TRY"
TWO_PLACES = Decimal("0.01")

# Detail fields holding TRY amounts; every other detail is shown unrounded.
MONEY_DETAIL_KEYS = frozenset({
    "price_per_unit",
    "price_per_sheet_try",
    "base_price",
    "waste_amount",
    "cutting_fee_total",
    "formula_result",
})


class PricingMode(str, Enum):
    STANDARD = "standard"
    CUSTOM_CUT = "custom_cut"
    BOX = "box"
    SHEET = "sheet"
    FORMULA = "formula"


@dataclass(frozen=True)
class ExchangeRateSnapshot:

    currency: str
    rate: Decimal

    def __post_init__(self):
        if len(self.currency) != 3:
            raise ValueError(f"Currency code must be exactly 3 characters, got '{self.currency}'")
        if self.rate <= 0:
            raise ValueError(f"rate must be positive, got {self.rate}")


@dataclass(frozen=True)
class StandardFormula:
    """Linear weight-adjusted sheet price for one product type."""

    product_type: str
    base_price_foreign: Decimal
    weight_factor: Decimal
    vat_rate: Decimal
    currency: str
    reference_weight: Decimal = Decimal("80")
    reference_width_cm: Decimal = Decimal("70")
    reference_height_cm: Decimal = Decimal("100")

    @property
    def sheet_area(self) -> Decimal:
        return self.reference_width_cm * self.reference_height_cm


@dataclass(frozen=True)
class CuttingFee:

    fee_per_package: Decimal
    currency: str = BASE_CURRENCY
    is_active: bool = True


@dataclass(frozen=True)
class PricingContext:
    """
    Read-only snapshot of the reference data a quote depends on.

    Built once per request and handed to every calculator function;
    calculators never look reference data up on their own.
    """

    exchange_rates: Mapping[str, Decimal] = field(default_factory=dict)
    standard_formulas: Mapping[str, StandardFormula] = field(default_factory=dict)
    cutting_fee: Optional[CuttingFee] = None
    captured_at: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(
            self,
            "exchange_rates",
            MappingProxyType({code.upper(): Decimal(str(rate)) for code, rate in self.exchange_rates.items()}),
        )
        object.__setattr__(self, "standard_formulas", MappingProxyType(dict(self.standard_formulas)))

    def rate_for(self, currency: str) -> Decimal:
        code = (currency or "").upper()
        if code == BASE_CURRENCY:
            return Decimal("1")
        rate = self.exchange_rates.get(code)
        if rate is None or rate <= 0:
            raise MissingReferenceData("exchange_rate", code or "?")
        return rate

    def formula_for(self, product_type: str) -> StandardFormula:
        formula = self.standard_formulas.get(product_type)
        if formula is None:
            raise MissingReferenceData("standard_formula", product_type)
        return formula

    def require_cutting_fee(self) -> CuttingFee:
        if self.cutting_fee is None or not self.cutting_fee.is_active:
            raise MissingReferenceData("cutting_fee")
        return self.cutting_fee

    def variables(self) -> dict[str, Decimal]:
        """Rate bindings available to admin formulas."""
        bindings = {}
        for code in ("USD", "EUR"):
            if code in self.exchange_rates:
                bindings[f"{code.lower()}_rate"] = self.exchange_rates[code]
        return bindings


@dataclass(frozen=True)
class StandardPaperRequest:
    product_type: str
    width_cm: Decimal
    length_cm: Decimal
    weight_gsm: Decimal
    package_count: int


@dataclass(frozen=True)
class CustomCutRequest:
    width_cm: Decimal
    height_cm: Decimal
    weight_gsm: Decimal
    ton_price: Decimal
    currency: str
    sheets_per_package: int
    package_count: int
    vat_rate: Decimal
    waste_rate: Decimal = Decimal("0")


@dataclass(frozen=True)
class BoxProductRequest:
    price_per_box: Decimal
    currency: str
    box_count: int
    vat_rate: Decimal
    stock_quantity: Optional[int] = None


@dataclass(frozen=True)
class SheetProductRequest:
    price_per_sheet: Decimal
    currency: str
    sheet_count: int
    vat_rate: Decimal
    min_order_quantity: int = 1
    stock_quantity: Optional[int] = None


@dataclass(frozen=True)
class FormulaRequest:
    """Quote driven by an admin-authored expression."""

    expression: str
    variables: Mapping[str, Decimal]
    vat_rate: Decimal
    kind: str = "standard"
    waste_rate: Decimal = Decimal("0")
    min_order_quantity: Optional[int] = None
    stock_quantity: Optional[int] = None


@dataclass(frozen=True)
class QuoteResult:

    mode: PricingMode
    subtotal: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    total: Decimal
    details: Mapping[str, object] = field(default_factory=dict)

    def rounded_totals(self) -> tuple[Decimal, Decimal, Decimal]:
        """Subtotal and VAT rounded to cents; the total is their sum so the figures add up."""
        subtotal = round_money(self.subtotal)
        vat_amount = round_money(self.vat_amount)
        return subtotal, vat_amount, subtotal + vat_amount

    def as_display(self) -> dict:
        """Money values rounded to two places; the only place rounding happens."""
        display_details = {}
        for key, value in self.details.items():
            if key in MONEY_DETAIL_KEYS and isinstance(value, Decimal):
                display_details[key] = str(round_money(value))
            elif isinstance(value, Decimal):
                display_details[key] = str(value)
            else:
                display_details[key] = value
        subtotal, vat_amount, total = self.rounded_totals()
        return {
            "mode": self.mode.value,
            "subtotal": str(subtotal),
            "vat_rate": str(self.vat_rate),
            "vat_amount": str(vat_amount),
            "total": str(total),
            "details": display_details,
        }

    def as_snapshot(self) -> dict:
        """Unrounded values for persisting alongside an order."""
        return {
            "mode": self.mode.value,
            "subtotal": str(self.subtotal),
            "vat_rate": str(self.vat_rate),
            "vat_amount": str(self.vat_amount),
            "total": str(self.total),
            "details": {k: str(v) if isinstance(v, Decimal) else v for k, v in self.details.items()},
        }


def round_money(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
