"""
Django ORM models for persistence.
Catalogue, reference data and orders.
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from apps.pricing.domain.errors import FormulaEvaluationError
from apps.pricing.domain.formula import validate_formula


class BaseModel(models.Model):

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class CurrencyCode(models.TextChoices):
    TRY = "TRY", "Turkish Lira"
    USD = "USD", "US Dollar"
    EUR = "EUR", "Euro"


class ForeignCurrency(models.TextChoices):
    USD = "USD", "US Dollar"
    EUR = "EUR", "Euro"


def vat_rate_field(default="20"):
    return models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal(default),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
        help_text="VAT percentage (0-100).",
    )


class ExchangeRate(BaseModel):
    """TRY value of one unit of a foreign currency. One row per currency."""

    currency = models.CharField(max_length=3, choices=ForeignCurrency.choices, unique=True)
    rate = models.DecimalField(
        max_digits=18,
        decimal_places=6,
        validators=[MinValueValidator(Decimal("0.000001"))],
    )

    class Meta:
        ordering = ["currency"]

    def __str__(self):
        return f"{self.currency}/TRY = {self.rate}"


class StandardPriceFormula(BaseModel):
    """Weight-adjusted sheet price used by the standard roll/sheet calculator."""

    product_type = models.CharField(max_length=100, unique=True)
    base_price_foreign = models.DecimalField(max_digits=12, decimal_places=4)
    weight_factor = models.DecimalField(max_digits=10, decimal_places=6, default=Decimal("0"))
    reference_weight = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal("80"))
    reference_width_cm = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal("70"))
    reference_height_cm = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal("100"))
    vat_rate = vat_rate_field()
    currency = models.CharField(max_length=3, choices=CurrencyCode.choices, default=CurrencyCode.USD)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["product_type"]

    def __str__(self):
        return f"{self.product_type} ({self.base_price_foreign} {self.currency})"

    def clean(self):
        super().clean()
        if self.weight_factor is None or self.reference_weight is None:
            return
        if self.weight_factor < 0:
            raise ValidationError({"weight_factor": "Must not be negative"})
        if self.weight_factor * self.reference_weight >= 1:
            raise ValidationError({"weight_factor": "weight_factor x reference_weight must be below 1"})


class FormulaKind(models.TextChoices):
    STANDARD = "standard", "Standard"
    CUSTOM_CUT = "custom_cut", "Custom cut"


class PriceFormula(BaseModel):
    """Admin-authored arithmetic expression evaluated per quote."""

    name = models.CharField(max_length=100, unique=True)
    kind = models.CharField(max_length=20, choices=FormulaKind.choices, default=FormulaKind.STANDARD)
    formula = models.TextField()
    description = models.TextField(blank=True, default="")
    variables = models.JSONField(
        default=dict,
        blank=True,
        help_text="Variable name -> description, shown to admins.",
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    def clean(self):
        super().clean()
        try:
            validate_formula(self.formula, self.kind)
        except FormulaEvaluationError as e:
            raise ValidationError({"formula": e.message})


class CuttingFee(BaseModel):

    fee_per_package = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )
    currency = models.CharField(max_length=3, choices=CurrencyCode.choices, default=CurrencyCode.TRY)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["-updated_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["is_active"],
                condition=models.Q(is_active=True),
                name="single_active_cutting_fee",
            )
        ]

    def __str__(self):
        return f"{self.fee_per_package} {self.currency} per package"


class ProductCategory(BaseModel):

    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True, default="")
    display_order = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name_plural = "product categories"
        ordering = ["display_order", "name"]

    def __str__(self):
        return self.name


class SaleUnit(models.TextChoices):
    PACKAGE = "package", "Package"
    SHEET = "sheet", "Sheet"
    BOX = "box", "Box"


class Product(BaseModel):

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    category = models.ForeignKey(
        ProductCategory,
        related_name="products",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    product_type = models.CharField(max_length=100, db_index=True)
    dimensions = models.CharField(max_length=30, help_text="Width x height in cm, e.g. 70x100")
    weight = models.DecimalField(max_digits=8, decimal_places=2, help_text="Grams per square meter")
    sale_unit = models.CharField(max_length=10, choices=SaleUnit.choices, default=SaleUnit.PACKAGE)
    sale_type = models.CharField(max_length=50, blank=True, default="")
    base_price = models.DecimalField(max_digits=12, decimal_places=4, default=Decimal("0"))
    ton_price = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, choices=CurrencyCode.choices, default=CurrencyCode.USD)
    sheets_per_package = models.PositiveIntegerField(default=1)
    vat_rate = vat_rate_field()
    min_order_quantity = models.PositiveIntegerField(default=1)
    stock_quantity = models.PositiveIntegerField(null=True, blank=True)
    formula = models.ForeignKey(
        PriceFormula,
        related_name="products",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    specifications = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True)
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["display_order", "product_type", "weight"]

    def __str__(self):
        return f"{self.name} {self.dimensions} {self.weight}g"

    def clean(self):
        super().clean()
        try:
            self.dimensions_cm()
        except ValueError as e:
            raise ValidationError({"dimensions": str(e)})

    def dimensions_cm(self) -> tuple[Decimal, Decimal]:
        """Parse '70x100' (also '70 X 100', '70×100') into (width, height)."""
        raw = (self.dimensions or "").lower().replace("×", "x").replace(",", ".")
        parts = [p.strip() for p in raw.split("x")]
        if len(parts) != 2:
            raise ValueError(f"Dimensions must look like 70x100, got '{self.dimensions}'")
        try:
            width, height = Decimal(parts[0]), Decimal(parts[1])
        except ArithmeticError:
            raise ValueError(f"Dimensions must be numeric, got '{self.dimensions}'")
        if not (width.is_finite() and height.is_finite()):
            raise ValueError(f"Dimensions must be numeric, got '{self.dimensions}'")
        if width <= 0 or height <= 0:
            raise ValueError("Dimensions must be positive")
        return width, height


class BoxProduct(BaseModel):
    """A4 ream boxes sold per box."""

    brand = models.CharField(max_length=100)
    size = models.CharField(max_length=20, default="A4")
    weight = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal("80"))
    price_per_box = models.DecimalField(max_digits=12, decimal_places=4)
    currency = models.CharField(max_length=3, choices=CurrencyCode.choices, default=CurrencyCode.EUR)
    vat_rate = vat_rate_field()
    stock_quantity = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["brand"]

    def __str__(self):
        return f"{self.brand} {self.size} {self.weight}g"


class StickerProduct(BaseModel):
    """Sticker sheets sold per sheet above a minimum order quantity."""

    brand = models.CharField(max_length=100)
    type = models.CharField(max_length=100)
    price_per_sheet = models.DecimalField(max_digits=12, decimal_places=4)
    currency = models.CharField(max_length=3, choices=CurrencyCode.choices, default=CurrencyCode.EUR)
    vat_rate = vat_rate_field()
    moq = models.PositiveIntegerField(default=1, help_text="Minimum order quantity in sheets")
    stock_quantity = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["brand", "type"]

    def __str__(self):
        return f"{self.brand} {self.type}"


class RollWidth(BaseModel):

    width = models.PositiveIntegerField(unique=True, validators=[MinValueValidator(50)])
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["width"]

    def __str__(self):
        return f"{self.width} cm"


class Banner(BaseModel):

    title = models.CharField(max_length=200, blank=True, null=True)
    image_url = models.URLField(max_length=500)
    order_index = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["order_index"]

    def __str__(self):
        return self.title or self.image_url


class OrderType(models.TextChoices):
    STANDARD = "standard", "Standard"
    CUSTOM_CUT = "custom_cut", "Custom cut"
    BOX = "box", "Box (A4)"
    SHEET = "sheet", "Sheet (sticker)"
    FORMULA = "formula", "Formula"


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}


class Order(BaseModel):
    """
    A confirmed order. The pricing columns are a frozen copy of the quote
    taken at creation and are never recomputed.
    """

    order_number = models.CharField(max_length=20, unique=True, editable=False)
    order_type = models.CharField(max_length=20, choices=OrderType.choices)
    product_id = models.UUIDField(null=True, blank=True)
    product_details = models.JSONField(default=dict, blank=True)
    quantity = models.PositiveIntegerField()

    subtotal = models.DecimalField(max_digits=14, decimal_places=2)
    vat_rate = models.DecimalField(max_digits=5, decimal_places=2)
    vat_amount = models.DecimalField(max_digits=14, decimal_places=2)
    total = models.DecimalField(max_digits=14, decimal_places=2)
    exchange_rate = models.DecimalField(max_digits=18, decimal_places=6, null=True, blank=True)
    pricing = models.JSONField(default=dict, help_text="Unrounded quote snapshot")

    customer_name = models.CharField(max_length=200)
    customer_email = models.EmailField()
    customer_phone = models.CharField(max_length=20, blank=True, default="")
    company_name = models.CharField(max_length=200, blank=True, default="")
    delivery_address = models.TextField()
    delivery_city = models.CharField(max_length=100)
    delivery_district = models.CharField(max_length=100, blank=True, default="")
    delivery_phone = models.CharField(max_length=20)
    notes = models.TextField(blank=True, default="")

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        db_index=True,
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.order_number} ({self.get_status_display()})"

    def can_transition_to(self, status: str) -> bool:
        return status in ORDER_TRANSITIONS[OrderStatus(self.status)]
