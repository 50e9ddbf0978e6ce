"""
Serializers for the pricing bounded context.
Handles validation and transformation between API and ORM layers.
"""

from decimal import Decimal

from rest_framework import serializers

from apps.pricing.domain.errors import FormulaEvaluationError
from apps.pricing.domain.formula import validate_formula
from apps.pricing.infrastructure.persistence.models import (
    Banner,
    BoxProduct,
    CuttingFee,
    ExchangeRate,
    FormulaKind,
    Order,
    OrderStatus,
    PriceFormula,
    Product,
    ProductCategory,
    RollWidth,
    StandardPriceFormula,
    StickerProduct,
)

META_FIELDS = ["id", "created_at", "updated_at"]


class ProductCategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductCategory
        fields = ["id", "name", "description", "display_order", "is_active", "created_at", "updated_at"]
        read_only_fields = META_FIELDS


class ProductSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source="category.name", read_only=True, default=None)

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "description",
            "category",
            "category_name",
            "product_type",
            "dimensions",
            "weight",
            "sale_unit",
            "sale_type",
            "base_price",
            "ton_price",
            "currency",
            "sheets_per_package",
            "vat_rate",
            "min_order_quantity",
            "stock_quantity",
            "formula",
            "specifications",
            "is_active",
            "display_order",
            "created_at",
            "updated_at",
        ]
        read_only_fields = META_FIELDS

    def validate_dimensions(self, value: str) -> str:
        try:
            Product(dimensions=value).dimensions_cm()
        except ValueError as e:
            raise serializers.ValidationError(str(e))
        return value

    def validate_weight(self, value):
        if value <= 0:
            raise serializers.ValidationError("Weight must be positive")
        return value

    def validate_ton_price(self, value):
        if value <= 0:
            raise serializers.ValidationError("Ton price must be positive")
        return value


class BoxProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = BoxProduct
        fields = [
            "id", "brand", "size", "weight", "price_per_box", "currency",
            "vat_rate", "stock_quantity", "is_active", "created_at", "updated_at",
        ]
        read_only_fields = META_FIELDS


class StickerProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = StickerProduct
        fields = [
            "id", "brand", "type", "price_per_sheet", "currency", "vat_rate",
            "moq", "stock_quantity", "is_active", "created_at", "updated_at",
        ]
        read_only_fields = META_FIELDS


class RollWidthSerializer(serializers.ModelSerializer):
    class Meta:
        model = RollWidth
        fields = ["id", "width", "is_active", "created_at", "updated_at"]
        read_only_fields = META_FIELDS


class BannerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Banner
        fields = ["id", "title", "image_url", "order_index", "is_active", "created_at", "updated_at"]
        read_only_fields = META_FIELDS


class ExchangeRateSerializer(serializers.ModelSerializer):
    class Meta:
        model = ExchangeRate
        fields = ["id", "currency", "rate", "created_at", "updated_at"]
        read_only_fields = META_FIELDS

    def validate_rate(self, value):
        if value <= 0:
            raise serializers.ValidationError("Rate must be positive")
        return value


class StandardPriceFormulaSerializer(serializers.ModelSerializer):
    class Meta:
        model = StandardPriceFormula
        fields = [
            "id", "product_type", "base_price_foreign", "weight_factor",
            "reference_weight", "reference_width_cm", "reference_height_cm",
            "vat_rate", "currency", "is_active", "created_at", "updated_at",
        ]
        read_only_fields = META_FIELDS

    def validate(self, attrs):
        for name in ("base_price_foreign", "reference_weight", "reference_width_cm", "reference_height_cm"):
            value = attrs.get(name)
            if value is not None and value <= 0:
                raise serializers.ValidationError({name: "Must be positive"})

        # Sheet price must stay positive for every weight above zero.
        weight_factor = attrs.get("weight_factor", getattr(self.instance, "weight_factor", Decimal("0")))
        reference_weight = attrs.get("reference_weight", getattr(self.instance, "reference_weight", Decimal("80")))
        if weight_factor < 0:
            raise serializers.ValidationError({"weight_factor": "Must not be negative"})
        if weight_factor * reference_weight >= 1:
            raise serializers.ValidationError(
                {"weight_factor": "weight_factor x reference_weight must be below 1"}
            )
        return attrs


class PriceFormulaSerializer(serializers.ModelSerializer):
    referenced_variables = serializers.SerializerMethodField()

    class Meta:
        model = PriceFormula
        fields = [
            "id", "name", "kind", "formula", "description", "variables",
            "referenced_variables", "is_active", "created_at", "updated_at",
        ]
        read_only_fields = META_FIELDS

    def get_referenced_variables(self, obj) -> list[str]:
        try:
            return sorted(validate_formula(obj.formula, obj.kind).names)
        except FormulaEvaluationError:
            return []

    def validate(self, attrs):
        kind = attrs.get("kind", getattr(self.instance, "kind", FormulaKind.STANDARD))
        formula = attrs.get("formula", getattr(self.instance, "formula", ""))
        try:
            validate_formula(formula, kind)
        except FormulaEvaluationError as e:
            raise serializers.ValidationError({"formula": e.message})
        return attrs


class FormulaPreviewSerializer(serializers.Serializer):
    formula = serializers.CharField()
    kind = serializers.ChoiceField(choices=FormulaKind.choices, default=FormulaKind.STANDARD)
    bindings = serializers.DictField(child=serializers.DecimalField(max_digits=20, decimal_places=6))


class CuttingFeeSerializer(serializers.ModelSerializer):
    class Meta:
        model = CuttingFee
        fields = ["id", "fee_per_package", "currency", "is_active", "created_at", "updated_at"]
        read_only_fields = ["id", "currency", "created_at", "updated_at"]


# Quote request payloads. Only types are checked here; ranges and reference
# data are checked by the calculators so every caller gets the same errors.

class StandardQuoteSerializer(serializers.Serializer):
    product_type = serializers.CharField()
    width_cm = serializers.DecimalField(max_digits=12, decimal_places=4)
    length_cm = serializers.DecimalField(max_digits=14, decimal_places=4)
    weight_gsm = serializers.DecimalField(max_digits=10, decimal_places=4)
    package_count = serializers.IntegerField()


class CustomCutQuoteSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    width_cm = serializers.DecimalField(max_digits=12, decimal_places=4)
    height_cm = serializers.DecimalField(max_digits=12, decimal_places=4)
    package_count = serializers.IntegerField()
    waste_rate = serializers.DecimalField(max_digits=5, decimal_places=4, required=False, default=Decimal("0"))


class UnitQuoteSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField()


class FormulaQuoteSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField()
    width_cm = serializers.DecimalField(max_digits=12, decimal_places=4, required=False)
    height_cm = serializers.DecimalField(max_digits=12, decimal_places=4, required=False)
    waste_rate = serializers.DecimalField(max_digits=5, decimal_places=4, required=False, default=Decimal("0"))


class OrderSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id", "order_number", "order_type", "product_id", "product_details",
            "quantity", "subtotal", "vat_rate", "vat_amount", "total",
            "exchange_rate", "pricing", "customer_name", "customer_email",
            "customer_phone", "company_name", "delivery_address", "delivery_city",
            "delivery_district", "delivery_phone", "notes", "status",
            "status_display", "created_at", "updated_at",
        ]
        read_only_fields = fields


class OrderContactSerializer(serializers.Serializer):
    customer_name = serializers.CharField(max_length=200)
    customer_email = serializers.EmailField()
    customer_phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")
    company_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    delivery_address = serializers.CharField()
    delivery_city = serializers.CharField(max_length=100)
    delivery_district = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    delivery_phone = serializers.CharField(max_length=20)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_delivery_phone(self, value: str) -> str:
        digits = value.replace(" ", "").replace("(", "").replace(")", "").replace("-", "")
        if not (10 <= len(digits) <= 15) or not all(c.isdigit() or c == "+" for c in digits):
            raise serializers.ValidationError("Enter a valid phone number")
        return value

    def validate(self, attrs):
        # Strip angle brackets from free text before it is stored.
        for name in ("customer_name", "company_name", "delivery_address", "delivery_city",
                     "delivery_district", "notes"):
            if attrs.get(name):
                attrs[name] = attrs[name].strip().replace("<", "").replace(">", "")
        return attrs


class OrderCreateSerializer(serializers.Serializer):
    order_type = serializers.ChoiceField(choices=["standard", "custom_cut", "box", "sheet", "formula"])
    quote = serializers.DictField()
    contact = OrderContactSerializer()

    QUOTE_SERIALIZERS = {
        "standard": StandardQuoteSerializer,
        "custom_cut": CustomCutQuoteSerializer,
        "box": UnitQuoteSerializer,
        "sheet": UnitQuoteSerializer,
        "formula": FormulaQuoteSerializer,
    }

    def validate(self, attrs):
        quote_serializer = self.QUOTE_SERIALIZERS[attrs["order_type"]](data=attrs["quote"])
        if not quote_serializer.is_valid():
            raise serializers.ValidationError({"quote": quote_serializer.errors})
        attrs["quote"] = quote_serializer.validated_data
        return attrs


class OrderTransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
