"""
ViewSets for the pricing API v1.
Catalogue and reference data are plain CRUD; quotes and orders go through
the domain services.
"""

import logging

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from apps.pricing.api.v1.serializers import (
    BannerSerializer,
    BoxProductSerializer,
    CustomCutQuoteSerializer,
    CuttingFeeSerializer,
    ExchangeRateSerializer,
    FormulaPreviewSerializer,
    FormulaQuoteSerializer,
    OrderCreateSerializer,
    OrderSerializer,
    OrderTransitionSerializer,
    PriceFormulaSerializer,
    ProductCategorySerializer,
    ProductSerializer,
    RollWidthSerializer,
    StandardPriceFormulaSerializer,
    StandardQuoteSerializer,
    StickerProductSerializer,
    UnitQuoteSerializer,
)
from apps.pricing.application.dto import OrderContactDTO
from apps.pricing.domain.errors import (
    FormulaEvaluationError,
    InvalidTransition,
    MissingReferenceData,
    PricingError,
)
from apps.pricing.domain.formula import preview_formula
from apps.pricing.domain.models import PricingMode, round_money
from apps.pricing.domain.services import OrderService, QuoteService
from apps.pricing.infrastructure.persistence.models import (
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
from apps.pricing.infrastructure.persistence.repositories import CuttingFeeRepository, OrderRepository

logger = logging.getLogger(__name__)


def pricing_error_response(error: PricingError) -> Response:
    """Typed error body; missing reference data is a server-side condition."""
    if isinstance(error, MissingReferenceData):
        http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(error, InvalidTransition):
        http_status = status.HTTP_409_CONFLICT
    else:
        http_status = status.HTTP_400_BAD_REQUEST
    return Response(error.as_dict(), status=http_status)


class ActiveFilterMixin:
    """``?active=true`` limits a listing to active rows."""

    def get_queryset(self):
        queryset = super().get_queryset()
        active = self.request.query_params.get('active')
        if active is not None:
            queryset = queryset.filter(is_active=active.lower() in ('1', 'true', 'yes'))
        return queryset


@extend_schema(tags=['Catalogue'])
class ProductCategoryViewSet(ActiveFilterMixin, viewsets.ModelViewSet):

    queryset = ProductCategory.objects.all()
    serializer_class = ProductCategorySerializer


@extend_schema(
    tags=['Catalogue'],
    parameters=[
        OpenApiParameter("category", OpenApiTypes.UUID, description="Filter by category id"),
        OpenApiParameter("product_type", OpenApiTypes.STR, description="Filter by product type"),
        OpenApiParameter("active", OpenApiTypes.BOOL, description="Only active / inactive products"),
    ],
)
class ProductViewSet(ActiveFilterMixin, viewsets.ModelViewSet):

    queryset = Product.objects.select_related("category").all()
    serializer_class = ProductSerializer

    def get_queryset(self):
        queryset = super().get_queryset()
        category = self.request.query_params.get('category')
        product_type = self.request.query_params.get('product_type')
        if category:
            queryset = queryset.filter(category_id=category)
        if product_type:
            queryset = queryset.filter(product_type=product_type)
        return queryset


@extend_schema(tags=['Catalogue'])
class BoxProductViewSet(ActiveFilterMixin, viewsets.ModelViewSet):

    queryset = BoxProduct.objects.all()
    serializer_class = BoxProductSerializer


@extend_schema(tags=['Catalogue'])
class StickerProductViewSet(ActiveFilterMixin, viewsets.ModelViewSet):

    queryset = StickerProduct.objects.all()
    serializer_class = StickerProductSerializer


@extend_schema(tags=['Catalogue'])
class RollWidthViewSet(ActiveFilterMixin, viewsets.ModelViewSet):

    queryset = RollWidth.objects.all()
    serializer_class = RollWidthSerializer


@extend_schema(tags=['Content'])
class BannerViewSet(ActiveFilterMixin, viewsets.ModelViewSet):

    queryset = Banner.objects.all()
    serializer_class = BannerSerializer


@extend_schema(tags=['Reference data'])
class ExchangeRateViewSet(viewsets.ModelViewSet):

    queryset = ExchangeRate.objects.all()
    serializer_class = ExchangeRateSerializer


@extend_schema(tags=['Reference data'])
class StandardPriceFormulaViewSet(ActiveFilterMixin, viewsets.ModelViewSet):

    queryset = StandardPriceFormula.objects.all()
    serializer_class = StandardPriceFormulaSerializer


@extend_schema(tags=['Reference data'])
class CuttingFeeViewSet(viewsets.ModelViewSet):

    queryset = CuttingFee.objects.all()
    serializer_class = CuttingFeeSerializer

    def perform_create(self, serializer):
        """A new active fee replaces the current one."""
        if serializer.validated_data.get("is_active", True):
            serializer.instance = CuttingFeeRepository.set_active(serializer.validated_data["fee_per_package"])
        else:
            serializer.save()

    @extend_schema(description="Currently active cutting fee")
    @action(detail=False, methods=['get'], url_path='active')
    def active(self, request):
        fee = CuttingFee.objects.filter(is_active=True).first()
        if fee is None:
            return Response(MissingReferenceData("cutting_fee").as_dict(), status=status.HTTP_404_NOT_FOUND)
        return Response(self.get_serializer(fee).data)


@extend_schema(tags=['Reference data'])
class PriceFormulaViewSet(ActiveFilterMixin, viewsets.ModelViewSet):

    queryset = PriceFormula.objects.all()
    serializer_class = PriceFormulaSerializer

    @extend_schema(
        request=FormulaPreviewSerializer,
        description="Evaluate a formula against sample values without saving it",
    )
    @action(detail=False, methods=['post'], url_path='preview')
    def preview(self, request):
        serializer = FormulaPreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = preview_formula(data["formula"], data["kind"], data["bindings"])
        except FormulaEvaluationError as e:
            return pricing_error_response(e)

        return Response({
            "formula": data["formula"],
            "kind": data["kind"],
            "result": str(result),
            "display": str(round_money(result)),
        })


@extend_schema(tags=['Quotes'])
class QuoteViewSet(viewsets.ViewSet):
    """
    Stateless quotes. Each call loads a fresh pricing context, so a quote
    reflects the reference data at the moment of the request.
    """

    def _quote(self, request, mode: PricingMode, serializer_class):
        serializer = serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            outcome = QuoteService.quote(mode, serializer.validated_data)
        except PricingError as e:
            logger.info("Quote rejected (%s): %s", mode.value, e.message)
            return pricing_error_response(e)

        return Response({
            **outcome.result.as_display(),
            "quantity": outcome.quantity,
            "product_id": outcome.product_id,
            "product_details": outcome.product_details,
        })

    @extend_schema(request=StandardQuoteSerializer, description="Roll/sheet paper priced by the standard formula")
    @action(detail=False, methods=['post'], url_path='standard')
    def standard(self, request):
        return self._quote(request, PricingMode.STANDARD, StandardQuoteSerializer)

    @extend_schema(request=CustomCutQuoteSerializer, description="Custom width x height cut from a product's ton price")
    @action(detail=False, methods=['post'], url_path='custom-cut')
    def custom_cut(self, request):
        return self._quote(request, PricingMode.CUSTOM_CUT, CustomCutQuoteSerializer)

    @extend_schema(request=UnitQuoteSerializer, description="Box products (A4) priced per box")
    @action(detail=False, methods=['post'], url_path='box')
    def box(self, request):
        return self._quote(request, PricingMode.BOX, UnitQuoteSerializer)

    @extend_schema(request=UnitQuoteSerializer, description="Sticker products priced per sheet")
    @action(detail=False, methods=['post'], url_path='sheet')
    def sheet(self, request):
        return self._quote(request, PricingMode.SHEET, UnitQuoteSerializer)

    @extend_schema(request=FormulaQuoteSerializer, description="Products priced by their admin formula")
    @action(detail=False, methods=['post'], url_path='formula')
    def formula(self, request):
        return self._quote(request, PricingMode.FORMULA, FormulaQuoteSerializer)


@extend_schema(
    tags=['Orders'],
    parameters=[OpenApiParameter("status", OpenApiTypes.STR, description="Filter by order status")],
)
class OrderViewSet(viewsets.ReadOnlyModelViewSet):

    queryset = Order.objects.all()
    serializer_class = OrderSerializer

    def get_queryset(self):
        return OrderRepository.by_status(self.request.query_params.get('status'))

    @extend_schema(request=OrderCreateSerializer, responses=OrderSerializer)
    def create(self, request):
        """
        Confirm an order. The quote is recomputed from current reference
        data and stored with the order; it is never recomputed afterwards.
        """
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        contact = OrderContactDTO(**data["contact"])

        try:
            order = OrderService.place_order(data["order_type"], data["quote"], contact)
        except PricingError as e:
            logger.info("Order rejected (%s): %s", data["order_type"], e.message)
            return pricing_error_response(e)

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=OrderTransitionSerializer, responses=OrderSerializer)
    @action(detail=True, methods=['post'], url_path='transition')
    def transition(self, request, pk=None):
        order = self.get_object()
        serializer = OrderTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            OrderService.transition(order, serializer.validated_data["status"])
        except InvalidTransition as e:
            return pricing_error_response(e)

        return Response(OrderSerializer(order).data)
