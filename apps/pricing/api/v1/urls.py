from django.urls import path, include
from rest_framework.routers import DefaultRouter

from apps.pricing.api.v1.views import (
    BannerViewSet,
    BoxProductViewSet,
    CuttingFeeViewSet,
    ExchangeRateViewSet,
    OrderViewSet,
    PriceFormulaViewSet,
    ProductCategoryViewSet,
    ProductViewSet,
    QuoteViewSet,
    RollWidthViewSet,
    StandardPriceFormulaViewSet,
    StickerProductViewSet,
)

router = DefaultRouter()
router.register(r'categories', ProductCategoryViewSet, basename='category')
router.register(r'products', ProductViewSet, basename='product')
router.register(r'box-products', BoxProductViewSet, basename='box-product')
router.register(r'sticker-products', StickerProductViewSet, basename='sticker-product')
router.register(r'roll-widths', RollWidthViewSet, basename='roll-width')
router.register(r'banners', BannerViewSet, basename='banner')
router.register(r'rates', ExchangeRateViewSet, basename='exchange-rate')
router.register(r'standard-formulas', StandardPriceFormulaViewSet, basename='standard-formula')
router.register(r'formulas', PriceFormulaViewSet, basename='formula')
router.register(r'cutting-fees', CuttingFeeViewSet, basename='cutting-fee')
router.register(r'quotes', QuoteViewSet, basename='quote')
router.register(r'orders', OrderViewSet, basename='order')

urlpatterns = [
    path('', include(router.urls)),
]
