"""
Django Admin configuration for the pricing app.
Reference data, catalogue, content and order fulfilment.
"""

from django.contrib import admin, messages
from django.utils.html import format_html

from apps.pricing.domain.errors import InvalidTransition
from apps.pricing.domain.services import OrderService
from apps.pricing.infrastructure.persistence.models import (
    Banner,
    BoxProduct,
    CuttingFee,
    ExchangeRate,
    Order,
    OrderStatus,
    PriceFormula,
    Product,
    ProductCategory,
    RollWidth,
    StandardPriceFormula,
    StickerProduct,
)

METADATA_FIELDSET = ('Metadata', {
    'fields': ('id', 'created_at', 'updated_at'),
    'classes': ('collapse',)
})


@admin.register(ExchangeRate)
class ExchangeRateAdmin(admin.ModelAdmin):

    list_display = ('currency', 'rate', 'updated_at')
    readonly_fields = ('id', 'created_at', 'updated_at')
    ordering = ('currency',)


@admin.register(StandardPriceFormula)
class StandardPriceFormulaAdmin(admin.ModelAdmin):

    list_display = ('product_type', 'base_price_foreign', 'currency', 'weight_factor', 'vat_rate', 'is_active')
    list_filter = ('is_active', 'currency')
    search_fields = ('product_type',)
    readonly_fields = ('id', 'created_at', 'updated_at')

    fieldsets = (
        ('Formula', {
            'fields': ('product_type', 'base_price_foreign', 'currency', 'weight_factor', 'vat_rate', 'is_active')
        }),
        ('Reference sheet', {
            'fields': ('reference_weight', 'reference_width_cm', 'reference_height_cm')
        }),
        METADATA_FIELDSET,
    )


@admin.register(PriceFormula)
class PriceFormulaAdmin(admin.ModelAdmin):
    """Expressions are validated by PriceFormula.clean() on save."""

    list_display = ('name', 'kind', 'formula', 'get_status')
    list_filter = ('kind', 'is_active')
    search_fields = ('name', 'formula')
    readonly_fields = ('id', 'created_at', 'updated_at')

    fieldsets = (
        ('Formula', {
            'fields': ('name', 'kind', 'formula', 'description', 'variables', 'is_active')
        }),
        METADATA_FIELDSET,
    )

    def get_status(self, obj):
        if obj.is_active:
            return format_html('<span style="color: green; font-weight: bold;">● Active</span>')
        return format_html('<span style="color: red;">○ Inactive</span>')
    get_status.short_description = 'Status'


@admin.register(CuttingFee)
class CuttingFeeAdmin(admin.ModelAdmin):

    list_display = ('fee_per_package', 'currency', 'is_active', 'updated_at')
    list_filter = ('is_active',)
    readonly_fields = ('id', 'currency', 'created_at', 'updated_at')


@admin.register(ProductCategory)
class ProductCategoryAdmin(admin.ModelAdmin):

    list_display = ('name', 'display_order', 'is_active')
    list_editable = ('display_order', 'is_active')
    search_fields = ('name',)
    ordering = ('display_order', 'name')


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):

    list_display = (
        'name',
        'product_type',
        'dimensions',
        'weight',
        'ton_price',
        'currency',
        'sale_unit',
        'vat_rate',
        'is_active',
    )
    list_filter = ('is_active', 'product_type', 'sale_unit', 'currency', 'category')
    search_fields = ('name', 'product_type', 'dimensions')
    readonly_fields = ('id', 'created_at', 'updated_at')
    autocomplete_fields = ('category',)
    actions = ['activate_products', 'deactivate_products']

    fieldsets = (
        ('Product', {
            'fields': ('name', 'description', 'category', 'product_type', 'dimensions', 'weight', 'specifications')
        }),
        ('Pricing', {
            'fields': (
                'sale_unit',
                'sale_type',
                'base_price',
                'ton_price',
                'currency',
                'sheets_per_package',
                'vat_rate',
                'formula',
            )
        }),
        ('Availability', {
            'fields': ('min_order_quantity', 'stock_quantity', 'is_active', 'display_order')
        }),
        METADATA_FIELDSET,
    )

    @admin.action(description='Activate selected products')
    def activate_products(self, request, queryset):
        updated = queryset.update(is_active=True)
        self.message_user(request, f'{updated} product(s) activated.')

    @admin.action(description='Deactivate selected products')
    def deactivate_products(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f'{updated} product(s) deactivated.')


@admin.register(BoxProduct)
class BoxProductAdmin(admin.ModelAdmin):

    list_display = ('brand', 'size', 'weight', 'price_per_box', 'currency', 'vat_rate', 'stock_quantity', 'is_active')
    list_filter = ('is_active', 'currency')
    search_fields = ('brand',)


@admin.register(StickerProduct)
class StickerProductAdmin(admin.ModelAdmin):

    list_display = ('brand', 'type', 'price_per_sheet', 'currency', 'vat_rate', 'moq', 'stock_quantity', 'is_active')
    list_filter = ('is_active', 'currency')
    search_fields = ('brand', 'type')


@admin.register(RollWidth)
class RollWidthAdmin(admin.ModelAdmin):

    list_display = ('width', 'is_active')
    list_editable = ('is_active',)


@admin.register(Banner)
class BannerAdmin(admin.ModelAdmin):

    list_display = ('__str__', 'order_index', 'is_active')
    list_editable = ('order_index', 'is_active')


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Orders are created by customers; admins only move them through statuses."""

    list_display = (
        'order_number',
        'order_type',
        'customer_name',
        'company_name',
        'quantity',
        'total',
        'get_status',
        'created_at',
    )
    list_filter = ('status', 'order_type', 'created_at')
    search_fields = ('order_number', 'customer_name', 'customer_email', 'company_name')
    date_hierarchy = 'created_at'
    actions = ['approve_orders', 'complete_orders', 'cancel_orders']

    readonly_fields = (
        'id',
        'order_number',
        'order_type',
        'product_id',
        'product_details',
        'quantity',
        'subtotal',
        'vat_rate',
        'vat_amount',
        'total',
        'exchange_rate',
        'pricing',
        'status',
        'created_at',
        'updated_at',
    )

    fieldsets = (
        ('Order', {
            'fields': ('order_number', 'order_type', 'status', 'product_id', 'product_details', 'quantity')
        }),
        ('Pricing (frozen at confirmation)', {
            'fields': ('subtotal', 'vat_rate', 'vat_amount', 'total', 'exchange_rate', 'pricing')
        }),
        ('Customer', {
            'fields': ('customer_name', 'customer_email', 'customer_phone', 'company_name')
        }),
        ('Delivery', {
            'fields': ('delivery_address', 'delivery_city', 'delivery_district', 'delivery_phone', 'notes')
        }),
        METADATA_FIELDSET,
    )

    STATUS_COLORS = {
        OrderStatus.PENDING: 'orange',
        OrderStatus.PROCESSING: 'blue',
        OrderStatus.COMPLETED: 'green',
        OrderStatus.CANCELLED: 'red',
    }

    def has_add_permission(self, request):
        return False

    def get_status(self, obj):
        color = self.STATUS_COLORS.get(obj.status, 'gray')
        return format_html('<span style="color: {};">● {}</span>', color, obj.get_status_display())
    get_status.short_description = 'Status'
    get_status.admin_order_field = 'status'

    def _transition(self, request, queryset, status):
        changed = 0
        for order in queryset:
            try:
                OrderService.transition(order, status)
                changed += 1
            except InvalidTransition as e:
                self.message_user(request, f'{order.order_number}: {e.message}', level=messages.WARNING)
        if changed:
            self.message_user(request, f'{changed} order(s) moved to {status}.')

    @admin.action(description='Approve & process selected orders')
    def approve_orders(self, request, queryset):
        self._transition(request, queryset, OrderStatus.PROCESSING)

    @admin.action(description='Mark selected orders as completed')
    def complete_orders(self, request, queryset):
        self._transition(request, queryset, OrderStatus.COMPLETED)

    @admin.action(description='Cancel selected orders (no stock)')
    def cancel_orders(self, request, queryset):
        self._transition(request, queryset, OrderStatus.CANCELLED)
