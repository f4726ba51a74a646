from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _
from unfold.admin import ModelAdmin, TabularInline
from unfold.decorators import display
from unfold.contrib.filters.admin import RangeDateFilter, RangeDateTimeFilter, RangeNumericFilter

from .models import (
    Category, Product, Ingredient, ProductRecipe, InventoryMovement, IngredientMovement,
    InventoryTransfer, ProductManufacturing, Sale, SaleItem,
)


class ReadOnlyAdminMixin:
    """Ledger rows are append-only; the admin only browses them."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class ProductRecipeInline(TabularInline):
    model = ProductRecipe
    extra = 0
    fields = ('ingredient', 'quantity_needed', 'unit', 'notes')
    autocomplete_fields = ['ingredient']


class SaleItemInline(TabularInline):
    model = SaleItem
    extra = 0
    can_delete = False
    readonly_fields = ('product', 'product_name', 'quantity', 'unit_price', 'subtotal')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Category)
class CategoryAdmin(ModelAdmin):
    list_display = ['id', 'name', 'company', 'active_badge', 'product_count', 'created_at']
    list_filter = ['is_active', 'company', ('created_at', RangeDateFilter)]
    search_fields = ['name', 'description']
    list_filter_submit = True

    @display(description=_("Status"), label=True)
    def active_badge(self, obj):
        if obj.is_active:
            return 'success', _("Active")
        return 'warning', _("Inactive")

    @display(description=_("Products"))
    def product_count(self, obj):
        return obj.products.count()


@admin.register(Product)
class ProductAdmin(ModelAdmin):
    list_display = ['id', 'name', 'sku', 'store', 'price_display', 'stock_display',
                    'composite_badge', 'is_active']
    list_filter = [
        'store',
        'is_composite',
        'is_active',
        'category',
        ('default_price', RangeNumericFilter),
    ]
    search_fields = ['name', 'sku', 'barcode']
    list_filter_submit = True
    list_fullwidth = True
    inlines = [ProductRecipeInline]
    readonly_fields = ['stock_quantity', 'recipe_cost', 'is_composite', 'created_by', 'created_at', 'updated_at']

    fieldsets = (
        (_('Product Information'), {
            'fields': ('store', 'category', 'name', 'description', 'sku', 'barcode'),
            'classes': ['tab'],
        }),
        (_('Pricing'), {
            'fields': ('default_price', 'manila_price', 'delivery_price', 'wholesale_price'),
            'classes': ['tab'],
        }),
        (_('Stock'), {
            'fields': ('stock_quantity', 'min_stock_level', 'max_stock_level', 'is_composite', 'recipe_cost'),
            'classes': ['tab'],
        }),
        (_('Catalog'), {
            'fields': ('unit', 'weight', 'dimensions', 'image_url', 'images', 'tags', 'is_featured', 'is_active'),
            'classes': ['tab'],
        }),
    )

    @display(description=_("Price"), ordering='default_price')
    def price_display(self, obj):
        return f"{obj.default_price:.2f}"

    @display(description=_("Stock"), ordering='stock_quantity')
    def stock_display(self, obj):
        if obj.stock_quantity is None:
            return "-"
        return obj.stock_quantity.normalize()

    @display(description=_("Type"), label=True)
    def composite_badge(self, obj):
        if obj.is_composite:
            return 'info', _("Composite")
        return 'success', _("Simple")


@admin.register(Ingredient)
class IngredientAdmin(ModelAdmin):
    list_display = ['id', 'name', 'sku', 'store', 'stock_display', 'unit', 'level_badge', 'is_active']
    list_filter = ['store', 'is_active']
    search_fields = ['name', 'sku', 'supplier']
    list_filter_submit = True
    readonly_fields = ['stock_quantity', 'created_by', 'created_at', 'updated_at']

    @display(description=_("Stock"), ordering='stock_quantity')
    def stock_display(self, obj):
        return obj.stock_quantity.normalize()

    @display(description=_("Level"), label=True)
    def level_badge(self, obj):
        if obj.stock_quantity <= 0:
            return 'danger', _("Out")
        if obj.stock_quantity <= obj.min_stock_level:
            return 'warning', _("Low")
        return 'success', _("OK")


@admin.register(InventoryMovement)
class InventoryMovementAdmin(ReadOnlyAdminMixin, ModelAdmin):
    list_display = ['id', 'product_link', 'store', 'movement_type', 'reference_type',
                    'quantity', 'previous_stock', 'new_stock', 'created_at']
    list_filter = [
        'movement_type',
        'reference_type',
        'store',
        ('created_at', RangeDateTimeFilter),
    ]
    search_fields = ['product__name', 'product__sku', 'notes']
    list_filter_submit = True
    list_fullwidth = True

    @display(description=_("Product"))
    def product_link(self, obj):
        url = reverse('admin:stock_product_change', args=[obj.product_id])
        return format_html('<a href="{}">{}</a>', url, obj.product)


@admin.register(IngredientMovement)
class IngredientMovementAdmin(ReadOnlyAdminMixin, ModelAdmin):
    list_display = ['id', 'ingredient', 'store', 'movement_type', 'reference_type',
                    'quantity', 'previous_stock', 'new_stock', 'created_at']
    list_filter = [
        'movement_type',
        'reference_type',
        'store',
        ('created_at', RangeDateTimeFilter),
    ]
    search_fields = ['ingredient__name', 'ingredient__sku', 'notes']
    list_filter_submit = True


@admin.register(InventoryTransfer)
class InventoryTransferAdmin(ReadOnlyAdminMixin, ModelAdmin):
    list_display = ['transfer_number', 'product', 'from_store', 'to_store', 'quantity',
                    'status_badge', 'created_at']
    list_filter = ['status', ('created_at', RangeDateTimeFilter)]
    search_fields = ['transfer_number', 'product__name', 'product__sku']
    list_filter_submit = True

    @display(description=_("Status"), label=True)
    def status_badge(self, obj):
        colors = {
            InventoryTransfer.Status.PENDING: 'info',
            InventoryTransfer.Status.APPROVED: 'warning',
            InventoryTransfer.Status.COMPLETED: 'success',
            InventoryTransfer.Status.REJECTED: 'danger',
        }
        return colors.get(obj.status, 'info'), obj.get_status_display()


@admin.register(ProductManufacturing)
class ProductManufacturingAdmin(ReadOnlyAdminMixin, ModelAdmin):
    list_display = ['batch_number', 'product', 'store', 'quantity_produced', 'expiry_date', 'created_at']
    list_filter = ['store', ('created_at', RangeDateTimeFilter)]
    search_fields = ['batch_number', 'product__name']


@admin.register(Sale)
class SaleAdmin(ReadOnlyAdminMixin, ModelAdmin):
    list_display = ['receipt_number', 'store', 'cashier', 'payment_method',
                    'total_display', 'items_count', 'created_at']
    list_filter = [
        'store',
        'payment_method',
        ('created_at', RangeDateTimeFilter),
        ('total_amount', RangeNumericFilter),
    ]
    search_fields = ['receipt_number', 'customer_name']
    list_filter_submit = True
    inlines = [SaleItemInline]

    @display(description=_("Total"), ordering='total_amount')
    def total_display(self, obj):
        return f"{obj.total_amount:.2f}"

    @display(description=_("Items"))
    def items_count(self, obj):
        return obj.items.count()
