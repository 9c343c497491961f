"""
Sales — Django Admin Configuration

Invoices are browsable but not editable: cancellation goes through
SaleEngine so stock and loyalty are reversed with it.

@file sales/admin.py
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from .models import HeldSale, Sale, SaleItem


class SaleItemInline(admin.TabularInline):
    model = SaleItem
    extra = 0
    can_delete = False
    readonly_fields = (
        'product', 'batch', 'batch_number', 'quantity', 'unit_price',
        'tax_rate', 'tax_amount', 'discount', 'total',
    )

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = (
        'invoice_number', 'branch', 'customer', 'grand_total',
        'payment_method', 'payment_status', 'status', 'created_at',
    )
    list_filter = ('status', 'payment_method', 'payment_status', 'branch')
    search_fields = ('invoice_number', 'customer__name', 'customer__phone')
    readonly_fields = (
        'id', 'invoice_number', 'branch', 'customer', 'cashier',
        'subtotal', 'tax_total', 'discount', 'discount_type', 'discount_amount',
        'grand_total', 'payment_method', 'payment_status', 'status',
        'notes', 'cancelled_at', 'created_at', 'updated_at', 'created_by', 'updated_by',
    )
    list_select_related = ('branch', 'customer')
    date_hierarchy = 'created_at'
    ordering = ('-created_at',)
    inlines = [SaleItemInline]

    fieldsets = (
        (_('Invoice'), {
            'fields': ('id', 'invoice_number', 'branch', 'customer', 'cashier', 'status'),
        }),
        (_('Totals'), {
            'fields': (
                'subtotal', 'tax_total', 'discount', 'discount_type',
                'discount_amount', 'grand_total',
            ),
        }),
        (_('Payment'), {
            'fields': ('payment_method', 'payment_status'),
        }),
        (_('Audit'), {
            'fields': ('notes', 'cancelled_at', 'created_at', 'updated_at', 'created_by', 'updated_by'),
        }),
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(HeldSale)
class HeldSaleAdmin(admin.ModelAdmin):
    list_display = ('id', 'branch', 'cashier', 'customer', 'created_at')
    list_filter = ('branch',)
    readonly_fields = ('id', 'created_at', 'updated_at')
    ordering = ('-created_at',)
