"""
Inventory — Django Admin Configuration

Batches and adjustments are read-only here: quantities only change
through the inventory services so every change lands in the ledger.

@file inventory/admin.py
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from .models import Batch, StockAdjustment


@admin.register(Batch)
class BatchAdmin(admin.ModelAdmin):
    list_display = (
        'product', 'branch', 'batch_number', 'quantity',
        'expiry_date', 'manufacturing_date', 'updated_at',
    )
    list_filter = ('branch', 'expiry_date')
    search_fields = ('batch_number', 'product__name', 'product__sku')
    readonly_fields = (
        'id', 'product', 'branch', 'batch_number', 'quantity',
        'expiry_date', 'manufacturing_date', 'created_at', 'updated_at',
    )
    list_select_related = ('product', 'branch')
    list_per_page = 50
    ordering = ('product__name', 'branch__code', 'expiry_date')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StockAdjustment)
class StockAdjustmentAdmin(admin.ModelAdmin):
    list_display = (
        'created_at', 'kind', 'product', 'branch', 'batch_number',
        'delta', 'previous_quantity', 'new_quantity', 'created_by',
    )
    list_filter = ('kind', 'branch', 'created_at')
    search_fields = ('batch_number', 'product__name', 'reason')
    readonly_fields = (
        'id', 'product', 'branch', 'batch', 'batch_number', 'kind',
        'quantity', 'delta', 'previous_quantity', 'new_quantity',
        'reason', 'created_by', 'created_at',
    )
    list_select_related = ('product', 'branch', 'created_by')
    show_full_result_count = False
    list_per_page = 50
    date_hierarchy = 'created_at'
    ordering = ('-created_at',)

    fieldsets = (
        (_('Adjustment'), {
            'fields': ('id', 'kind', 'quantity', 'delta', 'reason'),
        }),
        (_('Batch'), {
            'fields': ('product', 'branch', 'batch', 'batch_number', 'previous_quantity', 'new_quantity'),
        }),
        (_('Audit'), {
            'fields': ('created_by', 'created_at'),
        }),
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False  # INSERT ONLY

    def has_delete_permission(self, request, obj=None):
        return False  # INSERT ONLY
