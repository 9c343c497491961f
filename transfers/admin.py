"""
Transfers — Django Admin Configuration

Read-only: status changes go through TransferEngine so completion
moves the stock.

@file transfers/admin.py
"""

from django.contrib import admin

from .models import StockTransfer, StockTransferItem


class StockTransferItemInline(admin.TabularInline):
    model = StockTransferItem
    extra = 0
    can_delete = False
    readonly_fields = ('product', 'quantity', 'batch_number', 'destination_batch_number')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(StockTransfer)
class StockTransferAdmin(admin.ModelAdmin):
    list_display = (
        'transfer_number', 'from_branch', 'to_branch', 'status', 'created_at', 'completed_at',
    )
    list_filter = ('status', 'from_branch', 'to_branch')
    search_fields = ('transfer_number',)
    readonly_fields = (
        'id', 'transfer_number', 'from_branch', 'to_branch', 'status', 'notes',
        'completed_at', 'created_at', 'updated_at', 'created_by', 'updated_by',
    )
    list_select_related = ('from_branch', 'to_branch')
    ordering = ('-created_at',)
    inlines = [StockTransferItemInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
