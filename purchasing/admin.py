"""
Purchasing — Django Admin Configuration

@file purchasing/admin.py
"""

from django.contrib import admin

from .models import PurchaseOrder, PurchaseOrderItem, Supplier


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ('name', 'contact_person', 'phone', 'email', 'payment_terms', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('name', 'contact_person', 'phone', 'email')
    readonly_fields = ('id', 'created_at', 'updated_at', 'created_by', 'updated_by')
    ordering = ('name',)


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 0
    can_delete = False
    readonly_fields = (
        'product', 'quantity', 'received_quantity', 'unit_price',
        'batch_number', 'expiry_date', 'manufacturing_date',
    )

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = (
        'po_number', 'supplier', 'branch', 'status', 'total_amount',
        'order_date', 'expected_delivery', 'received_date',
    )
    list_filter = ('status', 'branch', 'supplier')
    search_fields = ('po_number', 'supplier__name')
    readonly_fields = (
        'id', 'po_number', 'supplier', 'branch', 'status', 'total_amount',
        'order_date', 'received_date', 'created_at', 'updated_at', 'created_by', 'updated_by',
    )
    list_select_related = ('supplier', 'branch')
    ordering = ('-created_at',)
    inlines = [PurchaseOrderItemInline]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
