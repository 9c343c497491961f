"""
Customers — Django Admin Configuration

Loyalty fields are read-only; the sale engine owns them.

@file customers/admin.py
"""

from django.contrib import admin

from .models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ('name', 'phone', 'customer_type', 'loyalty_points', 'total_purchases', 'is_active')
    list_filter = ('customer_type', 'is_active')
    search_fields = ('name', 'phone', 'email')
    readonly_fields = (
        'id', 'loyalty_points', 'total_purchases',
        'created_at', 'updated_at', 'created_by', 'updated_by',
    )
    ordering = ('name',)
