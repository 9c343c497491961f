"""
Catalog — Django Admin Configuration

@file catalog/admin.py
"""

from django.contrib import admin

from .models import Category, Product


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ('name', 'tax_rate', 'created_at')
    search_fields = ('name',)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = (
        'sku', 'name', 'category', 'selling_price', 'purchase_price',
        'tax_rate', 'min_stock', 'is_active',
    )
    list_filter = ('is_active', 'category')
    search_fields = ('sku', 'barcode', 'name')
    readonly_fields = ('id', 'created_at', 'updated_at', 'created_by', 'updated_by')
    list_select_related = ('category',)
    list_per_page = 50
    ordering = ('name',)
