"""
Branches — Django Admin Configuration

@file branches/admin.py
"""

from django.contrib import admin

from .models import Branch


@admin.register(Branch)
class BranchAdmin(admin.ModelAdmin):
    list_display = ('name', 'code', 'status', 'manager_name', 'phone', 'created_at')
    list_filter = ('status',)
    search_fields = ('name', 'code', 'address', 'phone')
    readonly_fields = ('id', 'created_at', 'updated_at', 'created_by', 'updated_by')
    ordering = ('name',)
