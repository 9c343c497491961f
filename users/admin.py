"""
Users — Django Admin Configuration

Staff accounts grouped by home branch and role.

@file users/admin.py
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import User


@admin.register(User)
class StaffAdmin(BaseUserAdmin):
    list_display = ('phone', 'full_name', 'role', 'branch', 'is_active', 'last_login')
    list_filter = ('branch', 'role', 'is_active')
    list_editable = ('role', 'branch')
    search_fields = ('phone', 'full_name')
    list_select_related = ('branch',)
    ordering = ('branch__name', 'full_name')
    readonly_fields = ('last_login', 'date_joined')
    filter_horizontal = ()

    fieldsets = (
        (None, {'fields': ('phone', 'password', 'full_name', 'email')}),
        (_('Counter'), {'fields': ('branch', 'role', 'is_active')}),
        (_('Admin access'), {'fields': ('is_staff', 'is_superuser'), 'classes': ('collapse',)}),
        (_('History'), {'fields': ('last_login', 'date_joined')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('phone', 'full_name', 'branch', 'role', 'password1', 'password2'),
        }),
    )
