"""
Core — Django Admin Configuration

Read-only audit trail browser. Entries are grouped by the ledger they
belong to and summarised as status or quantity transitions.

@file core/admin.py
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from core.models import AuditLog

LEDGERS = {
    'stock': ('Batch',),
    'sales': ('Sale',),
    'purchasing': ('PurchaseOrder',),
    'transfers': ('StockTransfer',),
    'reference': ('User', 'Product', 'Branch', 'Customer'),
}


class LedgerFilter(admin.SimpleListFilter):
    title = _('ledger')
    parameter_name = 'ledger'

    def lookups(self, request, model_admin):
        return [(key, key.title()) for key in LEDGERS]

    def queryset(self, request, queryset):
        models = LEDGERS.get(self.value())
        if models is None:
            return queryset
        return queryset.filter(model_name__in=models)


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ('timestamp', 'action', 'model_name', 'object_id', 'transition', 'actor')
    list_filter = (LedgerFilter, 'action', 'timestamp')
    search_fields = ('object_id', 'actor__phone', 'actor__full_name')
    readonly_fields = [field.name for field in AuditLog._meta.fields]
    date_hierarchy = 'timestamp'
    list_select_related = ('actor',)
    list_per_page = 50
    ordering = ('-timestamp',)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description=_('Change'))
    def transition(self, obj):
        old, new = obj.old_values or {}, obj.new_values or {}
        for key in ('status', 'quantity'):
            if key in new:
                return f'{key}: {old.get(key, "-")} -> {new[key]}'
        return '-'
