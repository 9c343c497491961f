"""
Transfers — Models

Inter-branch stock transfers. Stock moves only when a transfer is
completed; the destination lot number recorded on each item tells
where the units landed.

@file transfers/models.py
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import LedgerModel


class StockTransfer(LedgerModel):
    """
    State machine: PENDING → APPROVED → IN_TRANSIT → COMPLETED, with
    CANCELLED reachable from any state before COMPLETED.
    """

    class StatusChoices(models.TextChoices):
        PENDING = 'pending', _('Pending')
        APPROVED = 'approved', _('Approved')
        IN_TRANSIT = 'in_transit', _('In transit')
        COMPLETED = 'completed', _('Completed')
        CANCELLED = 'cancelled', _('Cancelled')

    transfer_number = models.CharField(_('transfer number'), max_length=30, unique=True)
    from_branch = models.ForeignKey(
        'branches.Branch',
        on_delete=models.PROTECT,
        related_name='outgoing_transfers',
        verbose_name=_('from branch'),
    )
    to_branch = models.ForeignKey(
        'branches.Branch',
        on_delete=models.PROTECT,
        related_name='incoming_transfers',
        verbose_name=_('to branch'),
    )
    status = models.CharField(
        _('status'), max_length=12,
        choices=StatusChoices.choices,
        default=StatusChoices.PENDING,
        db_index=True,
    )
    notes = models.TextField(_('notes'), blank=True)
    completed_at = models.DateTimeField(_('completed at'), null=True, blank=True)

    class Meta:
        verbose_name = _('stock transfer')
        verbose_name_plural = _('stock transfers')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['from_branch', 'status']),
            models.Index(fields=['to_branch', 'status']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(from_branch=models.F('to_branch')),
                name='transfer_distinct_branches',
            ),
        ]

    def __str__(self):
        return f'{self.transfer_number} {self.from_branch_id} → {self.to_branch_id} ({self.status})'


class StockTransferItem(models.Model):

    transfer = models.ForeignKey(
        StockTransfer,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('transfer'),
    )
    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.PROTECT,
        related_name='transfer_items',
        verbose_name=_('product'),
    )
    quantity = models.PositiveIntegerField(_('quantity'))
    batch_number = models.CharField(
        _('source batch number'), max_length=50, null=True, blank=True,
        help_text=_('Lot to take from; empty means earliest-expiring first'),
    )
    destination_batch_number = models.CharField(
        _('destination batch number'), max_length=50, null=True, blank=True,
    )

    class Meta:
        verbose_name = _('stock transfer item')
        verbose_name_plural = _('stock transfer items')
        ordering = ['transfer', 'id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name='transfer_item_quantity_positive',
            ),
        ]

    def __str__(self):
        return f'{self.transfer_id} — {self.product_id} × {self.quantity}'
