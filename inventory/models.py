"""
Inventory — Models

Batch is the single owner of quantity truth: one row per
(product, branch, batch_number), batch_number NULL meaning "unbatched".
Quantities change only through inventory.services.BatchStore.
StockAdjustment is the INSERT ONLY log of manual ledger adjustments.

@file inventory/models.py
"""

import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.models import TimestampMixin


class Batch(TimestampMixin):
    """
    Quantity on hand of one lot of a product at one branch.

    Rows are created on first receipt (or as zero-quantity placeholders
    when a product is provisioned) and never deleted; quantity may fall
    to zero and stay there.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.PROTECT,
        related_name='batches',
        verbose_name=_('product'),
    )
    branch = models.ForeignKey(
        'branches.Branch',
        on_delete=models.PROTECT,
        related_name='batches',
        verbose_name=_('branch'),
    )
    batch_number = models.CharField(
        _('batch number'), max_length=50, null=True, blank=True,
        help_text=_('Manufacturer lot number; empty for unbatched stock'),
    )
    # Signed on purpose: BatchStore enforces >= 0 unless a repair caller opts out.
    quantity = models.IntegerField(_('quantity'), default=0)
    expiry_date = models.DateField(_('expiry date'), null=True, blank=True, db_index=True)
    manufacturing_date = models.DateField(_('manufacturing date'), null=True, blank=True)

    class Meta:
        verbose_name = _('batch')
        verbose_name_plural = _('batches')
        ordering = ['product', 'branch', 'expiry_date']
        indexes = [
            models.Index(fields=['product', 'branch'], name='batch_product_branch_idx'),
            models.Index(fields=['branch', 'expiry_date'], name='batch_branch_expiry_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['product', 'branch', 'batch_number'],
                condition=models.Q(batch_number__isnull=False),
                name='unique_numbered_batch',
            ),
            models.UniqueConstraint(
                fields=['product', 'branch'],
                condition=models.Q(batch_number__isnull=True),
                name='unique_unbatched_batch',
            ),
        ]

    def __str__(self):
        lot = self.batch_number or 'unbatched'
        return f'{self.product_id}@{self.branch_id} [{lot}] qty={self.quantity}'

    def delete(self, *args, **kwargs):
        raise NotImplementedError('Batch records cannot be deleted.')

    @property
    def is_expired(self) -> bool:
        if not self.expiry_date:
            return False
        return self.expiry_date < timezone.now().date()


class StockAdjustment(models.Model):
    """
    A single immutable ledger adjustment (insert only).

    delta is the signed change actually applied to the batch; for a
    correction that is new - old, which may be zero.
    """

    class Kind(models.TextChoices):
        ADD = 'add', _('Add')
        REMOVE = 'remove', _('Remove')
        DAMAGE = 'damage', _('Damage')
        EXPIRED = 'expired', _('Expired')
        CORRECTION = 'correction', _('Correction')

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.PROTECT,
        related_name='stock_adjustments',
        verbose_name=_('product'),
    )
    branch = models.ForeignKey(
        'branches.Branch',
        on_delete=models.PROTECT,
        related_name='stock_adjustments',
        verbose_name=_('branch'),
    )
    batch = models.ForeignKey(
        Batch,
        on_delete=models.PROTECT,
        related_name='adjustments',
        verbose_name=_('batch'),
    )
    batch_number = models.CharField(_('batch number'), max_length=50, null=True, blank=True)
    kind = models.CharField(
        _('adjustment kind'), max_length=12,
        choices=Kind.choices, db_index=True,
    )
    quantity = models.IntegerField(
        _('quantity'),
        help_text=_('Quantity as entered: units moved, or the absolute count for a correction'),
    )
    delta = models.IntegerField(_('applied delta'))
    previous_quantity = models.IntegerField(_('previous quantity'))
    new_quantity = models.IntegerField(_('new quantity'))
    reason = models.CharField(_('reason'), max_length=500, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='+',
        verbose_name=_('created by'),
    )
    created_at = models.DateTimeField(
        _('created at'), auto_now_add=True, db_index=True,
    )
    # No updated_at, immutable record.

    class Meta:
        verbose_name = _('stock adjustment')
        verbose_name_plural = _('stock adjustments')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['product', 'branch', 'created_at'], name='adj_product_branch_idx'),
            models.Index(fields=['kind', 'created_at'], name='adj_kind_created_idx'),
        ]

    def __str__(self):
        return f'{self.kind} {self.delta:+d} product={self.product_id} branch={self.branch_id}'

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise NotImplementedError('StockAdjustment is insert-only; updates are not allowed.')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise NotImplementedError('StockAdjustment records cannot be deleted.')
