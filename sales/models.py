"""
Sales — Models

Point-of-sale invoices (Sale + SaleItem) and parked carts (HeldSale).
A SaleItem records the exact batch its units were taken from, so a
cancellation can return them to the same lot.

@file sales/models.py
"""

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel, LedgerModel


class Sale(LedgerModel):
    """
    A completed point-of-sale transaction.

    State machine: COMPLETED → CANCELLED. HOLD and RETURNED are carried
    for compatibility with stored invoices; the sale engine never enters them.
    """

    class StatusChoices(models.TextChoices):
        COMPLETED = 'completed', _('Completed')
        HOLD = 'hold', _('On hold')
        CANCELLED = 'cancelled', _('Cancelled')
        RETURNED = 'returned', _('Returned')

    class PaymentMethodChoices(models.TextChoices):
        CASH = 'cash', _('Cash')
        UPI = 'upi', _('UPI')
        CARD = 'card', _('Card')
        CREDIT = 'credit', _('Credit')

    class PaymentStatusChoices(models.TextChoices):
        PAID = 'paid', _('Paid')
        PENDING = 'pending', _('Pending')
        PARTIAL = 'partial', _('Partial')

    class DiscountTypeChoices(models.TextChoices):
        AMOUNT = 'amount', _('Amount')
        PERCENTAGE = 'percentage', _('Percentage')

    invoice_number = models.CharField(_('invoice number'), max_length=30, unique=True)
    branch = models.ForeignKey(
        'branches.Branch',
        on_delete=models.PROTECT,
        related_name='sales',
        verbose_name=_('branch'),
    )
    customer = models.ForeignKey(
        'customers.Customer',
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='sales',
        verbose_name=_('customer'),
    )
    cashier = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='sales',
        verbose_name=_('cashier'),
    )
    subtotal = models.DecimalField(_('subtotal'), max_digits=15, decimal_places=2, default=0)
    tax_total = models.DecimalField(_('tax total'), max_digits=15, decimal_places=2, default=0)
    discount = models.DecimalField(
        _('discount'), max_digits=15, decimal_places=2, default=0,
        help_text=_('Discount as entered: an amount or a percentage'),
    )
    discount_type = models.CharField(
        _('discount type'), max_length=12,
        choices=DiscountTypeChoices.choices,
        default=DiscountTypeChoices.AMOUNT,
    )
    discount_amount = models.DecimalField(
        _('discount amount'), max_digits=15, decimal_places=2, default=0,
    )
    grand_total = models.DecimalField(_('grand total'), max_digits=15, decimal_places=2, default=0)
    payment_method = models.CharField(
        _('payment method'), max_length=10,
        choices=PaymentMethodChoices.choices,
        default=PaymentMethodChoices.CASH,
    )
    payment_status = models.CharField(
        _('payment status'), max_length=10,
        choices=PaymentStatusChoices.choices,
        default=PaymentStatusChoices.PAID,
        db_index=True,
    )
    status = models.CharField(
        _('status'), max_length=12,
        choices=StatusChoices.choices,
        default=StatusChoices.COMPLETED,
        db_index=True,
    )
    notes = models.TextField(_('notes'), blank=True)
    cancelled_at = models.DateTimeField(_('cancelled at'), null=True, blank=True)

    class Meta:
        verbose_name = _('sale')
        verbose_name_plural = _('sales')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['branch', 'created_at']),
            models.Index(fields=['status', 'created_at']),
        ]

    def __str__(self):
        return f'{self.invoice_number} ({self.status}) {self.grand_total}'


class SaleItem(models.Model):
    """One line of a sale, tied to the batch its units came from."""

    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('sale'),
    )
    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.PROTECT,
        related_name='sale_items',
        verbose_name=_('product'),
    )
    batch = models.ForeignKey(
        'inventory.Batch',
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='sale_items',
        verbose_name=_('batch'),
    )
    batch_number = models.CharField(_('batch number'), max_length=50, null=True, blank=True)
    quantity = models.PositiveIntegerField(_('quantity'))
    unit_price = models.DecimalField(_('unit price'), max_digits=12, decimal_places=2)
    tax_rate = models.DecimalField(_('tax rate (%)'), max_digits=5, decimal_places=2, default=0)
    tax_amount = models.DecimalField(_('tax amount'), max_digits=12, decimal_places=2, default=0)
    discount = models.DecimalField(_('discount'), max_digits=12, decimal_places=2, default=0)
    total = models.DecimalField(_('line total'), max_digits=15, decimal_places=2)

    class Meta:
        verbose_name = _('sale item')
        verbose_name_plural = _('sale items')
        ordering = ['sale', 'id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name='sale_item_quantity_positive',
            ),
        ]

    def __str__(self):
        return f'{self.sale_id} — {self.product_id} × {self.quantity}'


class HeldSale(BaseModel):
    """A parked cart. Holding or resuming never touches stock."""

    branch = models.ForeignKey(
        'branches.Branch',
        on_delete=models.CASCADE,
        related_name='held_sales',
        verbose_name=_('branch'),
    )
    cashier = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='held_sales',
        verbose_name=_('held by'),
    )
    customer = models.ForeignKey(
        'customers.Customer',
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='held_sales',
        verbose_name=_('customer'),
    )
    cart = models.JSONField(_('cart'), default=list)
    notes = models.TextField(_('notes'), blank=True)

    class Meta:
        verbose_name = _('held sale')
        verbose_name_plural = _('held sales')
        ordering = ['-created_at']

    def __str__(self):
        return f'Held cart {self.pk} at {self.branch_id}'
