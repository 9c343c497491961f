"""
Purchasing — Models

Suppliers and purchase orders. Receiving a purchase order merges each
line's received quantity into the branch's batches.

@file purchasing/models.py
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel, LedgerModel


class Supplier(BaseModel):

    name = models.CharField(_('name'), max_length=255)
    contact_person = models.CharField(_('contact person'), max_length=255, blank=True)
    phone = models.CharField(_('phone'), max_length=20, blank=True)
    email = models.EmailField(_('email'), blank=True)
    address = models.CharField(_('address'), max_length=500, blank=True)
    gst_number = models.CharField(_('GST number'), max_length=30, blank=True)
    payment_terms = models.CharField(_('payment terms'), max_length=100, blank=True)
    is_active = models.BooleanField(_('active'), default=True)

    class Meta:
        verbose_name = _('supplier')
        verbose_name_plural = _('suppliers')
        ordering = ['name']

    def __str__(self):
        return self.name


class PurchaseOrder(LedgerModel):
    """
    Order placed with a supplier for delivery to one branch.

    State machine: PENDING → CONFIRMED → IN_TRANSIT → DELIVERED, with
    CANCELLED reachable from any non-terminal state. DELIVERED is entered
    only by receiving the goods.
    """

    class StatusChoices(models.TextChoices):
        PENDING = 'pending', _('Pending')
        CONFIRMED = 'confirmed', _('Confirmed')
        IN_TRANSIT = 'in_transit', _('In transit')
        DELIVERED = 'delivered', _('Delivered')
        CANCELLED = 'cancelled', _('Cancelled')

    po_number = models.CharField(_('PO number'), max_length=30, unique=True)
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        related_name='purchase_orders',
        verbose_name=_('supplier'),
    )
    branch = models.ForeignKey(
        'branches.Branch',
        on_delete=models.PROTECT,
        related_name='purchase_orders',
        verbose_name=_('branch'),
    )
    status = models.CharField(
        _('status'), max_length=12,
        choices=StatusChoices.choices,
        default=StatusChoices.PENDING,
        db_index=True,
    )
    total_amount = models.DecimalField(_('total amount'), max_digits=15, decimal_places=2, default=0)
    order_date = models.DateField(_('order date'))
    expected_delivery = models.DateField(_('expected delivery'), null=True, blank=True)
    received_date = models.DateTimeField(_('received at'), null=True, blank=True)
    notes = models.TextField(_('notes'), blank=True)

    class Meta:
        verbose_name = _('purchase order')
        verbose_name_plural = _('purchase orders')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['branch', 'status']),
            models.Index(fields=['supplier', 'status']),
        ]

    def __str__(self):
        return f'{self.po_number} — {self.supplier.name} ({self.status})'


class PurchaseOrderItem(models.Model):
    """
    One ordered product. batch_number / expiry_date / manufacturing_date
    describe the lot the goods are expected to arrive as; receiving may
    override them.
    """

    purchase_order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('purchase order'),
    )
    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.PROTECT,
        related_name='purchase_order_items',
        verbose_name=_('product'),
    )
    quantity = models.PositiveIntegerField(_('quantity ordered'))
    received_quantity = models.PositiveIntegerField(_('quantity received'), default=0)
    unit_price = models.DecimalField(_('unit price'), max_digits=12, decimal_places=2)
    batch_number = models.CharField(_('batch number'), max_length=50, null=True, blank=True)
    expiry_date = models.DateField(_('expiry date'), null=True, blank=True)
    manufacturing_date = models.DateField(_('manufacturing date'), null=True, blank=True)

    class Meta:
        verbose_name = _('purchase order item')
        verbose_name_plural = _('purchase order items')
        ordering = ['purchase_order', 'id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(received_quantity__lte=models.F('quantity')),
                name='po_item_received_lte_ordered',
            ),
        ]

    def __str__(self):
        return f'{self.purchase_order_id} — {self.product_id} × {self.quantity}'

    @property
    def line_total(self):
        return self.unit_price * self.quantity
