"""
Catalog — Models

Product catalog: categories with a default tax rate, and products with
selling price, purchase price, per-product tax rate (GST, percent) and
the minimum-stock threshold used for low-stock alerts.

@file catalog/models.py
"""

from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel


class Category(BaseModel):

    name = models.CharField(_('name'), max_length=100, unique=True)
    tax_rate = models.DecimalField(
        _('default tax rate (%)'), max_digits=5, decimal_places=2, default=0,
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))],
    )

    class Meta:
        verbose_name = _('category')
        verbose_name_plural = _('categories')
        ordering = ['name']

    def __str__(self):
        return self.name


class Product(BaseModel):
    """
    A sellable catalog entry. Prices and tax rate are read by the sale
    engine at checkout; quantities live in inventory.Batch only.
    """

    sku = models.CharField(_('SKU'), max_length=50, unique=True)
    barcode = models.CharField(_('barcode'), max_length=50, unique=True, null=True, blank=True)
    name = models.CharField(_('name'), max_length=255)
    description = models.TextField(_('description'), blank=True)
    category = models.ForeignKey(
        Category,
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='products',
        verbose_name=_('category'),
    )
    mrp = models.DecimalField(_('MRP'), max_digits=12, decimal_places=2)
    selling_price = models.DecimalField(_('selling price'), max_digits=12, decimal_places=2)
    purchase_price = models.DecimalField(
        _('purchase price'), max_digits=12, decimal_places=2, default=0,
    )
    tax_rate = models.DecimalField(
        _('tax rate (%)'), max_digits=5, decimal_places=2, default=0,
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))],
    )
    min_stock = models.PositiveIntegerField(_('minimum stock'), default=10)
    unit = models.CharField(_('unit'), max_length=20, default='piece')
    is_active = models.BooleanField(_('active'), default=True, db_index=True)

    class Meta:
        verbose_name = _('product')
        verbose_name_plural = _('products')
        ordering = ['name']
        indexes = [
            models.Index(fields=['is_active', 'name']),
        ]

    def __str__(self):
        return f'{self.name} ({self.sku})'
