"""
Customers — Models

Walk-in and registered customers with loyalty balance. loyalty_points
and total_purchases are maintained by the sale engine only, inside the
same transaction as the sale that earns or reverses them.

@file customers/models.py
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel


class Customer(BaseModel):

    class TypeChoices(models.TextChoices):
        RETAIL = 'retail', _('Retail')
        WHOLESALE = 'wholesale', _('Wholesale')

    name = models.CharField(_('name'), max_length=255)
    phone = models.CharField(_('phone'), max_length=20, unique=True)
    email = models.EmailField(_('email'), blank=True)
    address = models.CharField(_('address'), max_length=500, blank=True)
    customer_type = models.CharField(
        _('customer type'), max_length=10,
        choices=TypeChoices.choices, default=TypeChoices.RETAIL,
    )
    gst_number = models.CharField(_('GST number'), max_length=30, blank=True)
    loyalty_points = models.IntegerField(_('loyalty points'), default=0)
    total_purchases = models.DecimalField(
        _('total purchases'), max_digits=15, decimal_places=2, default=0,
    )
    is_active = models.BooleanField(_('active'), default=True)

    class Meta:
        verbose_name = _('customer')
        verbose_name_plural = _('customers')
        ordering = ['name']

    def __str__(self):
        return f'{self.name} ({self.phone})'
