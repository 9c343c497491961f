"""
Branches — Models

Store locations. Every batch, sale, purchase order and transfer is
scoped to a branch.

@file branches/models.py
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel


class Branch(BaseModel):
    """A retail pet-store branch."""

    class StatusChoices(models.TextChoices):
        ACTIVE = 'active', _('Active')
        INACTIVE = 'inactive', _('Inactive')
        MAINTENANCE = 'maintenance', _('Maintenance')

    name = models.CharField(_('name'), max_length=255)
    code = models.CharField(_('code'), max_length=20, unique=True)
    address = models.CharField(_('address'), max_length=500, blank=True)
    phone = models.CharField(_('phone'), max_length=20, blank=True)
    email = models.EmailField(_('email'), blank=True)
    manager_name = models.CharField(_('manager name'), max_length=200, blank=True)
    opening_hours = models.CharField(_('opening hours'), max_length=100, blank=True)
    status = models.CharField(
        _('status'), max_length=12,
        choices=StatusChoices.choices,
        default=StatusChoices.ACTIVE,
        db_index=True,
    )

    class Meta:
        verbose_name = _('branch')
        verbose_name_plural = _('branches')
        ordering = ['name']

    def __str__(self):
        return f'{self.name} ({self.code})'
