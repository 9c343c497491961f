"""
Users — Models

Custom User model with UUID PK and phone-based auth. Every ledger write
records the acting user; role and home branch mirror the POS staff
hierarchy (admin / manager / cashier).

@file users/models.py
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel
from users.managers import UserManager


class User(AbstractBaseUser, PermissionsMixin, BaseModel):
    """Custom user for PetPOS. Authentication is phone-based."""

    class RoleChoices(models.TextChoices):
        ADMIN = 'admin', _('Admin')
        MANAGER = 'manager', _('Manager')
        CASHIER = 'cashier', _('Cashier')

    phone = models.CharField(_('phone'), max_length=20, unique=True)
    email = models.EmailField(_('email'), unique=True, null=True, blank=True)
    full_name = models.CharField(_('full name'), max_length=200, blank=True)
    role = models.CharField(
        _('role'), max_length=10,
        choices=RoleChoices.choices, default=RoleChoices.CASHIER,
        db_index=True,
    )
    branch = models.ForeignKey(
        'branches.Branch',
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='staff',
        verbose_name=_('home branch'),
    )

    is_staff = models.BooleanField(_('staff status'), default=False)
    is_active = models.BooleanField(_('active'), default=True)
    date_joined = models.DateTimeField(_('date joined'), default=timezone.now)

    objects = UserManager()

    USERNAME_FIELD = 'phone'
    REQUIRED_FIELDS = []

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['role', 'is_active']),
        ]

    def __str__(self):
        return self.full_name or self.phone

    def get_full_name(self):
        return self.full_name or self.phone

    def get_short_name(self):
        return self.full_name.split(' ')[0] if self.full_name else self.phone
