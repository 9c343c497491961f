"""
Users — Managers

Staff are created from a phone number; spaces and dashes typed at the
counter are stripped before the number is stored.

@file users/managers.py
"""

from django.contrib.auth.models import BaseUserManager


def normalize_phone(phone: str) -> str:
    return ''.join(ch for ch in (phone or '') if ch.isdigit() or ch == '+')


class UserManager(BaseUserManager):

    def create_user(self, phone, password=None, **extra_fields):
        phone = normalize_phone(phone)
        if not phone:
            raise ValueError('A phone number is required for staff accounts.')
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        user = self.model(phone=phone, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, phone, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', self.model.RoleChoices.ADMIN)
        if not (extra_fields['is_staff'] and extra_fields['is_superuser']):
            raise ValueError('Superusers need is_staff and is_superuser set.')
        return self.create_user(phone, password, **extra_fields)

    def active(self):
        return self.filter(is_active=True)

    def on_duty(self, branch_id):
        """Active staff whose home branch is `branch_id`."""
        return self.active().filter(branch_id=branch_id)
