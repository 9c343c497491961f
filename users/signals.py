"""
Users — Signals

Audit logging for User creation.

@file users/signals.py
"""

from django.db.models.signals import post_save
from django.dispatch import receiver

from core.constants import AUDIT_ACTION_CREATE
from core.services import AuditService
from users.models import User


@receiver(post_save, sender=User)
def user_post_save(sender, instance, created, **kwargs):
    if not created:
        return
    AuditService.log(
        actor=getattr(instance, '_current_user', None),
        action=AUDIT_ACTION_CREATE,
        model_name='User',
        object_id=str(instance.pk),
        new_values=AuditService.snapshot(instance, fields=['phone', 'full_name', 'role', 'branch']),
    )
