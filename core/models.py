"""
Core — Base Models & Audit Trail

Abstract bases shared by every app: UUID keys, timestamps, the acting
staff member, and LedgerModel for records that may only change status.
AuditLog is the append-only trail written by AuditService inside the
same transaction as the change it describes.

@file core/models.py
"""

import uuid

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


def _actor_field(label):
    return models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='+',
        verbose_name=label,
    )


class TimestampMixin(models.Model):
    created_at = models.DateTimeField(_('created at'), auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        abstract = True


class BaseModel(TimestampMixin):
    """UUID primary key, timestamps and the staff member who wrote the row."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_by = _actor_field(_('created by'))
    updated_by = _actor_field(_('updated by'))

    class Meta:
        abstract = True


class LedgerModel(BaseModel):
    """
    Sales, purchase orders and transfers. Once written they are only
    moved between statuses, never removed.
    """

    class Meta:
        abstract = True

    def delete(self, *args, **kwargs):
        raise NotImplementedError(f'{type(self).__name__} records cannot be deleted.')


class AuditLogQuerySet(models.QuerySet):

    def for_object(self, model_name, object_id):
        return self.filter(model_name=model_name, object_id=str(object_id))

    def stock_changes(self):
        return self.filter(action=AuditLog.ActionChoices.STOCK_CHANGE)


class AuditLog(models.Model):
    """One row per create, status change or stock mutation, with before/after values."""

    class ActionChoices(models.TextChoices):
        CREATE = 'CREATE', _('Create')
        UPDATE = 'UPDATE', _('Update')
        STATUS_CHANGE = 'STATUS_CHANGE', _('Status Change')
        STOCK_CHANGE = 'STOCK_CHANGE', _('Stock Change')

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='audit_logs',
        verbose_name=_('actor'),
    )
    action = models.CharField(_('action'), max_length=20, choices=ActionChoices.choices, db_index=True)
    model_name = models.CharField(_('model'), max_length=100, db_index=True)
    object_id = models.CharField(_('object ID'), max_length=40, db_index=True)
    old_values = models.JSONField(_('old values'), null=True, blank=True)
    new_values = models.JSONField(_('new values'), null=True, blank=True)
    timestamp = models.DateTimeField(_('timestamp'), auto_now_add=True, db_index=True)

    objects = AuditLogQuerySet.as_manager()

    class Meta:
        verbose_name = _('audit log')
        verbose_name_plural = _('audit logs')
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['model_name', 'object_id']),
            models.Index(fields=['action', 'timestamp']),
        ]

    def __str__(self):
        return f'{self.action} {self.model_name}:{self.object_id}'
