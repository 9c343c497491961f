"""
Core — Audit & Numbering Services

Provides methods for writing audit log entries from any app, and the
sequential document numbers (INV-2026-0001, PO-..., TRF-...) used by
sales, purchase orders and transfers.

@file core/services.py
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from django.forms.models import model_to_dict
from django.utils import timezone

from core.constants import MONEY_PLACES
from core.exceptions import ValidationError
from core.models import AuditLog

logger = logging.getLogger('petpos')


class AuditService:
    """Centralised audit logging for every write operation."""

    @staticmethod
    def log(
        *,
        actor,
        action: str,
        model_name: str,
        object_id: str,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
    ) -> AuditLog:
        return AuditLog.objects.create(
            actor=actor,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            old_values=old_values,
            new_values=new_values,
        )

    @staticmethod
    def snapshot(instance, fields=None) -> dict[str, Any]:
        """
        Serialise a model instance to a plain dict suitable for JSON
        storage. Dates are ISO-formatted; UUIDs and Decimals stringified.
        """
        data = model_to_dict(instance, fields=fields)
        cleaned: dict[str, Any] = {}
        for key, value in data.items():
            if value is None:
                cleaned[key] = None
            elif isinstance(value, Decimal):
                cleaned[key] = str(value)
            elif hasattr(value, 'isoformat'):
                cleaned[key] = value.isoformat()
            elif hasattr(value, 'hex'):
                cleaned[key] = str(value)
            elif isinstance(value, (list, tuple)):
                cleaned[key] = [str(v.pk) if hasattr(v, 'pk') else v for v in value]
            else:
                cleaned[key] = value
        return cleaned


class DocumentNumberService:
    """Yearly sequential numbers of the form {PREFIX}-{YEAR}-{SEQ:04d}."""

    @staticmethod
    def next_number(model, field: str, prefix: str) -> str:
        """
        Next free number for ``model.field`` in the current year.
        Must run inside the transaction that inserts the row; the unique
        constraint on ``field`` rejects a concurrent duplicate.
        """
        year = timezone.now().year
        stem = f'{prefix}-{year}-'
        existing = model.objects.filter(
            **{f'{field}__startswith': stem},
        ).values_list(field, flat=True)
        max_seq = 0
        for number in existing:
            try:
                max_seq = max(max_seq, int(number.rsplit('-', 1)[-1]))
            except (ValueError, IndexError):
                pass
        return f'{stem}{max_seq + 1:04d}'


def money(value) -> Decimal:
    """Quantize to two decimal places, half up."""
    return Decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def validate_input(serializer_class, data, **kwargs) -> dict:
    """
    Run a DRF serializer over a service payload and return validated_data.
    Field errors surface as core ValidationError with the field map as detail.
    """
    serializer = serializer_class(data=data, **kwargs)
    if not serializer.is_valid():
        raise ValidationError(detail=serializer.errors)
    return serializer.validated_data
