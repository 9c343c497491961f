"""
Core — Service Tests

DocumentNumberService numbering, money rounding, payload validation.

@file core/tests/test_services.py
"""

from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework import serializers

from core.exceptions import ValidationError
from core.services import DocumentNumberService, money, validate_input
from purchasing.models import PurchaseOrder
from tests.factories import PurchaseOrderFactory


class _LineSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)


@pytest.mark.django_db
class TestDocumentNumberService:
    def test_first_number_of_the_year(self):
        year = timezone.now().year
        assert DocumentNumberService.next_number(PurchaseOrder, 'po_number', 'PO') == f'PO-{year}-0001'

    def test_increments_past_highest_sequence(self):
        year = timezone.now().year
        PurchaseOrderFactory(po_number=f'PO-{year}-0007')
        PurchaseOrderFactory(po_number=f'PO-{year}-0003')
        assert DocumentNumberService.next_number(PurchaseOrder, 'po_number', 'PO') == f'PO-{year}-0008'

    def test_other_years_do_not_count(self):
        year = timezone.now().year
        PurchaseOrderFactory(po_number=f'PO-{year - 1}-0042')
        assert DocumentNumberService.next_number(PurchaseOrder, 'po_number', 'PO') == f'PO-{year}-0001'


class TestMoney:
    def test_rounds_half_up(self):
        assert money(Decimal('2.345')) == Decimal('2.35')
        assert money(Decimal('2.344')) == Decimal('2.34')

    def test_accepts_ints(self):
        assert money(5) == Decimal('5.00')


class TestValidateInput:
    def test_returns_validated_data(self):
        assert validate_input(_LineSerializer, {'quantity': '3'}) == {'quantity': 3}

    def test_invalid_payload_raises_core_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_input(_LineSerializer, {'quantity': 0})
        assert 'quantity' in exc_info.value.detail
