"""
Core — Model Tests

Tests for AuditLog and the ledger base model.

@file core/tests/test_models.py
"""

import pytest

from core.models import AuditLog
from core.services import AuditService
from sales.models import Sale
from sales.services import SaleEngine
from tests.factories import AuditLogFactory, BatchFactory, BranchFactory, ProductFactory, UserFactory


@pytest.mark.django_db
class TestAuditLog:
    def test_create_audit_log(self):
        user = UserFactory()
        log = AuditService.log(
            actor=user,
            action=AuditLog.ActionChoices.STOCK_CHANGE,
            model_name='Batch',
            object_id='batch-123',
            old_values={'quantity': 5},
            new_values={'quantity': 7},
        )
        assert log.pk is not None
        assert log.action == 'STOCK_CHANGE'
        assert log.old_values == {'quantity': 5}

    def test_audit_log_via_factory(self):
        log = AuditLogFactory()
        assert log.pk is not None
        assert log.actor is not None

    def test_snapshot_stringifies_decimals_and_uuids(self):
        product = ProductFactory()
        snapshot = AuditService.snapshot(product, fields=['sku', 'selling_price', 'category'])
        assert snapshot['sku'] == product.sku
        assert snapshot['selling_price'] == '100.00'
        assert snapshot['category'] == str(product.category_id)

    def test_for_object_and_stock_changes(self):
        batch = BatchFactory()
        AuditService.log(
            actor=None, action=AuditLog.ActionChoices.STOCK_CHANGE,
            model_name='Batch', object_id=batch.pk, new_values={'quantity': 4},
        )
        AuditService.log(
            actor=None, action=AuditLog.ActionChoices.UPDATE,
            model_name='Batch', object_id=batch.pk,
        )
        trail = AuditLog.objects.for_object('Batch', batch.pk)
        assert trail.count() == 2
        assert list(trail.stock_changes().values_list('new_values', flat=True)) == [{'quantity': 4}]


@pytest.mark.django_db
class TestLedgerModel:
    def test_sale_cannot_be_deleted(self):
        branch = BranchFactory()
        batch = BatchFactory(branch=branch, quantity=3)
        sale = SaleEngine.create_sale(
            branch_id=branch.pk,
            items=[{'product_id': batch.product_id, 'quantity': 1}],
        )
        with pytest.raises(NotImplementedError):
            sale.delete()
        assert Sale.objects.filter(pk=sale.pk).exists()
