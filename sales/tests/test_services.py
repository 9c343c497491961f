"""
Tests — SaleEngine: pricing and totals, FIFO and lot-specific decrements,
pre-flight and commit-time rejection, loyalty, cancel round-trip,
double-cancel, held carts. Last-unit race against PostgreSQL.

@file sales/tests/test_services.py
"""

import threading
import uuid
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import connection, connections
from django.utils import timezone

from core.exceptions import (
    BranchNotFoundError,
    ConcurrencyConflictError,
    InsufficientStockError,
    InvalidStateError,
    ProductNotFoundError,
    ResourceNotFoundError,
    ValidationError,
)
from core.models import AuditLog
from customers.services import CustomerService
from inventory.models import Batch
from inventory.services import BatchStore
from sales.models import HeldSale, Sale, SaleItem
from sales.services import SaleEngine
from tests.factories import BatchFactory, BranchFactory, CustomerFactory, ProductFactory, UserFactory

pytestmark = pytest.mark.django_db


def _qty(batch):
    batch.refresh_from_db()
    return batch.quantity


@pytest.fixture
def taxed_product():
    return ProductFactory(selling_price=Decimal('100.00'), tax_rate=Decimal('5.00'))


@pytest.fixture
def taxed_batch(taxed_product, branch):
    return BatchFactory(product=taxed_product, branch=branch, batch_number='P1-LOT', quantity=10)


class TestCreateSale:

    def test_totals_and_decrement(self, taxed_batch, branch):
        sale = SaleEngine.create_sale(
            branch_id=branch.pk,
            items=[{'product_id': taxed_batch.product_id, 'quantity': 3, 'unit_price': Decimal('100')}],
        )
        assert sale.subtotal == Decimal('300.00')
        assert sale.tax_total == Decimal('15.00')
        assert sale.grand_total == Decimal('315.00')
        assert sale.status == Sale.StatusChoices.COMPLETED
        assert sale.payment_status == Sale.PaymentStatusChoices.PAID
        assert _qty(taxed_batch) == 7

    def test_unit_price_defaults_to_selling_price(self, stocked_batch, branch):
        sale = SaleEngine.create_sale(
            branch_id=branch.pk, items=[{'product_id': stocked_batch.product_id, 'quantity': 2}],
        )
        item = sale.items.get()
        assert item.unit_price == Decimal('100.00')
        assert item.batch_number == 'B1'
        assert sale.grand_total == Decimal('200.00')

    def test_insufficient_stock_names_available_and_requested(self, taxed_batch, branch):
        BatchStore.upsert_delta(
            product_id=taxed_batch.product_id, branch_id=branch.pk, batch_number='P1-LOT', delta=-3,
        )
        with pytest.raises(InsufficientStockError) as exc_info:
            SaleEngine.create_sale(
                branch_id=branch.pk, items=[{'product_id': taxed_batch.product_id, 'quantity': 20}],
            )
        assert exc_info.value.available == 7
        assert exc_info.value.requested == 20
        assert exc_info.value.product_id == taxed_batch.product_id
        assert _qty(taxed_batch) == 7
        assert Sale.objects.count() == 0

    def test_multi_line_cart_is_all_or_nothing(self, branch):
        plenty = BatchFactory(branch=branch, quantity=50)
        scarce = BatchFactory(branch=branch, quantity=1)
        with pytest.raises(InsufficientStockError):
            SaleEngine.create_sale(
                branch_id=branch.pk,
                items=[
                    {'product_id': plenty.product_id, 'quantity': 5},
                    {'product_id': scarce.product_id, 'quantity': 2},
                ],
            )
        assert _qty(plenty) == 50
        assert _qty(scarce) == 1
        assert SaleItem.objects.count() == 0

    def test_repeated_product_lines_are_summed_in_preflight(self, stocked_batch, branch):
        with pytest.raises(InsufficientStockError) as exc_info:
            SaleEngine.create_sale(
                branch_id=branch.pk,
                items=[
                    {'product_id': stocked_batch.product_id, 'quantity': 6},
                    {'product_id': stocked_batch.product_id, 'quantity': 6},
                ],
            )
        assert exc_info.value.requested == 12
        assert _qty(stocked_batch) == 10

    def test_split_across_batches_fifo_by_expiry(self, product, branch):
        today = timezone.now().date()
        later = BatchFactory(product=product, branch=branch, batch_number='LATE', quantity=5,
                             expiry_date=today + timedelta(days=200))
        sooner = BatchFactory(product=product, branch=branch, batch_number='SOON', quantity=2,
                              expiry_date=today + timedelta(days=20))
        sale = SaleEngine.create_sale(branch_id=branch.pk, items=[{'product_id': product.pk, 'quantity': 4}])
        assert _qty(sooner) == 0
        assert _qty(later) == 3
        rows = list(sale.items.order_by('id').values_list('batch_number', 'quantity'))
        assert rows == [('SOON', 2), ('LATE', 2)]

    def test_split_line_tax_adds_up(self, product, branch):
        product.tax_rate = Decimal('12.50')
        product.save()
        BatchFactory(product=product, branch=branch, batch_number='A', quantity=1,
                     expiry_date=timezone.now().date() + timedelta(days=5))
        BatchFactory(product=product, branch=branch, batch_number='B', quantity=5)
        sale = SaleEngine.create_sale(
            branch_id=branch.pk,
            items=[{'product_id': product.pk, 'quantity': 3, 'unit_price': Decimal('3.33')}],
        )
        assert sum(i.tax_amount for i in sale.items.all()) == sale.tax_total == Decimal('1.25')

    def test_tax_split_over_many_single_unit_lots_is_never_negative(self, product, branch):
        product.tax_rate = Decimal('50.00')
        product.save()
        today = timezone.now().date()
        for day in range(1, 6):
            BatchFactory(product=product, branch=branch, quantity=1, expiry_date=today + timedelta(days=day))
        sale = SaleEngine.create_sale(
            branch_id=branch.pk,
            items=[{'product_id': product.pk, 'quantity': 5, 'unit_price': Decimal('0.01')}],
        )
        items = list(sale.items.all())
        assert len(items) == 5
        assert all(item.tax_amount >= 0 for item in items)
        assert all(item.total > 0 for item in items)
        assert sum(item.tax_amount for item in items) == sale.tax_total == Decimal('0.03')

    def test_lines_lock_stock_in_product_order(self, branch):
        first, second = sorted(
            [BatchFactory(branch=branch, quantity=5), BatchFactory(branch=branch, quantity=5)],
            key=lambda b: str(b.product_id),
        )
        real_allocate = BatchStore.allocate
        seen = []

        def recording(**kwargs):
            seen.append(kwargs['product_id'])
            return real_allocate(**kwargs)

        with patch.object(BatchStore, 'allocate', side_effect=recording):
            SaleEngine.create_sale(
                branch_id=branch.pk,
                items=[
                    {'product_id': second.product_id, 'quantity': 1},
                    {'product_id': first.product_id, 'quantity': 1},
                ],
            )
        assert seen == [first.product_id, second.product_id]

    def test_specific_batch_only(self, product, branch):
        first = BatchFactory(product=product, branch=branch, batch_number='X', quantity=5,
                             expiry_date=timezone.now().date() + timedelta(days=3))
        chosen = BatchFactory(product=product, branch=branch, batch_number='Y', quantity=5)
        SaleEngine.create_sale(
            branch_id=branch.pk, items=[{'product_id': product.pk, 'quantity': 2, 'batch_number': 'Y'}],
        )
        assert _qty(first) == 5
        assert _qty(chosen) == 3

    def test_specific_batch_short_even_if_aggregate_suffices(self, product, branch):
        BatchFactory(product=product, branch=branch, batch_number='X', quantity=50)
        BatchFactory(product=product, branch=branch, batch_number='Y', quantity=1)
        with pytest.raises(InsufficientStockError) as exc_info:
            SaleEngine.create_sale(
                branch_id=branch.pk, items=[{'product_id': product.pk, 'quantity': 2, 'batch_number': 'Y'}],
            )
        assert exc_info.value.available == 1

    def test_percentage_discount(self, stocked_batch, branch):
        sale = SaleEngine.create_sale(
            branch_id=branch.pk,
            items=[{'product_id': stocked_batch.product_id, 'quantity': 3}],
            discount=Decimal('10'),
            discount_type='percentage',
        )
        assert sale.discount_amount == Decimal('30.00')
        assert sale.grand_total == Decimal('270.00')

    def test_amount_discount(self, stocked_batch, branch):
        sale = SaleEngine.create_sale(
            branch_id=branch.pk,
            items=[{'product_id': stocked_batch.product_id, 'quantity': 1}],
            discount=Decimal('25.50'),
        )
        assert sale.grand_total == Decimal('74.50')

    @pytest.mark.parametrize('discount, discount_type', [
        (Decimal('-1'), 'amount'),
        (Decimal('100.01'), 'amount'),
        (Decimal('101'), 'percentage'),
    ])
    def test_bad_discount_rejected(self, stocked_batch, branch, discount, discount_type):
        with pytest.raises(ValidationError):
            SaleEngine.create_sale(
                branch_id=branch.pk,
                items=[{'product_id': stocked_batch.product_id, 'quantity': 1}],
                discount=discount,
                discount_type=discount_type,
            )
        assert _qty(stocked_batch) == 10

    def test_credit_sale_is_pending_but_decrements(self, stocked_batch, branch):
        sale = SaleEngine.create_sale(
            branch_id=branch.pk,
            items=[{'product_id': stocked_batch.product_id, 'quantity': 1}],
            payment_method='credit',
        )
        assert sale.payment_status == Sale.PaymentStatusChoices.PENDING
        assert _qty(stocked_batch) == 9

    def test_invoice_numbers_are_sequential(self, stocked_batch, branch):
        year = timezone.now().year
        items = [{'product_id': stocked_batch.product_id, 'quantity': 1}]
        first = SaleEngine.create_sale(branch_id=branch.pk, items=items)
        second = SaleEngine.create_sale(branch_id=branch.pk, items=items)
        assert first.invoice_number == f'INV-{year}-0001'
        assert second.invoice_number == f'INV-{year}-0002'

    def test_loyalty_credited(self, stocked_batch, branch, customer):
        SaleEngine.create_sale(
            branch_id=branch.pk,
            customer_id=customer.pk,
            items=[{'product_id': stocked_batch.product_id, 'quantity': 3, 'unit_price': Decimal('99.50')}],
        )
        customer.refresh_from_db()
        assert customer.loyalty_points == 2
        assert customer.total_purchases == Decimal('298.50')

    @pytest.mark.parametrize('items', [[], [{'quantity': 1}], [{'product_id': 'bogus', 'quantity': 1}]])
    def test_malformed_items_rejected(self, branch, items):
        with pytest.raises(ValidationError):
            SaleEngine.create_sale(branch_id=branch.pk, items=items)

    def test_zero_quantity_rejected(self, stocked_batch, branch):
        with pytest.raises(ValidationError):
            SaleEngine.create_sale(
                branch_id=branch.pk, items=[{'product_id': stocked_batch.product_id, 'quantity': 0}],
            )

    def test_missing_branch_is_validation_error(self, stocked_batch):
        with pytest.raises(ValidationError):
            SaleEngine.create_sale(
                branch_id=None, items=[{'product_id': stocked_batch.product_id, 'quantity': 1}],
            )

    def test_unknown_branch(self, stocked_batch):
        with pytest.raises(BranchNotFoundError):
            SaleEngine.create_sale(
                branch_id=uuid.uuid4(), items=[{'product_id': stocked_batch.product_id, 'quantity': 1}],
            )

    def test_unknown_product(self, branch):
        with pytest.raises(ProductNotFoundError):
            SaleEngine.create_sale(branch_id=branch.pk, items=[{'product_id': uuid.uuid4(), 'quantity': 1}])

    def test_unknown_customer(self, stocked_batch, branch):
        with pytest.raises(ResourceNotFoundError):
            SaleEngine.create_sale(
                branch_id=branch.pk,
                customer_id=uuid.uuid4(),
                items=[{'product_id': stocked_batch.product_id, 'quantity': 1}],
            )

    def test_failure_after_decrement_rolls_everything_back(self, stocked_batch, branch, customer):
        with patch('sales.services.CustomerService.apply_purchase', side_effect=RuntimeError('simulated failure')):
            with pytest.raises(RuntimeError, match='simulated failure'):
                SaleEngine.create_sale(
                    branch_id=branch.pk,
                    customer_id=customer.pk,
                    items=[{'product_id': stocked_batch.product_id, 'quantity': 4}],
                )
        assert _qty(stocked_batch) == 10
        assert Sale.objects.count() == 0
        assert not AuditLog.objects.filter(model_name='Sale').exists()

    def test_audit_entry(self, stocked_batch, branch):
        cashier = UserFactory()
        sale = SaleEngine.create_sale(
            branch_id=branch.pk, items=[{'product_id': stocked_batch.product_id, 'quantity': 1}], actor=cashier,
        )
        log = AuditLog.objects.get(model_name='Sale', object_id=str(sale.pk))
        assert log.actor == cashier
        assert sale.cashier == cashier


class TestCancelSale:

    def test_cancel_restores_stock(self, taxed_batch, branch):
        sale = SaleEngine.create_sale(
            branch_id=branch.pk,
            items=[{'product_id': taxed_batch.product_id, 'quantity': 3, 'unit_price': Decimal('100')}],
        )
        cancelled = SaleEngine.cancel_sale(sale_id=sale.pk, reason='Customer changed mind')
        assert cancelled.status == Sale.StatusChoices.CANCELLED
        assert cancelled.cancelled_at is not None
        assert cancelled.notes == 'Cancelled: Customer changed mind'
        assert _qty(taxed_batch) == 10

    def test_round_trip_restores_every_batch_and_customer(self, product, branch):
        customer = CustomerFactory(loyalty_points=7, total_purchases=Decimal('1234.56'))
        a = BatchFactory(product=product, branch=branch, batch_number='A', quantity=2,
                         expiry_date=timezone.now().date() + timedelta(days=9))
        b = BatchFactory(product=product, branch=branch, batch_number='B', quantity=8)
        other = BatchFactory(branch=branch, quantity=5)
        sale = SaleEngine.create_sale(
            branch_id=branch.pk,
            customer_id=customer.pk,
            items=[
                {'product_id': product.pk, 'quantity': 5},
                {'product_id': other.product_id, 'quantity': 5},
            ],
            discount=Decimal('5'),
            discount_type='percentage',
            notes='Counter 2',
        )
        SaleEngine.cancel_sale(sale_id=sale.pk)

        assert (_qty(a), _qty(b), _qty(other)) == (2, 8, 5)
        customer.refresh_from_db()
        assert customer.loyalty_points == 7
        assert customer.total_purchases == Decimal('1234.56')
        sale.refresh_from_db()
        assert sale.notes == 'Counter 2 | Cancelled: No reason provided'

    def test_recreates_batch_row_if_absent(self, branch):
        batch = BatchFactory(branch=branch, batch_number='GONE', quantity=1)
        sale = SaleEngine.create_sale(branch_id=branch.pk, items=[{'product_id': batch.product_id, 'quantity': 1}])
        SaleItem.objects.filter(sale=sale).update(batch_number='RELABELLED', batch=None)
        SaleEngine.cancel_sale(sale_id=sale.pk)
        assert BatchStore.get(batch.product_id, branch.pk, 'RELABELLED').quantity == 1

    def test_double_cancel_rejected_without_stock_change(self, stocked_batch, branch):
        sale = SaleEngine.create_sale(
            branch_id=branch.pk, items=[{'product_id': stocked_batch.product_id, 'quantity': 4}],
        )
        SaleEngine.cancel_sale(sale_id=sale.pk)
        assert _qty(stocked_batch) == 10
        with pytest.raises(InvalidStateError):
            SaleEngine.cancel_sale(sale_id=sale.pk)
        assert _qty(stocked_batch) == 10

    def test_cancel_locks_customer_before_stock(self, stocked_batch, branch, customer):
        sale = SaleEngine.create_sale(
            branch_id=branch.pk,
            customer_id=customer.pk,
            items=[{'product_id': stocked_batch.product_id, 'quantity': 2}],
        )
        real_get_customer = CustomerService.get_customer
        real_upsert = BatchStore.upsert_delta
        calls = []

        def get_customer(*args, **kwargs):
            calls.append('customer')
            return real_get_customer(*args, **kwargs)

        def upsert(**kwargs):
            calls.append('stock')
            return real_upsert(**kwargs)

        with patch.object(CustomerService, 'get_customer', side_effect=get_customer), \
                patch.object(BatchStore, 'upsert_delta', side_effect=upsert):
            SaleEngine.cancel_sale(sale_id=sale.pk)
        assert calls == ['customer', 'stock']
        assert _qty(stocked_batch) == 10

    def test_cancel_unknown_sale(self):
        with pytest.raises(ResourceNotFoundError):
            SaleEngine.cancel_sale(sale_id=uuid.uuid4())

    def test_cancel_writes_status_audit(self, stocked_batch, branch):
        sale = SaleEngine.create_sale(
            branch_id=branch.pk, items=[{'product_id': stocked_batch.product_id, 'quantity': 1}],
        )
        SaleEngine.cancel_sale(sale_id=sale.pk, reason='Duplicate')
        log = AuditLog.objects.get(action=AuditLog.ActionChoices.STATUS_CHANGE, object_id=str(sale.pk))
        assert log.old_values == {'status': 'completed'}
        assert log.new_values['status'] == 'cancelled'


class TestHeldSales:

    def test_hold_list_resume(self, stocked_batch, branch, customer):
        cart = [{'product_id': str(stocked_batch.product_id), 'quantity': 2}]
        held = SaleEngine.hold_sale(branch_id=branch.pk, cart=cart, customer_id=customer.pk, notes='Back in 5')
        assert list(SaleEngine.list_held_sales(branch.pk)) == [held]
        assert _qty(stocked_batch) == 10

        payload = SaleEngine.resume_held_sale(held_id=held.pk)
        assert payload['cart'] == cart
        assert payload['customer_id'] == customer.pk
        assert payload['notes'] == 'Back in 5'
        assert not HeldSale.objects.filter(pk=held.pk).exists()

    def test_list_filters_by_branch(self, branch, other_branch):
        SaleEngine.hold_sale(branch_id=branch.pk, cart=[{'sku': 'X'}])
        assert list(SaleEngine.list_held_sales(other_branch.pk)) == []

    def test_empty_cart_rejected(self, branch):
        with pytest.raises(ValidationError):
            SaleEngine.hold_sale(branch_id=branch.pk, cart=[])

    def test_resume_unknown(self):
        with pytest.raises(ResourceNotFoundError):
            SaleEngine.resume_held_sale(held_id=uuid.uuid4())


class TestLastUnit:

    def test_second_sale_for_last_unit_fails(self, branch):
        batch = BatchFactory(branch=branch, quantity=1)
        items = [{'product_id': batch.product_id, 'quantity': 1}]
        SaleEngine.create_sale(branch_id=branch.pk, items=items)
        with pytest.raises(InsufficientStockError):
            SaleEngine.create_sale(branch_id=branch.pk, items=items)
        assert _qty(batch) == 0

    def test_stale_allocation_is_caught_at_commit(self, branch):
        """Pre-flight passed but a concurrent sale took the unit before the decrement."""
        batch = BatchFactory(branch=branch, quantity=1)
        real_allocate = BatchStore.allocate

        def racing_allocate(**kwargs):
            plan = real_allocate(**kwargs)
            Batch.objects.filter(pk=batch.pk).update(quantity=0)
            return plan

        with patch.object(BatchStore, 'allocate', side_effect=racing_allocate):
            with pytest.raises((InsufficientStockError, ConcurrencyConflictError)):
                SaleEngine.create_sale(branch_id=branch.pk, items=[{'product_id': batch.product_id, 'quantity': 1}])
        assert Sale.objects.count() == 0
        assert SaleItem.objects.count() == 0


@pytest.mark.skipif(connection.vendor != 'postgresql', reason='row locks need PostgreSQL')
@pytest.mark.django_db(transaction=True)
def test_concurrent_sales_for_last_unit_one_wins():
    branch = BranchFactory()
    batch = BatchFactory(branch=branch, quantity=1)
    items = [{'product_id': batch.product_id, 'quantity': 1}]
    barrier = threading.Barrier(2)
    outcomes = []

    def attempt():
        try:
            barrier.wait()
            SaleEngine.create_sale(branch_id=branch.pk, items=items)
            outcomes.append('sold')
        except InsufficientStockError:
            outcomes.append('insufficient')
        finally:
            connections.close_all()

    threads = [threading.Thread(target=attempt) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ['insufficient', 'sold']
    assert _qty(batch) == 0
    assert Sale.objects.count() == 1
