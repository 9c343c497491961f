"""
Purchasing — Service Layer

Purchase order lifecycle: create (PENDING), confirm, ship, cancel, and
receive, which merges the delivered quantities into the branch's
batches and closes the order as DELIVERED.

@file purchasing/services.py
"""

import logging
from decimal import Decimal

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from branches.services import BranchService
from catalog.services import ProductService
from core.constants import (
    AUDIT_ACTION_CREATE,
    AUDIT_ACTION_STATUS_CHANGE,
    PURCHASE_ORDER_PREFIX,
)
from core.exceptions import (
    ConcurrencyConflictError,
    InvalidStateError,
    ResourceNotFoundError,
    ValidationError,
)
from core.services import AuditService, DocumentNumberService, money, validate_input
from inventory.services import BatchStore

from .models import PurchaseOrder, PurchaseOrderItem, Supplier
from .serializers import PurchaseOrderRequestSerializer, ReceiveRequestSerializer

logger = logging.getLogger('petpos')

# Valid status transitions reachable through advance_status.
# DELIVERED is absent on purpose: only receive() enters it.
PO_TRANSITIONS = {
    PurchaseOrder.StatusChoices.PENDING: {
        PurchaseOrder.StatusChoices.CONFIRMED,
        PurchaseOrder.StatusChoices.CANCELLED,
    },
    PurchaseOrder.StatusChoices.CONFIRMED: {
        PurchaseOrder.StatusChoices.IN_TRANSIT,
        PurchaseOrder.StatusChoices.CANCELLED,
    },
    PurchaseOrder.StatusChoices.IN_TRANSIT: {
        PurchaseOrder.StatusChoices.CANCELLED,
    },
    PurchaseOrder.StatusChoices.DELIVERED: set(),
    PurchaseOrder.StatusChoices.CANCELLED: set(),
}

TERMINAL_STATUSES = {
    PurchaseOrder.StatusChoices.DELIVERED,
    PurchaseOrder.StatusChoices.CANCELLED,
}


def _assert_transition(order: PurchaseOrder, new_status: str) -> None:
    if new_status not in PurchaseOrder.StatusChoices.values:
        raise ValidationError(detail=f'Unknown purchase order status: {new_status}.')
    if new_status == PurchaseOrder.StatusChoices.DELIVERED:
        raise InvalidStateError(
            detail='Purchase orders become delivered only by receiving the goods.',
        )
    allowed = PO_TRANSITIONS.get(order.status, set())
    if new_status not in allowed:
        raise InvalidStateError(
            detail=f'Cannot transition purchase order from {order.status} to {new_status}.',
        )


def _get_locked_order(po_id) -> PurchaseOrder:
    try:
        return PurchaseOrder.objects.select_for_update().get(pk=po_id)
    except (PurchaseOrder.DoesNotExist, DjangoValidationError, ValueError):
        raise ResourceNotFoundError(detail=f'Purchase order not found: {po_id}.')


class PurchaseEngine:
    """Purchase order lifecycle and receiving."""

    @staticmethod
    @transaction.atomic
    def create_order(
        *,
        supplier_id,
        branch_id,
        items: list[dict],
        expected_delivery=None,
        notes: str = '',
        actor=None,
    ) -> PurchaseOrder:
        """Create a PENDING order. items: [{product_id, quantity, unit_price, batch_number?, expiry_date?, manufacturing_date?}]"""
        data = validate_input(PurchaseOrderRequestSerializer, {
            'items': items,
            'expected_delivery': expected_delivery,
            'notes': notes or '',
        })
        try:
            supplier = Supplier.objects.get(pk=supplier_id, is_active=True)
        except (Supplier.DoesNotExist, DjangoValidationError, ValueError):
            raise ResourceNotFoundError(detail=f'Supplier not found: {supplier_id}.')
        branch = BranchService.get_branch(branch_id)

        try:
            with transaction.atomic():
                order = PurchaseOrder.objects.create(
                    po_number=DocumentNumberService.next_number(
                        PurchaseOrder, 'po_number', PURCHASE_ORDER_PREFIX,
                    ),
                    supplier=supplier,
                    branch=branch,
                    status=PurchaseOrder.StatusChoices.PENDING,
                    order_date=timezone.now().date(),
                    expected_delivery=data.get('expected_delivery'),
                    notes=data['notes'],
                    created_by=actor,
                )
        except IntegrityError:
            raise ConcurrencyConflictError(detail='PO number taken by a concurrent order; retry.')

        total = Decimal('0')
        for row in data['items']:
            product = ProductService.get_product(row['product_id'])
            PurchaseOrderItem.objects.create(
                purchase_order=order,
                product=product,
                quantity=row['quantity'],
                unit_price=row['unit_price'],
                batch_number=row.get('batch_number'),
                expiry_date=row.get('expiry_date'),
                manufacturing_date=row.get('manufacturing_date'),
            )
            total += row['unit_price'] * row['quantity']
        order.total_amount = money(total)
        order.save(update_fields=['total_amount', 'updated_at'])

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='PurchaseOrder',
            object_id=str(order.pk),
            new_values={'po_number': order.po_number, 'total_amount': str(order.total_amount)},
        )
        logger.info('Purchase order %s (%s) created.', order.pk, order.po_number)
        return order

    @staticmethod
    @transaction.atomic
    def advance_status(*, po_id, new_status: str, actor=None) -> PurchaseOrder:
        order = _get_locked_order(po_id)
        _assert_transition(order, new_status)
        old_status = order.status
        order.status = new_status
        order.updated_by = actor
        order.save(update_fields=['status', 'updated_by', 'updated_at'])
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STATUS_CHANGE,
            model_name='PurchaseOrder',
            object_id=str(order.pk),
            old_values={'status': old_status},
            new_values={'status': new_status},
        )
        return order

    @staticmethod
    @transaction.atomic
    def receive(*, po_id, items: list[dict], actor=None) -> PurchaseOrder:
        """
        Receive the goods of a purchase order.

        items: [{item_id, received_quantity, batch_number?, expiry_date?, manufacturing_date?}]
        Each received quantity is added to the (product, branch, lot)
        batch, creating it when absent. A provided expiry replaces the
        batch's; an absent one leaves it alone. Lines received as zero are
        recorded without touching stock. The order ends DELIVERED.
        """
        data = validate_input(ReceiveRequestSerializer, {'items': items})
        order = _get_locked_order(po_id)
        if order.status in TERMINAL_STATUSES:
            raise InvalidStateError(
                detail=f'Cannot receive purchase order {order.po_number} in status {order.status}.',
            )

        order_items = {item.pk: item for item in order.items.select_for_update()}
        for line in data['items']:
            item = order_items.get(line['item_id'])
            if item is None:
                raise ValidationError(
                    detail=f'Item {line["item_id"]} does not belong to purchase order {order.po_number}.',
                )
            received = line['received_quantity']
            if received > item.quantity:
                raise ValidationError(
                    detail=f'Received quantity {received} exceeds ordered quantity {item.quantity} for item {item.pk}.',
                )

            batch_number = line.get('batch_number') or item.batch_number
            expiry_date = line.get('expiry_date') or item.expiry_date
            manufacturing_date = line.get('manufacturing_date') or item.manufacturing_date

            if received > 0:
                BatchStore.upsert_delta(
                    product_id=item.product_id,
                    branch_id=order.branch_id,
                    batch_number=batch_number,
                    delta=received,
                    expiry_date=expiry_date,
                    manufacturing_date=manufacturing_date,
                )

            item.received_quantity = received
            item.batch_number = batch_number
            item.expiry_date = expiry_date
            item.manufacturing_date = manufacturing_date
            item.save(update_fields=[
                'received_quantity', 'batch_number', 'expiry_date', 'manufacturing_date',
            ])

        old_status = order.status
        order.status = PurchaseOrder.StatusChoices.DELIVERED
        order.received_date = timezone.now()
        order.updated_by = actor
        order.save(update_fields=['status', 'received_date', 'updated_by', 'updated_at'])
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STATUS_CHANGE,
            model_name='PurchaseOrder',
            object_id=str(order.pk),
            old_values={'status': old_status},
            new_values={
                'status': order.status,
                'received': {str(item_id): item.received_quantity for item_id, item in order_items.items()},
            },
        )
        logger.info('Purchase order %s (%s) received.', order.pk, order.po_number)
        return order
