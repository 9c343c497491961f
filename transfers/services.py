"""
Transfers — Service Layer

Transfer lifecycle: create (PENDING), approve, ship, complete, cancel.
Completion is the only transition that moves stock: every line is taken
from the source branch's batches and added to the destination batch of
the same lot number, carrying its dates, in one atomic unit.

@file transfers/services.py
"""

import logging
from collections import defaultdict

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from branches.services import BranchService
from catalog.services import ProductService
from core.constants import (
    AUDIT_ACTION_CREATE,
    AUDIT_ACTION_STATUS_CHANGE,
    TRANSFER_PREFIX,
)
from core.exceptions import (
    ConcurrencyConflictError,
    InsufficientStockError,
    InvalidStateError,
    ResourceNotFoundError,
    ValidationError,
)
from core.services import AuditService, DocumentNumberService, validate_input
from inventory.services import BatchStore

from .models import StockTransfer, StockTransferItem
from .serializers import TransferRequestSerializer

logger = logging.getLogger('petpos')

# Valid status transitions: from_status -> set of allowed to_status
TRANSFER_TRANSITIONS = {
    StockTransfer.StatusChoices.PENDING: {
        StockTransfer.StatusChoices.APPROVED,
        StockTransfer.StatusChoices.CANCELLED,
    },
    StockTransfer.StatusChoices.APPROVED: {
        StockTransfer.StatusChoices.IN_TRANSIT,
        StockTransfer.StatusChoices.CANCELLED,
    },
    StockTransfer.StatusChoices.IN_TRANSIT: {
        StockTransfer.StatusChoices.COMPLETED,
        StockTransfer.StatusChoices.CANCELLED,
    },
    StockTransfer.StatusChoices.COMPLETED: set(),
    StockTransfer.StatusChoices.CANCELLED: set(),
}


def _assert_transition(transfer: StockTransfer, new_status: str) -> None:
    if new_status not in StockTransfer.StatusChoices.values:
        raise ValidationError(detail=f'Unknown transfer status: {new_status}.')
    allowed = TRANSFER_TRANSITIONS.get(transfer.status, set())
    if new_status not in allowed:
        raise InvalidStateError(
            detail=f'Cannot transition transfer from {transfer.status} to {new_status}.',
        )


def _move_line(transfer: StockTransfer, item: StockTransferItem) -> None:
    plan = BatchStore.allocate(
        product_id=item.product_id,
        branch_id=transfer.from_branch_id,
        quantity=item.quantity,
        batch_number=item.batch_number,
    )
    landed = []
    for batch, take in plan:
        BatchStore.upsert_delta(
            product_id=item.product_id,
            branch_id=transfer.from_branch_id,
            batch_number=batch.batch_number,
            delta=-take,
        )
        BatchStore.upsert_delta(
            product_id=item.product_id,
            branch_id=transfer.to_branch_id,
            batch_number=batch.batch_number,
            delta=take,
            expiry_date=batch.expiry_date,
            manufacturing_date=batch.manufacturing_date,
        )
        if batch.batch_number and batch.batch_number not in landed:
            landed.append(batch.batch_number)
    item.destination_batch_number = ', '.join(landed) or None
    item.save(update_fields=['destination_batch_number'])


class TransferEngine:
    """Inter-branch stock transfers."""

    @staticmethod
    @transaction.atomic
    def create_transfer(
        *,
        from_branch_id,
        to_branch_id,
        items: list[dict],
        notes: str = '',
        actor=None,
    ) -> StockTransfer:
        """
        Create a PENDING transfer. Every line is checked against the
        source branch's stock now; nothing moves until completion.
        items: [{product_id, quantity, batch_number?}]
        """
        data = validate_input(TransferRequestSerializer, {
            'from_branch_id': from_branch_id,
            'to_branch_id': to_branch_id,
            'items': items,
            'notes': notes or '',
        })
        from_branch = BranchService.get_branch(data['from_branch_id'])
        to_branch = BranchService.get_branch(data['to_branch_id'])

        lines = [(ProductService.get_product(row['product_id']), row) for row in data['items']]
        requested = defaultdict(int)
        for product, row in lines:
            requested[(product.pk, row.get('batch_number'))] += row['quantity']
        for (product_id, batch_number), quantity in requested.items():
            available = BatchStore.available_quantity(product_id, from_branch.pk, batch_number)
            if available < quantity:
                logger.warning(
                    'Transfer rejected: product=%s branch=%s lot=%s available=%s requested=%s',
                    product_id, from_branch.pk, batch_number, available, quantity,
                )
                raise InsufficientStockError(
                    product_id=product_id,
                    branch_id=from_branch.pk,
                    available=available,
                    requested=quantity,
                )

        try:
            with transaction.atomic():
                transfer = StockTransfer.objects.create(
                    transfer_number=DocumentNumberService.next_number(
                        StockTransfer, 'transfer_number', TRANSFER_PREFIX,
                    ),
                    from_branch=from_branch,
                    to_branch=to_branch,
                    status=StockTransfer.StatusChoices.PENDING,
                    notes=data['notes'],
                    created_by=actor,
                )
        except IntegrityError:
            raise ConcurrencyConflictError(detail='Transfer number taken by a concurrent transfer; retry.')

        for product, row in lines:
            StockTransferItem.objects.create(
                transfer=transfer,
                product=product,
                quantity=row['quantity'],
                batch_number=row.get('batch_number'),
            )

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='StockTransfer',
            object_id=str(transfer.pk),
            new_values={
                'transfer_number': transfer.transfer_number,
                'from_branch': str(from_branch.pk),
                'to_branch': str(to_branch.pk),
            },
        )
        logger.info('Transfer %s (%s) created.', transfer.pk, transfer.transfer_number)
        return transfer

    @staticmethod
    @transaction.atomic
    def advance_status(*, transfer_id, new_status: str, actor=None) -> StockTransfer:
        """
        Move a transfer one step along its lifecycle. Entering COMPLETED
        moves the stock; asking for COMPLETED again returns the transfer
        unchanged.
        """
        try:
            transfer = StockTransfer.objects.select_for_update().get(pk=transfer_id)
        except (StockTransfer.DoesNotExist, DjangoValidationError, ValueError):
            raise ResourceNotFoundError(detail=f'Transfer not found: {transfer_id}.')

        if (
            transfer.status == StockTransfer.StatusChoices.COMPLETED
            and new_status == StockTransfer.StatusChoices.COMPLETED
        ):
            return transfer
        _assert_transition(transfer, new_status)

        update_fields = ['status', 'updated_by', 'updated_at']
        if new_status == StockTransfer.StatusChoices.COMPLETED:
            items = sorted(transfer.items.all(), key=lambda i: (str(i.product_id), i.batch_number or ''))
            for item in items:
                _move_line(transfer, item)
            transfer.completed_at = timezone.now()
            update_fields.append('completed_at')

        old_status = transfer.status
        transfer.status = new_status
        transfer.updated_by = actor
        transfer.save(update_fields=update_fields)
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STATUS_CHANGE,
            model_name='StockTransfer',
            object_id=str(transfer.pk),
            old_values={'status': old_status},
            new_values={'status': new_status},
        )
        logger.info('Transfer %s %s -> %s.', transfer.transfer_number, old_status, new_status)
        return transfer
