"""
Inventory — Service Layer

BatchStore: the only code path that writes Batch.quantity. Every write is
a compare-and-swap (UPDATE ... WHERE quantity = <value read under lock>)
inside the caller's transaction, so concurrent sales, receipts and
transfers against the same row serialize and can never drive it negative.

StockLedger: manual adjustments (add / remove / damage / expired /
correction) with an append-only StockAdjustment entry written in the
same atomic unit as the batch mutation.

@file inventory/services.py
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F, Q, Sum
from django.utils import timezone

from branches.services import BranchService
from catalog.models import Product
from catalog.services import ProductService
from core.constants import AUDIT_ACTION_STOCK_CHANGE
from core.exceptions import (
    ConcurrencyConflictError,
    InsufficientStockError,
    ValidationError,
)
from core.services import AuditService

from .models import Batch, StockAdjustment

logger = logging.getLogger('petpos')

DECREMENT_KINDS = {
    StockAdjustment.Kind.REMOVE,
    StockAdjustment.Kind.DAMAGE,
    StockAdjustment.Kind.EXPIRED,
}


def _batch_filter(product_id, branch_id, batch_number):
    qs = Batch.objects.filter(product_id=product_id, branch_id=branch_id)
    if batch_number is None:
        return qs.filter(batch_number__isnull=True)
    return qs.filter(batch_number=batch_number)


def _fifo_order():
    """Earliest expiry first, undated lots last, then oldest row."""
    return (F('expiry_date').asc(nulls_last=True), 'created_at')


class BatchStore:
    """Quantity-on-hand per (product, branch, batch_number)."""

    @staticmethod
    def get(product_id, branch_id, batch_number: str | None = None) -> Batch | None:
        return _batch_filter(product_id, branch_id, batch_number).first()

    @staticmethod
    def get_aggregate_quantity(product_id, branch_id) -> int:
        """Sum of quantity across every batch of (product, branch)."""
        result = Batch.objects.filter(
            product_id=product_id, branch_id=branch_id,
        ).aggregate(total=Sum('quantity'))
        return result['total'] or 0

    @staticmethod
    def lock(product_id, branch_id, batch_number: str | None = None) -> Batch | None:
        """Fetch the row under SELECT ... FOR UPDATE. Caller must be inside atomic()."""
        return _batch_filter(product_id, branch_id, batch_number).select_for_update().first()

    @staticmethod
    @transaction.atomic
    def upsert_delta(
        *,
        product_id,
        branch_id,
        batch_number: str | None = None,
        delta: int,
        allow_negative: bool = False,
        expiry_date: date | None = None,
        manufacturing_date: date | None = None,
    ) -> Batch:
        """
        Apply a signed delta to one batch.

        A missing row is created only for delta > 0. Dates follow COALESCE
        semantics: a provided value is written, None never clears a known one.
        """
        batch = BatchStore.lock(product_id, branch_id, batch_number)

        if batch is None:
            if delta <= 0:
                raise InsufficientStockError(
                    product_id=product_id,
                    branch_id=branch_id,
                    available=0,
                    requested=-delta,
                )
            try:
                with transaction.atomic():
                    batch = Batch.objects.create(
                        product_id=product_id,
                        branch_id=branch_id,
                        batch_number=batch_number,
                        quantity=delta,
                        expiry_date=expiry_date,
                        manufacturing_date=manufacturing_date,
                    )
            except IntegrityError:
                raise ConcurrencyConflictError(
                    detail=f'Batch {batch_number or "(unbatched)"} was created concurrently; retry.',
                )
            logger.info(
                'Batch %s created: product=%s branch=%s lot=%s qty=%s',
                batch.pk, product_id, branch_id, batch_number, delta,
            )
            return batch

        current = batch.quantity
        new_quantity = current + delta
        if new_quantity < 0 and not allow_negative:
            raise InsufficientStockError(
                product_id=product_id,
                branch_id=branch_id,
                available=current,
                requested=-delta,
            )

        if (
            expiry_date is not None
            and batch.expiry_date is not None
            and expiry_date != batch.expiry_date
        ):
            logger.warning(
                'Batch %s expiry changed from %s to %s by an incoming receipt.',
                batch.pk, batch.expiry_date, expiry_date,
            )
        new_expiry = expiry_date if expiry_date is not None else batch.expiry_date
        new_mfg = manufacturing_date if manufacturing_date is not None else batch.manufacturing_date
        now = timezone.now()

        updated = Batch.objects.filter(pk=batch.pk, quantity=current).update(
            quantity=new_quantity,
            expiry_date=new_expiry,
            manufacturing_date=new_mfg,
            updated_at=now,
        )
        if updated != 1:
            raise ConcurrencyConflictError(
                detail=f'Batch {batch.pk} changed while being updated; retry.',
            )

        batch.quantity = new_quantity
        batch.expiry_date = new_expiry
        batch.manufacturing_date = new_mfg
        batch.updated_at = now
        logger.info(
            'Batch %s qty %s -> %s (delta %+d)',
            batch.pk, current, new_quantity, delta,
        )
        return batch

    @staticmethod
    @transaction.atomic
    def provision(*, product_id, branch_id, batch_number: str | None = None) -> Batch:
        """Zero-quantity placeholder row; returns the existing row if present."""
        batch = BatchStore.lock(product_id, branch_id, batch_number)
        if batch is not None:
            return batch
        return Batch.objects.create(
            product_id=product_id,
            branch_id=branch_id,
            batch_number=batch_number,
            quantity=0,
        )

    @staticmethod
    def allocate(
        *,
        product_id,
        branch_id,
        quantity: int,
        batch_number: str | None = None,
    ) -> list[tuple[Batch, int]]:
        """
        Lock the batches that will supply ``quantity`` units and return
        (batch, units) pairs. batch_number restricts the pick to that lot;
        otherwise lots are consumed FIFO by expiry. Caller must be inside
        atomic() and apply the decrements through upsert_delta.
        """
        qs = Batch.objects.select_for_update().filter(
            product_id=product_id, branch_id=branch_id, quantity__gt=0,
        )
        if batch_number is not None:
            qs = qs.filter(batch_number=batch_number)
        batches = list(qs.order_by(*_fifo_order()))

        available = sum(b.quantity for b in batches)
        if available < quantity:
            raise InsufficientStockError(
                product_id=product_id,
                branch_id=branch_id,
                available=available,
                requested=quantity,
            )

        plan: list[tuple[Batch, int]] = []
        remaining = quantity
        for batch in batches:
            take = min(batch.quantity, remaining)
            plan.append((batch, take))
            remaining -= take
            if remaining == 0:
                break
        return plan

    @staticmethod
    def available_quantity(product_id, branch_id, batch_number: str | None = None) -> int:
        """Aggregate, or a single lot's quantity when batch_number is given."""
        if batch_number is None:
            return BatchStore.get_aggregate_quantity(product_id, branch_id)
        batch = BatchStore.get(product_id, branch_id, batch_number)
        return batch.quantity if batch else 0

    @staticmethod
    def low_stock(branch_id) -> list[dict]:
        """Active products whose aggregate quantity at the branch is below min_stock."""
        rows = (
            Product.objects.filter(is_active=True)
            .annotate(
                on_hand=Sum('batches__quantity', filter=Q(batches__branch_id=branch_id)),
            )
            .order_by('name')
        )
        alerts = []
        for product in rows:
            on_hand = product.on_hand or 0
            if on_hand < product.min_stock:
                alerts.append({
                    'product_id': product.pk,
                    'sku': product.sku,
                    'name': product.name,
                    'quantity': on_hand,
                    'min_stock': product.min_stock,
                    'status': 'out_of_stock' if on_hand == 0 else 'low_stock',
                })
        return alerts

    @staticmethod
    def expiring(branch_id, within_days: int | None = None):
        """Batches with stock on hand expiring within the window (expired ones included)."""
        if within_days is None:
            within_days = settings.STOCK_EXPIRY_WARNING_DAYS
        horizon = timezone.now().date() + timedelta(days=within_days)
        return (
            Batch.objects.filter(
                branch_id=branch_id,
                quantity__gt=0,
                expiry_date__isnull=False,
                expiry_date__lte=horizon,
            )
            .select_related('product')
            .order_by('expiry_date')
        )


@dataclass(frozen=True)
class AdjustmentResult:
    batch: Batch
    adjustment: StockAdjustment
    previous_quantity: int
    new_quantity: int
    delta: int


class StockLedger:
    """Manual stock adjustments with an immutable history."""

    @staticmethod
    @transaction.atomic
    def adjust(
        *,
        product_id,
        branch_id,
        batch_number: str | None = None,
        kind: str,
        quantity: int,
        reason: str = '',
        actor=None,
    ) -> AdjustmentResult:
        """
        add: +quantity. remove / damage / expired: -quantity, refused when
        the batch holds less. correction: set the absolute quantity.
        Exactly one StockAdjustment is written, recording the applied delta.
        """
        if kind not in StockAdjustment.Kind.values:
            raise ValidationError(detail=f'Invalid adjustment kind: {kind}.')
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValidationError(detail='Quantity must be an integer.')
        if kind == StockAdjustment.Kind.CORRECTION:
            if quantity < 0:
                raise ValidationError(detail='Corrected quantity cannot be negative.')
        elif quantity <= 0:
            raise ValidationError(detail='Quantity must be positive.')

        ProductService.get_product(product_id, active_only=False)
        BranchService.get_branch(branch_id)

        batch = BatchStore.lock(product_id, branch_id, batch_number)
        previous = batch.quantity if batch is not None else 0

        if kind == StockAdjustment.Kind.ADD:
            delta = quantity
        elif kind in DECREMENT_KINDS:
            delta = -quantity
        else:
            delta = quantity - previous

        if delta != 0:
            batch = BatchStore.upsert_delta(
                product_id=product_id,
                branch_id=branch_id,
                batch_number=batch_number,
                delta=delta,
            )
        elif batch is None:
            batch = BatchStore.provision(
                product_id=product_id, branch_id=branch_id, batch_number=batch_number,
            )

        adjustment = StockAdjustment.objects.create(
            product_id=product_id,
            branch_id=branch_id,
            batch=batch,
            batch_number=batch_number,
            kind=kind,
            quantity=quantity,
            delta=delta,
            previous_quantity=previous,
            new_quantity=batch.quantity,
            reason=reason or '',
            created_by=actor,
        )
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STOCK_CHANGE,
            model_name='Batch',
            object_id=str(batch.pk),
            old_values={'quantity': previous},
            new_values={
                'quantity': batch.quantity,
                'kind': kind,
                'adjustment_id': str(adjustment.pk),
            },
        )
        logger.info(
            'StockAdjustment %s %s %+d product=%s branch=%s lot=%s',
            adjustment.pk, kind, delta, product_id, branch_id, batch_number,
        )
        return AdjustmentResult(
            batch=batch,
            adjustment=adjustment,
            previous_quantity=previous,
            new_quantity=batch.quantity,
            delta=delta,
        )

    @staticmethod
    def history(*, product_id=None, branch_id=None, limit: int = 50):
        qs = StockAdjustment.objects.select_related('product', 'branch', 'created_by')
        if product_id is not None:
            qs = qs.filter(product_id=product_id)
        if branch_id is not None:
            qs = qs.filter(branch_id=branch_id)
        return qs.order_by('-created_at')[:limit]

    @staticmethod
    def write_off_expired(*, today: date | None = None, actor=None) -> int:
        """
        Remove the remaining quantity of every expired batch with an
        'expired' adjustment. Each batch commits on its own; a batch that
        fails is logged and left for the next run.
        """
        today = today or timezone.now().date()
        expired = Batch.objects.filter(
            quantity__gt=0, expiry_date__isnull=False, expiry_date__lt=today,
        ).values_list('product_id', 'branch_id', 'batch_number', 'quantity')

        count = 0
        for product_id, branch_id, batch_number, quantity in list(expired):
            try:
                StockLedger.adjust(
                    product_id=product_id,
                    branch_id=branch_id,
                    batch_number=batch_number,
                    kind=StockAdjustment.Kind.EXPIRED,
                    quantity=quantity,
                    reason=f'Expired before {today.isoformat()}',
                    actor=actor,
                )
            except (InsufficientStockError, ConcurrencyConflictError) as exc:
                logger.warning(
                    'Expired write-off skipped for product=%s branch=%s lot=%s: %s',
                    product_id, branch_id, batch_number, exc.detail,
                )
                continue
            count += 1
        return count
