"""
Sales — Service Layer

SaleEngine: creates and cancels point-of-sale invoices. A sale decrements
stock batch by batch (FIFO by expiry unless the cashier scanned a lot),
prices the lines, applies the invoice discount and credits loyalty, all
in one transaction. Cancellation is the exact inverse.

Held sales park a cart without touching stock.

@file sales/services.py
"""

import logging
from collections import defaultdict
from decimal import ROUND_DOWN, Decimal

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from branches.services import BranchService
from catalog.services import ProductService
from core.constants import (
    AUDIT_ACTION_CREATE,
    AUDIT_ACTION_STATUS_CHANGE,
    INVOICE_PREFIX,
    MONEY_PLACES,
)
from core.exceptions import (
    ConcurrencyConflictError,
    InsufficientStockError,
    InvalidStateError,
    ResourceNotFoundError,
    ValidationError,
)
from core.services import AuditService, DocumentNumberService, money, validate_input
from customers.services import CustomerService
from inventory.services import BatchStore

from .models import HeldSale, Sale, SaleItem
from .serializers import HeldSaleSerializer, SaleRequestSerializer

logger = logging.getLogger('petpos')

HUNDRED = Decimal('100')


def _price_lines(lines: list[dict]) -> list[dict]:
    """Resolve products and compute per-line subtotal and tax."""
    priced = []
    for line in lines:
        product = ProductService.get_product(line['product_id'])
        unit_price = line.get('unit_price')
        if unit_price is None:
            unit_price = product.selling_price
        unit_price = money(unit_price)
        line_subtotal = money(unit_price * line['quantity'])
        tax_rate = Decimal(product.tax_rate)
        priced.append({
            'product': product,
            'quantity': line['quantity'],
            'batch_number': line.get('batch_number'),
            'unit_price': unit_price,
            'tax_rate': tax_rate,
            'subtotal': line_subtotal,
            'tax': money(line_subtotal * tax_rate / HUNDRED),
        })
    return priced


def _preflight(branch_id, priced: list[dict]) -> None:
    """
    Check every line against current stock before anything is written.
    Repeated (product, lot) lines are summed.
    """
    requested = defaultdict(int)
    for line in priced:
        requested[(line['product'].pk, line['batch_number'])] += line['quantity']
    for (product_id, batch_number), quantity in requested.items():
        available = BatchStore.available_quantity(product_id, branch_id, batch_number)
        if available < quantity:
            logger.warning(
                'Sale rejected: product=%s branch=%s lot=%s available=%s requested=%s',
                product_id, branch_id, batch_number, available, quantity,
            )
            raise InsufficientStockError(
                product_id=product_id,
                branch_id=branch_id,
                available=available,
                requested=quantity,
            )


def _discount_amount(subtotal: Decimal, tax_total: Decimal, discount: Decimal, discount_type: str) -> Decimal:
    if discount_type == Sale.DiscountTypeChoices.PERCENTAGE:
        amount = money(subtotal * discount / HUNDRED)
    else:
        amount = money(discount)
    if amount > subtotal + tax_total:
        raise ValidationError(
            detail=f'Discount {amount} exceeds the invoice total {subtotal + tax_total}.',
        )
    return amount


def _split_tax(line: dict, parts: list[tuple]) -> list[Decimal]:
    """
    Spread a line's tax over its batch splits pro rata, rounding each
    share down; the last split takes the remainder, which is never negative.
    """
    shares = []
    remaining = line['tax']
    for index, (_, take) in enumerate(parts):
        if index == len(parts) - 1:
            shares.append(remaining)
        else:
            share = (line['tax'] * take / line['quantity']).quantize(MONEY_PLACES, rounding=ROUND_DOWN)
            shares.append(share)
            remaining -= share
    return shares


def _lock_order(line: dict):
    """Stock rows are locked in (product, lot) order across every engine."""
    return (str(line['product'].pk), line['batch_number'] or '')


class SaleEngine:
    """Point-of-sale transactions."""

    @staticmethod
    @transaction.atomic
    def create_sale(
        *,
        branch_id,
        items: list[dict],
        customer_id=None,
        discount=0,
        discount_type: str = Sale.DiscountTypeChoices.AMOUNT,
        payment_method: str = Sale.PaymentMethodChoices.CASH,
        notes: str = '',
        actor=None,
    ) -> Sale:
        """
        Create a completed sale.

        items: [{product_id, quantity, unit_price?, batch_number?}]
        unit_price defaults to the product's selling price. Stock is
        decremented now whatever the payment method; credit sales are
        recorded with payment_status 'pending'.
        """
        data = validate_input(SaleRequestSerializer, {
            'branch_id': branch_id,
            'customer_id': customer_id,
            'items': items,
            'discount': discount,
            'discount_type': discount_type,
            'payment_method': payment_method,
            'notes': notes or '',
        })
        branch = BranchService.get_branch(data['branch_id'])
        customer = None
        if data.get('customer_id') is not None:
            customer = CustomerService.get_customer(data['customer_id'], for_update=True)

        priced = _price_lines(data['items'])
        _preflight(branch.pk, priced)

        subtotal = sum((line['subtotal'] for line in priced), Decimal('0'))
        tax_total = sum((line['tax'] for line in priced), Decimal('0'))
        discount_amount = _discount_amount(subtotal, tax_total, data['discount'], data['discount_type'])
        grand_total = money(subtotal + tax_total - discount_amount)

        if data['payment_method'] == Sale.PaymentMethodChoices.CREDIT:
            payment_status = Sale.PaymentStatusChoices.PENDING
        else:
            payment_status = Sale.PaymentStatusChoices.PAID

        # Lock order: customer, stock rows by (product, lot), invoice number.
        # Racing sales for the same units therefore fail on stock.
        decrements = []
        for line in sorted(priced, key=_lock_order):
            plan = BatchStore.allocate(
                product_id=line['product'].pk,
                branch_id=branch.pk,
                quantity=line['quantity'],
                batch_number=line['batch_number'],
            )
            for (batch, take), tax_share in zip(plan, _split_tax(line, plan)):
                BatchStore.upsert_delta(
                    product_id=line['product'].pk,
                    branch_id=branch.pk,
                    batch_number=batch.batch_number,
                    delta=-take,
                )
                decrements.append((line, batch, take, tax_share))

        try:
            with transaction.atomic():
                sale = Sale.objects.create(
                    invoice_number=DocumentNumberService.next_number(Sale, 'invoice_number', INVOICE_PREFIX),
                    branch=branch,
                    customer=customer,
                    cashier=actor,
                    subtotal=subtotal,
                    tax_total=tax_total,
                    discount=data['discount'],
                    discount_type=data['discount_type'],
                    discount_amount=discount_amount,
                    grand_total=grand_total,
                    payment_method=data['payment_method'],
                    payment_status=payment_status,
                    status=Sale.StatusChoices.COMPLETED,
                    notes=data['notes'],
                    created_by=actor,
                )
        except IntegrityError:
            raise ConcurrencyConflictError(detail='Invoice number taken by a concurrent sale; retry.')

        for line, batch, take, tax_share in decrements:
            SaleItem.objects.create(
                sale=sale,
                product=line['product'],
                batch=batch,
                batch_number=batch.batch_number,
                quantity=take,
                unit_price=line['unit_price'],
                tax_rate=line['tax_rate'],
                tax_amount=tax_share,
                total=money(line['unit_price'] * take) + tax_share,
            )

        if customer is not None:
            CustomerService.apply_purchase(customer, grand_total)

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='Sale',
            object_id=str(sale.pk),
            new_values={
                'invoice_number': sale.invoice_number,
                'grand_total': str(grand_total),
                'payment_method': sale.payment_method,
            },
        )
        logger.info(
            'Sale %s (%s) created at branch %s: total=%s',
            sale.pk, sale.invoice_number, branch.pk, grand_total,
        )
        return sale

    @staticmethod
    @transaction.atomic
    def cancel_sale(*, sale_id, reason: str = '', actor=None) -> Sale:
        """
        Cancel a completed sale: every item's units go back to the batch
        they came from and the customer's loyalty credit is reversed.
        """
        try:
            sale = Sale.objects.select_for_update().get(pk=sale_id)
        except (Sale.DoesNotExist, DjangoValidationError, ValueError):
            raise ResourceNotFoundError(detail=f'Sale not found: {sale_id}.')

        if sale.status != Sale.StatusChoices.COMPLETED:
            raise InvalidStateError(
                detail=f'Cannot cancel sale {sale.invoice_number} in status {sale.status}.',
            )

        customer = None
        if sale.customer_id is not None:
            customer = CustomerService.get_customer(sale.customer_id, for_update=True)

        items = sorted(sale.items.all(), key=lambda i: (str(i.product_id), i.batch_number or ''))
        for item in items:
            BatchStore.upsert_delta(
                product_id=item.product_id,
                branch_id=sale.branch_id,
                batch_number=item.batch_number,
                delta=item.quantity,
            )

        if customer is not None:
            CustomerService.apply_purchase(customer, sale.grand_total, reverse=True)

        old_status = sale.status
        note = f'Cancelled: {reason or "No reason provided"}'
        sale.notes = f'{sale.notes} | {note}' if sale.notes else note
        sale.status = Sale.StatusChoices.CANCELLED
        sale.cancelled_at = timezone.now()
        sale.updated_by = actor
        sale.save(update_fields=['status', 'notes', 'cancelled_at', 'updated_by', 'updated_at'])

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STATUS_CHANGE,
            model_name='Sale',
            object_id=str(sale.pk),
            old_values={'status': old_status},
            new_values={'status': sale.status, 'reason': reason or ''},
        )
        logger.info('Sale %s (%s) cancelled.', sale.pk, sale.invoice_number)
        return sale

    @staticmethod
    @transaction.atomic
    def hold_sale(*, branch_id, cart: list[dict], customer_id=None, notes: str = '', actor=None) -> HeldSale:
        data = validate_input(HeldSaleSerializer, {'cart': cart, 'notes': notes or ''})
        branch = BranchService.get_branch(branch_id)
        customer = None
        if customer_id is not None:
            customer = CustomerService.get_customer(customer_id)
        held = HeldSale.objects.create(
            branch=branch,
            cashier=actor,
            customer=customer,
            cart=data['cart'],
            notes=data['notes'],
            created_by=actor,
        )
        logger.info('Cart %s held at branch %s.', held.pk, branch.pk)
        return held

    @staticmethod
    def list_held_sales(branch_id=None):
        qs = HeldSale.objects.select_related('customer', 'cashier')
        if branch_id is not None:
            qs = qs.filter(branch_id=branch_id)
        return qs.order_by('-created_at')

    @staticmethod
    @transaction.atomic
    def resume_held_sale(*, held_id) -> dict:
        """Return the parked cart and discard the hold."""
        try:
            held = HeldSale.objects.select_for_update().get(pk=held_id)
        except (HeldSale.DoesNotExist, DjangoValidationError, ValueError):
            raise ResourceNotFoundError(detail=f'Held sale not found: {held_id}.')
        payload = {
            'branch_id': held.branch_id,
            'customer_id': held.customer_id,
            'cart': held.cart,
            'notes': held.notes,
        }
        held.delete()
        logger.info('Held cart %s resumed.', held_id)
        return payload
