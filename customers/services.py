"""
Customers — Service Layer

Customer lookup and loyalty bookkeeping for the sale engine.

@file customers/services.py
"""

import logging
from decimal import ROUND_FLOOR, Decimal

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError

from core.exceptions import ResourceNotFoundError

from .models import Customer

logger = logging.getLogger('petpos')


def loyalty_points_for(amount: Decimal) -> int:
    """One point per LOYALTY_POINT_VALUE currency units, rounded down."""
    value = Decimal(settings.LOYALTY_POINT_VALUE)
    return int((Decimal(amount) / value).to_integral_value(rounding=ROUND_FLOOR))


class CustomerService:

    @staticmethod
    def get_customer(customer_id, *, for_update: bool = False) -> Customer:
        qs = Customer.objects.all()
        if for_update:
            qs = qs.select_for_update()
        try:
            return qs.get(pk=customer_id)
        except (Customer.DoesNotExist, DjangoValidationError, ValueError):
            raise ResourceNotFoundError(detail=f'Customer not found: {customer_id}.')

    @staticmethod
    def apply_purchase(customer: Customer, amount: Decimal, *, reverse: bool = False) -> Customer:
        """
        Add (or, with reverse=True, remove) a purchase's effect on the
        customer's loyalty balance. Caller holds the row lock.
        """
        sign = -1 if reverse else 1
        points = loyalty_points_for(amount)
        customer.loyalty_points += sign * points
        customer.total_purchases += sign * Decimal(amount)
        customer.save(update_fields=['loyalty_points', 'total_purchases', 'updated_at'])
        logger.debug(
            'Customer %s loyalty %+d points, purchases %+s.',
            customer.pk, sign * points, sign * Decimal(amount),
        )
        return customer
