"""
Catalog — Service Layer

Product lookup for the sale/purchase/transfer engines, and product
creation, which provisions a zero-quantity placeholder batch at every
branch so the product shows up in branch stock lists immediately.

@file catalog/services.py
"""

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from core.constants import AUDIT_ACTION_CREATE
from core.exceptions import DuplicateResourceError, ProductNotFoundError
from core.services import AuditService

from .models import Product

logger = logging.getLogger('petpos')


def placeholder_batch_number(branch_seq: int, product_seq: int) -> str:
    """BTH{branch:02d}{product:04d}, e.g. BTH020017."""
    return f'BTH{branch_seq:02d}{product_seq:04d}'


class ProductService:

    @staticmethod
    def get_product(product_id, *, active_only: bool = True) -> Product:
        qs = Product.objects.all()
        if active_only:
            qs = qs.filter(is_active=True)
        try:
            return qs.get(pk=product_id)
        except (Product.DoesNotExist, DjangoValidationError, ValueError):
            raise ProductNotFoundError(detail=f'Product not found: {product_id}.')

    @staticmethod
    @transaction.atomic
    def create_product(*, actor=None, **fields) -> Product:
        """Create a product and provision an empty batch at every branch."""
        from branches.models import Branch
        from inventory.services import BatchStore

        sku = fields.get('sku')
        if Product.objects.filter(sku=sku).exists():
            raise DuplicateResourceError(detail=f'SKU already exists: {sku}.')

        product = Product(**fields)
        product.full_clean()
        product.created_by = actor
        product.save()

        product_seq = Product.objects.count()
        for branch_seq, branch in enumerate(Branch.objects.order_by('created_at', 'code'), start=1):
            BatchStore.provision(
                product_id=product.pk,
                branch_id=branch.pk,
                batch_number=placeholder_batch_number(branch_seq, product_seq),
            )

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='Product',
            object_id=str(product.pk),
            new_values=AuditService.snapshot(product, fields=['sku', 'name', 'selling_price', 'tax_rate']),
        )
        logger.info('Product %s (%s) created.', product.pk, product.sku)
        return product
