"""
Branches — Service Layer

Lookup used by the inventory engines.

@file branches/services.py
"""

from django.core.exceptions import ValidationError as DjangoValidationError

from core.exceptions import BranchNotFoundError

from .models import Branch


class BranchService:

    @staticmethod
    def get_branch(branch_id) -> Branch:
        try:
            return Branch.objects.get(pk=branch_id)
        except (Branch.DoesNotExist, DjangoValidationError, ValueError):
            raise BranchNotFoundError(detail=f'Branch not found: {branch_id}.')
