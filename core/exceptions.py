"""
Core — Exception Handling

Domain exceptions raised by the inventory core and the DRF exception
handler that renders them in a consistent error envelope.

@file core/exceptions.py
"""

import logging

from django.core.exceptions import PermissionDenied
from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger('petpos')


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class BusinessRuleViolation(APIException):
    """Raised when a business rule is violated at the service layer."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Business rule violation.'
    default_code = 'BUSINESS_RULE_VIOLATION'


class ValidationError(APIException):
    """Malformed or missing input. Caller's fault; never retried."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'VALIDATION_ERROR'


class InsufficientStockError(APIException):
    """Raised when a stock decrement would drive a batch below zero."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Insufficient stock for this operation.'
    default_code = 'INSUFFICIENT_STOCK'

    def __init__(
        self,
        detail=None,
        code=None,
        *,
        product_id=None,
        branch_id=None,
        available: int | None = None,
        requested: int | None = None,
    ):
        self.product_id = product_id
        self.branch_id = branch_id
        self.available = available
        self.requested = requested
        if detail is None and available is not None:
            detail = f'Insufficient stock: available={available}, requested={requested}.'
        super().__init__(detail=detail, code=code)

    @property
    def extra(self) -> dict:
        return {
            'product_id': str(self.product_id) if self.product_id else None,
            'branch_id': str(self.branch_id) if self.branch_id else None,
            'available': self.available,
            'requested': self.requested,
        }


class InvalidStateError(BusinessRuleViolation):
    """Raised when a state machine transition is not allowed."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Invalid state transition.'
    default_code = 'INVALID_STATE_TRANSITION'


class ConcurrencyConflictError(APIException):
    """A row changed between read and write. The whole operation may be retried."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Stock changed concurrently; retry the operation.'
    default_code = 'CONCURRENCY_CONFLICT'


class DuplicateResourceError(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Resource already exists.'
    default_code = 'DUPLICATE_RESOURCE'


class ResourceNotFoundError(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Resource not found.'
    default_code = 'RESOURCE_NOT_FOUND'


class ProductNotFoundError(ResourceNotFoundError):
    default_detail = 'Product not found.'
    default_code = 'PRODUCT_NOT_FOUND'


class BranchNotFoundError(ResourceNotFoundError):
    default_detail = 'Branch not found.'
    default_code = 'BRANCH_NOT_FOUND'


# ---------------------------------------------------------------------------
# Standard exception handler
# ---------------------------------------------------------------------------

def standard_exception_handler(exc, context):
    """
    Wraps every error response in the standard envelope:
      { "success": false, "errors": {...}, "code": "ERROR_CODE" }
    """
    if isinstance(exc, Http404):
        exc = ResourceNotFoundError()
    elif isinstance(exc, PermissionDenied):
        exc = APIException(detail='Permission denied.', code='PERMISSION_DENIED')
        exc.status_code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, DjangoValidationError):
        data = {
            'success': False,
            'errors': exc.message_dict if hasattr(exc, 'message_dict') else {'detail': exc.messages},
            'code': 'VALIDATION_ERROR',
        }
        return Response(data, status=status.HTTP_400_BAD_REQUEST)

    response = exception_handler(exc, context)

    if response is not None:
        errors = {}
        code = getattr(exc, 'default_code', 'ERROR')

        if isinstance(response.data, dict):
            errors = response.data
            code = response.data.pop('code', code) if 'code' in response.data else code
        elif isinstance(response.data, list):
            errors = {'detail': response.data}
        else:
            errors = {'detail': [str(response.data)]}

        extra = getattr(exc, 'extra', None)
        if extra:
            errors.update(extra)

        response.data = {
            'success': False,
            'errors': errors,
            'code': code,
        }

    if response is None:
        logger.exception('Unhandled exception in view: %s', exc)
        return Response(
            {'success': False, 'errors': {'detail': ['Internal server error.']}, 'code': 'INTERNAL_ERROR'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return response
