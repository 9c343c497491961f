"""
Core — Constants

Shared constants used across apps: audit actions, document number
prefixes, and money precision.

@file core/constants.py
"""

from decimal import Decimal

# ---------------------------------------------------------------------------
# Audit actions (mirror AuditLog.ActionChoices values)
# ---------------------------------------------------------------------------

AUDIT_ACTION_CREATE = 'CREATE'
AUDIT_ACTION_UPDATE = 'UPDATE'
AUDIT_ACTION_STATUS_CHANGE = 'STATUS_CHANGE'
AUDIT_ACTION_STOCK_CHANGE = 'STOCK_CHANGE'

# ---------------------------------------------------------------------------
# Document numbering: {PREFIX}-{YEAR}-{SEQ:04d}
# ---------------------------------------------------------------------------

INVOICE_PREFIX = 'INV'
PURCHASE_ORDER_PREFIX = 'PO'
TRANSFER_PREFIX = 'TRF'

# ---------------------------------------------------------------------------
# Money
# ---------------------------------------------------------------------------

MONEY_PLACES = Decimal('0.01')
