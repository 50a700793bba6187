"""
Enums for domain models.
Enums provide type safety and clarity. Validation for categorical fields.
"""

import enum


class ReconciliationStatus(str, enum.Enum):
    """Reconciliation lifecycle: preview -> draft (finalize) -> reviewed states."""

    PREVIEW = "preview"
    DRAFT = "draft"
    APPROVED = "approved"
    STATEMENT_SENT = "statement_sent"


class LineItemType(str, enum.Enum):
    """Kinds of itemized entries attached to a reconciliation."""

    BOOKING = "booking"
    PASS_THROUGH_FEE = "pass_through_fee"
    EXPENSE = "expense"
    VISIT = "visit"


class MidTermStatus(str, enum.Enum):
    """Mid-term tenancy states; only ACTIVE tenancies are billed."""

    ACTIVE = "active"
    ENDED = "ended"
    CANCELLED = "cancelled"


class AuditAction(str, enum.Enum):
    """Actions recorded in the reconciliation audit trail."""

    CREATED = "created"
    FINALIZED = "finalized"
    ITEMS_INCLUDED = "items_included"
