"""Domain models package."""

from peachrecon.models.booking import MidTermBooking, OwnerRezBooking
from peachrecon.models.enums import (
    AuditAction,
    LineItemType,
    MidTermStatus,
    ReconciliationStatus,
)
from peachrecon.models.expense import Expense
from peachrecon.models.line_item import ReconciliationLineItem
from peachrecon.models.property import Property, PropertyOwner
from peachrecon.models.reconciliation import MonthlyReconciliation
from peachrecon.models.reconciliation_audit_log import ReconciliationAuditLog
from peachrecon.models.visit import Visit

__all__ = [
    "AuditAction",
    "Expense",
    "LineItemType",
    "MidTermBooking",
    "MidTermStatus",
    "MonthlyReconciliation",
    "OwnerRezBooking",
    "Property",
    "PropertyOwner",
    "ReconciliationAuditLog",
    "ReconciliationLineItem",
    "ReconciliationStatus",
    "Visit",
]
