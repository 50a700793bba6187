# File: src/peachrecon/models/reconciliation_schemas.py
"""Pydantic schemas for the reconciliation API."""

from datetime import date as date_type
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class FinalizeRequest(BaseModel):
    """Body of the finalize call."""

    reconciliation_id: UUID


class FinalizeResponse(BaseModel):
    """Result of a finalize run."""

    success: bool = True
    reconciliation_id: UUID
    total_revenue: Decimal
    management_fee: Decimal
    new_items_added: int

    @field_serializer("total_revenue", "management_fee")
    def serialize_money(self, value: Decimal) -> float:
        return float(value)


class ReconciliationCreate(BaseModel):
    """Schema for opening a preview reconciliation."""

    property_id: UUID
    month: date_type = Field(..., description="Any date within the month; normalized to the 1st")


class IncludeItemsRequest(BaseModel):
    """Manual selection of unbilled visits/expenses to fold into a reconciliation."""

    visit_ids: list[UUID] = Field(default_factory=list)
    expense_ids: list[UUID] = Field(default_factory=list)


class IncludeItemsResponse(BaseModel):
    """Result of including selected items."""

    success: bool = True
    reconciliation_id: UUID
    items_added: int
    visit_fees: Decimal
    total_expenses: Decimal
    due_from_owner: Decimal

    @field_serializer("visit_fees", "total_expenses", "due_from_owner")
    def serialize_money(self, value: Decimal) -> float:
        return float(value)


class LineItemRead(BaseModel):
    """Schema for reading a line item."""

    id: UUID
    item_type: str
    item_id: str
    description: str
    amount: Decimal
    date: date_type | None
    category: str | None
    fee_type: str | None
    verified: bool
    excluded: bool

    model_config = ConfigDict(from_attributes=True)


class ReconciliationRead(BaseModel):
    """Schema for reading a reconciliation."""

    id: UUID
    property_id: UUID
    owner_id: UUID | None
    reconciliation_month: date_type
    status: str
    short_term_revenue: Decimal
    mid_term_revenue: Decimal
    total_revenue: Decimal
    management_fee: Decimal
    order_minimum_fee: Decimal
    visit_fees: Decimal
    total_expenses: Decimal
    due_from_owner: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReconciliationDetail(ReconciliationRead):
    """Reconciliation with its line items."""

    line_items: list[LineItemRead] = Field(default_factory=list)


class UnbilledVisitRead(BaseModel):
    id: UUID
    date: date_type
    price: Decimal | None
    visited_by: str | None
    notes: str | None

    model_config = ConfigDict(from_attributes=True)


class UnbilledExpenseRead(BaseModel):
    id: UUID
    date: date_type
    amount: Decimal
    purpose: str | None
    vendor: str | None
    category: str | None

    model_config = ConfigDict(from_attributes=True)


class UnbilledItems(BaseModel):
    """Unbilled visits and unexported expenses of a reconciliation's property."""

    visits: list[UnbilledVisitRead]
    expenses: list[UnbilledExpenseRead]


class AuditLogRead(BaseModel):
    """Schema for reading an audit trail entry."""

    id: UUID
    reconciliation_id: UUID
    action: str
    user_id: str
    notes: str | None
    old_values: dict
    new_values: dict
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
