# File: src/peachrecon/api/reconciliation.py
"""Monthly reconciliation API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from peachrecon.api.auth import Actor, get_current_actor
from peachrecon.core.db import get_db
from peachrecon.core.errors import NotFoundError
from peachrecon.core.logging import get_logger
from peachrecon.core.reconciliation import (
    create_reconciliation,
    finalize_reconciliation,
    get_reconciliation,
    include_unbilled_items,
)
from peachrecon.models import Expense, ReconciliationAuditLog, ReconciliationLineItem, Visit
from peachrecon.models.reconciliation_schemas import (
    AuditLogRead,
    FinalizeRequest,
    FinalizeResponse,
    IncludeItemsRequest,
    IncludeItemsResponse,
    LineItemRead,
    ReconciliationCreate,
    ReconciliationDetail,
    ReconciliationRead,
    UnbilledItems,
)

logger = get_logger(__name__)

router = APIRouter(tags=["reconciliation"])


def _parse_reconciliation_uuid(reconciliation_id: str) -> UUID:
    try:
        return UUID(reconciliation_id)
    except ValueError:
        raise NotFoundError("Reconciliation", reconciliation_id) from None


@router.post("/finalize-reconciliation", response_model=FinalizeResponse)
async def finalize(
    body: FinalizeRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Finalize a closed month: sync line items, compute fees, move to draft."""
    logger.info(
        "reconciliation.finalize_requested",
        reconciliation_id=str(body.reconciliation_id),
        user_id=actor.user_id,
    )
    result = await finalize_reconciliation(db, body.reconciliation_id, actor.user_id)
    return FinalizeResponse(
        reconciliation_id=result.reconciliation_id,
        total_revenue=result.total_revenue,
        management_fee=result.management_fee,
        new_items_added=result.new_items_added,
    )


@router.post(
    "/reconciliations",
    response_model=ReconciliationRead,
    status_code=status.HTTP_201_CREATED,
)
async def create(
    body: ReconciliationCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Open a preview reconciliation for a property and month."""
    rec = await create_reconciliation(db, body.property_id, body.month, actor.user_id)
    return ReconciliationRead.model_validate(rec)


@router.get("/reconciliations/{reconciliation_id}", response_model=ReconciliationDetail)
async def read(
    reconciliation_id: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Reconciliation totals with every line item, oldest first."""
    rec = await get_reconciliation(db, _parse_reconciliation_uuid(reconciliation_id))

    result = await db.execute(
        select(ReconciliationLineItem)
        .where(ReconciliationLineItem.reconciliation_id == rec.id)
        .order_by(ReconciliationLineItem.date, ReconciliationLineItem.item_type)
    )
    line_items = [LineItemRead.model_validate(item) for item in result.scalars().all()]

    detail = ReconciliationDetail.model_validate(
        {**ReconciliationRead.model_validate(rec).model_dump(), "line_items": line_items}
    )
    return detail


@router.get("/reconciliations/{reconciliation_id}/unbilled", response_model=UnbilledItems)
async def unbilled(
    reconciliation_id: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Unbilled visits and unexported expenses for the reconciliation's property."""
    rec = await get_reconciliation(db, _parse_reconciliation_uuid(reconciliation_id))

    visits = await db.execute(
        select(Visit)
        .where(Visit.property_id == rec.property_id, Visit.billed.is_(False))
        .order_by(Visit.date)
    )
    expenses = await db.execute(
        select(Expense)
        .where(Expense.property_id == rec.property_id, Expense.exported.is_(False))
        .order_by(Expense.date)
    )
    return UnbilledItems.model_validate(
        {"visits": visits.scalars().all(), "expenses": expenses.scalars().all()},
        from_attributes=True,
    )


@router.post(
    "/reconciliations/{reconciliation_id}/include-items",
    response_model=IncludeItemsResponse,
)
async def include_items(
    reconciliation_id: str,
    body: IncludeItemsRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Include hand-picked unbilled visits/expenses as line items."""
    result = await include_unbilled_items(
        db,
        _parse_reconciliation_uuid(reconciliation_id),
        actor.user_id,
        visit_ids=body.visit_ids,
        expense_ids=body.expense_ids,
    )
    return IncludeItemsResponse(
        reconciliation_id=result.reconciliation_id,
        items_added=result.items_added,
        visit_fees=result.visit_fees,
        total_expenses=result.total_expenses,
        due_from_owner=result.due_from_owner,
    )


@router.get(
    "/reconciliations/{reconciliation_id}/audit-log",
    response_model=list[AuditLogRead],
)
async def audit_log(
    reconciliation_id: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=250),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Audit trail for a reconciliation, newest first."""
    rec = await get_reconciliation(db, _parse_reconciliation_uuid(reconciliation_id))

    result = await db.execute(
        select(ReconciliationAuditLog)
        .where(ReconciliationAuditLog.reconciliation_id == rec.id)
        .order_by(ReconciliationAuditLog.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return [AuditLogRead.model_validate(entry) for entry in result.scalars().all()]
