# File: src/peachrecon/core/reconciliation.py
"""Reconciliation workflows: open a preview, finalize a month, include unbilled items.

Each workflow writes its line items, source flags and totals in ONE commit.
The audit entry is written afterwards and may fail without undoing anything.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from peachrecon.core.audit import record_audit_entry
from peachrecon.core.dedup import NameMatcher, filter_mid_term_duplicates, first_token_match
from peachrecon.core.errors import (
    AppError,
    ConflictError,
    DatabaseError,
    InvalidStateError,
    NotFoundError,
    UpstreamDataError,
    ValidationError,
)
from peachrecon.core.fees import DEFAULT_FEE_SCHEDULE, FeeInputs, FeeSchedule, calculate_management_fee
from peachrecon.core.line_items import (
    existing_line_item_keys,
    expense_row,
    insert_line_items,
    line_item_totals,
    plan_line_items,
    visit_row,
)
from peachrecon.core.logging import get_logger
from peachrecon.core.revenue import aggregate_revenue, to_money
from peachrecon.models import (
    AuditAction,
    Expense,
    MidTermBooking,
    MidTermStatus,
    MonthlyReconciliation,
    OwnerRezBooking,
    Property,
    ReconciliationStatus,
    Visit,
)
from peachrecon.utils.datetime import (
    first_of_month,
    month_bounds,
    month_has_ended,
    now_utc,
    today_local,
)

logger = get_logger(__name__)

LOCKED_STATUSES = {ReconciliationStatus.APPROVED.value, ReconciliationStatus.STATEMENT_SENT.value}

# Actor recorded on audit entries written by the batch finalizer
SYSTEM_ACTOR = "system"

TOTAL_FIELDS = (
    "short_term_revenue",
    "mid_term_revenue",
    "total_revenue",
    "management_fee",
    "order_minimum_fee",
    "visit_fees",
    "total_expenses",
    "due_from_owner",
)


@dataclass(frozen=True)
class FinalizeResult:
    reconciliation_id: UUID
    total_revenue: Decimal
    management_fee: Decimal
    new_items_added: int


@dataclass(frozen=True)
class IncludeItemsResult:
    reconciliation_id: UUID
    items_added: int
    visit_fees: Decimal
    total_expenses: Decimal
    due_from_owner: Decimal


def _snapshot(rec: MonthlyReconciliation) -> dict:
    values = {name: getattr(rec, name) for name in TOTAL_FIELDS}
    values["status"] = rec.status
    return values


async def get_reconciliation(db: AsyncSession, reconciliation_id: UUID) -> MonthlyReconciliation:
    rec = await db.get(MonthlyReconciliation, reconciliation_id)
    if rec is None:
        raise NotFoundError("Reconciliation", str(reconciliation_id))
    return rec


def _ensure_unlocked(rec: MonthlyReconciliation) -> None:
    if rec.status in LOCKED_STATUSES:
        raise InvalidStateError(
            f"Reconciliation is locked (status: {rec.status})",
            details={"reconciliation_id": str(rec.id), "status": rec.status},
        )


async def _load_property(db: AsyncSession, rec: MonthlyReconciliation) -> Property:
    prop = await db.get(Property, rec.property_id)
    if prop is None:
        raise UpstreamDataError(
            "Property not found for reconciliation",
            details={"reconciliation_id": str(rec.id), "property_id": str(rec.property_id)},
        )
    if (rec.owner_id or prop.owner_id) is None:
        raise UpstreamDataError(
            "Property has no owner assigned",
            details={"reconciliation_id": str(rec.id), "property_id": str(prop.id)},
        )
    return prop


async def _month_sources(db: AsyncSession, property_id: UUID, month: date) -> dict[str, Sequence]:
    """Fetch every source record that can feed this property-month."""
    month_start, month_end = month_bounds(month)

    mid_term = await db.execute(
        select(MidTermBooking).where(
            MidTermBooking.property_id == property_id,
            MidTermBooking.status == MidTermStatus.ACTIVE.value,
            MidTermBooking.start_date <= month_end,
            MidTermBooking.end_date >= month_start,
        )
    )
    bookings = await db.execute(
        select(OwnerRezBooking)
        .where(
            OwnerRezBooking.property_id == property_id,
            OwnerRezBooking.check_in >= month_start,
            OwnerRezBooking.check_in <= month_end,
        )
        .order_by(OwnerRezBooking.check_in)
    )
    expenses = await db.execute(
        select(Expense)
        .where(
            Expense.property_id == property_id,
            Expense.exported.is_(False),
            Expense.date >= month_start,
            Expense.date <= month_end,
        )
        .order_by(Expense.date)
    )
    visits = await db.execute(
        select(Visit)
        .where(
            Visit.property_id == property_id,
            Visit.billed.is_(False),
            Visit.date >= month_start,
            Visit.date <= month_end,
        )
        .order_by(Visit.date)
    )
    return {
        "mid_term": mid_term.scalars().all(),
        "bookings": bookings.scalars().all(),
        "expenses": expenses.scalars().all(),
        "visits": visits.scalars().all(),
    }


async def _mark_sources_billed(
    db: AsyncSession,
    reconciliation_id: UUID,
    expense_ids: Sequence[UUID],
    visit_ids: Sequence[UUID],
) -> None:
    if expense_ids:
        await db.execute(update(Expense).where(Expense.id.in_(expense_ids)).values(exported=True))
    if visit_ids:
        await db.execute(
            update(Visit)
            .where(Visit.id.in_(visit_ids))
            .values(billed=True, reconciliation_id=reconciliation_id)
        )


async def finalize_reconciliation(
    db: AsyncSession,
    reconciliation_id: UUID,
    actor_id: str,
    today: date | None = None,
    schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
    matcher: NameMatcher = first_token_match,
    scheduled: bool = False,
) -> FinalizeResult:
    """Sync line items and write final totals for a closed month.

    `scheduled` marks a run started by the batch job rather than a reviewer;
    only the audit note differs.

    Raises:
        NotFoundError: reconciliation does not exist
        InvalidStateError: month not ended yet, or reconciliation locked
        UpstreamDataError: property or owner missing
        DatabaseError: the transactional write failed (nothing persisted)
    """
    rec = await get_reconciliation(db, reconciliation_id)
    _ensure_unlocked(rec)
    prop = await _load_property(db, rec)

    month = rec.reconciliation_month
    if not month_has_ended(month, today):
        raise InvalidStateError(
            "Cannot finalize reconciliation - month has not ended yet",
            details={"reconciliation_month": month.isoformat()},
        )

    logger.info(
        "reconciliation.finalize_started",
        reconciliation_id=str(rec.id),
        property_id=str(prop.id),
        month=month.isoformat(),
    )

    sources = await _month_sources(db, prop.id, month)
    mid_term = sources["mid_term"]
    bookings = filter_mid_term_duplicates(sources["bookings"], mid_term, matcher)
    revenue = aggregate_revenue(bookings, mid_term, month)

    existing_keys = await existing_line_item_keys(db, rec.id)
    plan = plan_line_items(
        rec.id,
        existing_keys,
        bookings=bookings,
        expenses=sources["expenses"],
        visits=sources["visits"],
    )

    fees = calculate_management_fee(
        FeeInputs(
            accommodation_revenue_total=revenue.accommodation_revenue_total,
            mid_term_revenue=revenue.mid_term_revenue,
            total_nights=revenue.total_nights,
            management_fee_percentage=prop.management_fee_percentage,
            has_mid_term_occupancy=len(mid_term) > 0,
            is_property_live=prop.is_live,
        ),
        schedule,
    )

    old_values = _snapshot(rec)

    try:
        inserted = await insert_line_items(db, plan.rows)
        await _mark_sources_billed(db, rec.id, plan.expense_ids, plan.visit_ids)
        totals = await line_item_totals(db, rec.id)

        rec.short_term_revenue = to_money(revenue.short_term_revenue)
        rec.mid_term_revenue = to_money(revenue.mid_term_revenue)
        rec.total_revenue = to_money(revenue.total_revenue)
        rec.management_fee = to_money(fees.management_fee)
        rec.order_minimum_fee = to_money(fees.order_minimum_fee)
        rec.visit_fees = totals["visit_fees"]
        rec.total_expenses = totals["total_expenses"]
        rec.due_from_owner = rec.management_fee + rec.visit_fees + rec.total_expenses
        rec.status = ReconciliationStatus.DRAFT.value
        rec.updated_at = now_utc()

        new_values = _snapshot(rec)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("reconciliation.finalize_failed", reconciliation_id=str(reconciliation_id), error=str(exc))
        raise DatabaseError(
            "Failed to finalize reconciliation",
            details={"reconciliation_id": str(reconciliation_id)},
        ) from exc

    result = FinalizeResult(
        reconciliation_id=rec.id,
        total_revenue=new_values["total_revenue"],
        management_fee=new_values["management_fee"],
        new_items_added=inserted,
    )

    logger.info(
        "reconciliation.finalized",
        reconciliation_id=str(result.reconciliation_id),
        total_revenue=str(result.total_revenue),
        management_fee=str(result.management_fee),
        order_minimum_fee=str(new_values["order_minimum_fee"]),
        new_items_added=inserted,
        duplicates_dropped=len(sources["bookings"]) - len(bookings),
        visit_expenses_skipped=len(plan.skipped_visit_expense_ids),
    )

    if scheduled:
        notes = (
            f"Auto-finalized by scheduled job. Revenue: ${result.total_revenue:.2f}, "
            f"New items: {inserted}"
        )
    else:
        notes = (
            f"Finalized with {len(bookings)} bookings, {len(plan.expense_ids)} new expenses, "
            f"{len(plan.visit_ids)} new visits. Revenue: ${result.total_revenue:.2f}"
        )

    await record_audit_entry(
        db,
        reconciliation_id=result.reconciliation_id,
        user_id=actor_id,
        action=AuditAction.FINALIZED.value,
        notes=notes,
        old_values=old_values,
        new_values=new_values,
    )

    return result


async def include_unbilled_items(
    db: AsyncSession,
    reconciliation_id: UUID,
    actor_id: str,
    visit_ids: Sequence[UUID] = (),
    expense_ids: Sequence[UUID] = (),
) -> IncludeItemsResult:
    """Fold a hand-picked set of unbilled visits/expenses into a reconciliation.

    Same insertion contract as finalize, driven by explicit selection. Visit-like
    expense purposes are not filtered here; the reviewer chose them.
    """
    if not visit_ids and not expense_ids:
        raise ValidationError("Please check at least one item to include")

    rec = await get_reconciliation(db, reconciliation_id)
    _ensure_unlocked(rec)

    visits: Sequence[Visit] = []
    if visit_ids:
        result = await db.execute(
            select(Visit).where(Visit.id.in_(visit_ids), Visit.property_id == rec.property_id)
        )
        visits = result.scalars().all()

    expenses: Sequence[Expense] = []
    if expense_ids:
        result = await db.execute(
            select(Expense).where(Expense.id.in_(expense_ids), Expense.property_id == rec.property_id)
        )
        expenses = result.scalars().all()

    found_visits = {v.id for v in visits}
    for visit_id in visit_ids:
        if visit_id not in found_visits:
            raise NotFoundError("Visit", str(visit_id))
    found_expenses = {e.id for e in expenses}
    for expense_id in expense_ids:
        if expense_id not in found_expenses:
            raise NotFoundError("Expense", str(expense_id))

    already = [str(v.id) for v in visits if v.billed] + [str(e.id) for e in expenses if e.exported]
    if already:
        raise ConflictError("Some selected items are already billed", details={"item_ids": already})

    rows = [visit_row(rec.id, v) for v in visits] + [
        expense_row(rec.id, e, category="Other") for e in expenses
    ]
    old_values = _snapshot(rec)

    try:
        inserted = await insert_line_items(db, rows)
        await _mark_sources_billed(db, rec.id, [e.id for e in expenses], [v.id for v in visits])
        totals = await line_item_totals(db, rec.id)

        rec.visit_fees = totals["visit_fees"]
        rec.total_expenses = totals["total_expenses"]
        rec.due_from_owner = to_money(rec.management_fee) + rec.visit_fees + rec.total_expenses
        rec.updated_at = now_utc()

        new_values = _snapshot(rec)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("reconciliation.include_failed", reconciliation_id=str(reconciliation_id), error=str(exc))
        raise DatabaseError(
            "Failed to include items",
            details={"reconciliation_id": str(reconciliation_id)},
        ) from exc

    result = IncludeItemsResult(
        reconciliation_id=rec.id,
        items_added=inserted,
        visit_fees=new_values["visit_fees"],
        total_expenses=new_values["total_expenses"],
        due_from_owner=new_values["due_from_owner"],
    )

    logger.info(
        "reconciliation.items_included",
        reconciliation_id=str(result.reconciliation_id),
        visits=len(visits),
        expenses=len(expenses),
        items_added=inserted,
    )

    await record_audit_entry(
        db,
        reconciliation_id=result.reconciliation_id,
        user_id=actor_id,
        action=AuditAction.ITEMS_INCLUDED.value,
        notes=f"Added {len(visits)} visits and {len(expenses)} expenses",
        old_values=old_values,
        new_values=new_values,
    )

    return result


async def create_reconciliation(
    db: AsyncSession,
    property_id: UUID,
    month: date,
    actor_id: str,
    matcher: NameMatcher = first_token_match,
) -> MonthlyReconciliation:
    """Open a `preview` reconciliation for a property-month.

    The preview carries the month's revenue and its booking line items.
    Expenses and visits are left for finalize, which flags them as billed.
    """
    prop = await db.get(Property, property_id)
    if prop is None:
        raise NotFoundError("Property", str(property_id))
    if prop.owner_id is None:
        raise ValidationError(
            "Property has no owner assigned",
            details={"property_id": str(property_id)},
        )

    month = first_of_month(month)
    existing = await db.scalar(
        select(MonthlyReconciliation.id).where(
            MonthlyReconciliation.property_id == property_id,
            MonthlyReconciliation.reconciliation_month == month,
        )
    )
    if existing is not None:
        raise ConflictError(
            "Reconciliation already exists for this property and month",
            details={"reconciliation_id": str(existing), "month": month.isoformat()},
        )

    sources = await _month_sources(db, prop.id, month)
    mid_term = sources["mid_term"]
    bookings = filter_mid_term_duplicates(sources["bookings"], mid_term, matcher)
    revenue = aggregate_revenue(bookings, mid_term, month)

    rec = MonthlyReconciliation(
        property_id=prop.id,
        owner_id=prop.owner_id,
        reconciliation_month=month,
        status=ReconciliationStatus.PREVIEW.value,
        short_term_revenue=to_money(revenue.short_term_revenue),
        mid_term_revenue=to_money(revenue.mid_term_revenue),
        total_revenue=to_money(revenue.total_revenue),
    )
    db.add(rec)
    try:
        await db.flush()
        plan = plan_line_items(rec.id, set(), bookings=bookings)
        inserted = await insert_line_items(db, plan.rows)
        rec_id = rec.id
        total_revenue = rec.total_revenue
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError(
            "Reconciliation already exists for this property and month",
            details={"property_id": str(property_id), "month": month.isoformat()},
        ) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("reconciliation.create_failed", property_id=str(property_id), error=str(exc))
        raise DatabaseError(
            "Failed to create reconciliation",
            details={"property_id": str(property_id), "month": month.isoformat()},
        ) from exc

    logger.info(
        "reconciliation.created",
        reconciliation_id=str(rec_id),
        property_id=str(property_id),
        month=month.isoformat(),
        total_revenue=str(total_revenue),
        line_items=inserted,
    )

    await record_audit_entry(
        db,
        reconciliation_id=rec_id,
        user_id=actor_id,
        action=AuditAction.CREATED.value,
        notes=(
            f"Opened preview for {month.strftime('%B %Y')} with {len(bookings)} bookings. "
            f"Revenue: ${total_revenue:.2f}"
        ),
    )
    # a failed audit write rolls back and expires loaded instances
    await db.refresh(rec)
    return rec


@dataclass(frozen=True)
class PendingFinalizeResult:
    reconciliation_id: UUID
    success: bool
    new_items_added: int = 0
    error: str | None = None


async def finalize_pending_previews(
    db: AsyncSession,
    today: date | None = None,
    actor_id: str = SYSTEM_ACTOR,
    schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
    matcher: NameMatcher = first_token_match,
) -> list[PendingFinalizeResult]:
    """Finalize every `preview` reconciliation whose month is over.

    Each reconciliation commits on its own. A failure is recorded in its result
    and the batch moves on to the next one.
    """
    today = today or today_local()
    pending = await db.scalars(
        select(MonthlyReconciliation.id)
        .where(
            MonthlyReconciliation.status == ReconciliationStatus.PREVIEW.value,
            MonthlyReconciliation.reconciliation_month < first_of_month(today),
        )
        .order_by(MonthlyReconciliation.reconciliation_month)
    )
    pending_ids = pending.all()

    logger.info("reconciliation.auto_finalize_started", pending=len(pending_ids), today=today.isoformat())

    results = []
    for reconciliation_id in pending_ids:
        try:
            finalized = await finalize_reconciliation(
                db,
                reconciliation_id,
                actor_id,
                today=today,
                schedule=schedule,
                matcher=matcher,
                scheduled=True,
            )
        except AppError as exc:
            logger.warning(
                "reconciliation.auto_finalize_failed",
                reconciliation_id=str(reconciliation_id),
                code=exc.code,
                error=exc.message,
            )
            results.append(PendingFinalizeResult(reconciliation_id, success=False, error=exc.message))
            continue
        results.append(
            PendingFinalizeResult(reconciliation_id, success=True, new_items_added=finalized.new_items_added)
        )

    logger.info(
        "reconciliation.auto_finalize_completed",
        succeeded=sum(1 for r in results if r.success),
        failed=sum(1 for r in results if not r.success),
    )
    return results
