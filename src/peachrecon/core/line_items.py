# File: src/peachrecon/core/line_items.py
"""Line item synchronization for reconciliations.

Planning is pure: callers pass the set of keys already present
("{item_type}:{item_id}") and get back only the missing rows. Persistence
inserts with ON CONFLICT DO NOTHING on (reconciliation_id, item_type, item_id),
so a racing finalize converges instead of failing.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from peachrecon.core.revenue import booking_revenue, to_money
from peachrecon.models.booking import OwnerRezBooking
from peachrecon.models.enums import LineItemType
from peachrecon.models.expense import Expense
from peachrecon.models.line_item import ReconciliationLineItem
from peachrecon.models.visit import Visit
from peachrecon.utils.datetime import now_utc

# Visit charges must come in through the visit flow; billing them as
# expenses as well would charge the owner twice.
VISIT_EXPENSE_MARKERS = ("visit fee", "visit charge", "hourly charge", "property visit")


def line_item_key(item_type: str, item_id: str | uuid.UUID) -> str:
    return f"{item_type}:{item_id}"


def is_visit_related_expense(expense: Expense) -> bool:
    """Case-insensitive substring check of the expense purpose."""
    purpose = (expense.purpose or "").lower()
    return any(marker in purpose for marker in VISIT_EXPENSE_MARKERS)


@dataclass
class LineItemPlan:
    """New rows to insert plus the source records they came from."""

    rows: list[dict] = field(default_factory=list)
    expense_ids: list[uuid.UUID] = field(default_factory=list)
    visit_ids: list[uuid.UUID] = field(default_factory=list)
    skipped_visit_expense_ids: list[uuid.UUID] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)


def _row(
    reconciliation_id: uuid.UUID,
    item_type: LineItemType,
    item_id: str,
    description: str,
    amount: Decimal,
    item_date: date | None,
    category: str,
    fee_type: str,
) -> dict:
    return {
        "id": uuid.uuid4(),
        "reconciliation_id": reconciliation_id,
        "item_type": item_type.value,
        "item_id": item_id,
        "description": description,
        "amount": to_money(amount),
        "date": item_date,
        "category": category,
        "fee_type": fee_type,
        "verified": False,
        "excluded": False,
        "created_at": now_utc(),
    }


def booking_rows(
    reconciliation_id: uuid.UUID,
    booking: OwnerRezBooking,
    existing_keys: set[str],
) -> list[dict]:
    """Accommodation revenue plus cleaning/pet pass-through fees of one booking."""
    if line_item_key(LineItemType.BOOKING.value, booking.id) in existing_keys:
        return []

    guest = booking.guest_name or "Guest"
    revenue = booking_revenue(booking)
    cleaning_fee = booking.cleaning_fee or Decimal("0")
    pet_fee = booking.pet_fee or Decimal("0")
    rows = []

    if revenue > 0:
        rows.append(
            _row(
                reconciliation_id,
                LineItemType.BOOKING,
                str(booking.id),
                f"{guest} - {booking.ownerrez_listing_name}",
                revenue,
                booking.check_in,
                "Short-term Booking",
                "accommodation",
            )
        )

    for suffix, fee, label in (("cleaning", cleaning_fee, "Cleaning Fee"), ("pet", pet_fee, "Pet Fee")):
        item_id = f"{booking.id}_{suffix}"
        if fee > 0 and line_item_key(LineItemType.PASS_THROUGH_FEE.value, item_id) not in existing_keys:
            rows.append(
                _row(
                    reconciliation_id,
                    LineItemType.PASS_THROUGH_FEE,
                    item_id,
                    f"{label} - {guest}",
                    -fee,
                    booking.check_in,
                    label,
                    f"{suffix}_fee",
                )
            )

    return rows


def expense_row(reconciliation_id: uuid.UUID, expense: Expense, category: str = "General Expense") -> dict:
    return _row(
        reconciliation_id,
        LineItemType.EXPENSE,
        str(expense.id),
        expense.items_detail or expense.purpose or "Expense",
        -abs(expense.amount),
        expense.date,
        expense.category or category,
        "expense",
    )


def visit_row(reconciliation_id: uuid.UUID, visit: Visit) -> dict:
    return _row(
        reconciliation_id,
        LineItemType.VISIT,
        str(visit.id),
        f"Property visit - {visit.visited_by or 'Staff'}",
        -abs(visit.price or Decimal("0")),
        visit.date,
        "Visit Fee",
        "visit",
    )


def plan_line_items(
    reconciliation_id: uuid.UUID,
    existing_keys: set[str],
    bookings: Iterable[OwnerRezBooking] = (),
    expenses: Iterable[Expense] = (),
    visits: Iterable[Visit] = (),
) -> LineItemPlan:
    """Compute the line items missing from a reconciliation.

    Expenses already exported and visits already billed are skipped, as are
    expenses whose purpose reads like a visit charge.
    """
    plan = LineItemPlan()

    for booking in bookings:
        plan.rows.extend(booking_rows(reconciliation_id, booking, existing_keys))

    for expense in expenses:
        if expense.exported:
            continue
        if line_item_key(LineItemType.EXPENSE.value, expense.id) in existing_keys:
            continue
        if is_visit_related_expense(expense):
            plan.skipped_visit_expense_ids.append(expense.id)
            continue
        plan.rows.append(expense_row(reconciliation_id, expense))
        plan.expense_ids.append(expense.id)

    for visit in visits:
        if visit.billed:
            continue
        if line_item_key(LineItemType.VISIT.value, visit.id) in existing_keys:
            continue
        plan.rows.append(visit_row(reconciliation_id, visit))
        plan.visit_ids.append(visit.id)

    return plan


async def existing_line_item_keys(db: AsyncSession, reconciliation_id: uuid.UUID) -> set[str]:
    """Read the current key set from the database (never cached between calls)."""
    result = await db.execute(
        select(ReconciliationLineItem.item_type, ReconciliationLineItem.item_id).where(
            ReconciliationLineItem.reconciliation_id == reconciliation_id
        )
    )
    return {line_item_key(item_type, item_id) for item_type, item_id in result.all()}


def _dialect_insert(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"ON CONFLICT insert not supported for dialect {dialect}")


async def insert_line_items(db: AsyncSession, rows: list[dict]) -> int:
    """Insert rows as one statement, skipping any whose key already exists.

    Returns the number of rows actually written. Does NOT commit.
    """
    if not rows:
        return 0

    insert = _dialect_insert(db)
    stmt = (
        insert(ReconciliationLineItem)
        .values(rows)
        .on_conflict_do_nothing(index_elements=["reconciliation_id", "item_type", "item_id"])
        .returning(ReconciliationLineItem.id)
    )
    result = await db.execute(stmt)
    return len(result.scalars().all())


async def line_item_totals(db: AsyncSession, reconciliation_id: uuid.UUID) -> dict[str, Decimal]:
    """Absolute sums of non-excluded visit and expense items."""
    result = await db.execute(
        select(
            ReconciliationLineItem.item_type,
            func.sum(func.abs(ReconciliationLineItem.amount)),
        )
        .where(
            ReconciliationLineItem.reconciliation_id == reconciliation_id,
            ReconciliationLineItem.excluded.is_(False),
            ReconciliationLineItem.item_type.in_(
                [LineItemType.VISIT.value, LineItemType.EXPENSE.value]
            ),
        )
        .group_by(ReconciliationLineItem.item_type)
    )
    sums = {item_type: total for item_type, total in result.all()}
    return {
        "visit_fees": to_money(sums.get(LineItemType.VISIT.value)),
        "total_expenses": to_money(sums.get(LineItemType.EXPENSE.value)),
    }
