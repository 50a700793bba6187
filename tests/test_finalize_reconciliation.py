"""Tests for finalizing a monthly reconciliation."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select, text

from peachrecon.core.errors import DatabaseError, InvalidStateError, UpstreamDataError
from peachrecon.core.reconciliation import (
    SYSTEM_ACTOR,
    finalize_pending_previews,
    finalize_reconciliation,
)
from peachrecon.models import (
    Expense,
    MonthlyReconciliation,
    ReconciliationAuditLog,
    ReconciliationLineItem,
    Visit,
)
from peachrecon.utils.datetime import first_of_month, today_local
from tests.conftest import TEST_DATABASE_URL, TEST_USER_ID
from tests.factories import (
    ExpenseFactory,
    MidTermBookingFactory,
    OwnerRezBookingFactory,
    PropertyFactory,
    ReconciliationFactory,
    VisitFactory,
)


async def _count(db_session, model, reconciliation_id) -> int:
    return await db_session.scalar(
        select(func.count()).select_from(model).where(model.reconciliation_id == reconciliation_id)
    )


async def _short_term_month(db_session, prop):
    """Two bookings, one ordinary expense, one visit-fee expense, one visit."""
    await OwnerRezBookingFactory.create(db_session, property=prop, pet_fee=Decimal("50.00"))
    await OwnerRezBookingFactory.create(
        db_session,
        property=prop,
        guest_name="Bob Lee",
        check_in=date(2025, 1, 20),
        check_out=date(2025, 1, 25),
        accommodation_revenue=Decimal("750.00"),
        total_amount=Decimal("900.00"),
        cleaning_fee=Decimal("120.00"),
    )
    expense = await ExpenseFactory.create(db_session, property=prop)
    visit_expense = await ExpenseFactory.create(
        db_session,
        property=prop,
        amount=Decimal("100.00"),
        purpose="Visit fee - John, 2 hrs @ $50/hr",
    )
    visit = await VisitFactory.create(db_session, property=prop)
    return expense, visit_expense, visit


class TestFinalizeEndpoint:
    """POST /finalize-reconciliation"""

    @pytest.mark.asyncio
    async def test_finalize_short_term_month(self, client, db_session, live_property):
        rec = await ReconciliationFactory.create(db_session, property=live_property)
        expense, visit_expense, visit = await _short_term_month(db_session, live_property)

        response = await client.post("/finalize-reconciliation", json={"reconciliation_id": str(rec.id)})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["reconciliation_id"] == str(rec.id)
        assert data["total_revenue"] == 2100.0
        # 1750 over 10 nights = 175/night -> 250 minimum; 15% = 262.50 wins
        assert data["management_fee"] == 262.5
        assert data["new_items_added"] == 7

        await db_session.refresh(rec)
        assert rec.status == "draft"
        assert rec.short_term_revenue == Decimal("2100.00")
        assert rec.mid_term_revenue == Decimal("0.00")
        assert rec.order_minimum_fee == Decimal("250.00")
        assert rec.visit_fees == Decimal("75.00")
        assert rec.total_expenses == Decimal("40.00")
        assert rec.due_from_owner == Decimal("377.50")

        for obj in (expense, visit_expense, visit):
            await db_session.refresh(obj)
        assert expense.exported is True
        assert visit_expense.exported is False
        assert visit.billed is True
        assert visit.reconciliation_id == rec.id

    @pytest.mark.asyncio
    async def test_finalize_is_idempotent(self, client, db_session, live_property):
        rec = await ReconciliationFactory.create(db_session, property=live_property)
        await _short_term_month(db_session, live_property)

        first = await client.post("/finalize-reconciliation", json={"reconciliation_id": str(rec.id)})
        second = await client.post("/finalize-reconciliation", json={"reconciliation_id": str(rec.id)})

        assert first.status_code == 200
        assert second.status_code == 200
        assert second.json()["new_items_added"] == 0
        assert second.json()["total_revenue"] == first.json()["total_revenue"]
        assert second.json()["management_fee"] == first.json()["management_fee"]
        assert await _count(db_session, ReconciliationLineItem, rec.id) == 7

    @pytest.mark.asyncio
    async def test_finalize_picks_up_items_added_later(self, client, db_session, live_property):
        rec = await ReconciliationFactory.create(db_session, property=live_property)
        await _short_term_month(db_session, live_property)
        await client.post("/finalize-reconciliation", json={"reconciliation_id": str(rec.id)})

        await VisitFactory.create(db_session, property=live_property, date=date(2025, 1, 28))
        response = await client.post("/finalize-reconciliation", json={"reconciliation_id": str(rec.id)})

        assert response.json()["new_items_added"] == 1
        await db_session.refresh(rec)
        assert rec.visit_fees == Decimal("150.00")

    @pytest.mark.asyncio
    async def test_mid_term_duplicate_is_not_double_counted(self, client, db_session, live_property):
        rec = await ReconciliationFactory.create(db_session, property=live_property)
        await MidTermBookingFactory.create(db_session, property=live_property)
        # Ended tenancies do not count toward the month
        await MidTermBookingFactory.create(
            db_session,
            property=live_property,
            tenant_name="Old Tenant",
            start_date=date(2024, 12, 1),
            end_date=date(2025, 1, 10),
            status="ended",
        )
        await OwnerRezBookingFactory.create(db_session, property=live_property, cleaning_fee=None)
        duplicate = await OwnerRezBookingFactory.create(
            db_session,
            property=live_property,
            guest_name="John Smith",
            check_in=date(2025, 1, 16),
            check_out=date(2025, 1, 20),
            accommodation_revenue=Decimal("500.00"),
            total_amount=Decimal("500.00"),
            cleaning_fee=None,
        )

        response = await client.post("/finalize-reconciliation", json={"reconciliation_id": str(rec.id)})

        assert response.status_code == 200
        data = response.json()
        # 1200 short-term + 3100 * 17/31 = 1700 mid-term
        assert data["total_revenue"] == 2900.0
        # (1000 + 1700) * 15%, no minimum with mid-term occupancy
        assert data["management_fee"] == 405.0
        assert data["new_items_added"] == 1

        await db_session.refresh(rec)
        assert rec.mid_term_revenue == Decimal("1700.00")
        assert rec.short_term_revenue == Decimal("1200.00")
        assert rec.order_minimum_fee == Decimal("0.00")

        item_ids = await db_session.scalars(
            select(ReconciliationLineItem.item_id).where(ReconciliationLineItem.reconciliation_id == rec.id)
        )
        assert str(duplicate.id) not in item_ids.all()

    @pytest.mark.asyncio
    async def test_current_month_is_rejected_without_writes(self, client, db_session, live_property):
        rec = await ReconciliationFactory.create(
            db_session,
            property=live_property,
            reconciliation_month=first_of_month(today_local()),
        )
        await VisitFactory.create(db_session, property=live_property, date=today_local())

        response = await client.post("/finalize-reconciliation", json={"reconciliation_id": str(rec.id)})

        assert response.status_code == 400
        assert response.json()["error"] == "Cannot finalize reconciliation - month has not ended yet"
        assert response.json()["code"] == "INVALID_STATE"

        await db_session.refresh(rec)
        assert rec.status == "preview"
        assert await _count(db_session, ReconciliationLineItem, rec.id) == 0
        assert await _count(db_session, ReconciliationAuditLog, rec.id) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["approved", "statement_sent"])
    async def test_locked_reconciliation_is_rejected(self, client, db_session, live_property, status):
        rec = await ReconciliationFactory.create(db_session, property=live_property, status=status)

        response = await client.post("/finalize-reconciliation", json={"reconciliation_id": str(rec.id)})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_STATE"

    @pytest.mark.asyncio
    async def test_missing_reconciliation_id(self, client):
        response = await client.post("/finalize-reconciliation", json={})

        assert response.status_code == 422
        assert response.json()["error"] == "reconciliation_id is required"
        assert response.json()["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_unknown_reconciliation(self, client):
        response = await client.post(
            "/finalize-reconciliation",
            json={"reconciliation_id": "00000000-0000-0000-0000-000000000000"},
        )

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_requires_bearer_token(self, unauthenticated_client, db_session, live_property):
        rec = await ReconciliationFactory.create(db_session, property=live_property)

        response = await unauthenticated_client.post(
            "/finalize-reconciliation", json={"reconciliation_id": str(rec.id)}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "No authorization header"

    @pytest.mark.asyncio
    async def test_property_without_owner_is_upstream_error(self, client, db_session):
        prop = await PropertyFactory.create(db_session, with_owner=False)
        rec = await ReconciliationFactory.create(db_session, property=prop)

        response = await client.post("/finalize-reconciliation", json={"reconciliation_id": str(rec.id)})

        assert response.status_code == 500
        assert response.json()["code"] == "UPSTREAM_DATA_ERROR"

    @pytest.mark.asyncio
    async def test_audit_entry_recorded(self, client, db_session, live_property):
        rec = await ReconciliationFactory.create(db_session, property=live_property)
        await _short_term_month(db_session, live_property)

        await client.post("/finalize-reconciliation", json={"reconciliation_id": str(rec.id)})

        entry = await db_session.scalar(
            select(ReconciliationAuditLog).where(ReconciliationAuditLog.reconciliation_id == rec.id)
        )
        assert entry.action == "finalized"
        assert entry.user_id == TEST_USER_ID
        assert entry.notes == "Finalized with 2 bookings, 1 new expenses, 1 new visits. Revenue: $2100.00"
        assert entry.old_values["status"] == "preview"
        assert entry.new_values["status"] == "draft"
        assert entry.new_values["management_fee"] == "262.50"

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_fail_finalize(self, client, db_session, live_property):
        rec = await ReconciliationFactory.create(db_session, property=live_property)
        rec_id = rec.id
        await _short_term_month(db_session, live_property)
        await db_session.execute(text("DROP TABLE reconciliation_audit_log"))
        await db_session.commit()

        response = await client.post("/finalize-reconciliation", json={"reconciliation_id": str(rec_id)})

        assert response.status_code == 200
        assert response.json()["new_items_added"] == 7
        # The failed audit write rolled the session back, expiring rec
        status = await db_session.scalar(
            select(MonthlyReconciliation.status).where(MonthlyReconciliation.id == rec_id)
        )
        assert status == "draft"
        assert await _count(db_session, ReconciliationLineItem, rec_id) == 7


class TestFinalizeService:
    """finalize_reconciliation called directly."""

    @pytest.mark.asyncio
    async def test_last_day_of_month_is_not_ended(self, db_session, live_property):
        rec = await ReconciliationFactory.create(db_session, property=live_property)

        with pytest.raises(InvalidStateError):
            await finalize_reconciliation(db_session, rec.id, TEST_USER_ID, today=date(2025, 1, 31))

    @pytest.mark.asyncio
    async def test_first_day_after_month_is_ended(self, db_session, live_property):
        rec = await ReconciliationFactory.create(db_session, property=live_property)

        result = await finalize_reconciliation(db_session, rec.id, TEST_USER_ID, today=date(2025, 2, 1))

        # No activity at all: the live property still owes the lowest minimum
        assert result.new_items_added == 0
        assert result.total_revenue == Decimal("0.00")
        assert result.management_fee == Decimal("250.00")

    @pytest.mark.asyncio
    async def test_missing_property_owner_raises(self, db_session):
        prop = await PropertyFactory.create(db_session, with_owner=False)
        rec = await ReconciliationFactory.create(db_session, property=prop)

        with pytest.raises(UpstreamDataError):
            await finalize_reconciliation(db_session, rec.id, TEST_USER_ID, today=date(2025, 2, 1))

    @pytest.mark.asyncio
    async def test_custom_matcher_keeps_bookings(self, db_session, live_property):
        rec = await ReconciliationFactory.create(db_session, property=live_property)
        await MidTermBookingFactory.create(db_session, property=live_property)
        await OwnerRezBookingFactory.create(
            db_session,
            property=live_property,
            guest_name="John Smith",
            check_in=date(2025, 1, 16),
            check_out=date(2025, 1, 20),
            accommodation_revenue=Decimal("500.00"),
            total_amount=Decimal("500.00"),
            cleaning_fee=None,
        )

        result = await finalize_reconciliation(
            db_session,
            rec.id,
            TEST_USER_ID,
            today=date(2025, 2, 1),
            matcher=lambda guest, tenant: False,
        )

        assert result.new_items_added == 1
        assert result.total_revenue == Decimal("2200.00")

    @pytest.mark.asyncio
    @pytest.mark.skipif(not TEST_DATABASE_URL.startswith("sqlite"), reason="uses a SQLite trigger")
    async def test_failed_write_leaves_nothing_behind(self, db_session, live_property):
        rec = await ReconciliationFactory.create(db_session, property=live_property)
        expense = await ExpenseFactory.create(db_session, property=live_property)
        visit = await VisitFactory.create(db_session, property=live_property)
        rec_id, expense_id, visit_id = rec.id, expense.id, visit.id
        # Line items and the expense flag are written before the visits update aborts
        await db_session.execute(
            text(
                "CREATE TRIGGER fail_visit_update BEFORE UPDATE ON visits "
                "BEGIN SELECT RAISE(ABORT, 'visits locked'); END"
            )
        )
        await db_session.commit()

        with pytest.raises(DatabaseError):
            await finalize_reconciliation(db_session, rec_id, TEST_USER_ID, today=date(2025, 2, 1))

        assert await _count(db_session, ReconciliationLineItem, rec_id) == 0
        assert await _count(db_session, ReconciliationAuditLog, rec_id) == 0
        exported = await db_session.scalar(select(Expense.exported).where(Expense.id == expense_id))
        billed = await db_session.scalar(select(Visit.billed).where(Visit.id == visit_id))
        status = await db_session.scalar(
            select(MonthlyReconciliation.status).where(MonthlyReconciliation.id == rec_id)
        )
        assert exported is False
        assert billed is False
        assert status == "preview"


class TestFinalizePendingPreviews:
    """finalize_pending_previews batch run."""

    @pytest.mark.asyncio
    async def test_finalizes_only_past_month_previews(self, db_session, live_property):
        january = await ReconciliationFactory.create(db_session, property=live_property)
        february = await ReconciliationFactory.create(
            db_session, property=live_property, reconciliation_month=date(2025, 2, 1)
        )
        december = await ReconciliationFactory.create(
            db_session, property=live_property, reconciliation_month=date(2024, 12, 1), status="draft"
        )
        january_id, february_id, december_id = january.id, february.id, december.id
        await _short_term_month(db_session, live_property)

        results = await finalize_pending_previews(db_session, today=date(2025, 2, 10))

        assert len(results) == 1
        assert results[0].reconciliation_id == january_id
        assert results[0].success is True
        assert results[0].new_items_added == 7
        statuses = dict(
            (
                await db_session.execute(
                    select(MonthlyReconciliation.id, MonthlyReconciliation.status).where(
                        MonthlyReconciliation.id.in_([january_id, february_id, december_id])
                    )
                )
            ).all()
        )
        assert statuses == {january_id: "draft", february_id: "preview", december_id: "draft"}

    @pytest.mark.asyncio
    async def test_audit_note_marks_scheduled_run(self, db_session, live_property):
        rec = await ReconciliationFactory.create(db_session, property=live_property)
        rec_id = rec.id
        await _short_term_month(db_session, live_property)

        await finalize_pending_previews(db_session, today=date(2025, 2, 10))

        entry = await db_session.scalar(
            select(ReconciliationAuditLog).where(ReconciliationAuditLog.reconciliation_id == rec_id)
        )
        assert entry.action == "finalized"
        assert entry.user_id == SYSTEM_ACTOR
        assert entry.notes == "Auto-finalized by scheduled job. Revenue: $2100.00, New items: 7"

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_the_batch(self, db_session, live_property):
        ownerless = await PropertyFactory.create(db_session, name="Ownerless", with_owner=False)
        broken = await ReconciliationFactory.create(
            db_session, property=ownerless, reconciliation_month=date(2024, 12, 1)
        )
        healthy = await ReconciliationFactory.create(db_session, property=live_property)
        broken_id, healthy_id = broken.id, healthy.id

        results = await finalize_pending_previews(db_session, today=date(2025, 2, 10))

        assert [r.reconciliation_id for r in results] == [broken_id, healthy_id]
        assert results[0].success is False
        assert results[0].error == "Property has no owner assigned"
        assert results[1].success is True
        status = await db_session.scalar(
            select(MonthlyReconciliation.status).where(MonthlyReconciliation.id == healthy_id)
        )
        assert status == "draft"

    @pytest.mark.asyncio
    async def test_nothing_pending(self, db_session, live_property):
        await ReconciliationFactory.create(
            db_session, property=live_property, reconciliation_month=date(2025, 2, 1)
        )

        assert await finalize_pending_previews(db_session, today=date(2025, 2, 10)) == []
