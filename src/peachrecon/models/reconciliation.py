# File: src/peachrecon/models/reconciliation.py
"""MonthlyReconciliation model: one financial settlement per property and month."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from peachrecon.models.line_item import ReconciliationLineItem
    from peachrecon.models.property import Property, PropertyOwner

import uuid
from datetime import date as date_type
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from peachrecon.core.db import Base
from peachrecon.models.enums import ReconciliationStatus
from peachrecon.utils.datetime import now_utc

ZERO = Decimal("0.00")


class MonthlyReconciliation(Base):
    """Monthly owner statement for a property. Never deleted (financial record)."""

    __tablename__ = "monthly_reconciliations"
    __table_args__ = (
        UniqueConstraint(
            "property_id",
            "reconciliation_month",
            name="uq_monthly_reconciliations_property_month",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("properties.id"),
        nullable=False,
        index=True,
    )

    owner_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("property_owners.id"),
        nullable=True,
        index=True,
    )

    # Always the first day of the month
    reconciliation_month: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)

    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=ReconciliationStatus.PREVIEW.value,
        index=True,
    )

    # Totals (written by finalize and the include-items flow)
    short_term_revenue: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    mid_term_revenue: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    total_revenue: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    management_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    order_minimum_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    visit_fees: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    total_expenses: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    due_from_owner: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=now_utc)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=now_utc,
        onupdate=now_utc,
    )

    property: Mapped["Property"] = relationship(
        "Property",
        back_populates="reconciliations",
        lazy="selectin",
    )

    owner: Mapped["PropertyOwner | None"] = relationship(
        "PropertyOwner",
        foreign_keys=[owner_id],
        lazy="selectin",
    )

    line_items: Mapped[list["ReconciliationLineItem"]] = relationship(
        "ReconciliationLineItem",
        back_populates="reconciliation",
        order_by="ReconciliationLineItem.date",
    )

    def __repr__(self) -> str:
        return (
            f"<MonthlyReconciliation(id={self.id}, property_id={self.property_id}, "
            f"month={self.reconciliation_month}, status={self.status})>"
        )
