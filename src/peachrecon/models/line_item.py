# File: src/peachrecon/models/line_item.py
"""Reconciliation line item model."""

import uuid
from datetime import date as date_type
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, ForeignKey, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from peachrecon.core.db import Base
from peachrecon.utils.datetime import now_utc

if TYPE_CHECKING:
    from peachrecon.models.reconciliation import MonthlyReconciliation


class ReconciliationLineItem(Base):
    """
    One itemized revenue (positive) or cost (negative) entry of a reconciliation.

    (reconciliation_id, item_type, item_id) is unique: re-running finalize
    never duplicates an item already present. Items are never recomputed in
    place; corrections are additional items.
    """

    __tablename__ = "reconciliation_line_items"
    __table_args__ = (
        UniqueConstraint(
            "reconciliation_id",
            "item_type",
            "item_id",
            name="uq_reconciliation_line_items_source",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    reconciliation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("monthly_reconciliations.id"),
        nullable=False,
        index=True,
    )

    item_type: Mapped[str] = mapped_column(String(30), nullable=False)

    # Source row id, or a synthetic key such as "{booking_id}_cleaning"
    item_id: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    date: Mapped[date_type | None] = mapped_column(Date, nullable=True)

    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    fee_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    verified: Mapped[bool] = mapped_column(default=False, nullable=False)

    excluded: Mapped[bool] = mapped_column(default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=now_utc)

    reconciliation: Mapped["MonthlyReconciliation"] = relationship(
        "MonthlyReconciliation",
        back_populates="line_items",
    )

    @property
    def key(self) -> str:
        """Identity of the source record within its reconciliation."""
        return f"{self.item_type}:{self.item_id}"

    def __repr__(self) -> str:
        return f"<ReconciliationLineItem(key={self.key}, amount={self.amount})>"
