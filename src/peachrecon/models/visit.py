# File: src/peachrecon/models/visit.py
"""Property visit model."""

import uuid
from datetime import date as date_type
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from peachrecon.core.db import Base
from peachrecon.utils.datetime import now_utc


class Visit(Base):
    """Billable staff visit. `billed` flips once folded into a reconciliation."""

    __tablename__ = "visits"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("properties.id"),
        nullable=False,
        index=True,
    )

    date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)

    price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    visited_by: Mapped[str | None] = mapped_column(String(200), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    billed: Mapped[bool] = mapped_column(default=False, nullable=False, index=True)

    reconciliation_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("monthly_reconciliations.id"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=now_utc)

    def __repr__(self) -> str:
        return f"<Visit(id={self.id}, date={self.date}, price={self.price}, billed={self.billed})>"
