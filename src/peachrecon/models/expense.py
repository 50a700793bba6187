# File: src/peachrecon/models/expense.py
"""Property expense model."""

import uuid
from datetime import date as date_type
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from peachrecon.core.db import Base
from peachrecon.utils.datetime import now_utc


class Expense(Base):
    """Property-level cost. `exported` flips once folded into a reconciliation."""

    __tablename__ = "expenses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("properties.id"),
        nullable=False,
        index=True,
    )

    date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    purpose: Mapped[str | None] = mapped_column(Text, nullable=True)

    items_detail: Mapped[str | None] = mapped_column(Text, nullable=True)

    vendor: Mapped[str | None] = mapped_column(String(200), nullable=True)

    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    exported: Mapped[bool] = mapped_column(default=False, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=now_utc)

    def __repr__(self) -> str:
        purpose = self.purpose[:20] if self.purpose else ""
        return f"<Expense(id={self.id}, amount={self.amount}, purpose={purpose})>"
