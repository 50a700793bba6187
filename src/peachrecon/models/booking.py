# File: src/peachrecon/models/booking.py
"""Short-term (OwnerRez) and mid-term booking models."""

import uuid
from datetime import date as date_type
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from peachrecon.core.db import Base
from peachrecon.models.enums import MidTermStatus
from peachrecon.utils.datetime import now_utc


class OwnerRezBooking(Base):
    """Short-term booking synced from OwnerRez. Read-only to reconciliation."""

    __tablename__ = "ownerrez_bookings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("properties.id"),
        nullable=False,
        index=True,
    )

    guest_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    check_in: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)

    check_out: Mapped[date_type | None] = mapped_column(Date, nullable=True)

    accommodation_revenue: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    cleaning_fee: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    pet_fee: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    ownerrez_listing_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    def __repr__(self) -> str:
        return f"<OwnerRezBooking(id={self.id}, guest={self.guest_name}, check_in={self.check_in})>"


class MidTermBooking(Base):
    """Manually entered longer-stay tenancy billed by prorated monthly rent."""

    __tablename__ = "mid_term_bookings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("properties.id"),
        nullable=False,
        index=True,
    )

    tenant_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    start_date: Mapped[date_type] = mapped_column(Date, nullable=False)

    end_date: Mapped[date_type] = mapped_column(Date, nullable=False)

    monthly_rent: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=MidTermStatus.ACTIVE.value,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=now_utc)

    def __repr__(self) -> str:
        return (
            f"<MidTermBooking(id={self.id}, tenant={self.tenant_name}, "
            f"{self.start_date}..{self.end_date})>"
        )
