# File: src/peachrecon/models/property.py
"""Property and owner models."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from peachrecon.core.db import Base
from peachrecon.utils.datetime import now_utc

if TYPE_CHECKING:
    from peachrecon.models.reconciliation import MonthlyReconciliation


class PropertyOwner(Base):
    """Owner of one or more managed properties."""

    __tablename__ = "property_owners"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # "full_service" or "cohosting"
    service_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=now_utc)

    properties: Mapped[list["Property"]] = relationship("Property", back_populates="owner")

    def __repr__(self) -> str:
        return f"<PropertyOwner(id={self.id}, name={self.name})>"


class Property(Base):
    """
    A managed rental property.

    Billing configuration lives here:
    - management_fee_percentage: share of revenue charged (None/0 falls back to 15%)
    - first_listing_live_at: set once the property goes live on a listing
      platform; the order minimum fee only applies to live properties
    """

    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)

    address: Mapped[str | None] = mapped_column(String(500), nullable=True)

    owner_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("property_owners.id"),
        nullable=True,
        index=True,
    )

    management_fee_percentage: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 2),
        nullable=True,
    )

    first_listing_live_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=now_utc)

    owner: Mapped["PropertyOwner | None"] = relationship(
        "PropertyOwner",
        back_populates="properties",
        lazy="selectin",
    )

    reconciliations: Mapped[list["MonthlyReconciliation"]] = relationship(
        "MonthlyReconciliation",
        back_populates="property",
    )

    @property
    def is_live(self) -> bool:
        """True once the property has gone live on any listing platform."""
        return self.first_listing_live_at is not None

    def __repr__(self) -> str:
        return self.name
