# File: src/peachrecon/models/reconciliation_audit_log.py
"""Audit trail model for MonthlyReconciliation changes."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from peachrecon.core.db import Base
from peachrecon.utils.datetime import now_utc

if TYPE_CHECKING:
    from peachrecon.models.reconciliation import MonthlyReconciliation

JSONType = JSON().with_variant(JSONB(), "postgresql")


class ReconciliationAuditLog(Base):
    """Append-only trail of reconciliation changes. Never updated or deleted."""

    __tablename__ = "reconciliation_audit_log"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    reconciliation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("monthly_reconciliations.id"),
        nullable=False,
        index=True,
    )

    reconciliation: Mapped["MonthlyReconciliation"] = relationship(
        "MonthlyReconciliation",
        foreign_keys=[reconciliation_id],
    )

    # WHAT
    action: Mapped[str] = mapped_column(String(30), nullable=False)

    # WHO
    user_id: Mapped[str] = mapped_column(String(100), nullable=False)

    # WHY / summary
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Totals before/after
    old_values: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    new_values: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    # WHEN
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=now_utc,
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<ReconciliationAuditLog(reconciliation_id={self.reconciliation_id}, "
            f"action={self.action}, user_id={self.user_id})>"
        )
