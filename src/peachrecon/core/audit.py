"""Audit logging utilities for reconciliation changes."""

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from peachrecon.core.logging import get_logger
from peachrecon.models.reconciliation_audit_log import ReconciliationAuditLog
from peachrecon.utils.datetime import now_utc

logger = get_logger(__name__)


def _serialize_value(v: Any) -> Any:
    # JSON columns cannot hold Decimal/UUID
    if isinstance(v, Decimal):
        return str(v)
    if isinstance(v, UUID):
        return str(v)
    return v


async def record_audit_entry(
    db: AsyncSession,
    reconciliation_id: UUID,
    user_id: str,
    action: str,
    notes: str | None = None,
    old_values: dict[str, Any] | None = None,
    new_values: dict[str, Any] | None = None,
) -> ReconciliationAuditLog | None:
    """Append one audit trail entry and commit it on its own.

    Call this only after the financial change has been committed. A failed
    write is logged and swallowed, so audit availability never decides whether
    a reconciliation update succeeds.

    Returns:
        The created entry, or None if the write failed.
    """
    entry = ReconciliationAuditLog(
        reconciliation_id=reconciliation_id,
        user_id=user_id,
        action=action,
        notes=notes,
        old_values={k: _serialize_value(v) for k, v in (old_values or {}).items()},
        new_values={k: _serialize_value(v) for k, v in (new_values or {}).items()},
        created_at=now_utc(),
    )

    try:
        db.add(entry)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(
            "audit.write_failed",
            reconciliation_id=str(reconciliation_id),
            action=action,
            error=str(exc),
        )
        return None

    return entry
