"""create_reconciliation_tables

Owner reconciliation schema: properties, bookings, expenses, visits,
monthly reconciliations, line items and the audit trail.

Revision ID: 3c1f0a9e7b21
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3c1f0a9e7b21'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "property_owners",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("service_type", sa.String(50), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "properties",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("owner_id", sa.Uuid(), sa.ForeignKey("property_owners.id"), nullable=True),
        sa.Column("management_fee_percentage", sa.Numeric(5, 2), nullable=True),
        sa.Column("first_listing_live_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_properties_name", "properties", ["name"])
    op.create_index("ix_properties_owner_id", "properties", ["owner_id"])

    op.create_table(
        "monthly_reconciliations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("property_id", sa.Uuid(), sa.ForeignKey("properties.id"), nullable=False),
        sa.Column("owner_id", sa.Uuid(), sa.ForeignKey("property_owners.id"), nullable=True),
        sa.Column("reconciliation_month", sa.Date(), nullable=False),
        sa.Column("status", sa.String(30), nullable=False, server_default="preview"),
        sa.Column("short_term_revenue", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("mid_term_revenue", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_revenue", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("management_fee", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("order_minimum_fee", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("visit_fees", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_expenses", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("due_from_owner", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "property_id",
            "reconciliation_month",
            name="uq_monthly_reconciliations_property_month",
        ),
    )
    op.create_index("ix_monthly_reconciliations_property_id", "monthly_reconciliations", ["property_id"])
    op.create_index("ix_monthly_reconciliations_owner_id", "monthly_reconciliations", ["owner_id"])
    op.create_index(
        "ix_monthly_reconciliations_reconciliation_month",
        "monthly_reconciliations",
        ["reconciliation_month"],
    )
    op.create_index("ix_monthly_reconciliations_status", "monthly_reconciliations", ["status"])

    op.create_table(
        "reconciliation_line_items",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "reconciliation_id",
            sa.Uuid(),
            sa.ForeignKey("monthly_reconciliations.id"),
            nullable=False,
        ),
        sa.Column("item_type", sa.String(30), nullable=False),
        sa.Column("item_id", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=False, server_default=""),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("fee_type", sa.String(50), nullable=True),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("excluded", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        # Re-running finalize must never duplicate an item
        sa.UniqueConstraint(
            "reconciliation_id",
            "item_type",
            "item_id",
            name="uq_reconciliation_line_items_source",
        ),
    )
    op.create_index(
        "ix_reconciliation_line_items_reconciliation_id",
        "reconciliation_line_items",
        ["reconciliation_id"],
    )

    op.create_table(
        "ownerrez_bookings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("property_id", sa.Uuid(), sa.ForeignKey("properties.id"), nullable=False),
        sa.Column("guest_name", sa.String(200), nullable=True),
        sa.Column("check_in", sa.Date(), nullable=False),
        sa.Column("check_out", sa.Date(), nullable=True),
        sa.Column("accommodation_revenue", sa.Numeric(12, 2), nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("cleaning_fee", sa.Numeric(12, 2), nullable=True),
        sa.Column("pet_fee", sa.Numeric(12, 2), nullable=True),
        sa.Column("ownerrez_listing_name", sa.String(200), nullable=True),
    )
    op.create_index("ix_ownerrez_bookings_property_id", "ownerrez_bookings", ["property_id"])
    op.create_index("ix_ownerrez_bookings_check_in", "ownerrez_bookings", ["check_in"])

    op.create_table(
        "mid_term_bookings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("property_id", sa.Uuid(), sa.ForeignKey("properties.id"), nullable=False),
        sa.Column("tenant_name", sa.String(200), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("monthly_rent", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_mid_term_bookings_property_id", "mid_term_bookings", ["property_id"])
    op.create_index("ix_mid_term_bookings_status", "mid_term_bookings", ["status"])

    op.create_table(
        "expenses",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("property_id", sa.Uuid(), sa.ForeignKey("properties.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("purpose", sa.Text(), nullable=True),
        sa.Column("items_detail", sa.Text(), nullable=True),
        sa.Column("vendor", sa.String(200), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("exported", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_expenses_property_id", "expenses", ["property_id"])
    op.create_index("ix_expenses_date", "expenses", ["date"])
    op.create_index("ix_expenses_exported", "expenses", ["exported"])

    op.create_table(
        "visits",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("property_id", sa.Uuid(), sa.ForeignKey("properties.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=True),
        sa.Column("visited_by", sa.String(200), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("billed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "reconciliation_id",
            sa.Uuid(),
            sa.ForeignKey("monthly_reconciliations.id"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_visits_property_id", "visits", ["property_id"])
    op.create_index("ix_visits_date", "visits", ["date"])
    op.create_index("ix_visits_billed", "visits", ["billed"])

    op.create_table(
        "reconciliation_audit_log",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "reconciliation_id",
            sa.Uuid(),
            sa.ForeignKey("monthly_reconciliations.id"),
            nullable=False,
        ),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("user_id", sa.String(100), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("old_values", JSONType, nullable=False),
        sa.Column("new_values", JSONType, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_reconciliation_audit_log_reconciliation_id",
        "reconciliation_audit_log",
        ["reconciliation_id"],
    )
    op.create_index("ix_reconciliation_audit_log_created_at", "reconciliation_audit_log", ["created_at"])


def downgrade() -> None:
    op.drop_table("reconciliation_audit_log")
    op.drop_table("visits")
    op.drop_table("expenses")
    op.drop_table("mid_term_bookings")
    op.drop_table("ownerrez_bookings")
    op.drop_table("reconciliation_line_items")
    op.drop_table("monthly_reconciliations")
    op.drop_table("properties")
    op.drop_table("property_owners")
