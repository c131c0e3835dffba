"""Initial schema

Revision ID: 20260219_0001
Revises:
Create Date: 2026-02-19 22:10:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20260219_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


teacher_type_enum = sa.Enum("freelance", "studio", name="teacher_type_enum", native_enum=False, length=32)
session_type_enum = sa.Enum("private", "duo", "group", name="session_type_enum", native_enum=False, length=32)
package_status_enum = sa.Enum("active", "expired", "depleted", name="package_status_enum", native_enum=False, length=32)
booking_status_enum = sa.Enum(
    "pending",
    "confirmed",
    "cancellationRequested",
    "cancelled",
    "completed",
    "noShow",
    name="booking_status_enum",
    native_enum=False,
    length=32,
)
report_type_enum = sa.Enum(
    "monthly",
    "quarterly",
    "half-yearly",
    "yearly",
    name="report_type_enum",
    native_enum=False,
    length=32,
)
report_generated_by_enum = sa.Enum("auto", "manual", name="report_generated_by_enum", native_enum=False, length=32)
bonus_type_enum = sa.Enum("one-time", "recurring", name="bonus_type_enum", native_enum=False, length=32)
bonus_status_enum = sa.Enum(
    "pending",
    "approved",
    "paid",
    "cancelled",
    name="bonus_status_enum",
    native_enum=False,
    length=32,
)
expense_category_enum = sa.Enum(
    "rent",
    "instruments",
    "electricity",
    "water",
    "others",
    name="expense_category_enum",
    native_enum=False,
    length=32,
)
outbox_status_enum = sa.Enum("pending", "processed", "failed", name="outbox_status_enum", native_enum=False, length=32)


def _id_col() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False)


def _created_col() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def _updated_col() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False)


def upgrade() -> None:
    op.create_table(
        "customers",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("display_name", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
    )
    op.create_index("ix_customers_email", "customers", ["email"], unique=True)

    op.create_table(
        "teachers",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("display_name", sa.String(length=128), nullable=False),
        sa.Column("teacher_type", teacher_type_enum, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )

    op.create_table(
        "packages",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("session_type", session_type_enum, nullable=False),
        sa.Column("total_sessions", sa.Integer(), nullable=False),
        sa.Column("remaining_sessions", sa.Integer(), nullable=False),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_to", sa.DateTime(timezone=True), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("status", package_status_enum, nullable=False),
        sa.CheckConstraint("total_sessions >= 1", name="ck_packages_total_sessions_positive"),
        sa.CheckConstraint(
            "remaining_sessions >= 0 AND remaining_sessions <= total_sessions",
            name="ck_packages_remaining_sessions_range",
        ),
        sa.CheckConstraint("valid_from < valid_to", name="ck_packages_validity_window"),
        sa.ForeignKeyConstraint(
            ["customer_id"],
            ["customers.id"],
            name="fk_packages_customer_id_customers",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_packages_customer_id", "packages", ["customer_id"], unique=False)
    op.create_index("ix_packages_valid_to", "packages", ["valid_to"], unique=False)
    op.create_index("ix_packages_status", "packages", ["status"], unique=False)

    op.create_table(
        "bookings",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("teacher_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("package_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("session_type", session_type_enum, nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", booking_status_enum, nullable=False),
        sa.Column("auto_confirmed", sa.Boolean(), nullable=False),
        sa.Column("pending_since", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("attendance_marked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.String(length=512), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.CheckConstraint("start_time < end_time", name="ck_bookings_time_interval"),
        sa.ForeignKeyConstraint(
            ["customer_id"],
            ["customers.id"],
            name="fk_bookings_customer_id_customers",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["teacher_id"],
            ["teachers.id"],
            name="fk_bookings_teacher_id_teachers",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["package_id"],
            ["packages.id"],
            name="fk_bookings_package_id_packages",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_bookings_customer_id", "bookings", ["customer_id"], unique=False)
    op.create_index("ix_bookings_teacher_id", "bookings", ["teacher_id"], unique=False)
    op.create_index("ix_bookings_package_id", "bookings", ["package_id"], unique=False)
    op.create_index("ix_bookings_status", "bookings", ["status"], unique=False)
    op.create_index("ix_bookings_status_start_time", "bookings", ["status", "start_time"], unique=False)
    op.create_index("ix_bookings_teacher_id_start_time", "bookings", ["teacher_id", "start_time"], unique=False)

    op.create_table(
        "payment_reports",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("report_type", report_type_enum, nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_revenue", sa.Numeric(14, 2), nullable=False),
        sa.Column("teacher_payments", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("total_teacher_payments", sa.Numeric(14, 2), nullable=False),
        sa.Column("expenses", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("total_expenses", sa.Numeric(14, 2), nullable=False),
        sa.Column("total_costs", sa.Numeric(14, 2), nullable=False),
        sa.Column("profit_loss", sa.Numeric(14, 2), nullable=False),
        sa.Column("packages_sold", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("total_packages_sold", sa.Integer(), nullable=False),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("generated_by", report_generated_by_enum, nullable=False),
        sa.UniqueConstraint("year", "month", "report_type", name="uq_payment_reports_period"),
    )
    op.create_index(
        "ix_payment_reports_start_date_end_date",
        "payment_reports",
        ["start_date", "end_date"],
        unique=False,
    )
    op.create_index("ix_payment_reports_generated_at", "payment_reports", ["generated_at"], unique=False)

    op.create_table(
        "bonuses",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("teacher_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=False),
        sa.Column("bonus_type", bonus_type_enum, nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("status", bonus_status_enum, nullable=False),
        sa.Column("report_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ["teacher_id"],
            ["teachers.id"],
            name="fk_bonuses_teacher_id_teachers",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["report_id"],
            ["payment_reports.id"],
            name="fk_bonuses_report_id_payment_reports",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_bonuses_teacher_id_year_month", "bonuses", ["teacher_id", "year", "month"], unique=False)
    op.create_index("ix_bonuses_status", "bonuses", ["status"], unique=False)

    op.create_table(
        "expenses",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("category", expense_category_enum, nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("report_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["report_id"],
            ["payment_reports.id"],
            name="fk_expenses_report_id_payment_reports",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_expenses_year_month", "expenses", ["year", "month"], unique=False)

    op.create_table(
        "audit_logs",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("actor", sa.String(length=128), nullable=False),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("entity_type", sa.String(length=128), nullable=False),
        sa.Column("entity_id", sa.String(length=128), nullable=True),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"], unique=False)

    op.create_table(
        "outbox_events",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("aggregate_type", sa.String(length=128), nullable=False),
        sa.Column("aggregate_id", sa.String(length=128), nullable=False),
        sa.Column("event_type", sa.String(length=128), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("status", outbox_status_enum, nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("retries", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
    )
    op.create_index("ix_outbox_events_aggregate_type", "outbox_events", ["aggregate_type"], unique=False)
    op.create_index("ix_outbox_events_aggregate_id", "outbox_events", ["aggregate_id"], unique=False)
    op.create_index("ix_outbox_events_event_type", "outbox_events", ["event_type"], unique=False)
    op.create_index("ix_outbox_events_status", "outbox_events", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_outbox_events_status", table_name="outbox_events")
    op.drop_index("ix_outbox_events_event_type", table_name="outbox_events")
    op.drop_index("ix_outbox_events_aggregate_id", table_name="outbox_events")
    op.drop_index("ix_outbox_events_aggregate_type", table_name="outbox_events")
    op.drop_table("outbox_events")

    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_expenses_year_month", table_name="expenses")
    op.drop_table("expenses")

    op.drop_index("ix_bonuses_status", table_name="bonuses")
    op.drop_index("ix_bonuses_teacher_id_year_month", table_name="bonuses")
    op.drop_table("bonuses")

    op.drop_index("ix_payment_reports_generated_at", table_name="payment_reports")
    op.drop_index("ix_payment_reports_start_date_end_date", table_name="payment_reports")
    op.drop_table("payment_reports")

    op.drop_index("ix_bookings_teacher_id_start_time", table_name="bookings")
    op.drop_index("ix_bookings_status_start_time", table_name="bookings")
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_package_id", table_name="bookings")
    op.drop_index("ix_bookings_teacher_id", table_name="bookings")
    op.drop_index("ix_bookings_customer_id", table_name="bookings")
    op.drop_table("bookings")

    op.drop_index("ix_packages_status", table_name="packages")
    op.drop_index("ix_packages_valid_to", table_name="packages")
    op.drop_index("ix_packages_customer_id", table_name="packages")
    op.drop_table("packages")

    op.drop_table("teachers")

    op.drop_index("ix_customers_email", table_name="customers")
    op.drop_table("customers")
