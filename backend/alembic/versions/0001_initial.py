"""initial schema

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "auth_identities",
        sa.Column("uid", sa.String(length=64), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("disabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_auth_identities_email", "auth_identities", ["email"])

    op.create_table(
        "accounts",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("first_name", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("phone", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("address", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "role",
            sa.Enum("trapper", "admin", name="account_role"),
            nullable=False,
            server_default="trapper",
        ),
        sa.Column("trapper_number", sa.String(length=32), nullable=True),
        sa.Column("trapper_region", sa.JSON(), nullable=False),
        sa.Column("equipment", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("code", sa.String(length=4), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("booking_access_restricted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("restriction_reason", sa.Text(), nullable=True),
        sa.Column("notifications_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("notification_tokens", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_accounts_email", "accounts", ["email"])
    op.create_index("ix_accounts_trapper_number", "accounts", ["trapper_number"])

    op.create_table(
        "performance_metrics",
        sa.Column(
            "account_id",
            sa.String(length=64),
            sa.ForeignKey("accounts.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("total_appointments_booked", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_appointments_completed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_appointments_over_booked", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_appointments_under_booked", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("commitment_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("strikes", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "clinics",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("slug", sa.String(length=80), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.UniqueConstraint("slug"),
    )

    op.create_table(
        "capacity_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("clinic_id", sa.Integer(), sa.ForeignKey("clinics.id"), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("tnvr_capacity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("foster_capacity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column(
            "updated_by_user_id",
            sa.String(length=64),
            sa.ForeignKey("accounts.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.UniqueConstraint("clinic_id", "day", name="uq_capacity_clinic_day"),
    )
    op.create_index("ix_capacity_records_clinic_id", "capacity_records", ["clinic_id"])
    op.create_index("ix_capacity_records_day", "capacity_records", ["day"])

    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.String(length=64),
            sa.ForeignKey("accounts.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("trapper_first_name", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("trapper_last_name", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("trapper_phone", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("trapper_number", sa.String(length=32), nullable=False, server_default=""),
        sa.Column("service_type", sa.Enum("tnvr", "foster", name="service_type"), nullable=False),
        sa.Column("clinic_id", sa.Integer(), sa.ForeignKey("clinics.id"), nullable=False),
        sa.Column("clinic_address", sa.Text(), nullable=False),
        sa.Column("appointment_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "status",
            sa.Enum("upcoming", "completed", "canceled", name="appointment_status"),
            nullable=False,
            server_default="upcoming",
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column(
            "created_by_user_id",
            sa.String(length=64),
            sa.ForeignKey("accounts.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "last_modified_by_user_id",
            sa.String(length=64),
            sa.ForeignKey("accounts.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    op.create_index("ix_appointments_user_id", "appointments", ["user_id"])
    op.create_index("ix_appointments_clinic_id", "appointments", ["clinic_id"])
    op.create_index("ix_appointments_appointment_time", "appointments", ["appointment_time"])
    op.create_index("ix_appointments_status", "appointments", ["status"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column(
            "actor_user_id",
            sa.String(length=64),
            sa.ForeignKey("accounts.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("actor_email", sa.String(length=320), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=False),
        sa.Column("request_id", sa.String(length=120), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("before_json", sa.JSON(), nullable=True),
        sa.Column("after_json", sa.JSON(), nullable=True),
    )
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_entity", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_appointments_status", table_name="appointments")
    op.drop_index("ix_appointments_appointment_time", table_name="appointments")
    op.drop_index("ix_appointments_clinic_id", table_name="appointments")
    op.drop_index("ix_appointments_user_id", table_name="appointments")
    op.drop_table("appointments")
    op.drop_index("ix_capacity_records_day", table_name="capacity_records")
    op.drop_index("ix_capacity_records_clinic_id", table_name="capacity_records")
    op.drop_table("capacity_records")
    op.drop_table("clinics")
    op.drop_table("performance_metrics")
    op.drop_index("ix_accounts_trapper_number", table_name="accounts")
    op.drop_index("ix_accounts_email", table_name="accounts")
    op.drop_table("accounts")
    op.drop_index("ix_auth_identities_email", table_name="auth_identities")
    op.drop_table("auth_identities")
    sa.Enum(name="appointment_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="service_type").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="account_role").drop(op.get_bind(), checkfirst=True)
