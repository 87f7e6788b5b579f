"""init schema: orgs, memberships, property records, rent lifecycle, audit log

Revision ID: 0001_init
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    # ---- tenancy + identity ----
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("slug", sa.String(length=80), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="NGN"),
        *_timestamps(),
        sa.CheckConstraint("length(currency) = 3", name="ck_organizations_currency_len"),
    )
    op.create_index("ix_organizations_slug", "organizations", ["slug"], unique=True)

    op.create_table(
        "app_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("display_name", sa.String(length=160), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_app_users_email", "app_users", ["email"], unique=True)

    op.create_table(
        "org_memberships",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="OWNER"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("org_id", "user_id", name="uq_org_memberships_org_user"),
        sa.CheckConstraint("role IN ('OWNER', 'MANAGER', 'OPS', 'DIRECTOR')", name="ck_org_memberships_role"),
    )
    op.create_index("ix_org_memberships_org_id", "org_memberships", ["org_id"])
    op.create_index("ix_org_memberships_user_id", "org_memberships", ["user_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("action_type", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=80), nullable=False),
        sa.Column("entity_id", sa.String(length=80), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("before_json", sa.Text(), nullable=True),
        sa.Column("after_json", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=400), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_logs_org_id", "audit_logs", ["org_id"])
    op.create_index("ix_audit_logs_action_type", "audit_logs", ["action_type"])
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"])
    op.create_index("ix_audit_logs_org_created_at", "audit_logs", ["org_id", "created_at"])

    # ---- property records ----
    op.create_table(
        "buildings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("address", sa.String(length=400), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_buildings_org_id", "buildings", ["org_id"])

    op.create_table(
        "units",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("building_id", sa.Integer(), sa.ForeignKey("buildings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("unit_number", sa.String(length=40), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_units_org_id", "units", ["org_id"])
    op.create_index("ix_units_building_id", "units", ["building_id"])

    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_tenants_org_id", "tenants", ["org_id"])

    op.create_table(
        "occupancies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("active_from", sa.Date(), nullable=False),
        sa.Column("active_to", sa.Date(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("active_to IS NULL OR active_to >= active_from", name="ck_occupancies_active_range"),
    )
    op.create_index("ix_occupancies_org_id", "occupancies", ["org_id"])
    op.create_index("ix_occupancies_unit_id", "occupancies", ["unit_id"])
    op.create_index("ix_occupancies_tenant_id", "occupancies", ["tenant_id"])

    # ---- rent lifecycle ----
    op.create_table(
        "rent_configs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column(
            "occupancy_id", sa.Integer(), sa.ForeignKey("occupancies.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("cycle", sa.String(length=20), nullable=False, server_default="MONTHLY"),
        sa.Column("due_day", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.CheckConstraint("amount > 0", name="ck_rent_configs_amount"),
        sa.CheckConstraint("cycle IN ('WEEKLY', 'MONTHLY', 'QUARTERLY', 'YEARLY')", name="ck_rent_configs_cycle"),
        sa.CheckConstraint("due_day >= 1 AND due_day <= 31", name="ck_rent_configs_due_day"),
    )
    op.create_index("ix_rent_configs_org_id", "rent_configs", ["org_id"])
    op.create_index("ix_rent_configs_occupancy_id", "rent_configs", ["occupancy_id"])

    op.create_table(
        "rent_periods",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column(
            "rent_config_id", sa.Integer(), sa.ForeignKey("rent_configs.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("period_end", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="DUE"),
        sa.Column("days_overdue", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.UniqueConstraint("rent_config_id", "period_start", name="uq_rent_periods_config_start"),
        sa.CheckConstraint("status IN ('DUE', 'PAID', 'OVERDUE')", name="ck_rent_periods_status"),
        sa.CheckConstraint("period_end >= period_start", name="ck_rent_periods_date_range"),
        sa.CheckConstraint("days_overdue >= 0", name="ck_rent_periods_days_overdue"),
    )
    op.create_index("ix_rent_periods_org_id", "rent_periods", ["org_id"])
    op.create_index("ix_rent_periods_rent_config_id", "rent_periods", ["rent_config_id"])
    op.create_index("ix_rent_periods_due_date", "rent_periods", ["due_date"])
    op.create_index("ix_rent_periods_org_status", "rent_periods", ["org_id", "status"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column(
            "rent_period_id", sa.Integer(), sa.ForeignKey("rent_periods.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("paid_at", sa.DateTime(), nullable=False),
        sa.Column("reference", sa.String(length=200), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("amount > 0", name="ck_payments_amount"),
    )
    op.create_index("ix_payments_org_id", "payments", ["org_id"])
    op.create_index("ix_payments_rent_period_id", "payments", ["rent_period_id"])
    op.create_index("ix_payments_org_period", "payments", ["org_id", "rent_period_id"])


def downgrade():
    op.drop_table("payments")
    op.drop_table("rent_periods")
    op.drop_table("rent_configs")
    op.drop_table("occupancies")
    op.drop_table("tenants")
    op.drop_table("units")
    op.drop_table("buildings")
    op.drop_table("audit_logs")
    op.drop_table("org_memberships")
    op.drop_table("app_users")
    op.drop_table("organizations")
