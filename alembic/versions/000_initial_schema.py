"""Initial database schema

Revision ID: 000_initial_schema
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "000_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, services, commissions, negotiation history and audit tables."""

    userrole = sa.Enum("user", "manager", "admin", name="userrole")

    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", userrole, nullable=False),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("business_name", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), default=True, nullable=False),
        sa.Column("last_active_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    # Services table
    op.create_table(
        "services",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("manager_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("base_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("is_active", sa.Boolean(), default=True, nullable=False),
        sa.Column(
            "commission_status",
            sa.Enum("pending", "negotiating", "agreed", "rejected", name="servicecommissionstatus"),
            nullable=True,
        ),
        sa.Column("offered_commission_percentage", sa.Numeric(5, 2), nullable=True),
        sa.Column("final_commission_percentage", sa.Numeric(5, 2), nullable=True),
        sa.Column("commission_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_services_manager_id", "services", ["manager_id"])
    op.create_index("ix_services_commission_status", "services", ["commission_status"])
    op.create_index("ix_services_commission_id", "services", ["commission_id"])

    # Commissions table
    op.create_table(
        "commissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("manager_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("service_id", sa.Integer(), nullable=False),
        sa.Column("offered_percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("admin_counter_percentage", sa.Numeric(5, 2), nullable=True),
        sa.Column("final_percentage", sa.Numeric(5, 2), nullable=True),
        sa.Column(
            "status",
            sa.Enum("pending", "negotiating", "accepted", "rejected", name="commissionstatus"),
            nullable=False,
        ),
        sa.Column(
            "type",
            sa.Enum("manager_offer", "admin_counter", name="commissiontype"),
            nullable=False,
        ),
        sa.Column("admin_responded_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("admin_responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_notes", sa.String(500), nullable=True),
        sa.Column(
            "manager_response",
            sa.Enum("accept", "reject", "counter", name="managerresponse"),
            nullable=True,
        ),
        sa.Column("manager_notes", sa.String(500), nullable=True),
        sa.Column("manager_responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("agreed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("agreed_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_commissions_manager_id", "commissions", ["manager_id"])
    op.create_index("ix_commissions_service_id", "commissions", ["service_id"])
    op.create_index("ix_commissions_status", "commissions", ["status"])

    # Negotiation history (append-only)
    op.create_table(
        "commission_negotiation_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("commission_id", sa.Integer(), sa.ForeignKey("commissions.id"), nullable=False),
        sa.Column(
            "action",
            sa.Enum(
                "offer",
                "offer_updated",
                "admin_accept",
                "admin_reject",
                "admin_counter",
                "manager_accept_counter",
                "manager_reject_counter",
                "manager_counter",
                name="negotiationaction",
            ),
            nullable=False,
        ),
        sa.Column("by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "by_role",
            postgresql.ENUM("user", "manager", "admin", name="userrole", create_type=False),
            nullable=False,
        ),
        sa.Column("percentage", sa.Numeric(5, 2), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_commission_negotiation_history_commission_id",
        "commission_negotiation_history",
        ["commission_id"],
    )

    # Audit logs table
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "action",
            sa.Enum(
                "login",
                "logout",
                "submit_commission_offer",
                "respond_commission",
                "bulk_respond_commission",
                name="auditaction",
            ),
            nullable=False,
        ),
        sa.Column("target_type", sa.String(50), nullable=True),
        sa.Column("target_id", sa.Integer(), nullable=True),
        sa.Column("action_metadata", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("audit_logs")
    op.drop_table("commission_negotiation_history")
    op.drop_table("commissions")
    op.drop_table("services")
    op.drop_table("users")

    # Drop enums
    op.execute("DROP TYPE IF EXISTS auditaction")
    op.execute("DROP TYPE IF EXISTS negotiationaction")
    op.execute("DROP TYPE IF EXISTS managerresponse")
    op.execute("DROP TYPE IF EXISTS commissiontype")
    op.execute("DROP TYPE IF EXISTS commissionstatus")
    op.execute("DROP TYPE IF EXISTS servicecommissionstatus")
    op.execute("DROP TYPE IF EXISTS userrole")
