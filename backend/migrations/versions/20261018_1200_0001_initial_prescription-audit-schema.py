"""Initial schema - users, prescriptions, refills, audit trail.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18

"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic
revision = "0001_initial"
down_revision: str | None = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("username", sa.Text, nullable=False),
        sa.Column("email", sa.String(100), nullable=True),
        sa.Column("role", sa.String(50), nullable=True),
        sa.Column("license_number", sa.String(50), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("username", name="ux_users_username"),
        sa.UniqueConstraint("email", name="ux_users_email"),
    )

    op.create_table(
        "prescriptions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("prescription_number", sa.Text, nullable=True),
        sa.Column("patient_id", sa.Integer, nullable=True, index=True),
        sa.Column("medication_name", sa.Text, nullable=False),
        sa.Column("dosage", sa.Text, nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("status", sa.Text, nullable=False, server_default="pending"),
        sa.Column("prescribed_by", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "refill_requests",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "prescription_id",
            sa.Integer,
            sa.ForeignKey("prescriptions.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("status", sa.Text, nullable=False, server_default="pending"),
        sa.Column("approved_by", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("denial_reason", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "prescription_audit_logs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "prescription_id",
            sa.Integer,
            sa.ForeignKey("prescriptions.id"),
            nullable=True,
            index=True,
        ),
        sa.Column(
            "refill_request_id",
            sa.Integer,
            sa.ForeignKey("refill_requests.id"),
            nullable=True,
            index=True,
        ),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("action", sa.Text, nullable=False),
        sa.Column("details", JSON_TYPE, nullable=True),
        sa.Column("ip_address", sa.Text, nullable=True),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column("digital_signature", sa.Text, nullable=True),
        sa.Column("compliance_data", JSON_TYPE, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_prescription_audit_logs_user_created",
        "prescription_audit_logs",
        ["user_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_prescription_audit_logs_user_created", table_name="prescription_audit_logs")
    op.drop_table("prescription_audit_logs")
    op.drop_table("refill_requests")
    op.drop_table("prescriptions")
    op.drop_table("users")
