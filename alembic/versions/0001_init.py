"""init
Revision ID: 0001_init
Revises:
Create Date: 2026-10-16
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "field_definitions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("name", sa.String(length=80), nullable=False, unique=True),
        sa.Column("label", sa.String(length=200), nullable=False),
        sa.Column("kind", sa.String(length=30), nullable=False),
        sa.Column("options", sa.JSON(), nullable=True),
    )
    op.create_index("ix_field_definitions_kind", "field_definitions", ["kind"])
    op.create_index("ix_field_definitions_created_at", "field_definitions", ["created_at"])

    op.create_table(
        "user_types",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("name_key", sa.String(length=50), nullable=False, unique=True),
        sa.Column("state", sa.String(length=20), nullable=False, server_default="ACTIVE"),
    )
    op.create_index("ix_user_types_state", "user_types", ["state"])
    op.create_index("ix_user_types_created_at", "user_types", ["created_at"])

    op.create_table(
        "user_type_fields",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "user_type_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("user_types.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "field_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("field_definitions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("required", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.UniqueConstraint("user_type_id", "sort_order", name="uq_user_type_fields_type_order"),
        sa.UniqueConstraint("user_type_id", "field_id", name="uq_user_type_fields_type_field"),
    )
    op.create_index("ix_user_type_fields_user_type_id", "user_type_fields", ["user_type_id"])
    op.create_index("ix_user_type_fields_field_id", "user_type_fields", ["field_id"])
    op.create_index("ix_user_type_fields_created_at", "user_type_fields", ["created_at"])

    op.create_table(
        "requests",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("user_type_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_requests_user_type_id", "requests", ["user_type_id"])
    op.create_index("ix_requests_status", "requests", ["status"])
    op.create_index("ix_requests_created_at", "requests", ["created_at"])

def downgrade():
    op.drop_table("requests")
    op.drop_table("user_type_fields")
    op.drop_table("user_types")
    op.drop_table("field_definitions")
