"""create rbac and feature1 tables

Revision ID: 4e1a7c9b2d30
Revises:
Create Date: 2026-10-19 09:12:41.218004

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4e1a7c9b2d30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Create users, roles, user_roles, permissions, audit_events and feature1 tables."""
    # Check if tables already exist (idempotent)
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = set(inspector.get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(100), nullable=False),
            sa.Column("email", sa.String(320), nullable=False, unique=True),
            sa.Column("password_hash", sa.String(255), nullable=False),
            sa.Column("role", sa.String(16), nullable=False, server_default="user"),
            sa.Column("department", sa.String(50), nullable=True),
            sa.Column("position", sa.String(50), nullable=True),
            sa.Column("avatar", sa.String(512), nullable=True),
            sa.Column("phone", sa.String(20), nullable=True),
            sa.Column("website", sa.String(100), nullable=True),
            sa.Column("last_login", sa.DateTime(), nullable=True),
            sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("deleted_at", sa.DateTime(), nullable=True),
            sa.Column("deleted_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("idx_users_is_active", "users", ["is_active"])
        op.create_index("idx_users_role", "users", ["role"])

    if "roles" not in existing_tables:
        op.create_table(
            "roles",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(50), nullable=False, unique=True),
            sa.Column("code", sa.String(64), nullable=True, unique=True),
            sa.Column("description", sa.String(200), nullable=False, server_default=""),
            sa.Column("permissions", JSONType, nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_by", sa.String(320), nullable=False, server_default="system"),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("idx_roles_is_active", "roles", ["is_active"])
        op.create_index("idx_roles_created_at", "roles", ["created_at"])

    if "user_roles" not in existing_tables:
        op.create_table(
            "user_roles",
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
        )

    if "permissions" not in existing_tables:
        op.create_table(
            "permissions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("code", sa.String(128), nullable=False, unique=True),
            sa.Column("name", sa.String(100), nullable=False),
            sa.Column("description", sa.String(200), nullable=False, server_default=""),
            sa.Column("module", sa.String(50), nullable=False),
            sa.Column("module_name", sa.String(100), nullable=False, server_default=""),
            sa.Column("action", sa.String(32), nullable=False),
            sa.Column("resource", sa.String(50), nullable=True),
            sa.Column("icon", sa.String(64), nullable=True),
            sa.Column("path", sa.String(255), nullable=True),
            sa.Column("type", sa.String(16), nullable=True, server_default="action"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        for col in ("module", "action", "resource", "type", "is_active"):
            op.create_index(f"idx_permissions_{col}", "permissions", [col])

    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("request_id", sa.String(64), nullable=True),
            sa.Column("client_ip", sa.String(64), nullable=True),
            sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("actor_user_email", sa.String(320), nullable=True),
            sa.Column("action", sa.String(128), nullable=False),
            sa.Column("entity_type", sa.String(128), nullable=True),
            sa.Column("entity_id", sa.String(128), nullable=True),
            sa.Column("reason", sa.String(512), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
        )

    if "feature1" not in existing_tables:
        op.create_table(
            "feature1",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("code", sa.Integer(), nullable=False, unique=True),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("display_mode", sa.String(64), nullable=False),
            sa.Column("icon", sa.String(64), nullable=False),
            sa.Column("color", sa.String(32), nullable=False),
            sa.Column("type", sa.String(64), nullable=False),
            sa.Column("start_date", sa.String(10), nullable=False),
            sa.Column("end_date", sa.String(10), nullable=False),
            sa.Column("images", JSONType, nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("updated_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        )
        op.create_index("idx_feature1_type", "feature1", ["type"])
        op.create_index("idx_feature1_is_active", "feature1", ["is_active"])
        op.create_index("idx_feature1_dates", "feature1", ["start_date", "end_date"])


def downgrade() -> None:
    """Drop all tables created in upgrade."""
    op.drop_table("feature1")
    op.drop_table("audit_events")
    op.drop_table("permissions")
    op.drop_table("user_roles")
    op.drop_table("roles")
    op.drop_table("users")
