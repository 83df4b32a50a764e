"""Initial schema: users/RBAC, login log, oauth2 tokens, mail templates, files, audit.

Revision ID: a1c3e5f7b9d0
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a1c3e5f7b9d0"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "system_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(30), nullable=False),
        sa.Column("nickname", sa.String(30), nullable=True),
        sa.Column("mobile", sa.String(11), nullable=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("status", sa.SmallInteger(), nullable=False, server_default="0"),
        sa.Column("login_ip", sa.String(50), nullable=True),
        sa.Column("login_date", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("username"),
    )
    op.create_index("ix_system_users_mobile", "system_users", ["mobile"])

    op.create_table(
        "system_role",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key", sa.String(64), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("key"),
    )
    op.create_table(
        "system_permission",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key", sa.String(128), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("key"),
    )
    op.create_table(
        "system_user_role",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["system_users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["role_id"], ["system_role.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "role_id"),
    )
    op.create_table(
        "system_role_permission",
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.Column("permission_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["role_id"], ["system_role.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["permission_id"], ["system_permission.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("role_id", "permission_id"),
    )

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("request_id", sa.String(64), nullable=True),
        sa.Column("actor_user_id", sa.Integer(), nullable=True),
        sa.Column("actor_username", sa.String(30), nullable=True),
        sa.Column("action", sa.String(128), nullable=False),
        sa.Column("entity_type", sa.String(128), nullable=True),
        sa.Column("entity_id", sa.String(128), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.Column("client_ip", sa.String(50), nullable=True),
        sa.ForeignKeyConstraint(["actor_user_id"], ["system_users.id"], ondelete="SET NULL"),
    )

    op.create_table(
        "system_login_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("log_type", sa.Integer(), nullable=False),
        sa.Column("trace_id", sa.String(64), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("user_type", sa.SmallInteger(), nullable=False),
        sa.Column("username", sa.String(50), nullable=True),
        sa.Column("result", sa.SmallInteger(), nullable=False),
        sa.Column("user_ip", sa.String(50), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("idx_login_log_user_id", "system_login_log", ["user_id"])
    op.create_index("idx_login_log_created_at", "system_login_log", ["created_at"])

    op.create_table(
        "system_oauth2_refresh_token",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("refresh_token", sa.String(64), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("user_type", sa.SmallInteger(), nullable=False),
        sa.Column("client_id", sa.String(64), nullable=False),
        sa.Column("scopes", sa.JSON(), nullable=True),
        sa.Column("expires_time", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("refresh_token"),
    )
    op.create_table(
        "system_oauth2_access_token",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("access_token", sa.String(64), nullable=False),
        sa.Column("refresh_token", sa.String(64), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("user_type", sa.SmallInteger(), nullable=False),
        sa.Column("client_id", sa.String(64), nullable=False),
        sa.Column("scopes", sa.JSON(), nullable=True),
        sa.Column("expires_time", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("access_token"),
    )
    op.create_index(
        "ix_system_oauth2_access_token_refresh_token", "system_oauth2_access_token", ["refresh_token"]
    )

    op.create_table(
        "system_mail_template",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(63), nullable=False),
        sa.Column("code", sa.String(63), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("nickname", sa.String(255), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("params", sa.JSON(), nullable=True),
        sa.Column("status", sa.SmallInteger(), nullable=False, server_default="0"),
        sa.Column("remark", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("code"),
    )
    op.create_index("idx_mail_template_account_id", "system_mail_template", ["account_id"])

    op.create_table(
        "infra_file",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("config_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("path", sa.String(512), nullable=False),
        sa.Column("url", sa.String(1024), nullable=False),
        sa.Column("type", sa.String(128), nullable=True),
        sa.Column("size", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("infra_file")
    op.drop_index("idx_mail_template_account_id", table_name="system_mail_template")
    op.drop_table("system_mail_template")
    op.drop_index("ix_system_oauth2_access_token_refresh_token", table_name="system_oauth2_access_token")
    op.drop_table("system_oauth2_access_token")
    op.drop_table("system_oauth2_refresh_token")
    op.drop_index("idx_login_log_created_at", table_name="system_login_log")
    op.drop_index("idx_login_log_user_id", table_name="system_login_log")
    op.drop_table("system_login_log")
    op.drop_table("audit_events")
    op.drop_table("system_role_permission")
    op.drop_table("system_user_role")
    op.drop_table("system_permission")
    op.drop_table("system_role")
    op.drop_index("ix_system_users_mobile", table_name="system_users")
    op.drop_table("system_users")
