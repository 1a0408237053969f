"""Initial schema for accounts, users and settings.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17

"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # Create accounts table
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("domain", sa.String(255), nullable=True),
        sa.Column("display_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("note", sa.Text(), nullable=False, server_default=""),
        sa.Column("locked", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username", "domain", name="uq_accounts_username_domain"),
    )

    # Create users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, server_default=""),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("admin", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("locale", sa.String(16), nullable=True),
        sa.Column("encrypted_password", sa.String(255), nullable=False, server_default=""),
        sa.Column("reset_password_token", sa.String(255), nullable=True),
        sa.Column("reset_password_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("remember_created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sign_in_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("current_sign_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_sign_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_sign_in_ip", sa.String(45), nullable=True),
        sa.Column("last_sign_in_ip", sa.String(45), nullable=True),
        sa.Column("confirmation_token", sa.String(255), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmation_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("unconfirmed_email", sa.String(255), nullable=True),
        sa.Column("last_emailed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("encrypted_otp_secret", sa.String(255), nullable=True),
        sa.Column("consumed_timestep", sa.Integer(), nullable=True),
        sa.Column(
            "otp_required_for_login", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column("otp_backup_codes", sa.JSON(), nullable=True),
        sa.Column("provider", sa.String(255), nullable=True),
        sa.Column("uid", sa.String(255), nullable=True),
        sa.Column("hide_oauth", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("filtered_languages", sa.JSON(), nullable=False, server_default="[]"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("email"),
        sa.UniqueConstraint("account_id"),
        sa.UniqueConstraint("reset_password_token"),
        sa.UniqueConstraint("confirmation_token"),
        sa.UniqueConstraint("provider", "uid", name="uq_users_provider_uid"),
    )
    op.create_index("ix_users_current_sign_in_ip", "users", ["current_sign_in_ip"])
    op.create_index("ix_users_last_sign_in_ip", "users", ["last_sign_in_ip"])

    # Create settings table
    op.create_table(
        "settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("var", sa.String(255), nullable=False),
        sa.Column("value", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "var", name="uq_settings_user_id_var"),
    )
    op.create_index("ix_settings_user_id", "settings", ["user_id"])


def downgrade() -> None:
    op.drop_table("settings")
    op.drop_table("users")
    op.drop_table("accounts")
