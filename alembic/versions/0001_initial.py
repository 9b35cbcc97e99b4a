"""users, events, invites and invite submissions

Revision ID: 0001_initial
Revises:
Create Date: 2025-02-01 10:00:00

"""
from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

invite_status = sa.Enum("CREATED", "SENT", "VIEWED", "SIGNED", "RETURNED", name="invitestatus")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column("business_name", sa.String(255), nullable=True),
        sa.Column("business_phone", sa.String(50), nullable=True),
        sa.Column("business_website", sa.String(255), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.String(500), nullable=True),
        sa.Column("event_date", sa.Date(), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.Column("default_text", sa.Text(), nullable=True),
        sa.Column("theme_color", sa.String(7), nullable=False),
        sa.Column("fields_schema", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_user_id", "events", ["user_id"])

    op.create_table(
        "invites",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("event_id", sa.Uuid(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(50), nullable=True),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("event_type", sa.String(255), nullable=True),
        sa.Column("event_location", sa.String(500), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.Column("event_date", sa.Date(), nullable=True),
        sa.Column("status", invite_status, nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_invites_id", "invites", ["id"])
    op.create_index("ix_invites_event_id", "invites", ["event_id"])
    op.create_index("ix_invites_token", "invites", ["token"], unique=True)
    op.create_index("ix_invites_status", "invites", ["status"])

    op.create_table(
        "invite_submissions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("invite_id", sa.Uuid(), sa.ForeignKey("invites.id", ondelete="CASCADE"), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("signature_png", sa.Text(), nullable=True),
        sa.Column("signed_pdf_path", sa.String(500), nullable=True),
        sa.Column("submitted_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("invite_id", name="uq_invite_submissions_invite_id"),
    )
    op.create_index("ix_invite_submissions_id", "invite_submissions", ["id"])


def downgrade() -> None:
    op.drop_table("invite_submissions")
    op.drop_table("invites")
    op.drop_table("events")
    op.drop_table("users")
    invite_status.drop(op.get_bind(), checkfirst=True)
