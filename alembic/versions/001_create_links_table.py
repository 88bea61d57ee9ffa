"""Create links table.

Revision ID: 001
Revises:
Create Date: 2026-10-05

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the links table."""
    op.create_table(
        "links",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "short_code",
            sa.String(15),
            nullable=False,
            comment="Short code for the URL (e.g., 'abc123' or 'my-alias')",
        ),
        sa.Column(
            "original_url",
            sa.Text(),
            nullable=False,
            comment="Sanitized URL to redirect to",
        ),
        sa.Column(
            "description",
            sa.String(200),
            nullable=False,
            server_default="",
        ),
        sa.Column(
            "is_custom",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
            comment="Whether the short code was a caller-supplied alias",
        ),
        sa.Column(
            "is_active",
            sa.Boolean(),
            nullable=False,
            server_default=sa.true(),
            comment="Inactive links resolve as not found",
        ),
        sa.Column(
            "click_count",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Cached click count; the clicks table is the source of truth",
        ),
        sa.Column("last_clicked_at", sa.DateTime(), nullable=True),
        sa.Column(
            "qr_code_generated",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column(
            "expires_at",
            sa.DateTime(),
            nullable=True,
            comment="Optional expiration timestamp (UTC)",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_links")),
    )
    op.create_index(
        op.f("ix_links_short_code"),
        "links",
        ["short_code"],
        unique=True,
    )
    op.create_index(
        op.f("ix_links_created_at"),
        "links",
        ["created_at"],
    )


def downgrade() -> None:
    """Drop the links table."""
    op.drop_index(op.f("ix_links_created_at"), table_name="links")
    op.drop_index(op.f("ix_links_short_code"), table_name="links")
    op.drop_table("links")
