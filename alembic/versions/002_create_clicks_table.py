"""Create clicks table.

Revision ID: 002
Revises: 001
Create Date: 2026-10-05

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the clicks table for raw click events."""
    op.create_table(
        "clicks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("link_id", sa.Uuid(), nullable=False),
        sa.Column(
            "clicked_at",
            sa.DateTime(),
            nullable=False,
            comment="Timestamp when the click occurred (UTC)",
        ),
        sa.Column(
            "ip_address",
            sa.String(45),
            nullable=True,
            comment="Client IP address",
        ),
        sa.Column(
            "user_agent",
            sa.Text(),
            nullable=True,
            comment="HTTP User-Agent header",
        ),
        sa.Column(
            "referrer",
            sa.Text(),
            nullable=True,
            comment="HTTP Referer header; NULL for direct visits",
        ),
        sa.Column(
            "country",
            sa.String(2),
            nullable=True,
            comment="ISO 3166-1 alpha-2 country code (from GeoIP)",
        ),
        sa.Column("city", sa.String(255), nullable=True),
        sa.Column("device", sa.String(16), nullable=True),
        sa.Column("browser", sa.String(16), nullable=True),
        sa.Column("os", sa.String(16), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_clicks")),
        sa.ForeignKeyConstraint(
            ["link_id"],
            ["links.id"],
            name=op.f("fk_clicks_link_id_links"),
            ondelete="CASCADE",
        ),
    )
    op.create_index(op.f("ix_clicks_link_id"), "clicks", ["link_id"])
    op.create_index(op.f("ix_clicks_clicked_at"), "clicks", ["clicked_at"])
    op.create_index(
        "ix_clicks_link_id_clicked_at",
        "clicks",
        ["link_id", "clicked_at"],
    )


def downgrade() -> None:
    """Drop the clicks table."""
    op.drop_index("ix_clicks_link_id_clicked_at", table_name="clicks")
    op.drop_index(op.f("ix_clicks_clicked_at"), table_name="clicks")
    op.drop_index(op.f("ix_clicks_link_id"), table_name="clicks")
    op.drop_table("clicks")
