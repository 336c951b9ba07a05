"""Create itinerary_document table.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create itinerary_document table."""
    op.create_table(
        "itinerary_document",
        sa.Column("context_id", sa.Text(), primary_key=True),
        sa.Column(
            "document",
            sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )


def downgrade() -> None:
    """Drop itinerary_document table."""
    op.drop_table("itinerary_document")
