"""create_upload_queue_entries

Revision ID: 3b1e9d7c5a20
Revises:
Create Date: 2026-10-18 12:00:00

"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3b1e9d7c5a20"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "upload_queue_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("uuid", sa.String(length=36), nullable=False),
        sa.Column("owner_type", sa.String(), nullable=False),
        sa.Column("owner_id", sa.String(), nullable=False),
        sa.Column("owner_slot", sa.String(), nullable=False),
        sa.Column("filename", sa.String(), nullable=False),
        sa.Column("content_type", sa.String(), nullable=False),
        sa.Column("public_url", sa.Text(), nullable=False),
        sa.Column("private_url", sa.Text(), nullable=False),
        sa.Column("state", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("imported_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        # Matches ORM: one entry per upload uuid
        sa.UniqueConstraint("uuid", name="uq_upload_queue_entries_uuid"),
    )
    op.create_index(
        "ix_upload_queue_entries_owner",
        "upload_queue_entries",
        ["owner_type", "owner_id", "owner_slot"],
    )
    op.create_index(
        "ix_upload_queue_entries_state_id",
        "upload_queue_entries",
        ["state", "id"],
    )
    op.create_index(
        op.f("ix_upload_queue_entries_created_at"),
        "upload_queue_entries",
        ["created_at"],
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_upload_queue_entries_created_at"), table_name="upload_queue_entries")
    op.drop_index("ix_upload_queue_entries_state_id", table_name="upload_queue_entries")
    op.drop_index("ix_upload_queue_entries_owner", table_name="upload_queue_entries")
    op.drop_table("upload_queue_entries")
