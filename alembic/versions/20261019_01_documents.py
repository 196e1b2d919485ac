"""
Document store table.

- Create `documents` (path-addressed JSON documents with an optimistic
  concurrency `version`).
- Index `collection` for sub-collection listings.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic.
revision = "20261019_01_documents"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "documents",
        sa.Column("path", sa.String(length=1024), primary_key=True, nullable=False),
        sa.Column("collection", sa.String(length=1024), nullable=False),
        sa.Column("doc_id", sa.String(length=255), nullable=False),
        sa.Column("data", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("version", sa.BigInteger(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_documents_collection", "documents", ["collection"], unique=False)
    op.create_check_constraint("ck_documents_version_positive", "documents", "version >= 1")


def downgrade() -> None:
    op.drop_constraint("ck_documents_version_positive", "documents", type_="check")
    op.drop_index("ix_documents_collection", table_name="documents")
    op.drop_table("documents")
