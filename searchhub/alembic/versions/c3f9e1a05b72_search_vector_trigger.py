"""keep documents.search_vector in sync with title and content edits

Revision ID: c3f9e1a05b72
Revises: 8a41c2e7b9d3
Create Date: 2026-09-14 11:02:47.090311

"""

from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "c3f9e1a05b72"
down_revision: Union[str, Sequence[str], None] = "8a41c2e7b9d3"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Until the indexer rebuilds it from the chunks, the vector reflects the raw content.
    op.execute("""
        CREATE OR REPLACE FUNCTION documents_search_vector_refresh() RETURNS trigger AS $$
        BEGIN
            NEW.search_vector :=
                setweight(to_tsvector('english', coalesce(NEW.title, '')), 'A') ||
                setweight(to_tsvector('english', coalesce(NEW.content, '')), 'B');
            RETURN NEW;
        END
        $$ LANGUAGE plpgsql
        """)
    op.execute("""
        CREATE TRIGGER documents_search_vector_update
        BEFORE INSERT OR UPDATE OF title, content ON documents
        FOR EACH ROW EXECUTE FUNCTION documents_search_vector_refresh()
        """)
    op.execute("""
        UPDATE documents SET search_vector =
            setweight(to_tsvector('english', coalesce(title, '')), 'A') ||
            setweight(to_tsvector('english', coalesce(content, '')), 'B')
        """)


def downgrade() -> None:
    """Downgrade schema."""
    op.execute("DROP TRIGGER IF EXISTS documents_search_vector_update ON documents")
    op.execute("DROP FUNCTION IF EXISTS documents_search_vector_refresh()")
