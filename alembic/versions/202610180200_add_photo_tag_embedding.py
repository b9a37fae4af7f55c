"""Add pgvector tag embedding column and similarity index.

Revision ID: 202610180200
Revises: 202610180100
Create Date: 2026-10-18 02:00:00.000000
"""

from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = "202610180200"
down_revision: Union[str, None] = "202610180100"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")
    op.execute("ALTER TABLE photos ADD COLUMN IF NOT EXISTS tag_embedding vector(768)")
    op.execute(
        """
        DO $$
        BEGIN
            BEGIN
                EXECUTE
                    'CREATE INDEX IF NOT EXISTS idx_photos_tag_embedding_hnsw
                     ON photos USING hnsw (tag_embedding vector_cosine_ops)';
            EXCEPTION
                WHEN undefined_object OR feature_not_supported OR invalid_parameter_value THEN
                    EXECUTE
                        'CREATE INDEX IF NOT EXISTS idx_photos_tag_embedding_ivfflat
                         ON photos USING ivfflat (tag_embedding vector_cosine_ops) WITH (lists = 100)';
            END;
        END $$;
        """
    )


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS idx_photos_tag_embedding_hnsw")
    op.execute("DROP INDEX IF EXISTS idx_photos_tag_embedding_ivfflat")
    op.execute("ALTER TABLE photos DROP COLUMN IF EXISTS tag_embedding")
