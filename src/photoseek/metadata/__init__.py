"""Photo metadata storage model."""

from sqlalchemy import JSON, Column, DateTime, Index, Integer, Text, func
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import declarative_base, deferred
from pgvector.sqlalchemy import Vector


# Must match the vector(...) column created by the migrations.
EMBEDDING_DIMENSIONS = 768

# text[] on PostgreSQL, JSON everywhere else (sqlite test databases).
TagList = JSON().with_variant(ARRAY(Text), "postgresql")

Base = declarative_base()


class Photo(Base):
    """A tagged photo and the embedding of its joined tag text."""

    __tablename__ = "photos"

    photo_id = Column(Integer, primary_key=True, autoincrement=True)
    file_name = Column(Text, nullable=False)
    file_path = Column(Text, nullable=False)
    tags = Column(TagList, nullable=False, default=list)
    # Only loaded when selected explicitly; listings never need it.
    tag_embedding = deferred(Column(Vector(EMBEDDING_DIMENSIONS), nullable=True))
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_photos_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<Photo(photo_id={self.photo_id}, file_name={self.file_name!r})>"
