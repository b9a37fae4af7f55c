"""Photo persistence: inserts, tag-overlap queries and vector search."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, List, Optional, Sequence

import numpy as np
from sqlalchemy import Text, cast, func, select, type_coerce
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from photoseek.errors import StorageError
from photoseek.metadata import Photo
from photoseek.ranking import apply_distance_policy
from photoseek.settings import Settings


logger = logging.getLogger(__name__)


@dataclass
class PhotoRecord:
    """Detached view of a stored photo."""

    photo_id: int
    file_name: str
    file_path: str
    tags: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    distance: Optional[float] = None

    @classmethod
    def from_row(cls, photo: Photo, distance: Optional[float] = None) -> "PhotoRecord":
        return cls(
            photo_id=int(photo.photo_id),
            file_name=photo.file_name,
            file_path=photo.file_path,
            tags=list(photo.tags or []),
            created_at=photo.created_at,
            distance=float(distance) if distance is not None else None,
        )


def _cosine_distances(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    similarities = np.divide(
        matrix @ query,
        norms,
        out=np.zeros(len(matrix), dtype=np.float64),
        where=norms > 0,
    )
    return 1.0 - similarities


class PhotoStore:
    """Synchronous photo repository. Each call uses its own short-lived session.

    Every database failure surfaces as ``StorageError``.
    """

    def __init__(self, session_factory: sessionmaker, settings: Settings):
        self.session_factory = session_factory
        self.distance_delta = settings.adaptive_distance_delta
        self.distance_cap = settings.adaptive_distance_cap
        self.hnsw_ef_search = settings.hnsw_ef_search
        self.ivfflat_probes = settings.ivfflat_probes
        self.embedding_dimensions = settings.embedding_dimensions

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Database error during %s: %s", operation, exc)
            raise StorageError(f"database error during {operation}") from exc
        finally:
            db.close()

    @staticmethod
    def _is_postgres(db: Session) -> bool:
        return db.get_bind().dialect.name == "postgresql"

    def add_photo(
        self,
        file_name: str,
        file_path: str,
        tags: Sequence[str],
        tag_embedding: Optional[Sequence[float]] = None,
    ) -> PhotoRecord:
        if tag_embedding is not None and len(tag_embedding) != self.embedding_dimensions:
            raise StorageError(
                f"embedding has {len(tag_embedding)} dimensions, "
                f"expected {self.embedding_dimensions}"
            )
        with self._session("add_photo") as db:
            photo = Photo(
                file_name=file_name,
                file_path=file_path,
                tags=list(tags),
                tag_embedding=list(tag_embedding) if tag_embedding is not None else None,
            )
            db.add(photo)
            db.commit()
            db.refresh(photo)
            logger.info(
                "Stored photo %s (%s) with %d tags, embedding=%s",
                photo.photo_id,
                file_name,
                len(photo.tags or []),
                tag_embedding is not None,
            )
            return PhotoRecord.from_row(photo)

    def list_all(self) -> List[PhotoRecord]:
        with self._session("list_all") as db:
            rows = db.execute(
                select(Photo).order_by(Photo.created_at.desc(), Photo.photo_id.desc())
            ).scalars().all()
            return [PhotoRecord.from_row(row) for row in rows]

    def search_by_tags(self, tags: Sequence[str]) -> List[PhotoRecord]:
        """Photos sharing at least one tag, newest first.

        An empty tag list means no filter and returns every photo.
        """
        wanted = list(tags)
        if not wanted:
            return self.list_all()

        with self._session("search_by_tags") as db:
            stmt = select(Photo).order_by(Photo.created_at.desc(), Photo.photo_id.desc())
            if self._is_postgres(db):
                stmt = stmt.where(
                    type_coerce(Photo.tags, ARRAY(Text)).overlap(cast(wanted, ARRAY(Text)))
                )
                rows = db.execute(stmt).scalars().all()
            else:
                wanted_set = set(wanted)
                rows = [
                    row for row in db.execute(stmt).scalars().all()
                    if wanted_set.intersection(row.tags or [])
                ]
            return [PhotoRecord.from_row(row) for row in rows]

    def search_by_embedding(
        self,
        query_embedding: Sequence[float],
        limit: int,
        max_distance: Optional[float] = None,
    ) -> List[PhotoRecord]:
        """Nearest photos by cosine distance, closest first, filtered by the distance policy."""
        with self._session("search_by_embedding") as db:
            if self._is_postgres(db):
                candidates = self._nearest_with_pgvector(db, query_embedding, limit)
            else:
                candidates = self._nearest_in_memory(db, query_embedding, limit)

        kept = apply_distance_policy(
            candidates,
            max_distance=max_distance,
            delta=self.distance_delta,
            cap=self.distance_cap,
        )
        logger.debug(
            "Vector search kept %d of %d candidates (max_distance=%s)",
            len(kept),
            len(candidates),
            max_distance,
        )
        return kept

    def _nearest_with_pgvector(
        self,
        db: Session,
        query_embedding: Sequence[float],
        limit: int,
    ) -> List[PhotoRecord]:
        # set_config(..., true) is SET LOCAL: the tuning dies with this transaction.
        with db.begin():
            db.execute(
                select(
                    func.set_config("hnsw.ef_search", str(int(self.hnsw_ef_search)), True),
                    func.set_config("ivfflat.probes", str(int(self.ivfflat_probes)), True),
                )
            )
            distance = Photo.tag_embedding.cosine_distance(list(query_embedding)).label("distance")
            rows = db.execute(
                select(Photo, distance)
                .where(Photo.tag_embedding.isnot(None))
                .order_by(distance)
                .limit(int(limit))
            ).all()
        return [PhotoRecord.from_row(photo, dist) for photo, dist in rows]

    def _nearest_in_memory(
        self,
        db: Session,
        query_embedding: Sequence[float],
        limit: int,
    ) -> List[PhotoRecord]:
        rows = db.execute(
            select(Photo, Photo.tag_embedding).where(Photo.tag_embedding.isnot(None))
        ).all()
        if not rows:
            return []

        matrix = np.asarray([np.asarray(vec, dtype=np.float64) for _, vec in rows])
        query = np.asarray(query_embedding, dtype=np.float64)
        if matrix.shape[1] != query.shape[0]:
            raise StorageError(
                f"query embedding has {query.shape[0]} dimensions, stored vectors have {matrix.shape[1]}"
            )

        distances = _cosine_distances(matrix, query)
        order = sorted(range(len(rows)), key=lambda idx: (distances[idx], rows[idx][0].photo_id))
        return [
            PhotoRecord.from_row(rows[idx][0], distances[idx])
            for idx in order[: int(limit)]
        ]

    def ping(self) -> None:
        """Raise StorageError when the database cannot answer a trivial query."""
        with self._session("ping") as db:
            db.execute(select(1))
