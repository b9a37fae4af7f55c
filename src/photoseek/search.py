"""Search orchestration: plain tag search and the hybrid semantic cascade."""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from starlette.concurrency import run_in_threadpool

from photoseek.errors import ServiceError, StorageError, TimeoutExceeded, ValidationError
from photoseek.ranking import clamp_limit
from photoseek.settings import Settings
from photoseek.store import PhotoRecord, PhotoStore
from photoseek.tagging import TaggingService, parse_tags


logger = logging.getLogger(__name__)


class SearchStage(str, enum.Enum):
    START = "start"
    EMBED_ATTEMPTED = "embed_attempted"
    VECTOR_SEARCHED = "vector_searched"
    FALLBACK_TAGGED = "fallback_tagged"
    DONE = "done"


@dataclass
class SearchOutcome:
    """Result of one search request.

    ``tags`` is None when no tag extraction ran (or it failed);
    ``fallback_reason`` explains why the vector path was abandoned and is
    only meant for logs and diagnostics.
    """

    query: str
    photos: List[PhotoRecord] = field(default_factory=list)
    tags: Optional[List[str]] = None
    stage: SearchStage = SearchStage.START
    fallback_reason: Optional[str] = None


class SearchOrchestrator:
    """Query entry points over the tagging capability and the photo store."""

    def __init__(self, tagger: TaggingService, store: PhotoStore, settings: Settings):
        self.tagger = tagger
        self.store = store
        self.embed_timeout = settings.search_embed_timeout_seconds
        self.fallback_timeout = settings.search_fallback_timeout_seconds
        self.default_limit = settings.default_search_limit
        self.max_limit = settings.max_search_limit
        self.embedding_dimensions = settings.embedding_dimensions

    async def list_photos(self, tags_text: Optional[str] = None) -> List[PhotoRecord]:
        """All photos newest first, optionally narrowed to a comma-separated tag list."""
        tags = parse_tags(tags_text)
        if not tags:
            return await run_in_threadpool(self.store.list_all)
        return await run_in_threadpool(self.store.search_by_tags, tags)

    async def tag_search(self, query: str) -> SearchOutcome:
        """Extract tags from the query and match them by overlap.

        Tag extraction is required here, so its failures propagate. An empty
        tag list matches nothing.
        """
        if not str(query or "").strip():
            raise ValidationError("query cannot be empty")

        tags = await self.tagger.tags_from_query(query.strip())
        if tags:
            photos = await run_in_threadpool(self.store.search_by_tags, tags)
        else:
            photos = []
        return SearchOutcome(
            query=query,
            photos=photos,
            tags=tags,
            stage=SearchStage.DONE,
        )

    async def semantic_search(
        self,
        query: str,
        limit: Optional[int] = None,
        max_distance: Optional[float] = None,
    ) -> SearchOutcome:
        """Vector search on the query embedding, falling back to tag overlap.

        Each stage degrades at most once and nothing is retried. When the
        vector path yields photos, ``tags`` stays None.

        An empty fallback tag list yields no photos, unlike
        ``PhotoStore.search_by_tags([])`` and the listing endpoint, which
        treat it as no filter. The two behaviors are kept deliberately apart.
        """
        if not str(query or "").strip():
            raise ValidationError("query cannot be empty")

        outcome = SearchOutcome(query=query)
        vector, reason = await self._embed_query(query)
        outcome.stage = SearchStage.EMBED_ATTEMPTED

        if vector is not None:
            effective_limit = clamp_limit(limit, default=self.default_limit, maximum=self.max_limit)
            try:
                photos = await run_in_threadpool(
                    self.store.search_by_embedding,
                    vector,
                    effective_limit,
                    max_distance,
                )
            except StorageError as exc:
                photos = []
                reason = f"vector search failed: {exc}"
            else:
                if not photos:
                    reason = "no vector matches"
            outcome.stage = SearchStage.VECTOR_SEARCHED

            if photos:
                outcome.photos = photos
                outcome.stage = SearchStage.DONE
                logger.info(
                    "Semantic search answered from vectors: %d photos (limit=%d, max_distance=%s)",
                    len(photos),
                    effective_limit,
                    max_distance,
                )
                return outcome

        outcome.fallback_reason = reason
        logger.info("Semantic search falling back to tags: %s", reason)

        tags = await self._fallback_tags(query)
        outcome.stage = SearchStage.FALLBACK_TAGGED
        outcome.tags = tags
        if tags:
            outcome.photos = await run_in_threadpool(self.store.search_by_tags, tags)
        outcome.stage = SearchStage.DONE
        return outcome

    async def _embed_query(self, query: str):
        """Return ``(vector, None)`` or ``(None, reason)``."""
        try:
            vectors = await asyncio.wait_for(
                self.tagger.embed_texts([query]),
                timeout=self.embed_timeout,
            )
        except asyncio.TimeoutError:
            return None, str(TimeoutExceeded("embedding", self.embed_timeout))
        except ServiceError as exc:
            return None, f"embedding failed: {exc}"

        if not vectors:
            return None, "embedding returned no vectors"
        vector = vectors[0]
        if len(vector) != self.embedding_dimensions:
            return None, (
                f"embedding has {len(vector)} dimensions, expected {self.embedding_dimensions}"
            )
        return vector, None

    async def _fallback_tags(self, query: str) -> Optional[List[str]]:
        try:
            return await asyncio.wait_for(
                self.tagger.tags_from_query(query),
                timeout=self.fallback_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("%s", TimeoutExceeded("fallback tagging", self.fallback_timeout))
        except ServiceError as exc:
            logger.warning("Fallback tagging failed: %s", exc)
        return None
