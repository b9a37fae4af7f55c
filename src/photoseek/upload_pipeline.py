"""Upload pipeline: validate, tag, persist bytes, embed, insert, compensate."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
from pathlib import PurePath
from typing import List, Optional

from starlette.concurrency import run_in_threadpool

from photoseek.errors import ServiceError, TimeoutExceeded, ValidationError
from photoseek.settings import Settings
from photoseek.storage import LocalImageStore
from photoseek.store import PhotoRecord, PhotoStore
from photoseek.tagging import TaggingService


logger = logging.getLogger(__name__)

MIME_TYPES_BY_EXTENSION = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "bmp": "image/bmp",
}

_PATH_SEPARATORS = re.compile(r"[\\/]")


def sanitize_file_name(file_name: str) -> str:
    """Reduce a client-supplied name to a bare basename with underscores for spaces."""
    trimmed = str(file_name or "").strip()
    candidate = _PATH_SEPARATORS.split(trimmed)[-1] if trimmed else ""
    if candidate in ("", ".", ".."):
        raise ValidationError("file_name must name a file, not a directory or an empty path")
    return candidate.replace(" ", "_")


def decode_image(encoded: str) -> bytes:
    """Decode standard base64, tolerating embedded line breaks."""
    cleaned = str(encoded or "").replace("\n", "").replace("\r", "")
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("image_base64 must be valid base64") from exc


def infer_mime_type(file_name: str) -> Optional[str]:
    suffix = PurePath(file_name).suffix.lstrip(".").lower()
    return MIME_TYPES_BY_EXTENSION.get(suffix)


class UploadPipeline:
    """Turns an uploaded image into a tagged, optionally embedded photo record.

    Tagging is mandatory and not time-bounded: an untagged photo is never
    stored. The embedding step is bounded and degrades to "no vector". If the
    insert fails after the bytes were written, the bytes are removed on a
    best-effort basis before the error propagates.
    """

    def __init__(
        self,
        tagger: TaggingService,
        store: PhotoStore,
        files: LocalImageStore,
        settings: Settings,
    ):
        self.tagger = tagger
        self.store = store
        self.files = files
        self.embed_timeout = settings.upload_embed_timeout_seconds
        self.embedding_dimensions = settings.embedding_dimensions

    async def upload(
        self,
        file_name: str,
        image_base64: str,
        mime_type: Optional[str] = None,
    ) -> PhotoRecord:
        if not str(file_name or "").strip():
            raise ValidationError("file_name cannot be empty")
        if not str(image_base64 or "").strip():
            raise ValidationError("image_base64 cannot be empty")

        sanitized_name = sanitize_file_name(file_name)
        image_bytes = decode_image(image_base64)

        resolved_mime = (mime_type or "").strip() or infer_mime_type(sanitized_name)
        if not resolved_mime:
            raise ValidationError("unknown file extension; provide mime_type")

        canonical_base64 = base64.b64encode(image_bytes).decode("ascii")
        tags = await self.tagger.tag_image(canonical_base64, resolved_mime)
        if not tags:
            raise ValidationError("tagging service returned no tags")

        saved_path = await run_in_threadpool(self.files.save_image, sanitized_name, image_bytes)

        embedding = await self._embed_tags(sanitized_name, tags)

        try:
            photo = await run_in_threadpool(
                self.store.add_photo,
                sanitized_name,
                saved_path,
                tags,
                embedding,
            )
        except Exception:
            logger.warning("Insert failed for %s; removing %s", sanitized_name, saved_path)
            await run_in_threadpool(self.files.remove_image, saved_path)
            raise

        logger.info(
            "Uploaded %s as photo %s (%d tags, embedding=%s)",
            sanitized_name,
            photo.photo_id,
            len(tags),
            embedding is not None,
        )
        return photo

    async def _embed_tags(self, file_name: str, tags: List[str]) -> Optional[List[float]]:
        """Embed the joined tag text, or return None if the service cannot help in time."""
        tag_text = ", ".join(tags)
        try:
            vectors = await asyncio.wait_for(
                self.tagger.embed_texts([tag_text]),
                timeout=self.embed_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Skipping embedding for %s: %s",
                file_name,
                TimeoutExceeded("tag embedding", self.embed_timeout),
            )
            return None
        except ServiceError as exc:
            logger.warning("Skipping embedding for %s: %s", file_name, exc)
            return None

        if not vectors:
            logger.warning("Skipping embedding for %s: service returned no vectors", file_name)
            return None
        vector = vectors[0]
        if len(vector) != self.embedding_dimensions:
            logger.warning(
                "Skipping embedding for %s: got %d dimensions, expected %d",
                file_name,
                len(vector),
                self.embedding_dimensions,
            )
            return None
        return vector
