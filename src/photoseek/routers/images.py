"""Image endpoints: upload, list, tag search and semantic search."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel

from photoseek.dependencies import get_search, get_upload_pipeline
from photoseek.search import SearchOrchestrator, SearchOutcome
from photoseek.store import PhotoRecord
from photoseek.upload_pipeline import UploadPipeline


router = APIRouter(prefix="/api", tags=["images"])


class UploadRequest(BaseModel):
    file_name: str
    image_base64: str
    mime_type: Optional[str] = None


class SearchRequest(BaseModel):
    query: str


class SemanticSearchRequest(BaseModel):
    query: str
    limit: Optional[int] = None
    max_distance: Optional[float] = None


def _photo_payload(photo: PhotoRecord) -> dict:
    payload = {
        "photo_id": photo.photo_id,
        "file_name": photo.file_name,
        "file_path": photo.file_path,
        "tags": list(photo.tags),
        "created_at": photo.created_at,
    }
    if photo.distance is not None:
        payload["distance"] = round(photo.distance, 6)
    return jsonable_encoder(payload)


def _photos_payload(photos: List[PhotoRecord]) -> list:
    return [_photo_payload(photo) for photo in photos]


@router.post("/images", response_model=dict, operation_id="upload_image")
async def upload_image(
    body: UploadRequest,
    pipeline: UploadPipeline = Depends(get_upload_pipeline),
):
    """Tag, store and (when possible) embed a base64-encoded image."""
    photo = await pipeline.upload(body.file_name, body.image_base64, body.mime_type)
    return {"photo": _photo_payload(photo)}


@router.get("/images", response_model=dict, operation_id="list_images")
async def list_images(
    tags: Optional[str] = Query(default=None, description="Comma-separated tag filter"),
    search: SearchOrchestrator = Depends(get_search),
):
    """List photos newest first. An omitted or empty tag filter returns everything."""
    photos = await search.list_photos(tags)
    return {"photos": _photos_payload(photos)}


@router.post("/images/search", response_model=dict, operation_id="search_images")
async def search_images(
    body: SearchRequest,
    search: SearchOrchestrator = Depends(get_search),
):
    outcome = await search.tag_search(body.query)
    return {
        "query": outcome.query,
        "tags": outcome.tags or [],
        "photos": _photos_payload(outcome.photos),
    }


@router.post("/images/semantic-search", response_model=dict, operation_id="semantic_search_images")
async def semantic_search_images(
    body: SemanticSearchRequest,
    search: SearchOrchestrator = Depends(get_search),
):
    """Embedding search with tag fallback. ``tags`` is only present after a successful fallback."""
    outcome: SearchOutcome = await search.semantic_search(
        body.query,
        limit=body.limit,
        max_distance=body.max_distance,
    )
    response = {
        "query": outcome.query,
        "photos": _photos_payload(outcome.photos),
    }
    if outcome.tags is not None:
        response["tags"] = outcome.tags
    return response
