"""Service wiring and shared dependencies for FastAPI endpoints."""

from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Request
from sqlalchemy.engine import Engine

from photoseek.database import build_engine, build_session_factory
from photoseek.search import SearchOrchestrator
from photoseek.settings import Settings
from photoseek.storage import LocalImageStore
from photoseek.store import PhotoStore
from photoseek.tagging import ModelServiceClient, TaggingService
from photoseek.upload_pipeline import UploadPipeline


@dataclass
class AppServices:
    """Process-wide collaborators, built once at startup."""

    settings: Settings
    store: PhotoStore
    upload_pipeline: UploadPipeline
    search: SearchOrchestrator
    engine: Optional[Engine] = None
    http: Optional[httpx.AsyncClient] = None

    async def aclose(self) -> None:
        if self.http is not None:
            await self.http.aclose()
        if self.engine is not None:
            self.engine.dispose()


def build_services(
    settings: Settings,
    tagger: Optional[TaggingService] = None,
    engine: Optional[Engine] = None,
) -> AppServices:
    """Assemble the store, the pipelines and the model client from settings.

    A caller-supplied ``engine`` or ``tagger`` stays owned by the caller and
    is not closed by ``AppServices.aclose``.
    """
    owned_engine = None
    if engine is None:
        engine = owned_engine = build_engine(settings)
    store = PhotoStore(build_session_factory(engine), settings)

    http = None
    if tagger is None:
        http = httpx.AsyncClient(timeout=settings.lmstudio_request_timeout_seconds)
        tagger = ModelServiceClient(http, settings)

    files = LocalImageStore(settings.images_dir)
    return AppServices(
        settings=settings,
        store=store,
        upload_pipeline=UploadPipeline(tagger, store, files, settings),
        search=SearchOrchestrator(tagger, store, settings),
        engine=owned_engine,
        http=http,
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_upload_pipeline(request: Request) -> UploadPipeline:
    return get_services(request).upload_pipeline


def get_search(request: Request) -> SearchOrchestrator:
    return get_services(request).search
