"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from photoseek.dependencies import AppServices, build_services
from photoseek.errors import PhotoseekError, StorageError, ValidationError
from photoseek.logging_config import configure_logging
from photoseek.routers import images
from photoseek.settings import Settings, get_settings


logger = logging.getLogger(__name__)


async def handle_validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


async def handle_internal_error(request: Request, exc: PhotoseekError):
    logger.error("Request %s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "internal server error"})


def create_app(
    settings: Optional[Settings] = None,
    services: Optional[AppServices] = None,
) -> FastAPI:
    """Build the application.

    ``services`` lets callers supply pre-built collaborators; otherwise they
    are assembled from ``settings`` when the application starts.
    """
    settings = settings or (services.settings if services else get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.services is None
        if owned:
            configure_logging(settings)
            logger.info("Model configuration: %s", settings.model_config_audit())
            app.state.services = build_services(settings)
        try:
            yield
        finally:
            if owned:
                await app.state.services.aclose()
                app.state.services = None

    app = FastAPI(
        title=settings.app_name,
        description="Photo tagging and hybrid semantic search",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_exception_handler(ValidationError, handle_validation_error)
    app.add_exception_handler(PhotoseekError, handle_internal_error)

    if settings.is_development:
        # Allow the local frontend dev server during development
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(images.router)

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint with DB connectivity verification."""
        try:
            await run_in_threadpool(request.app.state.services.store.ping)
        except StorageError as exc:
            raise HTTPException(status_code=503, detail=f"Database unavailable: {exc}")
        return {"status": "healthy"}

    return app


app = create_app()


def main() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("photoseek.api:app", host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
