"""FastAPI entrypoint for the top-250 film catalog."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from top250 import __version__
from top250.errors import Top250Error

from .dependencies import _load_settings
from .routers import api_router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = _load_settings()

    app = FastAPI(
        title="Top 250 Film API",
        version=__version__,
        description="Ranked film catalog with manager accounts and bearer tokens.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Top250Error)
    async def handle_domain_error(request: Request, exc: Top250Error) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = [str(part) for part in first.get("loc", ()) if part not in ("body", "path", "query")]
        field = ".".join(location) or "body"
        reason = first.get("msg", "invalid request")
        return JSONResponse(status_code=400, content={"detail": f"{field}: {reason}", "field": field})

    app.include_router(api_router)

    @app.get("/", tags=["info"], summary="API metadata")
    def read_index() -> dict[str, str]:
        return {
            "message": "Top 250 Film API",
            "documentation": "/docs",
        }

    return app


app = create_app()
