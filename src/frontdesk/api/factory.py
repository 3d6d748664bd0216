"""FastAPI application factory."""

from fastapi import FastAPI, Request, Response

from frontdesk.observability.correlation import (
    CORRELATION_ID_HEADER,
    reset_correlation_id,
    resolve_correlation_id,
    set_correlation_id,
)
from frontdesk.observability.logging import configure_logging

from .routers import public


def create_app() -> FastAPI:
    """Create the front-desk API with logging and correlation ids wired in.

    Returns:
        Configured FastAPI application.
    """
    configure_logging()

    app = FastAPI(
        title="Front Desk",
        docs_url=None,
        redoc_url=None,
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = resolve_correlation_id(request.headers.get(CORRELATION_ID_HEADER))
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    app.include_router(public.router)

    return app
