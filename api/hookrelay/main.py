import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from hookrelay import __version__
from hookrelay.channels.dispatcher import Dispatcher
from hookrelay.config import Settings
from hookrelay.errors import ClientInputError
from hookrelay.middleware import RequestSizeLimitMiddleware
from hookrelay.routers import receiver
from hookrelay.schemas.config import RelayConfig

logger = logging.getLogger(__name__)


def create_app(
    config: RelayConfig,
    settings: Optional[Settings] = None,
    dispatcher: Optional[Dispatcher] = None,
) -> FastAPI:
    """Build the HTTP application around an immutable routing table."""
    settings = settings or Settings()
    if dispatcher is None:
        dispatcher = Dispatcher(
            config.receivers,
            enabled_kinds=settings.channel_kinds,
            max_concurrency=settings.max_concurrent_deliveries,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "hookrelay started on %s with %d receivers (%s)",
            config.global_.listen_address,
            len(config.receivers),
            ", ".join(sorted(k.value for k in dispatcher.enabled_kinds)),
        )
        yield
        await dispatcher.drain(timeout=settings.shutdown_timeout)
        logger.info("hookrelay stopped")

    app = FastAPI(
        title="hookrelay",
        description="Route JSON events to webhooks and SNMP traps through templates.",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.dispatcher = dispatcher
    app.state.config = config
    app.state.max_body_size = settings.max_body_size

    app.add_middleware(RequestSizeLimitMiddleware, max_body_size=settings.max_body_size)

    # --- Exception Handlers ---

    @app.exception_handler(ClientInputError)
    async def client_input_handler(request: Request, exc: ClientInputError):
        logger.error("%s - %s", exc, request.url.path)
        return JSONResponse(
            status_code=400,
            content={"error": {"code": 400, "message": str(exc)}},
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": {"code": exc.status_code, "message": exc.detail}},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error for %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": {"code": 500, "message": "Internal server error"}},
        )

    # --- Routes ---

    app.include_router(receiver.router)

    return app
