from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException

from webchat.api.deps import AppServices, build_services
from webchat.api.routes import chat, conversations, session, share
from webchat.config import settings
from webchat.services import logger as log_service  # noqa: F401  configures sinks
from webchat.services.redis_store import close_redis, create_redis

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
    "X-DNS-Prefetch-Control": "off",
}


def create_app(services: AppServices | None = None) -> FastAPI:
    """Build the API. Pass `services` to run against pre-built collaborators."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = services is None
        if owned:
            app.state.services = build_services(settings, create_redis(settings.redis_url))
        else:
            app.state.services = services
        yield
        if owned:
            await app.state.services.completion_client.close()
            await close_redis(app.state.services.redis)

    app = FastAPI(
        title="webchat",
        description="Chat with web-augmented, cited LLM answers",
        version="0.1.0",
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    app.include_router(session.router)
    app.include_router(chat.router)
    app.include_router(conversations.router)
    app.include_router(share.router)

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "service": "webchat"}

    return app


app = create_app()
