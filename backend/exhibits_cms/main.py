import logging
import time
from typing import Optional

import sentry_sdk
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from sentry_sdk.integrations.fastapi import FastApiIntegration
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from .config import Settings
from .database import build_engine, build_session_factory
from .errors import ExhibitsError
from .indexer import build_index
from .logging_utils import configure_logging
from .routes import audit, content, exhibits, trash

LOGGER = logging.getLogger(__name__)

REQUEST_COUNT = Counter("request_count", "Total requests", ["method", "endpoint"])
REQUEST_LATENCY = Histogram(
    "request_latency_seconds", "Request latency", ["endpoint"]
)

PUBLIC_PATHS = {"/metrics", "/health"}


async def handle_exhibits_error(request: Request, exc: ExhibitsError):
    if exc.status == 204:
        return Response(status_code=204)
    return JSONResponse(exc.envelope(), status_code=exc.status)


async def handle_request_validation(request: Request, exc: RequestValidationError):
    violations = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        {"status": 400, "message": "Invalid request", "data": violations}, status_code=400
    )


async def handle_unexpected(request: Request, exc: Exception):
    LOGGER.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"status": 500, "message": "Internal server error"}, status_code=500)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    if settings.sentry_dsn:
        sentry_sdk.init(dsn=settings.sentry_dsn, integrations=[FastApiIntegration()])

    app = FastAPI(title="Exhibits CMS API")
    engine = build_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.index = build_index(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, lambda r, e: JSONResponse(
        {"status": 429, "message": "Too Many Requests"}, status_code=429
    ))
    if not settings.testing:
        app.add_middleware(SlowAPIMiddleware)

    app.add_exception_handler(ExhibitsError, handle_exhibits_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected)

    @app.middleware("http")
    async def record_metrics(request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        REQUEST_COUNT.labels(request.method, endpoint).inc()
        REQUEST_LATENCY.labels(endpoint).observe(time.time() - start)
        return response

    @app.get("/metrics")
    def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/health")
    def health():
        return {"status": 200, "message": "ok"}

    app.include_router(exhibits.router)
    app.include_router(content.router)
    app.include_router(trash.router)
    app.include_router(audit.router)

    audit_routes(app)
    LOGGER.info("Exhibits API ready (database=%s)", engine.url.render_as_string(hide_password=True))
    return app


def audit_routes(app: FastAPI) -> None:
    from fastapi.routing import APIRoute
    from .auth import get_current_user

    for route in app.routes:
        if isinstance(route, APIRoute) and route.path.startswith("/api") and route.path not in PUBLIC_PATHS:
            calls = [dep.call for dep in route.dependant.dependencies]
            if get_current_user not in calls:
                raise RuntimeError(f"Route {route.path} missing authentication")


app = create_app()
