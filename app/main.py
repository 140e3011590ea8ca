from typing import Optional
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from app.core import config
from app.core.errors import ApiError
from app.core.stores import Stores, build_stores
from app.features.media.client import CloudinaryClient
from app.features.media.routes import router as media_router
from app.features.permissions.routes import router as permission_router
from app.utils import get_logger


log = get_logger(__name__)

PREFLIGHT_PATHS = ("/bootstrap-admin", "/set-role", "/update-permissions", "/cloudinary-sign", "/upload")


class PrintTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("main.app.features."), timing=timing, tags=tags))


def get_authorization_header(request: Request) -> str:
    """
    Extract authorization header for rate limiting.
    Used with slowapi Limiter.
    """
    auth = request.headers.get("Authorization", "")
    return auth or "anonymous"


def create_app(
    stores: Optional[Stores] = None,
    cloudinary: Optional[CloudinaryClient] = None,
) -> FastAPI:
    """
    Build the application.

    ``stores`` and ``cloudinary`` are built from the environment at startup
    when not given; tests and scripts inject their own.
    """
    log.info("Initializing server")
    app = FastAPI(
        title="Access Sync",
        description="Role and permission management synced between Appwrite claims and user documents",
        version="0.1.0",
        docs_url="/docs" if config.ENABLE_DOCS else None,
        redoc_url="/redoc" if config.ENABLE_DOCS else None,
        openapi_url="/openapi.json" if config.ENABLE_DOCS else None
    )
    app.state.stores = stores
    app.state.cloudinary = cloudinary or CloudinaryClient.from_config()

    app.state.limiter = Limiter(key_func=get_authorization_header, default_limits=[config.RATE_LIMIT])
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(TimingMiddleware, client=PrintTimings(), metric_namer=StarletteScopeToName("main", app))

    if config.ENABLE_DOCS:
        log.warning("Docs enabled")
    if config.ALLOW_ORIGIN:
        log.info("Setting allow origin to %s", config.ALLOW_ORIGIN)
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[config.ALLOW_ORIGIN],
            allow_credentials=config.ALLOW_ORIGIN != "*",
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(ApiError)
    async def api_error_handler(_request: Request, exc: ApiError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError):
        errors = dict()
        for error in exc.errors():
            if "loc" not in error or "msg" not in error:
                continue
            key = error["loc"][-1]
            if key == "__root__":
                key = "root"
            errors[str(key)] = error["msg"]
        log.info("Request validation error %s", errors)
        return JSONResponse(
            status_code=400,
            content=jsonable_encoder({"error": "Invalid request body", "fields": errors}),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException):
        error = "Method not allowed" if exc.status_code == 405 else exc.detail
        return JSONResponse({"error": error}, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(RateLimitExceeded)
    def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
        return JSONResponse({"error": "You are going too fast"}, status_code=429)

    @app.on_event("startup")
    async def startup():
        """Build store clients once per process."""
        if app.state.stores is None:
            log.info("Connecting stores (document store: %s)...", config.DOCUMENT_STORE)
            app.state.stores = await build_stores()
            log.info("Stores ready")

    async def preflight():
        """Answer OPTIONS requests that are not CORS preflights."""
        return Response(status_code=200)

    for path in PREFLIGHT_PATHS:
        app.add_api_route(path, preflight, methods=["OPTIONS"], include_in_schema=False)

    @app.get("/")
    async def root():
        """Root endpoint - API health check."""
        return {
            "message": "Access Sync API",
            "version": "0.1.0",
            "status": "online",
            "docs": "/docs" if config.ENABLE_DOCS else None,
            "endpoints": {
                "bootstrap": "POST /bootstrap-admin (x-bootstrap-secret header)",
                "roles": "POST /set-role (admin bearer token)",
                "permissions": "POST /update-permissions (admin bearer token)",
                "media": ["GET|POST /cloudinary-sign", "POST /upload"],
            },
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    # Role and permission routes
    app.include_router(permission_router, tags=["permissions"])

    # Media routes
    app.include_router(media_router, tags=["media"])

    return app


app = create_app()
