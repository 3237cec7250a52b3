import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bsai.config import settings
from bsai.core.errors import ApiError, PlatformError

logger = logging.getLogger(__name__)


async def platform_error_handler(request: Request, exc: PlatformError) -> JSONResponse:
    """Platform failures that escaped a route. Client errors pass through, the rest are upstream faults."""
    if isinstance(exc, ApiError) and exc.status_code in (401, 403, 404):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
    logger.error(f"{request.method} {request.url.path} failed upstream: {exc.message}")
    return JSONResponse(status_code=502, content={"detail": exc.message})


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url=f"{settings.API_V1_STR}/docs",
    )
    app.add_exception_handler(PlatformError, platform_error_handler)

    from bsai.routes.v1.api import api_router
    app.include_router(api_router, prefix=settings.API_V1_STR)

    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/health")
    def health_check():
        return {"status": "ok", "version": settings.VERSION, "platform": settings.PLATFORM_API_URL}

    return app

app = create_app()
