"""
FastAPI application factory and main app configuration.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .adapters.db.mongo.connection import init_database
from .api.deps import get_cache_service, get_lifecycle_service, get_shift_resolver
from .api.errors import APIError, domain_error_status
from .api.routers import consultations, doctor_shifts, health, intake, payments
from .api.utils.responses import fail
from .core.config import get_settings
from .core.logging_setup import configure_logging
from .domain.errors import DomainError
from .middleware.request_id_middleware import RequestIDMiddleware
from .workers.consultation_expiry_sweeper import run_expiry_sweeper_forever

logger = logging.getLogger("teleconsult")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    configure_logging(settings.logging)
    logger.info(f"🚀 Starting {settings.app_name} v{settings.app_version} ({settings.app_env})")

    try:
        app.state.mongo_client = await init_database(settings.database)
        logger.info("✅ Database connection established")
    except Exception as e:
        logger.error(f"❌ Database connection failed: {e}", exc_info=True)
        raise

    try:
        created = await get_shift_resolver().initialize_default_shifts()
        if created:
            logger.info(f"✅ Seeded {len(created)} default doctor shift(s)")
    except Exception as e:
        # Consultation creation still works off the fallback doctors.
        logger.warning(f"⚠️  Default shift initialization failed: {e}")

    sweeper_task = None
    if settings.sweeper.enabled:
        sweeper_task = asyncio.create_task(
            run_expiry_sweeper_forever(get_lifecycle_service(), settings.sweeper)
        )
        logger.info("✅ Consultation expiry sweeper started")
    else:
        logger.info("ℹ️  Expiry sweeper disabled (set SWEEPER_ENABLED=true to enable)")

    try:
        yield
    finally:
        logger.info("🛑 Shutting down")
        if sweeper_task is not None:
            sweeper_task.cancel()
            try:
                await sweeper_task
            except asyncio.CancelledError:
                logger.info("Sweeper task cancelled.")
        await get_cache_service().close()
        app.state.mongo_client.close()


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Consultation lifecycle and diagnosis orchestration API",
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.allowed_origins,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allowed_methods,
        allow_headers=settings.cors.allowed_headers,
    )
    app.add_middleware(RequestIDMiddleware)

    app.include_router(health.router)
    app.include_router(intake.router)
    app.include_router(consultations.router)
    app.include_router(payments.router)
    app.include_router(doctor_shifts.router)

    @app.get("/", include_in_schema=False)
    async def root():
        return {"service": settings.app_name, "version": settings.app_version, "status": "running"}

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        req_id = getattr(request.state, "request_id", None)
        status_code = domain_error_status(exc)
        log = logger.error if status_code >= 500 else logger.info
        log(f"DomainError: {exc.error_code} ({status_code}) {exc.message} | request_id={req_id}")
        return JSONResponse(
            status_code=status_code,
            content=fail(request, exc.error_code or "DOMAIN_ERROR", exc.message, exc.details).model_dump(mode="json"),
        )

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        req_id = getattr(request.state, "request_id", None)
        logger.error(f"APIError: {exc.code} ({exc.http_status}) {exc.message} | request_id={req_id}")
        return JSONResponse(
            status_code=exc.http_status,
            content=fail(request, exc.code, exc.message, exc.details).model_dump(mode="json"),
        )

    @app.exception_handler(RequestValidationError)
    async def pydantic_error_handler(request: Request, exc: RequestValidationError):
        req_id = getattr(request.state, "request_id", None)
        error_details = exc.errors()
        logger.info(f"ValidationError on {request.method} {request.url.path}: {error_details} | request_id={req_id}")

        error_messages = []
        for error in error_details:
            loc = " -> ".join(str(x) for x in error.get("loc", []))
            error_messages.append(f"{loc}: {error.get('msg', 'Validation error')}")

        return JSONResponse(
            status_code=422,
            content=fail(
                request,
                "INVALID_INPUT",
                f"Input validation failed: {'; '.join(error_messages)}",
                {"errors": [{"loc": e.get("loc"), "msg": e.get("msg")} for e in error_details]},
            ).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception):
        req_id = getattr(request.state, "request_id", None)
        logger.error(f"Unhandled error: {type(exc).__name__}: {exc} | request_id={req_id}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=fail(request, "INTERNAL_ERROR", "An unexpected error has occurred. Please try again later.").model_dump(mode="json"),
        )

    return app


# Create the app instance
app = create_app()
