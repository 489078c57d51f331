from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import time
import logging

from config import settings
from errors import WolfPackError, format_field_errors

logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")
log = logging.getLogger(__name__)

VERSION = "1.0.0"


# ══════════════════════════════════════════════════════════════════════════════
# EXCEPTION HANDLERS
# ══════════════════════════════════════════════════════════════════════════════

async def domain_error_handler(request: Request, exc: WolfPackError) -> JSONResponse:
    content = {"message": exc.message}
    if exc.details:
        content.update(exc.details)
    return JSONResponse(status_code=exc.status_code, content=content)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"message": "Validation failed", "errors": format_field_errors(exc.errors())},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


def create_app() -> FastAPI:
    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        version=VERSION,
        description="Smart-apparel fitness tracking with a live pack activity feed.",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = (time.perf_counter() - start) * 1000
        response.headers["X-Process-Time-Ms"] = f"{elapsed:.2f}"
        return response

    app.add_exception_handler(WolfPackError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.on_event("startup")
    async def startup():
        from database import init_db, AsyncSessionLocal
        from seed import run_seed
        import models  # ensure all models are registered
        await init_db()
        log.info("Database tables created.")
        async with AsyncSessionLocal() as db:
            await run_seed(db)

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {"status": "ok", "version": VERSION}

    from routes import (
        auth_router, user_router, workout_router, apparel_router,
        progress_router, integrations_router, recommendation_router,
    )
    from push_channel import channel_router
    app.include_router(auth_router, prefix="/api", tags=["Auth"])
    app.include_router(user_router, prefix="/api", tags=["Users"])
    app.include_router(workout_router, prefix="/api", tags=["Workouts"])
    app.include_router(apparel_router, prefix="/api", tags=["Apparel"])
    app.include_router(progress_router, prefix="/api", tags=["Achievements & Challenges"])
    app.include_router(integrations_router, prefix="/api", tags=["Integrations"])
    app.include_router(recommendation_router, prefix="/api", tags=["Recommendations"])
    app.include_router(channel_router, tags=["Live Feed"])

    return app


app = create_app()
