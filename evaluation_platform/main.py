from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

import structlog

from evaluation_platform.config import settings
from evaluation_platform.core.exceptions import EvaluationException
from evaluation_platform.core.logging import configure_logging

# IMPORT ROUTERS
from evaluation_platform.routers.applications import router as applications_router
from evaluation_platform.routers.applications import (
    evaluation_exception_handler,
    validation_exception_handler,
)
from evaluation_platform.routers.demo_day import router as demo_day_router
from evaluation_platform.routers.evaluation import router as evaluation_router
from evaluation_platform.routers.health import router as health_router

logger = structlog.get_logger(__name__)

# SWAGGER UI: tag display order
_OPENAPI_TAGS = [
    {"name": "Root"},
    {"name": "Health"},
    {"name": "Applications"},
    {"name": "Evaluation"},
    {"name": "Demo Day"},
]

# FASTAPI APPLICATION CONFIGURATION
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    openapi_tags=_OPENAPI_TAGS,
)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

# REGISTER EXCEPTION HANDLERS
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(EvaluationException, evaluation_exception_handler)

# REGISTER ROUTERS (order matches _OPENAPI_TAGS / Swagger UI display order)
app.include_router(health_router)           # Health
app.include_router(applications_router)     # Applications
app.include_router(evaluation_router)       # Evaluation
app.include_router(demo_day_router)         # Demo Day


# ROOT ENDPOINT
@app.get("/", tags=["Root"], summary="Root endpoint")
async def root():
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc"
        },
        "status": "running"
    }


# STARTUP EVENT
@app.on_event("startup")
async def startup_event():
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    logger.info(
        "app_starting",
        env=settings.APP_ENV,
        storage_backend=settings.STORAGE_BACKEND,
        cache_enabled=settings.CACHE_ENABLED,
    )


# SHUTDOWN EVENT
@app.on_event("shutdown")
async def shutdown_event():
    logger.info("app_stopping")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("evaluation_platform.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
