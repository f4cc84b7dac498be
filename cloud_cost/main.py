from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cloud_cost.modules.reporting.api.v1.report import router as report_router
from cloud_cost.shared.core.config import get_settings
from cloud_cost.shared.core.exceptions import CloudCostException
from cloud_cost.shared.core.logging import setup_logging

setup_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("app_starting", app=settings.APP_NAME, auth_mode=settings.AUTH_MODE)
    yield
    logger.info("app_stopping", app=settings.APP_NAME)


settings = get_settings()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    lifespan=lifespan)

# Permissive by default for the local dashboard
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["content-type", "x-amzn-iam-arn", "authorization"],
)


@app.exception_handler(CloudCostException)
async def cloud_cost_exception_handler(request: Request, exc: CloudCostException):
    logger.error("request_failed", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "message": exc.message},
    )


app.include_router(report_router)


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.VERSION,
    }


def run():
    """Entry point for the cloud-cost-api console script."""
    import uvicorn
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)
