"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from shortclips.config import settings
from shortclips.api.routes import router
from shortclips.workers.job_runner import job_runner

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(f"Starting {settings.app_name}...")
    settings.download_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Suggestion mode: {settings.suggestion_mode}")

    yield

    logger.info(f"Shutting down {settings.app_name}...")
    await job_runner.shutdown()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.app_name,
    description="Short clip extraction from long-form video",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.app_name,
        "version": "1.0.0",
        "api": "/api",
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "shortclips.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
