from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

import structlog

from folio.config import settings
from folio.core.dependencies import get_job_queue
from folio.core.logging import configure_logging
from folio.routers.health import router as health_router
from folio.routers.pipelines import router as pipelines_router
from folio.shutdown import set_shutdown

configure_logging()
logger = structlog.get_logger(__name__)


# STARTUP / SHUTDOWN
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("api_starting", env=settings.APP_ENV, docs="/docs")
    yield
    logger.info("api_stopping")
    set_shutdown()
    if get_job_queue.cache_info().currsize:
        await get_job_queue().close()


# SWAGGER UI: tag display order
_OPENAPI_TAGS = [
    {"name": "Root"},
    {"name": "Health"},
    {"name": "Pipelines"},
]

# FASTAPI APPLICATION CONFIGURATION
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    openapi_tags=_OPENAPI_TAGS,
    lifespan=lifespan,
)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

# REGISTER ROUTERS (order matches _OPENAPI_TAGS)
app.include_router(health_router)     # Health
app.include_router(pipelines_router)  # Pipelines


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


# RUN WITH UVICORN
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "folio.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
