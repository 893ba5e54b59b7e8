from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from abreadout import __version__
from abreadout.api.v1.router import api_router
from abreadout.config import get_settings
from abreadout.core.cache import close_redis
from abreadout.core.logging import configure_logging
from abreadout.core.narrative import close_readout_generator
from abreadout.middleware import TelemetryMiddleware

settings = get_settings()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging(settings.LOG_LEVEL, json_output=settings.ENVIRONMENT == "production")
    logger.info("startup", app=settings.APP_NAME, llm_provider=settings.LLM_PROVIDER)
    yield
    # Shutdown
    await close_readout_generator()
    await close_redis()
    logger.info("shutdown_complete")


app = FastAPI(
    title=settings.APP_NAME,
    description="A/B test analysis and Ship/Kill/Iterate readouts",
    version=__version__,
    docs_url=f"{settings.API_V1_PREFIX}/docs",
    redoc_url=f"{settings.API_V1_PREFIX}/redoc",
    lifespan=lifespan,
)

# CORS middleware
if settings.CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.add_middleware(TelemetryMiddleware)

# Include routers
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "llm_provider": settings.LLM_PROVIDER,
    }
