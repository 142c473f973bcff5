"""
FastAPI Application Entry Point
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from leadpool.api.v1.routes import api_router
from leadpool.core.config import get_config_manager, get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan - startup and shutdown events.

    Startup validates the storage and SMS configuration; missing storage
    credentials are fatal in production and logged elsewhere.
    """
    settings = get_settings()
    config = get_config_manager()
    logger.info(f"Starting LeadPool CRM ({settings.environment})...")

    strict_validation = settings.environment == "production"

    try:
        from leadpool.core.validation import validate_configuration_on_startup
        validate_configuration_on_startup(
            strict=strict_validation,
            storage_backend=config.get("storage.backend", "supabase"),
            sms_provider=config.get("providers.sms.active", "netgsm"),
        )
    except RuntimeError as e:
        if strict_validation:
            logger.error(f"Startup failed: {e}")
            raise
        logger.warning(f"Configuration warnings (non-fatal in {settings.environment}): {e}")

    logger.info("LeadPool CRM started successfully")

    yield

    logger.info("LeadPool CRM shutdown complete")


settings = get_settings()

app = FastAPI(
    title="LeadPool CRM",
    description="Shared lead pool with first-come claiming for sales agents",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    return {"message": "LeadPool CRM API", "status": "running"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
