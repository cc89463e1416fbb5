"""
FastAPI application entry point.

This module initializes the FastAPI application, configures middleware,
and registers the import routers.
"""
import os
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bulk_import import __version__
from bulk_import.api.routers import functions, jobs
from bulk_import.core.config import settings
from bulk_import.core.logging_config import configure_logging

# Ensure logging is configured before the application starts serving requests.
configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown events."""
    if os.getenv("SKIP_DB_INIT") == "1":
        print("SKIP_DB_INIT=1 detected; skipping database bootstrap during startup")
        yield
        return

    try:
        from bulk_import.db.models import create_tables

        print("Initializing database tables...")
        create_tables()
        print("✓ import tables ready")
    except Exception as e:
        print(f"ERROR: Failed to initialize database tables: {e}")
        print("The application cannot start without proper database setup.")
        import traceback
        traceback.print_exc()
        raise

    yield


app = FastAPI(
    title="CRM Bulk Import API",
    version=__version__,
    description="Background CSV import pipeline for contacts, campaign recipients, inventory and the prospect repository",
    lifespan=lifespan
)

allowed_origins = [origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=False,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

app.include_router(functions.router)
app.include_router(jobs.router)


@app.get("/")
async def root():
    """Root endpoint returning API information."""
    return {
        "message": "CRM Bulk Import API",
        "version": __version__
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "service": "bulk-import-api"
    }
