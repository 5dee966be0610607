#!/usr/bin/env python3
"""
STOP Package Transformer API - health, analysis and transformation routers.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from core.config import settings
from api.middleware.logging import LoggingMiddleware
from api.routers import health, transform

# Configure logging
logging.basicConfig(level=getattr(logging, settings.log_level))
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.project_name,
    version=settings.version,
    description="Transforms STOP source packages into publication, withdrawal and hand-over deliveries"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=settings.allowed_methods,
    allow_headers=settings.allowed_headers,
)
app.add_middleware(LoggingMiddleware)

# Expose health checks both at root and versioned paths
app.include_router(health.router, prefix=settings.api_v1_prefix)
app.include_router(transform.router, prefix=settings.api_v1_prefix)
logger.info("Health and transform routers included with API prefix")


@app.get("/healthz")
async def root_health_check():
    """Root-level health endpoint for external monitors."""
    return await health.health_check()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
