# WORKFLOW: Health check endpoints for monitoring and operational status.
# Used by: Load balancers, monitoring systems, container health checks
# Endpoints:
# 1. /healthz - Basic health check (always returns healthy)
# 2. /readyz - Readiness check (XML parser and temporary storage)
# 3. /livez - Liveness check for Kubernetes
#
# Health flow: Health check request -> Service status check -> Health response
# Readiness flow: Readiness check -> XML parser / temp directory checks -> Ready/Not ready

from fastapi import APIRouter
import logging
import tempfile
from datetime import datetime

from core.config import settings
from pipeline.xml_utils import parse_xml

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/healthz")
async def health_check():
    """
    Basic health check endpoint.

    Returns:
        Health status of the API
    """
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": settings.version,
        "environment": settings.environment
    }


@router.get("/readyz")
async def readiness_check():
    """
    Readiness check endpoint.

    Checks that XML documents can be parsed and that temporary files can
    be written (output archives are staged before they are moved into place).

    Returns:
        Readiness status with detailed checks
    """
    checks = {
        "xml_parser": False,
        "temp_storage": False
    }

    try:
        checks["xml_parser"] = parse_xml(b"<ready/>").tag == "ready"
    except Exception as e:
        logger.error(f"XML parser health check failed: {e}")

    try:
        with tempfile.NamedTemporaryFile() as handle:
            handle.write(b"ready")
        checks["temp_storage"] = True
    except OSError as e:
        logger.error(f"Temporary storage health check failed: {e}")

    is_ready = all(checks.values())

    return {
        "status": "ready" if is_ready else "not_ready",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": checks,
        "version": settings.version
    }


@router.get("/livez")
async def liveness_check():
    """
    Liveness check endpoint.

    Used by Kubernetes liveness checks.
    """
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat()
    }
