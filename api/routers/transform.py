# WORKFLOW: Analysis and transformation endpoints for STOP source packages.
# Used by: Direct API calls, integration testing
# Endpoints:
# 1. /analyze - Analyse a source package on disk
# 2. /transform - Build a publication, withdrawal or hand-over package
#
# Request flow: HTTP POST -> Request validation -> Workspace check -> TransformationService -> Response schema
# Error mapping: Path outside workspace -> 403, InputNotFoundError -> 404,
#                MissingRequiredIdentityError -> 422, anything else -> 500

from fastapi import APIRouter, HTTPException, status
import logging
from pathlib import Path
from typing import Optional

from api.schemas.request import AnalyzeRequest, TransformRequest
from api.schemas.response import AnalysisResponse, TransformResponse
from core.config import settings
from core.exceptions import InputNotFoundError, MissingRequiredIdentityError
from services.transformation_service import TransformationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["transform"])


def get_service() -> TransformationService:
    return TransformationService()


def resolve_workspace_path(path: Optional[str]) -> Optional[str]:
    """
    Resolve a request path against the workspace directory.

    Relative paths are taken relative to the workspace. Paths that resolve
    outside of it (absolute paths elsewhere, ``..`` segments, symlinks) are
    rejected with 403.
    """
    if path is None:
        return None
    workspace = Path(settings.workspace_dir).resolve()
    resolved = (workspace / path).resolve()
    if resolved != workspace and workspace not in resolved.parents:
        logger.warning(f"Rejected path outside workspace {workspace}: {path}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Path is outside the workspace: {path}",
        )
    return str(resolved)


@router.post("/analyze", response_model=AnalysisResponse)
def analyze_package(request: AnalyzeRequest):
    """
    Analyse a source package.

    Returns identifiers, authority code and the information objects found
    in the package. The package is not modified.
    """
    source_path = resolve_workspace_path(request.source_path)
    try:
        logger.info(f"Analyze request: {source_path}")
        analysis = get_service().analyze(source_path)
        return AnalysisResponse.from_analysis(analysis)

    except InputNotFoundError as e:
        logger.error(f"Analyze request failed: {e}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Analyze request failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Analysis failed: {e}",
        )


@router.post("/transform", response_model=TransformResponse)
def transform_package(request: TransformRequest):
    """
    Transform a source package for the requested scenario.

    The output archive and its report are written next to the source
    unless ``output_path`` is given. Both must lie inside the workspace.
    """
    source_path = resolve_workspace_path(request.source_path)
    output_path = resolve_workspace_path(request.output_path)
    try:
        logger.info(
            f"Transform request: {source_path}, scenario={request.scenario.value}, "
            f"validation={request.validation}"
        )
        result = get_service().transform(
            request.scenario,
            source_path,
            output_path=output_path,
            validation=request.validation,
        )
        return TransformResponse.from_result(result)

    except InputNotFoundError as e:
        logger.error(f"Transform request failed: {e}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except MissingRequiredIdentityError as e:
        logger.error(f"Transform request failed: {e}")
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except Exception as e:
        logger.error(f"Transform request failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Transformation failed: {e}",
        )
