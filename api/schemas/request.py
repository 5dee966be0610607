# WORKFLOW: Pydantic request schemas for API input validation.
# Used by: FastAPI endpoints for request validation and documentation
# Schemas include:
# 1. AnalyzeRequest - For /analyze endpoint
# 2. TransformRequest - For /transform endpoint
#
# Validation flow: HTTP request -> Pydantic validation -> Endpoint processing
# Paths must point at ZIP archives; existence is checked by the service.

from pydantic import BaseModel, Field, validator
from typing import Optional

from pipeline.models import Scenario


def _require_zip(value: str) -> str:
    if not value.lower().endswith(".zip"):
        raise ValueError("File must be a ZIP file")
    return value


class AnalyzeRequest(BaseModel):
    """Request schema for the analyze endpoint."""
    source_path: str = Field(..., min_length=1, description="Path to the source ZIP package")

    @validator("source_path")
    def validate_source_path(cls, v):
        return _require_zip(v)


class TransformRequest(BaseModel):
    """Request schema for the transform endpoint."""
    source_path: str = Field(..., min_length=1, description="Path to the source ZIP package")
    scenario: Scenario = Field(..., description="publication, withdrawal or handover")
    validation: bool = Field(False, description="Build a validation delivery instead of a publication")
    output_path: Optional[str] = Field(None, description="Target ZIP; defaults to the scenario's name next to the source")

    @validator("source_path")
    def validate_source_path(cls, v):
        return _require_zip(v)

    @validator("output_path")
    def validate_output_path(cls, v):
        if v is None:
            return v
        return _require_zip(v)
