# WORKFLOW: Pydantic response schemas for the analysis and transformation endpoints.
# Used by: API routers, tests
# Schemas include:
# 1. InformationObjectResponse - One analysed information object
# 2. AnalysisResponse - Analysis of a source package
# 3. TransformResponse - Paths and file list of a finished transformation
#
# Response flow: Pipeline model -> from_*() -> Pydantic response -> JSON

from pydantic import BaseModel, Field
from typing import List, Optional

from pipeline.models import ArchiveAnalysis, Scenario, TransformationResult


class InformationObjectResponse(BaseModel):
    folder: str
    work_id: Optional[str] = None
    expression_id: Optional[str] = None
    external_ref_element_id: Optional[str] = None
    payload_name: Optional[str] = None
    payload_digest: Optional[str] = None
    title: Optional[str] = None


class AnalysisResponse(BaseModel):
    """Analysis of a source package."""
    work_id: Optional[str] = None
    expression_id: Optional[str] = None
    goal: Optional[str] = None
    authority_code: Optional[str] = None
    information_object_count: int = 0
    geo_payload_size: int = 0
    reference_count: int = 0
    information_objects: List[InformationObjectResponse] = Field(default_factory=list)

    @classmethod
    def from_analysis(cls, analysis: ArchiveAnalysis) -> "AnalysisResponse":
        return cls(
            work_id=analysis.work_id,
            expression_id=analysis.expression_id,
            goal=analysis.goal,
            authority_code=analysis.authority_code,
            information_object_count=analysis.information_object_count,
            geo_payload_size=analysis.geo_payload_size,
            reference_count=len(analysis.external_references),
            information_objects=[
                InformationObjectResponse(**record.model_dump()) for record in analysis.information_objects
            ],
        )


class TransformResponse(BaseModel):
    """Result of a transformation run."""
    status: str = "completed"
    scenario: Scenario
    validation: bool = False
    output_path: str
    report_path: str
    goal_id: str
    files: List[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: TransformationResult) -> "TransformResponse":
        return cls(
            scenario=result.scenario,
            validation=result.validation,
            output_path=result.output_path,
            report_path=result.report_path,
            goal_id=result.goal_id,
            files=result.files,
        )
