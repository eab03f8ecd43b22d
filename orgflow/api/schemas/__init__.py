"""Pydantic schemas for API requests and responses."""

from orgflow.api.schemas.system import HealthResponse, HealthStatus
from orgflow.api.schemas.workflow_templates import (
    GenerateWorkflowRequest,
    PresetWorkflowRequest,
    SkippedTransitionResponse,
    ValidationReportResponse,
    WorkflowBuildResponse,
    WorkflowGraphResponse,
    WorkflowListResponse,
    WorkflowSummaryResponse,
)

__all__ = [
    "GenerateWorkflowRequest",
    "HealthResponse",
    "HealthStatus",
    "PresetWorkflowRequest",
    "SkippedTransitionResponse",
    "ValidationReportResponse",
    "WorkflowBuildResponse",
    "WorkflowGraphResponse",
    "WorkflowListResponse",
    "WorkflowSummaryResponse",
]
