"""Workflow template API.

POST   /api/v1/workflow-templates                  - build from a definition
POST   /api/v1/workflow-templates/generate         - build from a prompt (LLM)
POST   /api/v1/workflow-templates/presets/{name}   - build a preset
POST   /api/v1/workflow-templates/validate         - dry-run validation
GET    /api/v1/workflow-templates?organization_id= - list
GET    /api/v1/workflow-templates/presets          - list presets
GET    /api/v1/workflow-templates/{id}             - full graph
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, HTTPException, Query

from orgflow.api.schemas import (
    GenerateWorkflowRequest,
    PresetWorkflowRequest,
    SkippedTransitionResponse,
    ValidationReportResponse,
    WorkflowBuildResponse,
    WorkflowGraphResponse,
    WorkflowListResponse,
    WorkflowSummaryResponse,
)
from orgflow.dal import WorkflowRepository
from orgflow.exceptions import ValidationError
from orgflow.storage import get_session
from orgflow.workflows.builder import WorkflowBuildResult, create_structured_workflow
from orgflow.workflows.generator import generate_and_create_workflow
from orgflow.workflows.presets import PRESETS, create_preset_workflow, list_presets
from orgflow.workflows.validator import find_unresolved_references, validate_definition

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflow-templates", tags=["Workflow Templates"])


def _build_response(result: WorkflowBuildResult) -> WorkflowBuildResponse:
    return WorkflowBuildResponse(
        workflow=WorkflowGraphResponse.model_validate(result.workflow),
        skipped_transitions=[
            SkippedTransitionResponse(**skipped.to_dict())
            for skipped in result.skipped_transitions
        ],
    )


@router.post("", response_model=WorkflowBuildResponse, status_code=201)
async def create_workflow_template(
    definition: dict[str, Any] = Body(..., description="Workflow template definition"),
) -> WorkflowBuildResponse:
    """Build a workflow from a declarative definition.

    The whole graph is persisted atomically.  Transitions that reference
    unknown steps or actions are reported in ``skipped_transitions``.
    """
    result = await create_structured_workflow(definition)
    return _build_response(result)


@router.post("/generate", response_model=WorkflowBuildResponse, status_code=201)
async def generate_workflow_template(body: GenerateWorkflowRequest) -> WorkflowBuildResponse:
    """Generate a definition from a free-text prompt and build it."""
    result = await generate_and_create_workflow(
        body.prompt,
        body.organization_id,
        body.department_id,
    )
    return _build_response(result)


@router.get("/presets")
async def get_presets() -> dict[str, str]:
    """List available presets with a one-line description."""
    return list_presets()


@router.post("/presets/{name}", response_model=WorkflowBuildResponse, status_code=201)
async def create_preset(name: str, body: PresetWorkflowRequest) -> WorkflowBuildResponse:
    """Instantiate a preset for an organization."""
    if name not in PRESETS:
        raise HTTPException(status_code=404, detail=f"Unknown preset '{name}'")
    result = await create_preset_workflow(
        name,
        body.organization_id,
        department_id=body.department_id,
    )
    return _build_response(result)


@router.post("/validate", response_model=ValidationReportResponse)
async def validate_workflow_template(
    definition: dict[str, Any] = Body(..., description="Workflow template definition"),
) -> ValidationReportResponse:
    """Validate a definition without persisting anything."""
    try:
        defn = validate_definition(definition)
    except ValidationError as e:
        return ValidationReportResponse(valid=False, errors=e.errors)

    warnings = [str(ref) for ref in find_unresolved_references(defn)]
    return ValidationReportResponse(valid=True, warnings=warnings)


@router.get("", response_model=WorkflowListResponse)
async def list_workflow_templates(
    organization_id: str = Query(..., min_length=1),
    department_id: str | None = Query(default=None),
    active_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> WorkflowListResponse:
    """List an organization's workflows (without their graphs)."""
    async with get_session() as session:
        repo = WorkflowRepository(session)
        workflows = await repo.list_by_organization(
            organization_id,
            department_id=department_id,
            active_only=active_only,
            limit=limit,
            offset=offset,
        )
        total = await repo.count(
            organization_id,
            department_id=department_id,
            active_only=active_only,
        )
        return WorkflowListResponse(
            workflows=[WorkflowSummaryResponse.model_validate(w) for w in workflows],
            total=total,
        )


@router.get("/{workflow_id}", response_model=WorkflowGraphResponse)
async def get_workflow_template(workflow_id: str) -> WorkflowGraphResponse:
    """Get a workflow with its full step and transition graph."""
    async with get_session() as session:
        workflow = await WorkflowRepository(session).get_with_graph(workflow_id)
        if workflow is None:
            raise HTTPException(status_code=404, detail="Workflow not found")
        return WorkflowGraphResponse.model_validate(workflow)
