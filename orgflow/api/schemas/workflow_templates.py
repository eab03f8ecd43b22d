"""Workflow template API schemas.

Response models read straight from the ORM graph (``from_attributes``);
request bodies reuse ``WorkflowTemplateDefinition`` for the definition
itself.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from orgflow.storage.entities import (
    ActionType,
    AssigneeType,
    ConditionOperator,
    ConditionSourceType,
    FormFieldType,
    WorkflowTriggerType,
)


class _OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class AssigneeLogicResponse(_OrmModel):
    assignee_type: AssigneeType
    specific_role_id: str | None = None
    specific_member_id: str | None = None


class FormFieldResponse(_OrmModel):
    id: str
    field_name: str
    label: str
    field_type: FormFieldType
    is_required: bool
    placeholder: str | None = None
    default_value: str | None = None
    options: list[dict[str, Any]] | None = None
    validation_rules: dict[str, Any] | None = None
    order: int


class ActionResponse(_OrmModel):
    id: str
    name: str
    label: str
    action_type: ActionType
    order: int


class ConditionResponse(_OrmModel):
    position: int
    source_type: ConditionSourceType
    source_field_name: str | None = None
    operator: ConditionOperator
    comparison_value: str
    value_type: FormFieldType


class TransitionResponse(_OrmModel):
    id: str
    from_step_id: str
    to_step_id: str
    action_id: str | None = None
    description: str | None = None
    priority: int
    is_automatic: bool
    position: int
    conditions: list[ConditionResponse] = Field(default_factory=list)


class StepResponse(_OrmModel):
    id: str
    name: str
    description: str | None = None
    order: int
    position: int
    assignee_logic: AssigneeLogicResponse | None = None
    form_fields: list[FormFieldResponse] = Field(default_factory=list)
    actions: list[ActionResponse] = Field(default_factory=list)


class WorkflowSummaryResponse(_OrmModel):
    """Workflow row without its graph."""

    id: str
    name: str
    description: str | None = None
    organization_id: str
    department_id: str | None = None
    trigger_type: WorkflowTriggerType
    is_active: bool
    initial_step_id: str | None = None
    created_at: datetime
    updated_at: datetime


class WorkflowGraphResponse(WorkflowSummaryResponse):
    """Workflow with every step and transition."""

    steps: list[StepResponse] = Field(default_factory=list)
    transitions: list[TransitionResponse] = Field(default_factory=list)


class WorkflowListResponse(BaseModel):
    workflows: list[WorkflowSummaryResponse]
    total: int


class SkippedTransitionResponse(BaseModel):
    from_step: str
    to_step: str
    action_name: str | None = None
    reason: str


class WorkflowBuildResponse(BaseModel):
    """A freshly built workflow plus any transitions that were not linked."""

    workflow: WorkflowGraphResponse
    skipped_transitions: list[SkippedTransitionResponse] = Field(default_factory=list)


class GenerateWorkflowRequest(BaseModel):
    prompt: str = Field(..., min_length=3, max_length=4000, description="Workflow description")
    organization_id: str = Field(..., min_length=1, max_length=100)
    department_id: str | None = Field(default=None, max_length=100)


class PresetWorkflowRequest(BaseModel):
    organization_id: str = Field(..., min_length=1, max_length=100)
    department_id: str | None = Field(default=None, max_length=100)


class ValidationReportResponse(BaseModel):
    """Outcome of a dry-run validation."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
