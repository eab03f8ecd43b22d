"""Declarative workflow template definition schema.

Provides Pydantic models describing a workflow template as data: steps
with their assignee rule, form fields and actions, plus the transitions
leaving each step.  Step, action and field names are document-scoped;
``WorkflowTemplateBuilder`` resolves them to persisted identities.

Wire keys are camelCase (``workflowName``, ``stepName``, ``toStepName``...),
Python attributes are snake_case.  Both are accepted on input.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from orgflow.storage.entities import (
    ActionType,
    AssigneeType,
    ConditionOperator,
    ConditionSourceType,
    FormFieldType,
    WorkflowTriggerType,
)

_NAME_PATTERN = r"^[A-Za-z_][A-Za-z0-9_\-]*$"
_MAX_FIELDS_PER_STEP = 100
_MAX_ACTIONS_PER_STEP = 20
_MAX_TRANSITIONS_PER_STEP = 50
_MAX_CONDITIONS = 20


class _DefinitionModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )


class AssigneeRule(_DefinitionModel):
    """Who acts on a step, interpreted according to ``assignee_type``."""

    assignee_type: AssigneeType
    specific_role_id: str | None = Field(default=None, max_length=100)
    specific_member_id: str | None = Field(default=None, max_length=100)


class FieldOption(_DefinitionModel):
    """A single choice of a DROPDOWN / RADIO_GROUP / CHECKBOX_GROUP field."""

    value: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)


class FormFieldDefinition(_DefinitionModel):
    """A form field collected at a step."""

    field_name: str = Field(..., min_length=1, max_length=100, pattern=_NAME_PATTERN)
    label: str = Field(..., min_length=1, max_length=200)
    field_type: FormFieldType
    is_required: bool = False
    placeholder: str | None = Field(default=None, max_length=200)
    default_value: str | None = None
    options: list[FieldOption] | None = None
    validation_rules: dict[str, Any] | None = None
    order: int = Field(default=0, ge=0)


class ActionDefinition(_DefinitionModel):
    """A named action offered at a step."""

    name: str = Field(..., min_length=1, max_length=100, pattern=_NAME_PATTERN)
    label: str = Field(..., min_length=1, max_length=200)
    action_type: ActionType = ActionType.PRIMARY
    order: int = Field(default=0, ge=0)


class ConditionDefinition(_DefinitionModel):
    """A predicate gating a transition.

    ``comparison_value`` is always a string; booleans and numbers are
    coerced (``True`` becomes ``"true"``).
    """

    source_type: ConditionSourceType
    source_field_name: str | None = Field(default=None, max_length=100)
    operator: ConditionOperator
    comparison_value: str = ""
    value_type: FormFieldType = FormFieldType.TEXT

    @field_validator("comparison_value", mode="before")
    @classmethod
    def _stringify_comparison_value(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, int | float):
            return str(value)
        return value


class TransitionDefinition(_DefinitionModel):
    """An outgoing edge declared on its source step."""

    to_step_name: str = Field(..., min_length=1, max_length=100)
    action_name: str | None = Field(default=None, max_length=100)
    description: str | None = None
    priority: int = 0
    is_automatic: bool = False
    conditions: list[ConditionDefinition] = Field(
        default_factory=list, max_length=_MAX_CONDITIONS
    )

    @field_validator("action_name", mode="before")
    @classmethod
    def _blank_action_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class StepDefinition(_DefinitionModel):
    """A step of the workflow with everything it owns."""

    step_name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    order: int = Field(default=0, ge=0)
    assignee_logic: AssigneeRule | None = None
    form_fields: list[FormFieldDefinition] = Field(
        default_factory=list, max_length=_MAX_FIELDS_PER_STEP
    )
    actions: list[ActionDefinition] = Field(default_factory=list, max_length=_MAX_ACTIONS_PER_STEP)
    transitions: list[TransitionDefinition] = Field(
        default_factory=list, max_length=_MAX_TRANSITIONS_PER_STEP
    )

    @field_validator("form_fields", "actions", "transitions", mode="before")
    @classmethod
    def _null_list_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class WorkflowTemplateDefinition(_DefinitionModel):
    """Declarative description of a workflow template.

    ``initial_step_name`` must equal the ``step_name`` of exactly one step;
    this and the other cross-reference rules are checked by
    ``orgflow.workflows.validator``.
    """

    workflow_name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    organization_id: str = Field(..., min_length=1, max_length=100)
    department_id: str | None = Field(default=None, max_length=100)
    trigger_type: WorkflowTriggerType = WorkflowTriggerType.MANUAL
    initial_step_name: str = Field(..., min_length=1, max_length=100)
    steps: list[StepDefinition] = Field(..., min_length=1)

    @field_validator("department_id", mode="before")
    @classmethod
    def _blank_department_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def transition_count(self) -> int:
        """Total number of transitions declared across all steps."""
        return sum(len(step.transitions) for step in self.steps)

    def to_wire(self) -> dict[str, Any]:
        """Serialize with camelCase keys, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
