"""Workflow template definition validation.

Checks an untrusted definition (from an API body, a file, or an LLM)
before anything is persisted.  Every problem found is reported at once
in a single ``ValidationError``.

Validation catches:
- Schema violations (missing fields, wrong enum values, bad names)
- Duplicate step names, and duplicate action / field names within a step
- An ``initialStepName`` that matches no step
- Incomplete assignee rules and option lists on the wrong field types
- Form-field conditions without a source field

Transitions that point at unknown steps or actions are *not* errors:
the builder skips them.  ``find_unresolved_references`` reports them so
callers can surface warnings.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from orgflow.exceptions import ValidationError
from orgflow.settings import get_settings
from orgflow.storage.entities import CHOICE_FIELD_TYPES, AssigneeType, ConditionSourceType
from orgflow.workflows.definition import WorkflowTemplateDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnresolvedReference:
    """A transition whose target step or triggering action cannot be resolved."""

    from_step: str
    to_step: str
    action_name: str | None
    reason: str

    def __str__(self) -> str:
        action = f" (action '{self.action_name}')" if self.action_name else ""
        return f"'{self.from_step}' -> '{self.to_step}'{action}: {self.reason}"


TARGET_STEP_NOT_FOUND = "target step not found"
ACTION_NOT_ON_SOURCE_STEP = "action not found on source step"


def validate_definition(
    data: Mapping[str, Any] | WorkflowTemplateDefinition,
) -> WorkflowTemplateDefinition:
    """Parse and validate a workflow template definition.

    Args:
        data: Raw definition (camelCase or snake_case keys) or an already
            parsed definition.

    Returns:
        The typed, normalized definition.

    Raises:
        ValidationError: Listing every structural violation.
    """
    if isinstance(data, WorkflowTemplateDefinition):
        defn = data
    else:
        if not isinstance(data, Mapping):
            raise ValidationError([f"definition: expected an object, got {type(data).__name__}"])
        try:
            defn = WorkflowTemplateDefinition.model_validate(dict(data))
        except PydanticValidationError as e:
            raise ValidationError(_format_pydantic_errors(e)) from e

    errors = collect_definition_errors(defn)
    if errors:
        logger.info(
            "Workflow definition '%s' rejected with %d error(s)", defn.workflow_name, len(errors)
        )
        raise ValidationError(errors)
    return defn


def collect_definition_errors(
    defn: WorkflowTemplateDefinition,
    *,
    max_steps: int | None = None,
) -> list[str]:
    """Check cross-reference and consistency rules of a parsed definition.

    Returns:
        List of error messages (empty if valid).
    """
    errors: list[str] = []
    limit = max_steps if max_steps is not None else get_settings().workflow_max_steps

    if len(defn.steps) > limit:
        errors.append(f"steps: at most {limit} steps are allowed, got {len(defn.steps)}")

    seen_steps: set[str] = set()
    for i, step in enumerate(defn.steps):
        path = f"steps.{i}"
        if step.step_name in seen_steps:
            errors.append(f"{path}.stepName: duplicate step name '{step.step_name}'")
        seen_steps.add(step.step_name)

        rule = step.assignee_logic
        if rule is not None:
            if rule.assignee_type is AssigneeType.SPECIFIC_ROLE and not rule.specific_role_id:
                errors.append(f"{path}.assigneeLogic: SPECIFIC_ROLE requires specificRoleId")
            if rule.assignee_type is AssigneeType.SPECIFIC_MEMBER and not rule.specific_member_id:
                errors.append(f"{path}.assigneeLogic: SPECIFIC_MEMBER requires specificMemberId")

        seen_fields: set[str] = set()
        for j, field in enumerate(step.form_fields):
            field_path = f"{path}.formFields.{j}"
            if field.field_name in seen_fields:
                errors.append(
                    f"{field_path}.fieldName: duplicate field name '{field.field_name}' "
                    f"in step '{step.step_name}'"
                )
            seen_fields.add(field.field_name)

            if field.field_type in CHOICE_FIELD_TYPES and not field.options:
                errors.append(
                    f"{field_path}.options: {field.field_type.value} field "
                    f"'{field.field_name}' requires options"
                )
            elif field.field_type not in CHOICE_FIELD_TYPES and field.options:
                errors.append(
                    f"{field_path}.options: options are only allowed on choice fields, "
                    f"'{field.field_name}' is {field.field_type.value}"
                )

        seen_actions: set[str] = set()
        for j, action in enumerate(step.actions):
            if action.name in seen_actions:
                errors.append(
                    f"{path}.actions.{j}.name: duplicate action name '{action.name}' "
                    f"in step '{step.step_name}'"
                )
            seen_actions.add(action.name)

        for j, transition in enumerate(step.transitions):
            for k, condition in enumerate(transition.conditions):
                if (
                    condition.source_type is ConditionSourceType.FORM_FIELD_VALUE
                    and not condition.source_field_name
                ):
                    errors.append(
                        f"{path}.transitions.{j}.conditions.{k}.sourceFieldName: "
                        "required when sourceType is FORM_FIELD_VALUE"
                    )

    if defn.initial_step_name not in seen_steps:
        errors.append(
            f"initialStepName: '{defn.initial_step_name}' does not match any stepName"
        )

    return errors


def find_unresolved_references(defn: WorkflowTemplateDefinition) -> list[UnresolvedReference]:
    """List transitions the builder would skip.

    Target steps resolve against every step of the document; action names
    resolve only against the actions of the transition's own source step.
    """
    step_names = {step.step_name for step in defn.steps}
    unresolved: list[UnresolvedReference] = []

    for step in defn.steps:
        action_names = {action.name for action in step.actions}
        for transition in step.transitions:
            if transition.to_step_name not in step_names:
                reason = TARGET_STEP_NOT_FOUND
            elif transition.action_name and transition.action_name not in action_names:
                reason = ACTION_NOT_ON_SOURCE_STEP
            else:
                continue
            unresolved.append(
                UnresolvedReference(
                    from_step=step.step_name,
                    to_step=transition.to_step_name,
                    action_name=transition.action_name,
                    reason=reason,
                )
            )

    return unresolved


def _format_pydantic_errors(exc: PydanticValidationError) -> list[str]:
    """Flatten pydantic errors into ``"dotted.path: message"`` strings."""
    messages: list[str] = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "definition"
        messages.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return messages
