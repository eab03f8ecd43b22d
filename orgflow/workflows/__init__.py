"""Workflow template definitions, validation, building and generation."""

from orgflow.workflows.builder import (
    MaterializedStep,
    SkippedTransition,
    WorkflowBuildResult,
    WorkflowTemplateBuilder,
    create_structured_workflow,
)
from orgflow.workflows.definition import (
    ActionDefinition,
    AssigneeRule,
    ConditionDefinition,
    FieldOption,
    FormFieldDefinition,
    StepDefinition,
    TransitionDefinition,
    WorkflowTemplateDefinition,
)
from orgflow.workflows.validator import (
    UnresolvedReference,
    collect_definition_errors,
    find_unresolved_references,
    validate_definition,
)

__all__ = [
    "ActionDefinition",
    "AssigneeRule",
    "ConditionDefinition",
    "FieldOption",
    "FormFieldDefinition",
    "MaterializedStep",
    "SkippedTransition",
    "StepDefinition",
    "TransitionDefinition",
    "UnresolvedReference",
    "WorkflowBuildResult",
    "WorkflowTemplateBuilder",
    "WorkflowTemplateDefinition",
    "collect_definition_errors",
    "create_structured_workflow",
    "find_unresolved_references",
    "validate_definition",
]
