"""Database entity models.

All SQLAlchemy ORM models for orgflow.
"""

# Workflow templates
from orgflow.storage.entities.step_action import ActionType, StepAction
from orgflow.storage.entities.step_transition import (
    ConditionOperator,
    ConditionSourceType,
    StepTransition,
    TransitionCondition,
)
from orgflow.storage.entities.workflow import Workflow, WorkflowTriggerType
from orgflow.storage.entities.workflow_step import (
    CHOICE_FIELD_TYPES,
    AssigneeLogic,
    AssigneeType,
    FormFieldType,
    StepFormField,
    WorkflowStep,
)

__all__ = [
    "Workflow",
    "WorkflowTriggerType",
    "WorkflowStep",
    "AssigneeLogic",
    "AssigneeType",
    "StepFormField",
    "FormFieldType",
    "CHOICE_FIELD_TYPES",
    "StepAction",
    "ActionType",
    "StepTransition",
    "TransitionCondition",
    "ConditionSourceType",
    "ConditionOperator",
]
