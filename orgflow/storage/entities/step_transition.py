"""Step transition and condition entities.

A transition is a directed edge between two steps of the same workflow,
optionally gated by an action of its source step and an ordered list of
conditions.
"""

import enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orgflow.storage.entities.workflow_step import FormFieldType
from orgflow.storage.models import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from orgflow.storage.entities.step_action import StepAction
    from orgflow.storage.entities.workflow import Workflow
    from orgflow.storage.entities.workflow_step import WorkflowStep


class ConditionSourceType(enum.Enum):
    """Where a condition reads the value it compares."""

    FORM_FIELD_VALUE = "FORM_FIELD_VALUE"
    CONTEXT_VALUE = "CONTEXT_VALUE"


class ConditionOperator(enum.Enum):
    """Comparison applied by a condition."""

    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"
    GREATER_THAN_OR_EQUAL = "GREATER_THAN_OR_EQUAL"
    LESS_THAN_OR_EQUAL = "LESS_THAN_OR_EQUAL"
    CONTAINS = "CONTAINS"
    IS_TRUE = "IS_TRUE"
    IS_FALSE = "IS_FALSE"
    IS_EMPTY = "IS_EMPTY"
    IS_NOT_EMPTY = "IS_NOT_EMPTY"


class StepTransition(Base, UUIDMixin, TimestampMixin):
    """A directed edge from one step to another."""

    __tablename__ = "step_transition"

    workflow_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("workflow.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    from_step_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("workflow_step.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    to_step_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("workflow_step.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("step_action.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="Triggering action; always an action of the source step",
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_automatic: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Creation order within the workflow",
    )

    # Relationships
    workflow: Mapped["Workflow"] = relationship("Workflow", back_populates="transitions")
    from_step: Mapped["WorkflowStep"] = relationship(
        "WorkflowStep",
        foreign_keys=[from_step_id],
    )
    to_step: Mapped["WorkflowStep"] = relationship(
        "WorkflowStep",
        foreign_keys=[to_step_id],
    )
    action: Mapped["StepAction | None"] = relationship(
        "StepAction",
        back_populates="transitions",
    )
    conditions: Mapped[list["TransitionCondition"]] = relationship(
        "TransitionCondition",
        back_populates="transition",
        order_by="TransitionCondition.position",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return (
            f"<StepTransition(from={self.from_step_id!r}, to={self.to_step_id!r}, "
            f"action={self.action_id!r})>"
        )


class TransitionCondition(Base, UUIDMixin):
    """A single predicate gating a transition.

    ``comparison_value`` is always stored as a string and interpreted
    according to ``value_type``.
    """

    __tablename__ = "transition_condition"

    transition_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("step_transition.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Evaluation order within the transition",
    )
    source_type: Mapped[ConditionSourceType] = mapped_column(nullable=False)
    source_field_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    operator: Mapped[ConditionOperator] = mapped_column(nullable=False)
    comparison_value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    value_type: Mapped[FormFieldType] = mapped_column(nullable=False)

    transition: Mapped["StepTransition"] = relationship(
        "StepTransition",
        back_populates="conditions",
    )

    def __repr__(self) -> str:
        return (
            f"<TransitionCondition(position={self.position}, "
            f"operator={self.operator.value!r}, value={self.comparison_value!r})>"
        )
