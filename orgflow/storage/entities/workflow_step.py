"""Workflow step entities.

A step owns an optional assignee rule, an ordered list of form fields and
an ordered list of actions.
"""

import enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orgflow.storage.models import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from orgflow.storage.entities.step_action import StepAction
    from orgflow.storage.entities.step_transition import StepTransition
    from orgflow.storage.entities.workflow import Workflow


class AssigneeType(enum.Enum):
    """Who is responsible for acting on a step."""

    SUBMITTER = "SUBMITTER"
    SPECIFIC_ROLE = "SPECIFIC_ROLE"
    SPECIFIC_MEMBER = "SPECIFIC_MEMBER"
    PREVIOUS_STEP_ASSIGNEE = "PREVIOUS_STEP_ASSIGNEE"
    UNASSIGNED = "UNASSIGNED"


class FormFieldType(enum.Enum):
    """Input widget / value type of a form field."""

    TEXT = "TEXT"
    TEXTAREA = "TEXTAREA"
    NUMBER = "NUMBER"
    EMAIL = "EMAIL"
    DATE = "DATE"
    BOOLEAN = "BOOLEAN"
    FILE_UPLOAD = "FILE_UPLOAD"
    DROPDOWN = "DROPDOWN"
    RADIO_GROUP = "RADIO_GROUP"
    CHECKBOX_GROUP = "CHECKBOX_GROUP"


# Field types whose value is picked from a list of options
CHOICE_FIELD_TYPES = frozenset(
    {FormFieldType.DROPDOWN, FormFieldType.RADIO_GROUP, FormFieldType.CHECKBOX_GROUP}
)


class WorkflowStep(Base, UUIDMixin, TimestampMixin):
    """A named stage of a workflow."""

    __tablename__ = "workflow_step"
    __table_args__ = (UniqueConstraint("workflow_id", "name"),)

    workflow_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("workflow.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Step name, unique within its workflow",
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Index of the step in its definition; breaks ties between equal orders",
    )

    # Relationships
    workflow: Mapped["Workflow"] = relationship(
        "Workflow",
        back_populates="steps",
        foreign_keys=[workflow_id],
    )
    assignee_logic: Mapped["AssigneeLogic | None"] = relationship(
        "AssigneeLogic",
        back_populates="step",
        uselist=False,
        cascade="all, delete-orphan",
    )
    form_fields: Mapped[list["StepFormField"]] = relationship(
        "StepFormField",
        back_populates="step",
        order_by="StepFormField.order",
        cascade="all, delete-orphan",
    )
    actions: Mapped[list["StepAction"]] = relationship(
        "StepAction",
        back_populates="step",
        order_by="StepAction.order",
        cascade="all, delete-orphan",
    )
    outgoing_transitions: Mapped[list["StepTransition"]] = relationship(
        "StepTransition",
        foreign_keys="StepTransition.from_step_id",
        order_by="StepTransition.position",
        viewonly=True,
    )

    def __repr__(self) -> str:
        return f"<WorkflowStep(id={self.id!r}, name={self.name!r}, order={self.order})>"


class AssigneeLogic(Base, UUIDMixin):
    """Assignment rule attached to a step."""

    __tablename__ = "assignee_logic"

    step_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("workflow_step.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    assignee_type: Mapped[AssigneeType] = mapped_column(nullable=False)
    specific_role_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    specific_member_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    step: Mapped["WorkflowStep"] = relationship("WorkflowStep", back_populates="assignee_logic")

    def __repr__(self) -> str:
        return f"<AssigneeLogic(step_id={self.step_id!r}, type={self.assignee_type.value!r})>"


class StepFormField(Base, UUIDMixin):
    """A form field collected at a step."""

    __tablename__ = "step_form_field"
    __table_args__ = (UniqueConstraint("step_id", "field_name"),)

    step_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("workflow_step.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    field_name: Mapped[str] = mapped_column(String(100), nullable=False)
    label: Mapped[str] = mapped_column(String(200), nullable=False)
    field_type: Mapped[FormFieldType] = mapped_column(nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    placeholder: Mapped[str | None] = mapped_column(String(200), nullable=True)
    default_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    options: Mapped[list[dict[str, Any]] | None] = mapped_column(
        JSONB,
        nullable=True,
        doc="[{value, label}] choices; only set for choice-type fields",
    )
    validation_rules: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    step: Mapped["WorkflowStep"] = relationship("WorkflowStep", back_populates="form_fields")

    def __repr__(self) -> str:
        return f"<StepFormField(field_name={self.field_name!r}, type={self.field_type.value!r})>"
