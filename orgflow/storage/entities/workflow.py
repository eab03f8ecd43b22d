"""Workflow entity model.

The root of a workflow template graph: a named process owned by an
organization (and optionally a department) made of ordered steps and the
transitions between them.
"""

import enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orgflow.storage.models import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from orgflow.storage.entities.step_transition import StepTransition
    from orgflow.storage.entities.workflow_step import WorkflowStep


class WorkflowTriggerType(enum.Enum):
    """How instances of a workflow are started."""

    MANUAL = "MANUAL"
    EVENT_BASED = "EVENT_BASED"
    SCHEDULED = "SCHEDULED"
    API_CALL = "API_CALL"


class Workflow(Base, UUIDMixin, TimestampMixin):
    """A persisted workflow template.

    ``initial_step_id`` is nullable only while the graph is being built;
    a completed build always points it at one of the workflow's own steps.
    """

    __tablename__ = "workflow"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        index=True,
        doc="Human-readable workflow name (not unique; builds never deduplicate)",
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    organization_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        doc="Owning organization identifier",
    )
    department_id: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        index=True,
        doc="Owning department identifier, if scoped to one",
    )
    trigger_type: Mapped[WorkflowTriggerType] = mapped_column(
        default=WorkflowTriggerType.MANUAL,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )
    initial_step_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey(
            "workflow_step.id",
            ondelete="SET NULL",
            use_alter=True,
            name="fk_workflow_initial_step_id_workflow_step",
        ),
        nullable=True,
        doc="FK to the step every new instance starts at",
    )

    # Relationships
    steps: Mapped[list["WorkflowStep"]] = relationship(
        "WorkflowStep",
        back_populates="workflow",
        foreign_keys="WorkflowStep.workflow_id",
        order_by="[WorkflowStep.order, WorkflowStep.position]",
        cascade="all, delete-orphan",
    )
    initial_step: Mapped["WorkflowStep | None"] = relationship(
        "WorkflowStep",
        foreign_keys=[initial_step_id],
        viewonly=True,
    )
    transitions: Mapped[list["StepTransition"]] = relationship(
        "StepTransition",
        back_populates="workflow",
        order_by="StepTransition.position",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Workflow(id={self.id!r}, name={self.name!r})>"

    def get_step(self, name: str) -> "WorkflowStep | None":
        """Find a loaded step by its name."""
        for step in self.steps:
            if step.name == name:
                return step
        return None
