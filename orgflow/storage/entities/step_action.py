"""StepAction entity model.

A named operation offered at a step (e.g. "Submit"), which may trigger
one or more of the step's outgoing transitions.
"""

import enum
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orgflow.storage.models import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from orgflow.storage.entities.step_transition import StepTransition
    from orgflow.storage.entities.workflow_step import WorkflowStep


class ActionType(enum.Enum):
    """Presentation weight of an action."""

    PRIMARY = "PRIMARY"
    SECONDARY = "SECONDARY"
    DANGER = "DANGER"


class StepAction(Base, UUIDMixin, TimestampMixin):
    """An action available at a step."""

    __tablename__ = "step_action"
    __table_args__ = (UniqueConstraint("step_id", "name"),)

    step_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("workflow_step.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Action name, unique within its step",
    )
    label: Mapped[str] = mapped_column(String(200), nullable=False)
    action_type: Mapped[ActionType] = mapped_column(
        default=ActionType.PRIMARY,
        nullable=False,
    )
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    step: Mapped["WorkflowStep"] = relationship("WorkflowStep", back_populates="actions")
    transitions: Mapped[list["StepTransition"]] = relationship(
        "StepTransition",
        back_populates="action",
        order_by="StepTransition.position",
    )

    def __repr__(self) -> str:
        return f"<StepAction(id={self.id!r}, name={self.name!r})>"
