"""Workflow template graph: workflow, steps, actions, transitions.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

FORM_FIELD_TYPES = (
    "TEXT",
    "TEXTAREA",
    "NUMBER",
    "EMAIL",
    "DATE",
    "BOOLEAN",
    "FILE_UPLOAD",
    "DROPDOWN",
    "RADIO_GROUP",
    "CHECKBOX_GROUP",
)

trigger_type = postgresql.ENUM(
    "MANUAL", "EVENT_BASED", "SCHEDULED", "API_CALL", name="workflowtriggertype", create_type=False
)
assignee_type = postgresql.ENUM(
    "SUBMITTER",
    "SPECIFIC_ROLE",
    "SPECIFIC_MEMBER",
    "PREVIOUS_STEP_ASSIGNEE",
    "UNASSIGNED",
    name="assigneetype",
    create_type=False,
)
form_field_type = postgresql.ENUM(*FORM_FIELD_TYPES, name="formfieldtype", create_type=False)
action_type = postgresql.ENUM("PRIMARY", "SECONDARY", "DANGER", name="actiontype", create_type=False)
condition_source_type = postgresql.ENUM(
    "FORM_FIELD_VALUE", "CONTEXT_VALUE", name="conditionsourcetype", create_type=False
)
condition_operator = postgresql.ENUM(
    "EQUALS",
    "NOT_EQUALS",
    "GREATER_THAN",
    "LESS_THAN",
    "GREATER_THAN_OR_EQUAL",
    "LESS_THAN_OR_EQUAL",
    "CONTAINS",
    "IS_TRUE",
    "IS_FALSE",
    "IS_EMPTY",
    "IS_NOT_EMPTY",
    name="conditionoperator",
    create_type=False,
)

ENUMS = (
    trigger_type,
    assignee_type,
    form_field_type,
    action_type,
    condition_source_type,
    condition_operator,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create the workflow template tables."""
    bind = op.get_bind()
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    # Workflow table (initial_step_id FK added once workflow_step exists)
    op.create_table(
        "workflow",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("organization_id", sa.String(100), nullable=False),
        sa.Column("department_id", sa.String(100), nullable=True),
        sa.Column("trigger_type", trigger_type, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("initial_step_id", postgresql.UUID(as_uuid=False), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_workflow")),
    )
    op.create_index(op.f("ix_workflow_name"), "workflow", ["name"])
    op.create_index(op.f("ix_workflow_organization_id"), "workflow", ["organization_id"])
    op.create_index(op.f("ix_workflow_department_id"), "workflow", ["department_id"])

    # Workflow step table
    op.create_table(
        "workflow_step",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("workflow_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["workflow_id"],
            ["workflow.id"],
            name=op.f("fk_workflow_step_workflow_id_workflow"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_workflow_step")),
        sa.UniqueConstraint("workflow_id", "name", name=op.f("uq_workflow_step_workflow_id")),
    )
    op.create_index(op.f("ix_workflow_step_workflow_id"), "workflow_step", ["workflow_id"])

    op.create_foreign_key(
        "fk_workflow_initial_step_id_workflow_step",
        "workflow",
        "workflow_step",
        ["initial_step_id"],
        ["id"],
        ondelete="SET NULL",
    )

    # Assignee logic (one per step)
    op.create_table(
        "assignee_logic",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("step_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("assignee_type", assignee_type, nullable=False),
        sa.Column("specific_role_id", sa.String(100), nullable=True),
        sa.Column("specific_member_id", sa.String(100), nullable=True),
        sa.ForeignKeyConstraint(
            ["step_id"],
            ["workflow_step.id"],
            name=op.f("fk_assignee_logic_step_id_workflow_step"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_assignee_logic")),
        sa.UniqueConstraint("step_id", name=op.f("uq_assignee_logic_step_id")),
    )

    # Step form fields
    op.create_table(
        "step_form_field",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("step_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("field_name", sa.String(100), nullable=False),
        sa.Column("label", sa.String(200), nullable=False),
        sa.Column("field_type", form_field_type, nullable=False),
        sa.Column("is_required", sa.Boolean(), nullable=False),
        sa.Column("placeholder", sa.String(200), nullable=True),
        sa.Column("default_value", sa.Text(), nullable=True),
        sa.Column("options", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("validation_rules", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["step_id"],
            ["workflow_step.id"],
            name=op.f("fk_step_form_field_step_id_workflow_step"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_step_form_field")),
        sa.UniqueConstraint("step_id", "field_name", name=op.f("uq_step_form_field_step_id")),
    )
    op.create_index(op.f("ix_step_form_field_step_id"), "step_form_field", ["step_id"])

    # Step actions
    op.create_table(
        "step_action",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("step_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("label", sa.String(200), nullable=False),
        sa.Column("action_type", action_type, nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["step_id"],
            ["workflow_step.id"],
            name=op.f("fk_step_action_step_id_workflow_step"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_step_action")),
        sa.UniqueConstraint("step_id", "name", name=op.f("uq_step_action_step_id")),
    )
    op.create_index(op.f("ix_step_action_step_id"), "step_action", ["step_id"])

    # Step transitions
    op.create_table(
        "step_transition",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("workflow_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("from_step_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("to_step_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("action_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("is_automatic", sa.Boolean(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["workflow_id"],
            ["workflow.id"],
            name=op.f("fk_step_transition_workflow_id_workflow"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["from_step_id"],
            ["workflow_step.id"],
            name=op.f("fk_step_transition_from_step_id_workflow_step"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["to_step_id"],
            ["workflow_step.id"],
            name=op.f("fk_step_transition_to_step_id_workflow_step"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["action_id"],
            ["step_action.id"],
            name=op.f("fk_step_transition_action_id_step_action"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_step_transition")),
    )
    op.create_index(op.f("ix_step_transition_workflow_id"), "step_transition", ["workflow_id"])
    op.create_index(op.f("ix_step_transition_from_step_id"), "step_transition", ["from_step_id"])
    op.create_index(op.f("ix_step_transition_to_step_id"), "step_transition", ["to_step_id"])
    op.create_index(op.f("ix_step_transition_action_id"), "step_transition", ["action_id"])

    # Transition conditions
    op.create_table(
        "transition_condition",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("transition_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("source_type", condition_source_type, nullable=False),
        sa.Column("source_field_name", sa.String(100), nullable=True),
        sa.Column("operator", condition_operator, nullable=False),
        sa.Column("comparison_value", sa.Text(), nullable=False),
        sa.Column("value_type", form_field_type, nullable=False),
        sa.ForeignKeyConstraint(
            ["transition_id"],
            ["step_transition.id"],
            name=op.f("fk_transition_condition_transition_id_step_transition"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_transition_condition")),
    )
    op.create_index(
        op.f("ix_transition_condition_transition_id"), "transition_condition", ["transition_id"]
    )


def downgrade() -> None:
    """Drop the workflow template tables."""
    op.drop_table("transition_condition")
    op.drop_table("step_transition")
    op.drop_table("step_action")
    op.drop_table("step_form_field")
    op.drop_table("assignee_logic")
    op.drop_constraint("fk_workflow_initial_step_id_workflow_step", "workflow", type_="foreignkey")
    op.drop_table("workflow_step")
    op.drop_table("workflow")

    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
