"""Workflow template repository for CRUD operations.

Every write adds the row and flushes so the generated identity can be
referenced by the next write; repositories never commit.
"""

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from orgflow.storage.entities import (
    ActionType,
    AssigneeLogic,
    AssigneeType,
    ConditionOperator,
    ConditionSourceType,
    FormFieldType,
    StepAction,
    StepFormField,
    StepTransition,
    TransitionCondition,
    Workflow,
    WorkflowStep,
    WorkflowTriggerType,
)


class WorkflowRepository:
    """Repository for workflow templates and their step/transition graph."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def create_workflow(
        self,
        name: str,
        organization_id: str,
        description: str | None = None,
        department_id: str | None = None,
        trigger_type: WorkflowTriggerType = WorkflowTriggerType.MANUAL,
        is_active: bool = True,
    ) -> Workflow:
        """Create a workflow shell with no steps and no initial step.

        Args:
            name: Workflow name
            organization_id: Owning organization
            description: Optional description
            department_id: Optional owning department
            trigger_type: How instances are started
            is_active: Whether the workflow can be started

        Returns:
            Created Workflow
        """
        workflow = Workflow(
            id=str(uuid4()),
            name=name,
            description=description,
            organization_id=organization_id,
            department_id=department_id,
            trigger_type=trigger_type,
            is_active=is_active,
        )
        self.session.add(workflow)
        await self.session.flush()
        return workflow

    async def create_step(
        self,
        workflow_id: str,
        name: str,
        order: int,
        description: str | None = None,
        assignee_logic: dict[str, Any] | None = None,
        form_fields: list[dict[str, Any]] | None = None,
        position: int = 0,
    ) -> WorkflowStep:
        """Create a step together with its assignee rule and form fields.

        Args:
            workflow_id: Owning workflow
            name: Step name (unique within the workflow)
            order: Display / sequencing order
            description: Optional description
            assignee_logic: ``{assignee_type, specific_role_id, specific_member_id}``
            form_fields: Field dicts in declared order; ``options`` and
                ``validation_rules`` are stored as given (None stays NULL)
            position: Index of the step in its definition

        Returns:
            Created WorkflowStep
        """
        step = WorkflowStep(
            id=str(uuid4()),
            workflow_id=workflow_id,
            name=name,
            description=description,
            order=order,
            position=position,
        )
        self.session.add(step)

        if assignee_logic:
            self.session.add(
                AssigneeLogic(
                    id=str(uuid4()),
                    step_id=step.id,
                    assignee_type=AssigneeType(assignee_logic["assignee_type"]),
                    specific_role_id=assignee_logic.get("specific_role_id"),
                    specific_member_id=assignee_logic.get("specific_member_id"),
                )
            )

        for field in form_fields or []:
            self.session.add(
                StepFormField(
                    id=str(uuid4()),
                    step_id=step.id,
                    field_name=field["field_name"],
                    label=field["label"],
                    field_type=FormFieldType(field["field_type"]),
                    is_required=field.get("is_required", False),
                    placeholder=field.get("placeholder"),
                    default_value=field.get("default_value"),
                    options=field.get("options"),
                    validation_rules=field.get("validation_rules"),
                    order=field.get("order", 0),
                )
            )

        await self.session.flush()
        return step

    async def create_action(
        self,
        step_id: str,
        name: str,
        label: str,
        action_type: ActionType = ActionType.PRIMARY,
        order: int = 0,
    ) -> StepAction:
        """Create an action attached to a step."""
        action = StepAction(
            id=str(uuid4()),
            step_id=step_id,
            name=name,
            label=label,
            action_type=action_type,
            order=order,
        )
        self.session.add(action)
        await self.session.flush()
        return action

    async def set_initial_step(self, workflow_id: str, step_id: str) -> None:
        """Point a workflow at the step its instances start from."""
        await self.session.execute(
            update(Workflow).where(Workflow.id == workflow_id).values(initial_step_id=step_id)
        )
        await self.session.flush()

    async def create_transition(
        self,
        workflow_id: str,
        from_step_id: str,
        to_step_id: str,
        action_id: str | None = None,
        description: str | None = None,
        priority: int = 0,
        is_automatic: bool = False,
        position: int = 0,
        conditions: list[dict[str, Any]] | None = None,
    ) -> StepTransition:
        """Create a transition and its conditions.

        Conditions are stored with their list index as ``position`` so the
        declared evaluation order survives a round trip.

        Returns:
            Created StepTransition
        """
        transition = StepTransition(
            id=str(uuid4()),
            workflow_id=workflow_id,
            from_step_id=from_step_id,
            to_step_id=to_step_id,
            action_id=action_id,
            description=description,
            priority=priority,
            is_automatic=is_automatic,
            position=position,
        )
        self.session.add(transition)

        for index, cond in enumerate(conditions or []):
            self.session.add(
                TransitionCondition(
                    id=str(uuid4()),
                    transition_id=transition.id,
                    position=index,
                    source_type=ConditionSourceType(cond["source_type"]),
                    source_field_name=cond.get("source_field_name") or None,
                    operator=ConditionOperator(cond["operator"]),
                    comparison_value=cond.get("comparison_value", ""),
                    value_type=FormFieldType(cond["value_type"]),
                )
            )

        await self.session.flush()
        return transition

    async def get_with_graph(self, workflow_id: str) -> Workflow | None:
        """Get a workflow with its entire step/transition graph loaded.

        Loads steps (with assignee rule, form fields, actions and the
        transitions each action triggers), every transition of the workflow
        with its conditions, and the initial step.  ``populate_existing``
        refreshes objects already present in the session.

        Args:
            workflow_id: Workflow UUID

        Returns:
            Workflow or None
        """
        if not _is_uuid(workflow_id):
            return None

        query = (
            select(Workflow)
            .where(Workflow.id == workflow_id)
            .options(
                selectinload(Workflow.steps).selectinload(WorkflowStep.assignee_logic),
                selectinload(Workflow.steps).selectinload(WorkflowStep.form_fields),
                selectinload(Workflow.steps)
                .selectinload(WorkflowStep.actions)
                .selectinload(StepAction.transitions)
                .selectinload(StepTransition.conditions),
                selectinload(Workflow.steps)
                .selectinload(WorkflowStep.outgoing_transitions)
                .selectinload(StepTransition.conditions),
                selectinload(Workflow.transitions).selectinload(StepTransition.conditions),
                selectinload(Workflow.initial_step),
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_by_organization(
        self,
        organization_id: str,
        department_id: str | None = None,
        active_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Workflow]:
        """List an organization's workflows, newest first.

        Args:
            organization_id: Owning organization
            department_id: Optional department filter
            active_only: Exclude deactivated workflows
            limit: Max results
            offset: Skip results

        Returns:
            List of workflows (graph not loaded)
        """
        query = _filter_workflows(
            select(Workflow), organization_id, department_id, active_only
        )
        query = query.order_by(Workflow.created_at.desc()).limit(limit).offset(offset)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count(
        self,
        organization_id: str,
        department_id: str | None = None,
        active_only: bool = False,
    ) -> int:
        """Count the workflows ``list_by_organization`` would page through."""
        query = _filter_workflows(
            select(func.count(Workflow.id)), organization_id, department_id, active_only
        )
        result = await self.session.execute(query)
        return result.scalar() or 0


def _filter_workflows(
    query: Select[Any],
    organization_id: str,
    department_id: str | None,
    active_only: bool,
) -> Select[Any]:
    query = query.where(Workflow.organization_id == organization_id)
    if department_id:
        query = query.where(Workflow.department_id == department_id)
    if active_only:
        query = query.where(Workflow.is_active.is_(True))
    return query


def _is_uuid(value: str) -> bool:
    """Ids are UUID columns; anything else can never match a row."""
    try:
        UUID(value)
    except ValueError:
        return False
    return True
