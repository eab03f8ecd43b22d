"""Workflow template builder.

Turns a validated ``WorkflowTemplateDefinition`` into a persisted
workflow graph.  The build runs in two passes so that transitions may
reference steps and actions declared later in the document:

1. Create the workflow shell, then every step with its assignee rule,
   form fields and actions, recording a name -> identity map per step
   (and, inside each, a name -> action map).
2. Resolve the initial step, then link every transition by looking up
   its target step and its triggering action in those maps.

Action names resolve only against the transition's own source step.
Transitions whose references do not resolve are skipped and reported in
``WorkflowBuildResult.skipped_transitions`` (or fail the build in strict
mode).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from orgflow.dal.workflows import WorkflowRepository
from orgflow.exceptions import (
    DALError,
    InitialStepNotFoundError,
    UnresolvedTransitionError,
    ValidationError,
    WorkflowBuildError,
    WorkflowReferenceError,
)
from orgflow.settings import get_settings
from orgflow.workflows.validator import (
    ACTION_NOT_ON_SOURCE_STEP,
    TARGET_STEP_NOT_FOUND,
    validate_definition,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.ext.asyncio import AsyncSession

    from orgflow.storage.entities import StepAction, StepTransition, Workflow, WorkflowStep
    from orgflow.workflows.definition import StepDefinition, WorkflowTemplateDefinition

logger = logging.getLogger(__name__)


@dataclass
class MaterializedStep:
    """A persisted step plus the actions it owns, keyed by action name."""

    step: WorkflowStep
    actions: dict[str, StepAction] = field(default_factory=dict)


@dataclass(frozen=True)
class SkippedTransition:
    """A declared transition that was not created."""

    from_step: str
    to_step: str
    action_name: str | None
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "from_step": self.from_step,
            "to_step": self.to_step,
            "action_name": self.action_name,
            "reason": self.reason,
        }


@dataclass
class WorkflowBuildResult:
    """Outcome of a successful build: the hydrated graph plus warnings."""

    workflow: Workflow
    skipped_transitions: list[SkippedTransition] = field(default_factory=list)
    transitions_created: int = 0

    @property
    def workflow_id(self) -> str:
        return self.workflow.id

    @property
    def has_warnings(self) -> bool:
        return bool(self.skipped_transitions)


class WorkflowTemplateBuilder:
    """Builds one workflow graph inside the given session.

    The builder only flushes; committing (or rolling back) is the caller's
    responsibility, see ``create_structured_workflow``.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        strict: bool = False,
        repository: WorkflowRepository | None = None,
    ) -> None:
        self.session = session
        self.strict = strict
        self.repo = repository or WorkflowRepository(session)

    async def build(self, definition: WorkflowTemplateDefinition) -> WorkflowBuildResult:
        """Persist the whole graph described by ``definition``.

        Raises:
            WorkflowBuildError: On any failure, naming the workflow and
                chaining the underlying cause.
        """
        name = definition.workflow_name
        try:
            workflow = await self._create_shell(definition)
            steps = await self._materialize_steps(workflow, definition.steps)
            await self._resolve_initial_step(workflow, steps, definition.initial_step_name)
            created, skipped = await self._link_transitions(workflow, steps, definition.steps)

            hydrated = await self.repo.get_with_graph(workflow.id)
            if hydrated is None:
                raise DALError(f"Workflow {workflow.id} disappeared before it could be loaded")
        except WorkflowBuildError:
            raise
        except WorkflowReferenceError as e:
            logger.warning("Workflow '%s' not built: %s", name, e)
            raise WorkflowBuildError(name, str(e)) from e
        except Exception as e:
            logger.error("Error creating structured workflow '%s'", name, exc_info=True)
            raise WorkflowBuildError(name, str(e)) from e

        logger.info(
            "Created workflow '%s' (%s): %d steps, %d transitions, %d skipped",
            name,
            hydrated.id,
            len(steps),
            created,
            len(skipped),
        )
        return WorkflowBuildResult(
            workflow=hydrated,
            skipped_transitions=skipped,
            transitions_created=created,
        )

    async def _create_shell(self, definition: WorkflowTemplateDefinition) -> Workflow:
        workflow = await self.repo.create_workflow(
            name=definition.workflow_name,
            description=definition.description,
            organization_id=definition.organization_id,
            department_id=definition.department_id,
            trigger_type=definition.trigger_type,
            is_active=True,
        )
        logger.info("Workflow shell created: %s - %s", workflow.id, workflow.name)
        return workflow

    async def _materialize_steps(
        self,
        workflow: Workflow,
        step_defs: list[StepDefinition],
    ) -> dict[str, MaterializedStep]:
        """Create every step in input order; no transitions exist yet."""
        materialized: dict[str, MaterializedStep] = {}

        for position, step_def in enumerate(step_defs):
            assignee = (
                step_def.assignee_logic.model_dump() if step_def.assignee_logic else None
            )
            form_fields = [
                {
                    **ff.model_dump(exclude={"options"}),
                    "options": (
                        [opt.model_dump() for opt in ff.options] if ff.options else None
                    ),
                    "validation_rules": ff.validation_rules or None,
                }
                for ff in step_def.form_fields
            ]
            step = await self.repo.create_step(
                workflow_id=workflow.id,
                name=step_def.step_name,
                description=step_def.description,
                order=step_def.order,
                assignee_logic=assignee,
                form_fields=form_fields,
                position=position,
            )

            entry = MaterializedStep(step=step)
            entry.actions = await self._materialize_actions(step, step_def)
            materialized[step_def.step_name] = entry
            logger.debug("Created step %s - %s", step.id, step.name)

        return materialized

    async def _materialize_actions(
        self,
        step: WorkflowStep,
        step_def: StepDefinition,
    ) -> dict[str, StepAction]:
        actions: dict[str, StepAction] = {}
        for action_def in step_def.actions:
            actions[action_def.name] = await self.repo.create_action(
                step_id=step.id,
                name=action_def.name,
                label=action_def.label,
                action_type=action_def.action_type,
                order=action_def.order,
            )
        return actions

    async def _resolve_initial_step(
        self,
        workflow: Workflow,
        steps: Mapping[str, MaterializedStep],
        initial_step_name: str,
    ) -> WorkflowStep:
        entry = steps.get(initial_step_name)
        if entry is None:
            raise InitialStepNotFoundError(initial_step_name)
        await self.repo.set_initial_step(workflow.id, entry.step.id)
        logger.debug("Initial step of workflow %s set to %s", workflow.id, entry.step.id)
        return entry.step

    async def _link_transitions(
        self,
        workflow: Workflow,
        steps: Mapping[str, MaterializedStep],
        step_defs: list[StepDefinition],
    ) -> tuple[int, list[SkippedTransition]]:
        """Create transitions in document order, skipping unresolvable ones."""
        created: list[StepTransition] = []
        skipped: list[SkippedTransition] = []

        for step_def in step_defs:
            source = steps[step_def.step_name]

            for trans_def in step_def.transitions:
                target = steps.get(trans_def.to_step_name)
                action: StepAction | None = None
                reason: str | None = None

                if target is None:
                    reason = TARGET_STEP_NOT_FOUND
                elif trans_def.action_name:
                    action = source.actions.get(trans_def.action_name)
                    if action is None:
                        reason = ACTION_NOT_ON_SOURCE_STEP

                if reason is not None:
                    if self.strict:
                        raise UnresolvedTransitionError(
                            step_def.step_name,
                            trans_def.to_step_name,
                            action_name=trans_def.action_name,
                            reason=reason,
                        )
                    logger.warning(
                        "Skipping transition '%s' -> '%s' (action %s) in workflow %s: %s",
                        step_def.step_name,
                        trans_def.to_step_name,
                        trans_def.action_name or "-",
                        workflow.id,
                        reason,
                    )
                    skipped.append(
                        SkippedTransition(
                            from_step=step_def.step_name,
                            to_step=trans_def.to_step_name,
                            action_name=trans_def.action_name,
                            reason=reason,
                        )
                    )
                    continue

                transition = await self.repo.create_transition(
                    workflow_id=workflow.id,
                    from_step_id=source.step.id,
                    to_step_id=target.step.id,
                    action_id=action.id if action else None,
                    description=trans_def.description,
                    priority=trans_def.priority,
                    is_automatic=trans_def.is_automatic,
                    position=len(created),
                    conditions=[cond.model_dump() for cond in trans_def.conditions],
                )
                created.append(transition)

        return len(created), skipped


async def create_structured_workflow(
    definition: Mapping[str, Any] | WorkflowTemplateDefinition,
    *,
    session: AsyncSession | None = None,
    strict: bool | None = None,
) -> WorkflowBuildResult:
    """Validate a definition and build its workflow graph atomically.

    Validation happens before any session is opened.  Without a session
    the build gets its own transaction, committed only on success.  With a
    session the build runs inside a SAVEPOINT and the caller commits.

    Every call creates a new workflow; identical definitions are not
    deduplicated.

    Args:
        definition: Raw or parsed workflow template definition.
        session: Optional session to build in.
        strict: Fail on unresolvable transitions instead of skipping them
            (defaults to ``settings.workflow_strict_references``).

    Returns:
        The hydrated workflow graph and any skipped transitions.

    Raises:
        ValidationError: The definition is structurally invalid.
        WorkflowBuildError: Persisting the graph failed; nothing was kept.
    """
    try:
        defn = validate_definition(definition)
    except ValidationError:
        logger.warning("Refusing to build an invalid workflow definition")
        raise

    if strict is None:
        strict = get_settings().workflow_strict_references

    logger.info(
        "Building workflow '%s' for organization %s (%d steps, %d transitions)",
        defn.workflow_name,
        defn.organization_id,
        len(defn.steps),
        defn.transition_count,
    )

    if session is not None:
        async with session.begin_nested():
            return await WorkflowTemplateBuilder(session, strict=strict).build(defn)

    from orgflow.storage import get_transactional_session

    async with get_transactional_session() as own_session:
        return await WorkflowTemplateBuilder(own_session, strict=strict).build(defn)
