"""Unit tests for the workflow template builder.

Runs the builder against an in-memory repository: no database, but real
ORM objects, so the returned graph can be inspected like a hydrated one.
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from orgflow.exceptions import (
    InitialStepNotFoundError,
    UnresolvedTransitionError,
    ValidationError,
    WorkflowBuildError,
)
from orgflow.workflows.builder import (
    WorkflowTemplateBuilder,
    create_structured_workflow,
)
from orgflow.workflows.validator import (
    ACTION_NOT_ON_SOURCE_STEP,
    TARGET_STEP_NOT_FOUND,
    validate_definition,
)
from tests.factories import (
    ActionDefinitionFactory,
    ConditionDefinitionFactory,
    StepDefinitionFactory,
    TransitionDefinitionFactory,
    WorkflowDefinitionFactory,
)
from tests.fakes import FakeWorkflowRepository


async def _build(data, *, strict=False, repo=None):
    repo = repo or FakeWorkflowRepository()
    builder = WorkflowTemplateBuilder(MagicMock(), strict=strict, repository=repo)
    result = await builder.build(validate_definition(data))
    return result, repo


def _step(workflow, name):
    step = workflow.get_step(name)
    assert step is not None, f"step {name!r} missing"
    return step


class TestDocApprovalScenario:
    """The canonical upload -> review definition."""

    @pytest.mark.asyncio
    async def test_builds_two_steps_and_one_linked_transition(self, doc_approval):
        result, _ = await _build(doc_approval)
        workflow = result.workflow

        assert workflow.name == "Doc Approval"
        assert [s.name for s in workflow.steps] == ["upload", "review"]
        assert len(workflow.transitions) == 1

        upload = _step(workflow, "upload")
        review = _step(workflow, "review")
        transition = workflow.transitions[0]
        assert transition.from_step_id == upload.id
        assert transition.to_step_id == review.id
        assert transition.action_id == upload.actions[0].id
        assert upload.actions[0].name == "submit"
        assert workflow.initial_step_id == upload.id
        assert result.skipped_transitions == []
        assert result.transitions_created == 1

    @pytest.mark.asyncio
    async def test_steps_without_order_keep_definition_position(self):
        data = WorkflowDefinitionFactory(
            initialStepName="c",
            steps=[StepDefinitionFactory(stepName=name, order=0) for name in ("c", "a", "b")],
        )

        result, _ = await _build(data)

        assert [(s.name, s.order, s.position) for s in result.workflow.steps] == [
            ("c", 0, 0),
            ("a", 0, 1),
            ("b", 0, 2),
        ]

    @pytest.mark.asyncio
    async def test_shell_is_active_and_keeps_metadata(self, doc_approval):
        doc_approval["departmentId"] = "dept_legal"
        doc_approval["triggerType"] = "API_CALL"

        result, _ = await _build(doc_approval)

        workflow = result.workflow
        assert workflow.is_active is True
        assert workflow.organization_id == "org_test"
        assert workflow.department_id == "dept_legal"
        assert workflow.trigger_type.value == "API_CALL"


class TestRoundTripIntegrity:
    """N steps and M resolvable transitions come back exactly."""

    @pytest.mark.asyncio
    async def test_counts_targets_and_actions_match(self):
        data = WorkflowDefinitionFactory(
            initialStepName="a",
            steps=[
                StepDefinitionFactory(
                    stepName="a",
                    actions=[
                        ActionDefinitionFactory(name="go"),
                        ActionDefinitionFactory(name="skip"),
                    ],
                    transitions=[
                        TransitionDefinitionFactory(toStepName="b", actionName="go"),
                        TransitionDefinitionFactory(toStepName="c", actionName="skip"),
                    ],
                ),
                StepDefinitionFactory(
                    stepName="b",
                    transitions=[TransitionDefinitionFactory(toStepName="c")],
                ),
                StepDefinitionFactory(stepName="c"),
            ],
        )

        result, _ = await _build(data)
        workflow = result.workflow
        ids = {s.name: s.id for s in workflow.steps}
        actions = {a.name: a.id for a in _step(workflow, "a").actions}

        assert len(workflow.steps) == 3
        assert workflow.initial_step_id == ids["a"]
        edges = [
            (t.from_step_id, t.to_step_id, t.action_id) for t in workflow.transitions
        ]
        assert edges == [
            (ids["a"], ids["b"], actions["go"]),
            (ids["a"], ids["c"], actions["skip"]),
            (ids["b"], ids["c"], None),
        ]

    @pytest.mark.asyncio
    async def test_transitions_keep_document_order_positions(self):
        data = WorkflowDefinitionFactory(
            initialStepName="a",
            steps=[
                StepDefinitionFactory(
                    stepName="a",
                    transitions=[
                        TransitionDefinitionFactory(toStepName="b"),
                        TransitionDefinitionFactory(toStepName="a"),
                    ],
                ),
                StepDefinitionFactory(
                    stepName="b",
                    transitions=[TransitionDefinitionFactory(toStepName="a")],
                ),
            ],
        )

        result, _ = await _build(data)

        assert [t.position for t in result.workflow.transitions] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_assignee_and_fields_are_attached(self):
        data = WorkflowDefinitionFactory(
            steps=[
                StepDefinitionFactory(
                    stepName="start",
                    assigneeLogic={"assigneeType": "SPECIFIC_ROLE", "specificRoleId": "MANAGER"},
                    formFields=[
                        {
                            "fieldName": "decision",
                            "label": "Decision",
                            "fieldType": "RADIO_GROUP",
                            "isRequired": True,
                            "order": 1,
                            "options": [{"value": "yes", "label": "Yes"}],
                        },
                        {"fieldName": "notes", "label": "Notes", "fieldType": "TEXTAREA"},
                    ],
                )
            ]
        )

        result, _ = await _build(data)
        step = _step(result.workflow, "start")

        assert step.assignee_logic.assignee_type.value == "SPECIFIC_ROLE"
        assert step.assignee_logic.specific_role_id == "MANAGER"
        assert [f.field_name for f in step.form_fields] == ["decision", "notes"]
        assert step.form_fields[0].options == [{"value": "yes", "label": "Yes"}]
        assert step.form_fields[1].options is None


class TestTwoPassOrdering:
    """All steps and actions exist before any transition is linked."""

    @pytest.mark.asyncio
    async def test_forward_reference_resolves(self):
        data = WorkflowDefinitionFactory(
            initialStepName="first",
            steps=[
                StepDefinitionFactory(
                    stepName="first",
                    actions=[ActionDefinitionFactory(name="next")],
                    transitions=[
                        TransitionDefinitionFactory(toStepName="later", actionName="next")
                    ],
                ),
                StepDefinitionFactory(stepName="middle"),
                StepDefinitionFactory(stepName="later"),
            ],
        )

        result, _ = await _build(data)
        workflow = result.workflow

        assert len(workflow.transitions) == 1
        assert workflow.transitions[0].to_step_id == _step(workflow, "later").id
        assert result.skipped_transitions == []

    @pytest.mark.asyncio
    async def test_no_transition_before_last_step(self, doc_approval):
        _, repo = await _build(doc_approval)

        kinds = repo.kinds()
        assert kinds[0] == "workflow"
        last_step = max(i for i, k in enumerate(kinds) if k in ("step", "action"))
        first_transition = kinds.index("transition")
        assert last_step < kinds.index("initial_step") < first_transition
        assert kinds[-1] == "fetch"


class TestUnresolvedReferences:
    """Dangling targets and foreign actions are skipped, never mis-linked."""

    @pytest.mark.asyncio
    async def test_dangling_target_is_skipped_and_reported(self):
        data = WorkflowDefinitionFactory(
            initialStepName="a",
            steps=[
                StepDefinitionFactory(
                    stepName="a",
                    transitions=[
                        TransitionDefinitionFactory(toStepName="nowhere"),
                        TransitionDefinitionFactory(toStepName="b"),
                    ],
                ),
                StepDefinitionFactory(stepName="b"),
            ],
        )

        result, _ = await _build(data)

        assert len(result.workflow.transitions) == 1
        assert result.workflow.transitions[0].to_step_id == _step(result.workflow, "b").id
        assert result.has_warnings
        [skipped] = result.skipped_transitions
        assert skipped.from_step == "a"
        assert skipped.to_step == "nowhere"
        assert skipped.reason == TARGET_STEP_NOT_FOUND

    @pytest.mark.asyncio
    async def test_action_of_another_step_does_not_resolve(self):
        data = WorkflowDefinitionFactory(
            initialStepName="a",
            steps=[
                StepDefinitionFactory(
                    stepName="a",
                    transitions=[TransitionDefinitionFactory(toStepName="b", actionName="approve")],
                ),
                StepDefinitionFactory(
                    stepName="b",
                    actions=[ActionDefinitionFactory(name="approve")],
                ),
            ],
        )

        result, _ = await _build(data)

        assert result.workflow.transitions == []
        [skipped] = result.skipped_transitions
        assert skipped.action_name == "approve"
        assert skipped.reason == ACTION_NOT_ON_SOURCE_STEP

    @pytest.mark.asyncio
    async def test_skip_is_logged_as_warning(self, caplog):
        data = WorkflowDefinitionFactory(
            steps=[
                StepDefinitionFactory(
                    stepName="start",
                    transitions=[TransitionDefinitionFactory(toStepName="ghost")],
                )
            ]
        )

        with caplog.at_level("WARNING", logger="orgflow.workflows.builder"):
            await _build(data)

        assert any("ghost" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_strict_mode_fails_the_build(self):
        data = WorkflowDefinitionFactory(
            steps=[
                StepDefinitionFactory(
                    stepName="start",
                    transitions=[TransitionDefinitionFactory(toStepName="ghost")],
                )
            ]
        )

        with pytest.raises(WorkflowBuildError) as exc_info:
            await _build(data, strict=True)

        assert isinstance(exc_info.value.__cause__, UnresolvedTransitionError)
        assert exc_info.value.__cause__.to_step == "ghost"

    @pytest.mark.asyncio
    async def test_strict_failure_is_a_warning_not_an_error(self, caplog):
        data = WorkflowDefinitionFactory(
            steps=[
                StepDefinitionFactory(
                    stepName="start",
                    transitions=[TransitionDefinitionFactory(toStepName="ghost")],
                )
            ]
        )

        with caplog.at_level("WARNING", logger="orgflow.workflows.builder"):
            with pytest.raises(WorkflowBuildError):
                await _build(data, strict=True)

        assert [r.levelname for r in caplog.records] == ["WARNING"]
        assert caplog.records[0].exc_info is None


class TestInitialStep:
    """The initial step must resolve; there is no fallback to the first step."""

    @pytest.mark.asyncio
    async def test_validation_rejects_unknown_initial_step(self, doc_approval):
        doc_approval["initialStepName"] = "missing"

        with pytest.raises(ValidationError) as exc_info:
            await _build(doc_approval)

        assert any("initialStepName" in e for e in exc_info.value.errors)

    @pytest.mark.asyncio
    async def test_builder_enforces_initial_step_after_materialization(self, doc_approval):
        defn = validate_definition(doc_approval).model_copy(
            update={"initial_step_name": "missing"}
        )
        repo = FakeWorkflowRepository()
        builder = WorkflowTemplateBuilder(MagicMock(), repository=repo)

        with pytest.raises(WorkflowBuildError) as exc_info:
            await builder.build(defn)

        assert isinstance(exc_info.value.__cause__, InitialStepNotFoundError)
        assert "transition" not in repo.kinds()


class TestConditions:
    """Conditions are persisted in declared order with every attribute."""

    @pytest.mark.asyncio
    async def test_condition_order_is_preserved(self):
        conditions = [
            ConditionDefinitionFactory(sourceFieldName="c1", operator="EQUALS"),
            ConditionDefinitionFactory(sourceFieldName="c2", operator="LESS_THAN"),
            ConditionDefinitionFactory(
                sourceType="CONTEXT_VALUE",
                sourceFieldName="c3",
                operator="IS_TRUE",
                comparisonValue=True,
                valueType="BOOLEAN",
            ),
        ]
        data = WorkflowDefinitionFactory(
            initialStepName="a",
            steps=[
                StepDefinitionFactory(
                    stepName="a",
                    transitions=[
                        TransitionDefinitionFactory(toStepName="b", conditions=conditions)
                    ],
                ),
                StepDefinitionFactory(stepName="b"),
            ],
        )

        result, _ = await _build(data)
        persisted = result.workflow.transitions[0].conditions

        assert [c.source_field_name for c in persisted] == ["c1", "c2", "c3"]
        assert [c.position for c in persisted] == [0, 1, 2]
        assert [c.operator.value for c in persisted] == ["EQUALS", "LESS_THAN", "IS_TRUE"]
        assert persisted[2].comparison_value == "true"
        assert persisted[2].value_type.value == "BOOLEAN"


class TestFailures:
    """Any failure surfaces as one error naming the workflow."""

    @pytest.mark.asyncio
    async def test_persistence_error_is_wrapped(self, doc_approval):
        repo = FakeWorkflowRepository(fail_on="action")

        with pytest.raises(WorkflowBuildError) as exc_info:
            await _build(doc_approval, repo=repo)

        assert "Doc Approval" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_missing_refetch_is_an_error(self, doc_approval):
        repo = FakeWorkflowRepository(lose_workflow=True)

        with pytest.raises(WorkflowBuildError, match="disappeared"):
            await _build(doc_approval, repo=repo)


class TestCreateStructuredWorkflow:
    """Transaction handling around the builder."""

    @pytest.mark.asyncio
    async def test_invalid_definition_never_opens_a_session(self):
        with patch("orgflow.storage.get_transactional_session") as mock_tx:
            with pytest.raises(ValidationError):
                await create_structured_workflow({"workflowName": "x"})

        mock_tx.assert_not_called()

    @pytest.mark.asyncio
    async def test_owns_a_transactional_session(self, doc_approval):
        session = AsyncMock()
        opened = []

        @asynccontextmanager
        async def _tx():
            opened.append(session)
            yield session

        repo = FakeWorkflowRepository()
        with (
            patch("orgflow.storage.get_transactional_session", _tx),
            patch("orgflow.workflows.builder.WorkflowRepository", return_value=repo) as repo_cls,
        ):
            result = await create_structured_workflow(doc_approval)

        assert opened == [session]
        repo_cls.assert_called_once_with(session)
        assert result.workflow.name == "Doc Approval"

    @pytest.mark.asyncio
    async def test_supplied_session_uses_savepoint(self, doc_approval):
        session = MagicMock()
        repo = FakeWorkflowRepository()

        with patch("orgflow.workflows.builder.WorkflowRepository", return_value=repo):
            await create_structured_workflow(doc_approval, session=session)

        session.begin_nested.assert_called_once()
        session.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_strict_defaults_to_setting(self, doc_approval, monkeypatch):
        from orgflow.settings import get_settings

        monkeypatch.setenv("WORKFLOW_STRICT_REFERENCES", "true")
        get_settings.cache_clear()
        doc_approval["steps"][1]["transitions"] = [{"toStepName": "ghost"}]

        with patch(
            "orgflow.workflows.builder.WorkflowRepository",
            return_value=FakeWorkflowRepository(),
        ):
            with pytest.raises(WorkflowBuildError):
                await create_structured_workflow(doc_approval, session=MagicMock())

    @pytest.mark.asyncio
    async def test_builds_are_not_deduplicated(self, doc_approval):
        repo = FakeWorkflowRepository()

        with patch("orgflow.workflows.builder.WorkflowRepository", return_value=repo):
            first = await create_structured_workflow(doc_approval, session=MagicMock())
            second = await create_structured_workflow(doc_approval, session=MagicMock())

        assert first.workflow_id != second.workflow_id
        assert [s.name for s in first.workflow.steps] == [s.name for s in second.workflow.steps]
        assert len(first.workflow.transitions) == len(second.workflow.transitions) == 1
