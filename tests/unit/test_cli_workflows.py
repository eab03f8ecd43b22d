"""Unit tests for the orgflow CLI."""

import json
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import yaml
from typer.testing import CliRunner

from orgflow.cli.main import app
from orgflow.exceptions import LLMError, WorkflowBuildError
from orgflow.storage.entities import Workflow, WorkflowTriggerType
from orgflow.workflows.builder import SkippedTransition, WorkflowBuildResult
from orgflow.workflows.definition import WorkflowTemplateDefinition
from tests.factories import doc_approval_definition

runner = CliRunner()


@pytest.fixture(autouse=True)
def _quiet_logging():
    with patch("orgflow.cli.main.configure_logging"):
        yield


@pytest.fixture
def definition_file(tmp_path):
    path = tmp_path / "doc_approval.yaml"
    path.write_text(yaml.safe_dump(doc_approval_definition()), encoding="utf-8")
    return path


def _result(**kwargs) -> WorkflowBuildResult:
    workflow = Workflow(id="wf-1", name="Doc Approval", organization_id="org_test")
    return WorkflowBuildResult(workflow=workflow, **kwargs)


class TestValidate:
    def test_valid_yaml(self, definition_file):
        result = runner.invoke(app, ["validate", str(definition_file)])

        assert result.exit_code == 0
        assert "is valid" in result.output
        assert "2 steps, 1 transitions" in result.output

    def test_json_file_with_warning(self, tmp_path):
        data = doc_approval_definition()
        data["steps"][1]["transitions"] = [{"toStepName": "ghost"}]
        path = tmp_path / "defn.json"
        path.write_text(json.dumps(data), encoding="utf-8")

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 0
        assert "will be skipped" in result.output

    def test_invalid_definition(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("workflowName: Broken\n", encoding="utf-8")

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1
        assert "Field required" in result.output

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- one\n- two\n", encoding="utf-8")

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["validate", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 1
        assert "Could not read" in result.output


class TestCreate:
    def test_builds_and_reports(self, definition_file):
        skipped = SkippedTransition("review", "ghost", None, "target step not found")
        mock_create = AsyncMock(
            return_value=_result(skipped_transitions=[skipped], transitions_created=1)
        )

        with patch("orgflow.workflows.builder.create_structured_workflow", mock_create):
            result = runner.invoke(app, ["create", str(definition_file), "--strict"])

        assert result.exit_code == 0
        assert "wf-1" in result.output
        assert "Skipped transitions" in result.output
        assert mock_create.call_args.kwargs == {"strict": True}
        assert mock_create.call_args.args[0]["workflowName"] == "Doc Approval"

    def test_strict_defaults_to_none(self, definition_file):
        mock_create = AsyncMock(return_value=_result())

        with patch("orgflow.workflows.builder.create_structured_workflow", mock_create):
            runner.invoke(app, ["create", str(definition_file)])

        assert mock_create.call_args.kwargs == {"strict": None}

    def test_build_failure_exits_nonzero(self, definition_file):
        mock_create = AsyncMock(side_effect=WorkflowBuildError("Doc Approval", "db down"))

        with patch("orgflow.workflows.builder.create_structured_workflow", mock_create):
            result = runner.invoke(app, ["create", str(definition_file)])

        assert result.exit_code == 1
        assert "db down" in result.output


class TestGenerate:
    def test_dry_run_prints_definition(self):
        defn = WorkflowTemplateDefinition.model_validate(doc_approval_definition())
        mock_generate = AsyncMock(return_value=defn)

        with patch("orgflow.workflows.generator.generate_workflow_definition", mock_generate):
            result = runner.invoke(app, ["generate", "doc approval", "--org", "org_1", "--dry-run"])

        assert result.exit_code == 0
        assert '"workflowName": "Doc Approval"' in result.output
        mock_generate.assert_awaited_once_with("doc approval", "org_1", None)

    def test_builds_by_default(self):
        mock_create = AsyncMock(return_value=_result())

        with patch("orgflow.workflows.generator.generate_and_create_workflow", mock_create):
            result = runner.invoke(app, ["generate", "doc approval", "-o", "org_1", "-d", "legal"])

        assert result.exit_code == 0
        mock_create.assert_awaited_once_with("doc approval", "org_1", "legal")

    def test_model_failure(self):
        mock_generate = AsyncMock(side_effect=LLMError("no JSON"))

        with patch("orgflow.workflows.generator.generate_workflow_definition", mock_generate):
            result = runner.invoke(app, ["generate", "x", "--org", "org_1", "--dry-run"])

        assert result.exit_code == 1
        assert "no JSON" in result.output


class TestPresets:
    def test_lists_presets(self):
        result = runner.invoke(app, ["presets"])

        assert result.exit_code == 0
        assert "document-approval" in result.output
        assert "purchase-request" in result.output

    def test_unknown_preset(self):
        result = runner.invoke(app, ["preset", "expense", "--org", "org_1"])

        assert result.exit_code == 1
        assert "Unknown preset" in result.output

    def test_builds_preset(self):
        mock_create = AsyncMock(return_value=_result())

        with patch("orgflow.workflows.presets.create_preset_workflow", mock_create):
            result = runner.invoke(app, ["preset", "purchase-request", "--org", "org_1"])

        assert result.exit_code == 0
        mock_create.assert_awaited_once_with("purchase-request", "org_1", department_id=None)


def _patched_session():
    session = MagicMock()

    @asynccontextmanager
    async def _get_session():
        yield session

    return _get_session


class TestBrowse:
    def test_show_missing(self):
        repo = MagicMock()
        repo.get_with_graph = AsyncMock(return_value=None)

        with (
            patch("orgflow.storage.get_session", _patched_session()),
            patch("orgflow.dal.WorkflowRepository", return_value=repo),
        ):
            result = runner.invoke(app, ["show", "wf-404"])

        assert result.exit_code == 0
        assert "not found" in result.output

    def test_list(self):
        workflow = Workflow(
            id="wf-1",
            name="Doc Approval",
            organization_id="org_1",
            is_active=True,
            trigger_type=WorkflowTriggerType.MANUAL,
            created_at=datetime(2024, 5, 1, 9, 30, tzinfo=UTC),
        )
        repo = MagicMock()
        repo.list_by_organization = AsyncMock(return_value=[workflow])
        repo.count = AsyncMock(return_value=1)

        with (
            patch("orgflow.storage.get_session", _patched_session()),
            patch("orgflow.dal.WorkflowRepository", return_value=repo),
        ):
            result = runner.invoke(app, ["list", "--org", "org_1"])

        assert result.exit_code == 0
        assert "Workflows (1/1)" in result.output
        repo.list_by_organization.assert_awaited_once_with("org_1", limit=50)

    def test_list_empty(self):
        repo = MagicMock()
        repo.list_by_organization = AsyncMock(return_value=[])
        repo.count = AsyncMock(return_value=0)

        with (
            patch("orgflow.storage.get_session", _patched_session()),
            patch("orgflow.dal.WorkflowRepository", return_value=repo),
        ):
            result = runner.invoke(app, ["list", "--org", "org_1"])

        assert "No workflows found" in result.output
