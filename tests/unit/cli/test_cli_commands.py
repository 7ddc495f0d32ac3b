"""Tests for the stackshift CLI."""

import json

import pytest
from typer.testing import CliRunner

from stackshift.cli import cli_app

runner = CliRunner()

VALID_PLAN = """\
id: plan-7
projectId: shop
warnings: [legacy build scripts]
tasks:
  - id: models
  - id: services
  - id: routes
    dependencies: [models, services]
"""

CYCLIC_PLAN = """\
id: plan-8
projectId: shop
tasks:
  - id: a
    dependencies: [b]
  - id: b
    dependencies: [a]
"""


@pytest.fixture
def plan_file(tmp_path):
    def _write(content: str, name: str = "plan.yaml"):
        path = tmp_path / name
        path.write_text(content)
        return str(path)

    return _write


class TestVersion:
    def test_version(self):
        result = runner.invoke(cli_app, ["version"])

        assert result.exit_code == 0
        assert "stackshift" in result.output


class TestPlanCommands:
    def test_check_executable_plan(self, plan_file):
        result = runner.invoke(cli_app, ["plan", "check", plan_file(VALID_PLAN)])

        assert result.exit_code == 0
        assert "plan-7" in result.output
        assert "legacy build scripts" in result.output
        assert "executable in 2" in result.output

    def test_check_cyclic_plan(self, plan_file):
        result = runner.invoke(cli_app, ["plan", "check", plan_file(CYCLIC_PLAN)])

        assert result.exit_code == 1
        assert "Dependency cycle detected" in result.output

    def test_check_plan_marked_infeasible(self, plan_file):
        content = VALID_PLAN + "feasible: false\n"

        result = runner.invoke(cli_app, ["plan", "check", plan_file(content)])

        assert result.exit_code == 1
        assert "marked infeasible" in result.output

    def test_check_missing_file(self, tmp_path):
        result = runner.invoke(cli_app, ["plan", "check", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 1
        assert "Cannot read plan file" in result.output

    def test_batches_respects_concurrency(self, plan_file):
        result = runner.invoke(
            cli_app, ["plan", "batches", plan_file(VALID_PLAN), "--concurrency", "1"]
        )

        assert result.exit_code == 0
        assert "max 1 per batch" in result.output
        for task_id in ("models", "services", "routes"):
            assert task_id in result.output

    def test_batches_for_cyclic_plan(self, plan_file):
        result = runner.invoke(cli_app, ["plan", "batches", plan_file(CYCLIC_PLAN)])

        assert result.exit_code == 1


class TestErrorCommands:
    def test_classify_as_json(self):
        result = runner.invoke(
            cli_app, ["errors", "classify", "Too Many Requests", "--status", "429", "--json"]
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["category"] == "RATE_LIMIT"
        assert data["retryable"] is True
        assert "technical_details" not in data

    def test_classify_table(self):
        result = runner.invoke(cli_app, ["errors", "classify", "401 Unauthorized"])

        assert result.exit_code == 0
        assert "AUTH" in result.output
        assert "AUTH_FAILED" in result.output

    def test_classify_with_status(self):
        result = runner.invoke(cli_app, ["errors", "classify", "missing", "-s", "404"])

        assert result.exit_code == 0
        assert "RESOURCE_NOT_FOUND" in result.output
