"""Tests for the click CLI."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from visage.cli import cli
from visage.errors import CheckAborted, ExtractionError
from visage.models.regression import RegressionStatus, RegressionTestResult


@pytest.fixture
def workspace(tmp_path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    return tmp_path


def _write_config(directory: Path) -> None:
    (directory / "visage.json").write_text(json.dumps({
        "base_url": "http://localhost:6006",
        "start_command": "npm start",
    }))


class TestUsage:

    def test_no_command_prints_usage(self):
        result = CliRunner().invoke(cli, [])
        assert "Usage" in result.output

    def test_unknown_command_exits_nonzero(self):
        result = CliRunner().invoke(cli, ["verify"])
        assert result.exit_code == 2
        assert "No such command" in result.output


class TestCheckCommand:

    def test_missing_config(self, workspace):
        result = CliRunner().invoke(cli, ["check"])

        assert result.exit_code == 1
        assert "No configuration file found" in result.output

    def test_prints_results_table(self, workspace, story, regression_test):
        _write_config(workspace)
        results = [
            RegressionTestResult(status=RegressionStatus.CREATED, story=story, current=regression_test),
        ]
        with patch("visage.cli.Orchestrator") as orch_cls:
            orch_cls.return_value.check.return_value = results
            result = CliRunner().invoke(cli, ["check"])

        assert result.exit_code == 0
        assert "created" in result.output
        assert "Tests completed: 1, failed: 0" in result.output
        cfg = orch_cls.call_args.args[0]
        assert cfg.base_url == "http://localhost:6006"
        assert Path(cfg.project_dir) == workspace.resolve()

    def test_failed_story_exits_nonzero(self, workspace, story, regression_test):
        _write_config(workspace)
        baseline = regression_test.model_copy(update={"style_hash": "0" * 40})
        results = [
            RegressionTestResult(
                status=RegressionStatus.FAILED, story=story, current=regression_test,
                baseline=baseline, changed_fields=["style_hash"],
            ),
        ]
        with patch("visage.cli.Orchestrator") as orch_cls:
            orch_cls.return_value.check.return_value = results
            result = CliRunner().invoke(cli, ["check"])

        assert result.exit_code == 1
        assert "style_hash" in result.output

    def test_aborted_run_reports_error(self, workspace, story):
        _write_config(workspace)
        error = ExtractionError(story, "failed to take screenshot")
        with patch("visage.cli.Orchestrator") as orch_cls:
            orch_cls.return_value.check.side_effect = CheckAborted(error, results=[])
            result = CliRunner().invoke(cli, ["check"])

        assert result.exit_code == 1
        assert "Check aborted during extraction" in result.output
        assert "0 stories were checked" in result.output

    def test_uses_home_config_when_no_local(self, workspace):
        home_config = workspace / "home" / ".config"
        home_config.mkdir(parents=True)
        _write_config(home_config)
        with patch("visage.cli.Orchestrator") as orch_cls:
            orch_cls.return_value.check.return_value = []
            result = CliRunner().invoke(cli, ["check"])

        assert result.exit_code == 0
        assert orch_cls.call_args.args[0].base_url == "http://localhost:6006"
