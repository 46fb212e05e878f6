"""Tests for the command-line interface."""

import json
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from flowrunner.cli import cli
from flowrunner.errors import StartupError
from flowrunner.models.run_result import RunReport, StepResult

ORCHESTRATOR = "flowrunner.cli.Orchestrator"


def _results(success: bool, reports=None) -> dict:
    steps = [StepResult(index=1, type="goto")]
    if not success:
        steps.append(StepResult(index=2, type="click", status="failed", error="Timeout"))
    return {
        "report": RunReport(
            flow_name="login", env="local", success=success, duration_ms=10,
            steps=steps, timestamp="2026-01-01T00:00:00Z",
        ),
        "total_steps": 3,
        "reports": reports or {},
    }


class TestRunCommand:

    def test_missing_flow_argument_exits_1(self):
        result = CliRunner().invoke(cli, ["run"])
        assert result.exit_code == 1
        assert "Usage: flowrunner run <flow-file>" in result.output

    def test_missing_flow_file_exits_1(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["run", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1
        assert "Flow file not found" in result.output

    def test_success_exits_0(self, tmp_path: Path):
        with patch(ORCHESTRATOR) as mock_cls:
            mock_cls.return_value.run.return_value = _results(True)
            result = CliRunner().invoke(cli, ["run", "flows/login.yaml"])

        assert result.exit_code == 0
        assert "Flow completed successfully." in result.output

    def test_step_failure_exits_1(self):
        with patch(ORCHESTRATOR) as mock_cls:
            mock_cls.return_value.run.return_value = _results(False)
            result = CliRunner().invoke(cli, ["run", "flows/login.yaml"])

        assert result.exit_code == 1
        assert "Flow failed." in result.output

    def test_options_are_passed_through(self, tmp_path: Path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({
            "envs": {"staging": {"baseUrl": "https://staging.example.com"}},
        }))

        with patch(ORCHESTRATOR) as mock_cls:
            mock_cls.return_value.run.return_value = _results(True, {"json": "reports/r.json"})
            result = CliRunner().invoke(cli, [
                "run", "flows/login.yaml", "--env", "staging", "--headed",
                "--slowmo", "100", "--report", "json", "-v", "--config", str(config_path),
            ])

        assert result.exit_code == 0
        global_config, options = mock_cls.call_args[0]
        assert global_config.envs["staging"].base_url == "https://staging.example.com"
        assert options.flow_file == "flows/login.yaml"
        assert options.env == "staging"
        assert options.headless is False
        assert options.slowmo == 100
        assert options.report == "json"
        assert options.verbose is True
        assert "reports/r.json" in result.output

    def test_startup_error_exits_1(self):
        with patch(ORCHESTRATOR) as mock_cls:
            mock_cls.return_value.run.side_effect = StartupError("Flow file must be .yaml, .yml, or .json")
            result = CliRunner().invoke(cli, ["run", "flow.txt"])

        assert result.exit_code == 1
        assert "ERROR: Flow file must be" in result.output

    def test_unexpected_error_is_fatal(self):
        with patch(ORCHESTRATOR) as mock_cls:
            mock_cls.return_value.run.side_effect = RuntimeError("Executable doesn't exist")
            result = CliRunner().invoke(cli, ["run", "flows/login.yaml"])

        assert result.exit_code == 1
        assert "FATAL: Executable doesn't exist" in result.output

    def test_rejects_unknown_report_format(self):
        result = CliRunner().invoke(cli, ["run", "flows/login.yaml", "--report", "html"])
        assert result.exit_code != 0


class TestValidateCommand:

    def test_lists_steps(self, login_flow_file: Path):
        result = CliRunner().invoke(cli, ["validate", str(login_flow_file)])

        assert result.exit_code == 0
        assert "Flow loaded: login" in result.output
        assert "STEP 1: goto /login" in result.output
        assert 'STEP 3: click text="Sign in"' in result.output

    def test_invalid_flow_exits_1(self, tmp_path: Path):
        path = tmp_path / "flow.yaml"
        path.write_text("name: no-steps\n")
        result = CliRunner().invoke(cli, ["validate", str(path)])
        assert result.exit_code == 1


class TestInitCommand:

    def test_creates_config(self, tmp_path: Path):
        path = tmp_path / "config.json"
        result = CliRunner().invoke(
            cli, ["init", "--base-url", "http://localhost:8080", "--config", str(path)],
        )

        assert result.exit_code == 0
        data = json.loads(path.read_text())
        assert data["defaultEnv"] == "local"
        assert data["envs"]["local"]["baseUrl"] == "http://localhost:8080"

    def test_keeps_existing_config_when_declined(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text("{}")
        result = CliRunner().invoke(
            cli, ["init", "--base-url", "http://x", "--config", str(path)], input="n\n",
        )
        assert result.exit_code == 0
        assert path.read_text() == "{}"
