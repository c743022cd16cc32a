"""Tests for the action orchestrator."""

import json
from pathlib import Path
from unittest.mock import call, patch

import pytest

from cloudcostgh.config import ActionConfig, ConfigError
from costaction.analyzer import CommandError
from costaction.runner import main, run
from costaction.usage import UsageReportError


@pytest.fixture
def action_env(tmp_path):
    event = tmp_path / "event.json"
    event.write_text(json.dumps({
        "pull_request": {"number": 12, "head": {"sha": "headsha"}, "base": {"sha": "basesha"}},
    }))
    runner_temp = tmp_path / "runner"
    runner_temp.mkdir()
    return {
        "GITHUB_EVENT_PATH": str(event),
        "GITHUB_REPOSITORY": "octo/infra",
        "GITHUB_OUTPUT": str(tmp_path / "github_output"),
        "RUNNER_TEMP": str(runner_temp),
    }


@pytest.fixture
def config(tmp_path):
    return ActionConfig(github_token="tok", api_key="key", working_directory=str(tmp_path),
                        comment_title="Cost check")


class TestRun:
    """Test the end-to-end flow with external collaborators mocked."""

    @pytest.fixture(autouse=True)
    def collaborators(self, base_report_data, head_report_data):
        reports = {"cloudcost-head-report.json": head_report_data,
                   "cloudcost-base-report.json": base_report_data}

        def fake_analyze(analyzer, work_dir, config, out_json, out_md, clean=False):
            Path(out_json).write_text(json.dumps(reports[Path(out_json).name]))
            return out_json

        with patch("costaction.runner.download_analyzer", return_value=Path("/bin/analyzer")) as download, \
                patch("costaction.runner.analyze_revision", side_effect=fake_analyze) as analyze, \
                patch("costaction.runner.git_checkout") as checkout, \
                patch("costaction.runner.git_head_sha", return_value="basesha") as head_sha, \
                patch("costaction.runner.upsert_pr_comment", return_value=("created", {"id": 1})) as upsert, \
                patch("costaction.runner.send_usage_record") as send_usage:
            self.download = download
            self.analyze = analyze
            self.checkout = checkout
            self.head_sha = head_sha
            self.upsert = upsert
            self.send_usage = send_usage
            yield

    def test_full_flow(self, config, action_env, tmp_path):
        comparison = run(config, action_env)

        assert comparison.delta_total == 42.5
        self.download.assert_called_once_with("v0.1.0", Path(action_env["RUNNER_TEMP"]) / "cloudcost-analyzer")
        assert self.checkout.call_args_list == [call("basesha", tmp_path), call("headsha", tmp_path)]

        head_call, base_call = self.analyze.call_args_list
        assert head_call.args[3].name == "cloudcost-head-report.json"
        assert base_call.args[3].name == "cloudcost-base-report.json"
        assert base_call.kwargs == {"clean": True}

        _, pr, body, update_existing = self.upsert.call_args[0]
        assert pr.number == 12
        assert body.startswith("<!-- cloudcostgh-comment -->\n## Cost check\n")
        assert update_existing is True
        self.send_usage.assert_not_called()

    def test_outputs_written(self, config, action_env):
        run(config, action_env)
        text = Path(action_env["GITHUB_OUTPUT"]).read_text()
        for name in ("delta-json", "delta-md", "head-total", "base-total", "delta-total"):
            assert f"{name}<<ghadelimiter_" in text
        assert "\n172.5\n" in text
        assert "\n130\n" in text
        assert "\n42.5\n" in text

    def test_checks_out_head_again_when_base_analysis_fails(self, config, action_env, tmp_path):
        def fail_on_base(analyzer, work_dir, config, out_json, out_md, clean=False):
            if clean:
                raise CommandError(["npx", "cdk", "synth"], 1)
            Path(out_json).write_text('{"stacks": []}')
            return out_json

        self.analyze.side_effect = fail_on_base
        with pytest.raises(CommandError):
            run(config, action_env)
        assert self.checkout.call_args_list[-1] == call("headsha", tmp_path)

    def test_sha_mismatch_warns(self, config, action_env, capsys):
        self.head_sha.return_value = "othersha"
        run(config, action_env)
        assert "::warning::Current SHA (othersha) does not match expected base SHA (basesha)" \
            in capsys.readouterr().out

    def test_sha_verification_failure_only_warns(self, config, action_env, tmp_path, capsys):
        self.head_sha.side_effect = CommandError(["git", "rev-parse", "HEAD"], 128)
        comparison = run(config, action_env)

        assert comparison.delta_total == 42.5
        assert "::warning::Could not verify checked out SHA: Command failed: git (exit code 128)" \
            in capsys.readouterr().out
        assert len(self.analyze.call_args_list) == 2
        assert self.checkout.call_args_list[-1] == call("headsha", tmp_path)

    def test_usage_reporting(self, config, action_env):
        config = config.model_copy(update={"enable_usage_reporting": True})
        run(config, action_env)
        backend_url, api_key, record = self.send_usage.call_args[0]
        assert backend_url == config.backend_url
        assert api_key == "key"
        assert record["repo"] == "octo/infra"
        assert record["commit"] == "headsha"
        assert record["pr"] == 12
        assert record["delta_total"] == 42.5

    def test_usage_failure_is_not_fatal(self, config, action_env, capsys):
        config = config.model_copy(update={"enable_usage_reporting": True})
        self.send_usage.side_effect = UsageReportError("Usage API returned 500: oops")
        comparison = run(config, action_env)
        assert comparison.delta_total == 42.5
        assert "::warning::Usage reporting failed, but continuing..." in capsys.readouterr().out

    def test_requires_pull_request_event(self, config, action_env, tmp_path):
        event = tmp_path / "push.json"
        event.write_text(json.dumps({"ref": "refs/heads/main"}))
        with pytest.raises(ConfigError, match="pull_request"):
            run(config, {**action_env, "GITHUB_EVENT_PATH": str(event)})
        self.download.assert_not_called()

    def test_requires_credentials(self, action_env):
        with pytest.raises(ConfigError):
            run(ActionConfig(api_key="key"), action_env)


def test_main_reports_failure(monkeypatch, capsys):
    for name in ("GITHUB_TOKEN", "INPUT_GITHUB_TOKEN", "CLOUDCOST_CONFIG"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("INPUT_API_KEY", "key")

    assert main([]) == 1
    assert "::error::GitHub token is required" in capsys.readouterr().out


def test_main_invalid_config_file(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "missing.yml")]) == 1
    assert "::error::Invalid configuration" in capsys.readouterr().out
