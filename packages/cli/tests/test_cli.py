"""Tests for the CLI entry point."""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from prmentor_cli.actions import EventContext, load_event_context
from prmentor_cli.cli import main
from prmentor_core.reviewer import ReviewSummary


@pytest.fixture(autouse=True)
def _clean_actions_env(monkeypatch):
    """Tests must not pick up the event of a CI run they happen to execute in."""
    for var in ("GITHUB_EVENT_PATH", "GITHUB_ACTOR", "GITHUB_REPOSITORY", "PRMENTOR_CONFIG"):
        monkeypatch.delenv(var, raising=False)


def _make_config(github_token="tok", model="anthropic", anthropic_key="ant", openai_key=None):
    return {
        "github_token": github_token,
        "model": model,
        "model_name": None,
        "anthropic_api_key": anthropic_key,
        "openai_api_key": openai_key,
        "context_padding": 2,
        "max_lines_per_file": 400,
        "instructions": None,
        "require_modules": True,
        "language": "English",
        "fetch_workers": 8,
    }


def _patch_common(mocker, config=None, token="tok"):
    """Patch load_config and resolve_github_token for most tests."""
    cfg = config or _make_config()
    load = mocker.patch("prmentor_core.config.load_config", return_value=cfg)
    mocker.patch("prmentor_cli.auth.resolve_github_token", return_value=token)
    return cfg, load


def _write_event(tmp_path, payload):
    path = tmp_path / "event.json"
    path.write_text(json.dumps(payload))
    return str(path)


PR_EVENT = {
    "action": "synchronize",
    "pull_request": {"number": 12, "head": {"sha": "b" * 40}, "user": {"login": "student"}},
}


class TestCLIValidation:
    def test_missing_github_token(self, mocker):
        _patch_common(mocker, config=_make_config(github_token=None), token=None)

        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "1"])
        assert result.exit_code != 0
        assert "token" in result.output.lower()

    def test_missing_anthropic_key(self, mocker):
        _patch_common(mocker, config=_make_config(model="anthropic", anthropic_key=None))

        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "1"])
        assert result.exit_code != 0
        assert "ANTHROPIC_API_KEY" in result.output

    def test_missing_openai_key(self, mocker):
        _patch_common(mocker, config=_make_config(model="openai", anthropic_key=None, openai_key=None))

        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "1"])
        assert result.exit_code != 0
        assert "OPENAI_API_KEY" in result.output

    def test_missing_pr_without_event(self, mocker):
        _patch_common(mocker)
        mock_run = mocker.patch("prmentor_cli.commands.review.run_review")

        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo"])
        assert result.exit_code != 0
        assert "GITHUB_EVENT_PATH" in result.output
        mock_run.assert_not_called()

    def test_invalid_config_is_usage_error(self, mocker):
        mocker.patch("prmentor_core.config.load_config", side_effect=ValueError("context_padding must be >= 0"))

        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "1"])
        assert result.exit_code != 0
        assert "context_padding" in result.output

    def test_unknown_pr_reported(self, mocker):
        _patch_common(mocker)
        mocker.patch("prmentor_cli.commands.review.run_review", side_effect=ValueError("PR #1 not found in owner/repo."))

        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "1"])
        assert result.exit_code != 0
        assert "PR #1 not found" in result.output


class TestCLIRunReview:
    def test_calls_run_review_with_correct_args(self, mocker):
        _patch_common(mocker)
        mock_run = mocker.patch("prmentor_cli.commands.review.run_review", return_value=None)

        CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "42", "--actor", "mentor"])

        mock_run.assert_called_once()
        kwargs = mock_run.call_args.kwargs
        assert kwargs["repo"] == "owner/repo"
        assert kwargs["pr_number"] == 42
        assert kwargs["actor"] == "mentor"
        assert kwargs["shadow"] is False
        assert kwargs["config"]["github_token"] == "tok"

    def test_shadow_flag_passed_through(self, mocker):
        _patch_common(mocker)
        mock_run = mocker.patch("prmentor_cli.commands.review.run_review", return_value=None)

        CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "1", "--shadow"])

        assert mock_run.call_args.kwargs["shadow"] is True

    def test_model_override_passed_to_config(self, mocker):
        _, load = _patch_common(mocker)
        mocker.patch("prmentor_cli.commands.review.run_review", return_value=None)

        CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "1", "--model", "openai"])

        assert load.call_args.kwargs["cli_overrides"] == {"model": "openai"}

    def test_config_path_from_group_option(self, mocker):
        _, load = _patch_common(mocker)
        mocker.patch("prmentor_cli.commands.review.run_review", return_value=None)

        CliRunner().invoke(main, ["--config", "custom.yml", "review", "--repo", "owner/repo", "--pr", "1"])

        assert load.call_args.args[0] == "custom.yml"

    def test_actor_read_from_environment(self, mocker, monkeypatch):
        _patch_common(mocker)
        monkeypatch.setenv("GITHUB_ACTOR", "octocat")
        mock_run = mocker.patch("prmentor_cli.commands.review.run_review", return_value=None)

        CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "1"])

        assert mock_run.call_args.kwargs["actor"] == "octocat"

    def test_summary_printed(self, mocker):
        _patch_common(mocker)
        summary = ReviewSummary(repo="owner/repo", pr_number=1, head_sha="a" * 40, event="APPROVE", posted_as="review")
        mocker.patch("prmentor_cli.commands.review.run_review", return_value=summary)

        result = CliRunner().invoke(main, ["review", "--repo", "owner/repo", "--pr", "1"])

        assert result.exit_code == 0
        assert "APPROVE" in result.output
        assert "posted as review" in result.output


class TestCLIFromActionsEvent:
    def test_event_supplies_repo_and_pr(self, mocker, monkeypatch, tmp_path):
        _patch_common(mocker)
        monkeypatch.setenv("GITHUB_REPOSITORY", "school/homework")
        monkeypatch.setenv("GITHUB_EVENT_PATH", _write_event(tmp_path, PR_EVENT))
        mock_run = mocker.patch("prmentor_cli.commands.review.run_review", return_value=None)

        result = CliRunner().invoke(main, ["review"])

        assert result.exit_code == 0, result.output
        kwargs = mock_run.call_args.kwargs
        assert kwargs["repo"] == "school/homework"
        assert kwargs["pr_number"] == 12

    def test_non_pull_request_event_rejected(self, mocker, monkeypatch, tmp_path):
        _patch_common(mocker)
        monkeypatch.setenv("GITHUB_REPOSITORY", "school/homework")
        event_path = _write_event(tmp_path, {"action": "push"})
        mock_run = mocker.patch("prmentor_cli.commands.review.run_review")

        result = CliRunner().invoke(main, ["review", "--event-path", event_path])

        assert result.exit_code != 0
        assert "Not a pull_request event" in result.output
        mock_run.assert_not_called()


# ---------------------------------------------------------------------------
# actions.py
# ---------------------------------------------------------------------------


class TestLoadEventContext:
    def test_parses_pull_request_event(self, tmp_path):
        ctx = load_event_context(_write_event(tmp_path, PR_EVENT), "school/homework")
        assert ctx == EventContext(repo="school/homework", pr_number=12)

    def test_requires_repository(self, tmp_path):
        with pytest.raises(ValueError, match="GITHUB_REPOSITORY"):
            load_event_context(_write_event(tmp_path, PR_EVENT), None)

    def test_rejects_other_events(self, tmp_path):
        with pytest.raises(ValueError, match="Not a pull_request event"):
            load_event_context(_write_event(tmp_path, {"ref": "refs/heads/main"}), "o/r")


# ---------------------------------------------------------------------------
# auth.py
# ---------------------------------------------------------------------------


class TestResolveGithubToken:
    def test_returns_env_var_when_set(self, monkeypatch):
        from prmentor_cli.auth import resolve_github_token

        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        assert resolve_github_token() == "env-token"

    def test_falls_back_to_gh_cli(self, monkeypatch):
        from prmentor_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stdout="gh-token\n")
            result = resolve_github_token()
        assert result == "gh-token"

    def test_returns_none_when_gh_not_installed(self, monkeypatch):
        from prmentor_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run", side_effect=FileNotFoundError):
            assert resolve_github_token() is None

    def test_returns_none_when_gh_times_out(self, monkeypatch):
        from prmentor_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="gh", timeout=5)):
            assert resolve_github_token() is None

    def test_returns_none_when_gh_returns_error(self, monkeypatch):
        from prmentor_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=1, stdout="")
            assert resolve_github_token() is None
