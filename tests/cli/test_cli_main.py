"""Tests for the inherit-cwd command line."""

import json
import logging

import pytest
from click.testing import CliRunner

from cli import main as cli_main
from cli.main import DryRunFilter, check_prerequisites, configure_logging, main
from patcher.errors import PrerequisiteError


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _no_wsl(*args, **kwargs):
    raise FileNotFoundError("wsl.exe")


@pytest.fixture
def user_home(host, monkeypatch):
    monkeypatch.setenv("HOME", str(host.home))
    for name, value in host.environ.items():
        monkeypatch.setenv(name, value)
    monkeypatch.delenv("INHERIT_CWD_THEME_DIR", raising=False)
    monkeypatch.setattr("patcher.terminal.wsl.subprocess.run", _no_wsl)
    host.settings.parent.mkdir(parents=True)
    host.settings.write_text("{}", encoding="utf-8")
    return host


class TestPrerequisites:
    def test_old_python_rejected(self):
        with pytest.raises(PrerequisiteError, match="3.10 or newer is required"):
            check_prerequisites((3, 9, 18))

    def test_current_python_accepted(self):
        check_prerequisites((3, 12, 1))

    def test_exit_code(self, monkeypatch):
        monkeypatch.setattr(cli_main, "MIN_PYTHON", (99, 0))

        result = CliRunner().invoke(main, [])

        assert result.exit_code == 1
        assert "Python 99.0 or newer" in result.output


class TestDryRunFilter:
    def test_prefix_added_once(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "Wrote %s", ("a",), None)
        dry = DryRunFilter()

        assert dry.filter(record)
        assert dry.filter(record)
        assert record.getMessage() == "[dry-run] Wrote a"

    def test_configure_logging(self):
        handler = configure_logging(verbose=True, dry_run=True)

        root = logging.getLogger()
        assert root.handlers == [handler]
        assert root.level == logging.DEBUG
        assert any(isinstance(f, DryRunFilter) for f in handler.filters)

    def test_quiet_by_default(self):
        handler = configure_logging(verbose=False, dry_run=False)

        assert logging.getLogger().level == logging.INFO
        assert handler.filters == []


class TestMain:
    def test_run_and_rerun(self, user_home):
        runner = CliRunner()

        first = runner.invoke(main, [])
        second = runner.invoke(main, [])

        assert first.exit_code == 0, first.output
        assert "Changes applied." in first.output
        assert user_home.profile.is_file()
        assert len(json.loads(user_home.settings.read_text(encoding="utf-8"))["actions"]) == 3
        assert second.exit_code == 0
        assert "No changes necessary." in second.output

    def test_dry_run(self, user_home):
        result = CliRunner().invoke(main, ["--dry-run"])

        assert result.exit_code == 0, result.output
        assert "Dry run completed" in result.output
        assert not user_home.profile.exists()
        assert user_home.settings.read_text(encoding="utf-8") == "{}"

    def test_malformed_settings_still_exit_zero(self, user_home):
        user_home.settings.write_text("{oops", encoding="utf-8")

        result = CliRunner().invoke(main, [])

        assert result.exit_code == 0
        assert user_home.settings.read_text(encoding="utf-8") == "{oops"

    def test_config_file_and_flags(self, user_home, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("enable_copilot: true\n", encoding="utf-8")
        profile = tmp_path / "p.ps1"

        result = CliRunner().invoke(main, ["--config", str(config), "--profile", str(profile)])

        assert result.exit_code == 0, result.output
        assert "inherit-cwd:copilot" in profile.read_text(encoding="utf-8")
        assert not user_home.profile.exists()
