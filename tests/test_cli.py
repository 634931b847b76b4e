"""Tests for the command line interface."""

import pytest
from pathlib import Path

from src.cli import build_config, build_parser, main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "FSOBSERVER_ROOT",
        "FSOBSERVER_RECURSIVE",
        "FSOBSERVER_QUIET_PERIOD_MS",
        "FSOBSERVER_TICK_INTERVAL_MS",
        "FSOBSERVER_CHECK_HIDDEN",
    ):
        monkeypatch.delenv(name, raising=False)


class TestParser:
    """Tests for argument parsing."""

    def test_watch_defaults(self, tmp_path):
        args = build_parser().parse_args(["watch", str(tmp_path)])
        assert args.command == "watch"
        assert args.root == str(tmp_path)
        assert args.quiet_period is None
        assert args.tick is None
        assert args.no_recursive is False
        assert args.show_hidden is False
        assert args.verbose is False

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestBuildConfig:
    """Tests for build_config function."""

    def test_defaults(self, tmp_path):
        args = build_parser().parse_args(["watch", str(tmp_path)])
        config = build_config(args)

        assert config.root == tmp_path.resolve()
        assert config.recursive is True
        assert config.quiet_period_ms == 75
        assert config.tick_interval_ms == 100
        assert config.noise.check_hidden is True

    def test_arguments_override(self, tmp_path):
        args = build_parser().parse_args([
            "watch", str(tmp_path),
            "--quiet-period", "250",
            "--tick", "300",
            "--no-recursive",
            "--show-hidden",
        ])
        config = build_config(args)

        assert config.quiet_period_ms == 250
        assert config.tick_interval_ms == 300
        assert config.recursive is False
        assert config.noise.check_hidden is False

    def test_environment_used_when_no_argument(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FSOBSERVER_QUIET_PERIOD_MS", "500")
        args = build_parser().parse_args(["watch", str(tmp_path)])

        assert build_config(args).quiet_period_ms == 500

    def test_argument_beats_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FSOBSERVER_QUIET_PERIOD_MS", "500")
        args = build_parser().parse_args(["watch", str(tmp_path), "--quiet-period", "20"])

        assert build_config(args).quiet_period_ms == 20


class TestWatchCommand:
    """Tests for the watch command."""

    def test_missing_root_exits(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["watch", str(tmp_path / "missing")])
        assert exc_info.value.code == 1

    def test_file_root_exits(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("x")

        with pytest.raises(SystemExit) as exc_info:
            main(["watch", str(path)])
        assert exc_info.value.code == 1
