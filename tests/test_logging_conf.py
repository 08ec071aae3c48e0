from __future__ import annotations

from fuuka_harvester.logging_conf import build_logging_config, default_log_dir, tail_log


def test_default_run_logs_to_files_only(tmp_path) -> None:
    config = build_logging_config(tmp_path)

    handlers = config["handlers"]
    assert set(handlers) == {"harvester_file", "error_file"}
    assert handlers["harvester_file"]["class"] == "logging.handlers.RotatingFileHandler"
    assert handlers["harvester_file"]["filename"] == str(tmp_path / "harvester.log")
    assert handlers["error_file"]["level"] == "ERROR"
    assert config["loggers"]["fuuka_harvester"]["level"] == "INFO"


def test_verbose_run_adds_stderr_console(tmp_path) -> None:
    config = build_logging_config(tmp_path, verbose=True)

    console = config["handlers"]["console"]
    assert console["stream"] == "ext://sys.stderr"
    assert console["level"] == "DEBUG"
    assert "console" in config["loggers"]["fuuka_harvester"]["handlers"]
    assert config["loggers"]["fuuka_harvester"]["level"] == "DEBUG"


def test_default_log_dir_follows_home(isolated_home) -> None:
    assert default_log_dir() == isolated_home.resolve() / "logs"


def test_tail_log(tmp_path) -> None:
    path = tmp_path / "harvester.log"
    path.write_text("a\nb\nc\n", encoding="utf-8")

    assert tail_log(path, 2) == ["b\n", "c\n"]
    assert tail_log(tmp_path / "missing.log") == []
