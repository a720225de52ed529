"""Tests for the run log."""

from __future__ import annotations

import io
import logging
import re
from pathlib import Path

from asminspect.shared.console import RunLog

LINE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} \[(\w+)\] (.*)$")


def test_lines_are_timestamped_and_tagged() -> None:
    stream = io.StringIO()
    with RunLog(no_color=True, stream=stream) as log:
        log.info("Reading assembly: x.dll")
        log.success("Export complete.")
        log.error("Invalid assembly format.")

    lines = stream.getvalue().splitlines()
    parsed = [LINE.match(line).groups() for line in lines]  # type: ignore[union-attr]
    assert parsed == [
        ("INFO", "Reading assembly: x.dll"),
        ("SUCCESS", "Export complete."),
        ("ERROR", "Invalid assembly format."),
    ]


def test_file_mirrors_console(tmp_path: Path) -> None:
    stream = io.StringIO()
    log_path = tmp_path / "run.log"
    log = RunLog(no_color=True, stream=stream)
    log.info("before attach")
    log.attach_file(log_path)
    log.info("after attach")

    # Flushed per line, readable before close
    assert "after attach" in log_path.read_text(encoding="utf-8")
    log.close()

    file_lines = log_path.read_text(encoding="utf-8").splitlines()
    assert len(file_lines) == 1
    assert file_lines[0].endswith("[INFO] after attach")
    assert len(stream.getvalue().splitlines()) == 2
    assert log.log_path == log_path


def test_level_filters_debug() -> None:
    stream = io.StringIO()
    with RunLog(level=logging.INFO, no_color=True, stream=stream) as log:
        log.debug("hidden")
        log.warning("shown")

    assert "hidden" not in stream.getvalue()
    assert "[WARNING] shown" in stream.getvalue()


def test_logs_are_isolated_and_do_not_propagate(caplog) -> None:
    first, second = io.StringIO(), io.StringIO()
    with RunLog(no_color=True, stream=first) as a, RunLog(no_color=True, stream=second) as b:
        a.info("from a")
        b.info("from b")

    assert "from b" not in first.getvalue()
    assert "from a" not in second.getvalue()
    assert caplog.records == []


def test_non_tty_stream_disables_color() -> None:
    stream = io.StringIO()
    with RunLog(no_color=False, stream=stream) as log:
        log.error("plain")

    assert "\x1b[" not in stream.getvalue()


def test_run_logs_stay_out_of_logger_registry() -> None:
    before = set(logging.Logger.manager.loggerDict)
    for _ in range(3):
        with RunLog(no_color=True, stream=io.StringIO()) as log:
            log.info("run")

    assert set(logging.Logger.manager.loggerDict) == before
