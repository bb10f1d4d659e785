"""
Tests for cmpostdeploy.logging module.
"""

from __future__ import annotations

import pytest

from cmpostdeploy.logging import (
    DefaultLogger,
    SilentLogger,
    get_global_logger,
    get_logger,
    set_global_logger,
)

pytestmark = pytest.mark.unit


class TestDefaultLogger:
    """Tests for console and file output."""

    def test_console_respects_verbosity(self, capsys):
        logger = DefaultLogger()

        logger.step(1, 5, "Reading batch file...")
        logger.warning("DEPLOY", "Failed to deploy")
        logger.verbose("BATCH", "hidden")
        logger.debug("HTTP", "hidden")

        out = capsys.readouterr().out
        assert "[1/5] Reading batch file..." in out
        assert "[DEPLOY] WARNING: Failed to deploy" in out
        assert "hidden" not in out

    def test_debug_implies_verbose(self, capsys):
        logger = DefaultLogger(debug=True)

        logger.verbose("BATCH", "shown")
        logger.debug("HTTP", "traced")

        out = capsys.readouterr().out
        assert "[BATCH] shown" in out
        assert "[HTTP] traced" in out

    def test_log_file_gets_verbose_lines(self, tmp_test_dir, capsys):
        log_file = tmp_test_dir / "logs" / "cmpd.log"
        logger = get_logger(log_file=log_file)

        logger.step(2, 5, "Connecting...")
        logger.verbose("POLICY", "inherits 2 collection(s)")
        logger.debug("HTTP", "not written")

        lines = log_file.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert lines[0].endswith("[2/5] Connecting...")
        assert lines[1].endswith("[POLICY] inherits 2 collection(s)")
        assert "POLICY" not in capsys.readouterr().out

    def test_unwritable_log_file_disabled(self, tmp_test_dir, capsys):
        blocker = tmp_test_dir / "blocker"
        blocker.write_text("", encoding="utf-8")
        logger = DefaultLogger(log_file=blocker / "cmpd.log")

        logger.step(1, 1, "first")
        logger.step(1, 1, "second")

        out = capsys.readouterr().out
        assert out.count("Could not write log file") == 1
        assert "[1/1] second" in out


class TestGlobalLogger:
    """Tests for the global logger."""

    def test_set_and_get(self):
        previous = get_global_logger()
        logger = DefaultLogger()
        try:
            set_global_logger(logger)
            assert get_global_logger() is logger
        finally:
            set_global_logger(previous)

    def test_silent_logger_prints_nothing(self, capsys):
        logger = SilentLogger()
        logger.step(1, 1, "x")
        logger.warning("X", "x")
        logger.verbose("X", "x")
        logger.debug("X", "x")

        assert capsys.readouterr().out == ""
