# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Output for CMPD runs.

Library code never prints directly. It asks for a Logger, either passed in
or the process-wide one, and the CLI decides what reaches the console.

Levels:

- step: numbered progress of a batch run, always shown
- warning: an application or collection failed, always shown
- verbose: what is being distributed, inherited and deployed (-v)
- debug: provider requests and merged settings (-d, implies -v)

A run scheduled after the packaging job has nobody watching the console,
so DefaultLogger can also append every step, warning and verbose line to a
log file with a timestamp, whatever the console verbosity.

Example:
    ```python
    from pathlib import Path
    from cmpostdeploy.logging import get_logger, set_global_logger

    set_global_logger(get_logger(verbose=True, log_file=Path("logs/cmpd.log")))
    ```

    ```python
    from cmpostdeploy.logging import get_global_logger

    logger = get_global_logger()
    logger.step(3, 5, "Processing superseding applications...")
    logger.warning("DEPLOY", "Failed to deploy 7-Zip 24.08 to Finance")
    ```

Note:
    Until the CLI installs a logger the global one is SilentLogger, so
    importing and calling CMPD from other code prints nothing.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Protocol


class Logger(Protocol):
    """What CMPD modules need from a logger."""

    def step(self, step: int, total: int, message: str) -> None:
        """Report progress through a run.

        Args:
            step: 1-based position in the run.
            total: Number of steps in the run.
            message: What the step does.
        """
        ...

    def warning(self, prefix: str, message: str) -> None:
        """Report a failure the run recovers from.

        Args:
            prefix: Area tag such as "CONTENT" or "DEPLOY".
            message: What failed.
        """
        ...

    def verbose(self, prefix: str, message: str) -> None:
        """Report detail shown with -v.

        Args:
            prefix: Area tag such as "BATCH" or "POLICY".
            message: Text to report.
        """
        ...

    def debug(self, prefix: str, message: str) -> None:
        """Report tracing detail shown with -d.

        Args:
            prefix: Area tag such as "HTTP" or "CONFIG".
            message: Text to report.
        """
        ...


class DefaultLogger:
    """Console logger with an optional log file.

    Lines look like "[3/5] Processing..." for steps and "[PREFIX] text"
    otherwise. The log file receives steps, warnings and verbose lines
    regardless of console verbosity; debug lines go there only in debug
    mode.
    """

    def __init__(
        self,
        verbose: bool = False,
        debug: bool = False,
        log_file: Path | None = None,
    ) -> None:
        """
        Args:
            verbose: Show verbose lines on the console.
            debug: Show debug lines too. Turns verbose on.
            log_file: File to append timestamped lines to. Missing parent
                directories are created.
        """
        self._show_verbose = verbose or debug
        self._show_debug = debug
        self._log_file = log_file

    def _write(self, line: str) -> None:
        if self._log_file is None:
            return
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        try:
            self._log_file.parent.mkdir(parents=True, exist_ok=True)
            with self._log_file.open("a", encoding="utf-8") as f:
                f.write(f"{stamp} {line}\n")
        except OSError as err:
            # Console output still works; stop retrying the file
            print(f"[LOG] Could not write log file {self._log_file}: {err}")
            self._log_file = None

    def _emit(self, line: str, show: bool, persist: bool = True) -> None:
        if show:
            print(line)
        if persist:
            self._write(line)

    def step(self, step: int, total: int, message: str) -> None:
        self._emit(f"[{step}/{total}] {message}", show=True)

    def warning(self, prefix: str, message: str) -> None:
        self._emit(f"[{prefix}] WARNING: {message}", show=True)

    def verbose(self, prefix: str, message: str) -> None:
        self._emit(f"[{prefix}] {message}", show=self._show_verbose)

    def debug(self, prefix: str, message: str) -> None:
        self._emit(
            f"[{prefix}] {message}",
            show=self._show_debug,
            persist=self._show_debug,
        )


class SilentLogger:
    """Logger that discards everything (the default global logger)."""

    def step(self, step: int, total: int, message: str) -> None:
        pass

    def warning(self, prefix: str, message: str) -> None:
        pass

    def verbose(self, prefix: str, message: str) -> None:
        pass

    def debug(self, prefix: str, message: str) -> None:
        pass


_global_logger: Logger = SilentLogger()


def get_logger(
    verbose: bool = False, debug: bool = False, log_file: Path | None = None
) -> Logger:
    """Build the logger the CLI installs for a command.

    Args:
        verbose: Show verbose lines on the console.
        debug: Show debug lines too (turns verbose on).
        log_file: Optional file receiving a timestamped copy of the output.

    Returns:
        A DefaultLogger.
    """
    return DefaultLogger(verbose=verbose, debug=debug, log_file=log_file)


def get_global_logger() -> Logger:
    """Return the process-wide logger used when none is passed in."""
    return _global_logger


def set_global_logger(logger: Logger) -> None:
    """Replace the process-wide logger.

    Every function that falls back to get_global_logger() picks the new
    logger up on its next call. Tests that install one should restore the
    previous logger afterwards.
    """
    global _global_logger
    _global_logger = logger
