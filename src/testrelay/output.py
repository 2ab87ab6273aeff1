# src/testrelay/output.py

"""
Sinks receiving human-readable diagnostic lines produced during a run.
"""

from typing import Protocol, runtime_checkable

import structlog
from rich.console import Console
from rich.markup import escape


@runtime_checkable
class OutputSink(Protocol):
    """Receives launcher output and run diagnostics, one line at a time."""

    def append_line(self, line: str) -> None: ...


class LogOutputSink:
    """Forwards lines to the structured log. Used when the host supplies no sink."""

    def __init__(self, logger_name: str = "output.launcher"):
        self._log = structlog.get_logger(logger_name)

    def append_line(self, line: str) -> None:
        self._log.debug(line)


class ConsoleOutputSink:
    """Prints lines to a rich console, dimmed so run summaries stand out."""

    def __init__(self, console: Console | None = None, style: str = "dim"):
        self.console = console or Console()
        self.style = style

    def append_line(self, line: str) -> None:
        self.console.print(escape(line), style=self.style, highlight=False)

# 🔼⚙️
