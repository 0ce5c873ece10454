"""Terminal output for irsession.

Two streams, kept apart so ``irsession get ... | jq`` always works:

* **stdout** carries payloads only: API responses and the ``auth show``
  table.
* **stderr** carries everything a person reads while a command runs: the
  "Authenticating" / "Login succeeded" progress lines, retry notices,
  errors and next-step hints.

The payload format is picked once per process (``--json``, ``--plain``, or
Rich when stdout is a terminal).  ``NO_COLOR``, ``TERM=dumb`` and
``--no-color`` turn markup off.

Library code (the login session, the client, the credential store) never
prints directly; it calls the module-level :func:`info` and :func:`debug`
helpers, which go through whichever :class:`OutputManager` the CLI
installed.  Keys, secrets and envelopes are never handed to any of them.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """Payload format.  ``AUTO`` becomes ``RICH`` on a colour terminal, else ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Writes payloads to stdout and progress/diagnostics to stderr.

    Args:
        format: Payload format; ``AUTO`` is resolved against the terminal.
        no_color: Force markup off even on a colour terminal.
        quiet: Drop progress lines, successes and hints.  Errors still print.
        verbose: Also print :meth:`debug` lines (retry delays, HTTP statuses).
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            rich_ok = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # -- payloads (stdout) ------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Print a decoded API payload.

        JSON mode prints indented JSON, Rich mode the same JSON highlighted,
        plain mode one ``key<TAB>value`` line per dict entry or one line per
        list item.
        """
        if self._format == OutputFormat.PLAIN:
            self._print_plain(data)
            return
        if self._format == OutputFormat.RICH and not isinstance(data, (dict, list)):
            self._stdout.print(str(data))
            return

        text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        if self._format == OutputFormat.JSON:
            self.print_data(text)
        else:
            self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print *rows* under *headers*.

        JSON mode emits a list of header-keyed objects, plain mode
        tab-separated lines (header first, *title* dropped), Rich mode a
        boxed table.
        """
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
            return
        if self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
            return

        table = Table(title=title, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # -- diagnostics (stderr) --------------------------------------------- #

    def info(self, message: str) -> None:
        if not self._quiet:
            self._emit(message, None)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._emit(message, "[green]{}[/green]")

    def error(self, message: str) -> None:
        """Always printed, ``--quiet`` or not."""
        self._emit(f"Error: {message}", "[bold red]{}[/bold red]")

    def suggest(self, message: str) -> None:
        """Next-step hint such as ``irsession keygen``."""
        if not self._quiet:
            self._emit(f"→ {message}", "[dim]{}[/dim]")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._emit(f"[debug] {message}", "[dim]{}[/dim]")

    def _emit(self, message: str, markup: Optional[str]) -> None:
        if self._no_color or markup is None:
            print(message, file=sys.stderr, flush=True)
            return
        # Paths and API messages may contain "[", which Rich reads as markup.
        self._stderr.print(markup.format(message.replace("[", "\\[")))

    def _print_plain(self, data: Any) -> None:
        if isinstance(data, dict):
            for key, value in data.items():
                self.print_data(f"{key}\t{value}")
        elif isinstance(data, list):
            for item in data:
                if isinstance(item, dict):
                    self.print_data("\t".join(str(v) for v in item.values()))
                else:
                    self.print_data(str(item))
        else:
            self.print_data(str(data))


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` set to anything (even empty) or ``TERM=dumb``."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


# -- process-wide manager ------------------------------------------------- #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, creating a default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
