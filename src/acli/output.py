"""Terminal output for the ``ai`` commands.

Two streams, two jobs:

* **stdout** carries results only: the ``whoami`` user, the ``status`` and
  ``config show`` tables. Scripts can pipe it.
* **stderr** carries everything addressed to the person at the keyboard:
  progress lines, the device code prompt, errors and next-step hints.

The format follows the root flags. ``--json`` and ``--plain`` force a
format; otherwise Rich rendering is used on an interactive terminal and
plain text when piped. ``--no-color``, ``NO_COLOR`` and ``TERM=dumb``
switch colour off.

:func:`~acli.app.main_callback` builds one :class:`OutputManager` per run
and installs it with :func:`set_output`; commands then call the
module-level helpers (:func:`info`, :func:`error`, :func:`print_table`, ...).
Library modules never print. They log through :mod:`logging`, and
:meth:`OutputManager.configure_logging` shows those records on stderr
under ``--verbose``.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How results on stdout are rendered. ``AUTO`` is resolved at startup."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Route command output to stdout or stderr in the active format.

    Args:
        format: Requested format. ``AUTO`` becomes ``RICH`` on a colour
            terminal and ``PLAIN`` otherwise.
        no_color: Disable colour and Rich markup.
        quiet: Drop informational stderr lines. Errors and the device code
            prompt are still shown.
        verbose: Show ``acli`` debug logging on stderr.
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
            force_terminal=format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    def configure_logging(self) -> None:
        """Attach a stderr handler to the ``acli`` logger when verbose.

        Any handler from an earlier call is removed first. Without
        ``--verbose`` the logger is held at ``WARNING``.
        """
        logger = logging.getLogger("acli")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        if not self._verbose:
            logger.setLevel(logging.WARNING)
            return

        if self._no_color:
            handler: logging.Handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter("[debug] %(name)s: %(message)s"))
        else:
            handler = RichHandler(console=self._stderr, show_path=False, show_time=False)
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)

    # ------------------------------------------------------------------ #
    # Results (stdout)
    # ------------------------------------------------------------------ #

    def write(self, text: str) -> None:
        """Write one line of result text to stdout."""
        print(text, file=sys.stdout, flush=True)

    def format_response(self, data: Any) -> None:
        """Render a mapping, list, JSON string or scalar to stdout."""
        if self._format == OutputFormat.JSON:
            if isinstance(data, str):
                try:
                    data = json.loads(data)
                except ValueError:
                    self.write(data)
                    return
            self.write(_dump(data))
        elif self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self.write(line)
        elif isinstance(data, (dict, list)):
            self._stdout.print(Syntax(_dump(data), "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(str(data))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows as a Rich table, tab-separated text, or a JSON array.

        In JSON mode each row becomes an object keyed by *headers*. The
        *title* is only shown by the Rich renderer.
        """
        if self._format == OutputFormat.JSON:
            self.write(_dump([dict(zip(headers, row)) for row in rows]))
            return
        if self._format == OutputFormat.PLAIN:
            for row in [headers, *rows]:
                self.write("\t".join(row))
            return

        table = Table(title=title, show_header=True, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Messages (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        self._notice(message, message)

    def success(self, message: str) -> None:
        self._notice(message, f"[green]{message}[/green]")

    def suggest(self, message: str) -> None:
        """Print a next step, e.g. ``Run: ai login``."""
        self._notice(f"→ {message}", f"[dim]→ {message}[/dim]")

    def progress(self, message: str) -> None:
        """Print a progress line. Only shown when stdout is a terminal."""
        if _is_tty():
            self._notice(message, f"[dim]{message}[/dim]")

    def error(self, message: str) -> None:
        self._notice(
            f"Error: {message}",
            f"[bold red]Error:[/bold red] {message}",
            always=True,
        )

    def highlight(self, label: str, value: str) -> None:
        """Print *label* followed by an emphasised *value*.

        Shown even with ``--quiet``: login cannot go on without the
        verification URL and user code.
        """
        self._notice(
            f"{label} {value}",
            f"{label} [bold green]{value}[/bold green]",
            always=True,
        )

    def _notice(self, plain: str, markup: str, always: bool = False) -> None:
        if self._quiet and not always:
            return
        if self._no_color:
            print(plain, file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup, highlight=False)


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _plain_lines(data: Any) -> list[str]:
    if isinstance(data, dict):
        return [f"{key}\t{value}" for key, value in data.items()]
    if isinstance(data, list):
        return [
            "\t".join(str(v) for v in item.values()) if isinstance(item, dict) else str(item)
            for item in data
        ]
    return [str(data)]


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set to anything or ``TERM`` is ``dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Process-wide instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager so the next call builds a fresh one."""
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


def suggest(message: str) -> None:
    get_output().suggest(message)


def progress(message: str) -> None:
    get_output().progress(message)


def error(message: str) -> None:
    get_output().error(message)


def highlight(label: str, value: str) -> None:
    get_output().highlight(label, value)
