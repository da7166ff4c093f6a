"""
Console Output

User-facing status lines go through ConsoleReporter. Every handler on the
server prints through the same reporter, so one process-wide lock keeps
concurrent messages from interleaving mid-line. The lock is held only while
a single line is written.

Diagnostic logging is separate: setup_logging() routes the standard logging
module through rich, onto the error stream.
"""

import logging
import threading
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

# Serializes every write made through any ConsoleReporter
_print_lock = threading.Lock()


class ConsoleReporter:
    """Line-atomic status output for concurrent handlers."""

    def __init__(self, out: Optional[Console] = None,
                 err: Optional[Console] = None):
        self.out = out or Console(highlight=False)
        self.err = err or Console(stderr=True, highlight=False)

    def report(self, message: str, error: bool = False):
        """Write one message plus a newline; errors go to the error stream."""
        console = self.err if error else self.out
        with _print_lock:
            console.print(message, markup=False, highlight=False, emoji=False,
                          soft_wrap=True)

    def info(self, message: str):
        self.report(message)

    def error(self, message: str):
        self.report(message, error=True)


# Shared by the CLI and anything else that does not bring its own
reporter = ConsoleReporter()


def setup_logging(level: str = 'WARNING', verbose: bool = False):
    """Configure logging with rich output on the error stream."""
    if verbose:
        level = 'DEBUG'
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        handlers=[RichHandler(console=reporter.err, show_time=False,
                              show_path=False)]
    )
