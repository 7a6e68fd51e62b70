"""Shared rich console.

Library modules print short diagnostics through this console and the CLI
uses it for tables and progress bars. It writes to stderr so command output
piped elsewhere stays clean; set `console.quiet = True` to silence it.
"""

from rich.console import Console

console = Console(stderr=True)
