"""Status lines for the command line, written to stderr through rich."""

import sys

from rich.console import Console
from rich.markup import escape

# Standard output carries the exported table only.
console = Console(stderr=True, highlight=False)

# kind -> (symbol, ascii fallback, style)
STATUS_STYLES = {
    "success": ("✓", "OK", "green"),
    "error": ("✗", "ERROR", "bold red"),
    "warning": ("⚠", "WARNING", "yellow"),
}


def can_display_unicode() -> bool:
    """Check whether stderr can encode the status symbols."""
    encoding = getattr(sys.stderr, "encoding", None) or "utf-8"
    try:
        "".join(symbol for symbol, _, _ in STATUS_STYLES.values()).encode(encoding)
    except (UnicodeEncodeError, LookupError):
        return False
    return True


def status_symbol(kind: str) -> str:
    symbol, fallback, _ = STATUS_STYLES[kind]
    return symbol if can_display_unicode() else fallback


def print_status(kind: str, message: str) -> None:
    style = STATUS_STYLES[kind][2]
    console.print(f"[{style}]{escape(status_symbol(kind))}[/{style}] {escape(message)}")


def print_success(message: str) -> None:
    print_status("success", message)


def print_error(message: str) -> None:
    print_status("error", message)


def print_warning(message: str) -> None:
    print_status("warning", message)
