from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from changelog_filter.common.errors import FormatError

console = Console(stderr=True)
POINTER_CHAR = "^"


def _create_column_pointer(line: str, col_start: int, col_end: int) -> str:
    """
    Create a pointer line underlining the given columns.

    Args:
        line: The source line to point at
        col_start: Starting column position (1-based)
        col_end: Ending column position (1-based, exclusive)

    Returns:
        String with spaces up to col_start followed by pointer characters
    """
    if col_start < 1:
        col_start = 1
    visual_line = line.expandtabs(4)
    padding = " " * min(col_start - 1, len(visual_line))
    return padding + POINTER_CHAR * max(1, col_end - col_start)


def render_snippet(
    line: str,
    *,
    line_number: int,
    column: int = 1,
    messages: list[str],
    title: str | None = None,
    target: Console | None = None,
):
    """
    Render a single input line with its line number, underline it from
    ``column`` to its end, and print the messages below it inside a panel.
    """
    ln_width = len(str(line_number))

    table = Table.grid(padding=(0, 1))
    table.expand = True
    # gutter pointer, line number, code
    table.add_column("g", width=1, justify="right", no_wrap=True)
    table.add_column("#", width=ln_width, justify="right", no_wrap=True, style="dim")
    table.add_column("code")

    table.add_row("❱", f"{line_number}", Text(line, no_wrap=True, style="bold"))
    table.add_row("│", " " * ln_width, Text(_create_column_pointer(line, column, len(line) + 1), style="cyan"))
    for message in messages:
        table.add_row("│", " " * ln_width, Text(message, style="bold red"))

    panel_title = Text(title) if title else None
    (target or console).print(Panel(Group(table), title=panel_title, border_style="dim"))


def render_format_error(error: FormatError, *, source: str = "<stdin>", target: Console | None = None):
    """Show where a FormatError occurred and what shape was expected."""
    render_snippet(
        error.line,
        line_number=error.line_number,
        column=error.column,
        messages=[str(error), f"expected: {error.expected}"],
        title=f"{source}:{error.line_number} [{error.code.value}]",
        target=target,
    )
