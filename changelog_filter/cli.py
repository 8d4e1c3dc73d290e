from importlib.metadata import PackageNotFoundError, version as distribution_version
from typing import List, Optional
import json
import logging

from changelog_filter.common.debian.changelog import Entry, render_entries
from changelog_filter.common.errors import ChangelogFilterError, ErrorEnumEncoder, FormatError
from changelog_filter.common.logging import setup_logger, get_logger
from changelog_filter.common.ui.snippet import render_format_error
from changelog_filter.filter import compile_pattern, filter_entries
from changelog_filter.parser import parse_changelog
import typer
from enum import Enum

DISTRIBUTION_NAME = "changelog-filter"


# Format options enum
class OutputFormat(str, Enum):
    text = "text"
    json = "json"


# Global state for CLI options
class GlobalOptions:
    verbose: int = 0
    quiet: bool = False

global_options = GlobalOptions()

def configure_logging():
    """Configure logging based on global options."""
    if global_options.quiet:
        log_level = logging.ERROR
    elif global_options.verbose >= 2:
        log_level = logging.DEBUG
    elif global_options.verbose >= 1:
        log_level = logging.INFO
    else:
        log_level = logging.WARNING

    setup_logger(level=log_level)

def verbose_callback(value: int):
    """Callback for verbose option."""
    global_options.verbose = value
    configure_logging()

def quiet_callback(value: bool):
    """Callback for quiet option."""
    global_options.quiet = value
    configure_logging()

def get_version() -> str:
    """Version of the installed distribution, "(devel)" when running from a checkout."""
    try:
        return distribution_version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return "(devel)"

def version_callback(value: bool):
    if value:
        typer.echo(get_version())
        raise typer.Exit()

def output_text(entries: List[Entry]):
    """Print entries in changelog layout, one blank line between entries."""
    if entries:
        typer.echo(render_entries(entries))

def output_json(entries: List[Entry]):
    """Print entries as a JSON array."""
    typer.echo(json.dumps([e.to_dict() for e in entries], indent=2, cls=ErrorEnumEncoder))

def error_to_dict(error: ChangelogFilterError) -> dict:
    """Convert an error to a dictionary for JSON serialization."""
    result = {
        "error": error.code,
        "message": str(error),
    }
    if isinstance(error, FormatError):
        result["line"] = error.line
        result["line_number"] = error.line_number
        result["expected"] = error.expected
        result["column"] = error.column
    return result

def report_error(error: ChangelogFilterError, source: str, output_format: OutputFormat):
    """Report a fatal error in the requested format."""
    logger = get_logger("cli")
    logger.error(str(error))

    if output_format == OutputFormat.json:
        typer.echo(json.dumps(error_to_dict(error), indent=2, cls=ErrorEnumEncoder))
    elif isinstance(error, FormatError) and not global_options.quiet:
        render_format_error(error, source=source)


app = typer.Typer(
    help="changelog-filter - filter for Debian/Ubuntu package changelogs",
    add_completion=False,
)

# Add global options to the main app
@app.callback()
def main(
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)",
        callback=verbose_callback,
        is_eager=True
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress all output except errors",
        callback=quiet_callback,
        is_eager=True
    ),
    version: bool = typer.Option(
        False, "--version",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True
    ),
):
    """Global options for changelog-filter."""
    pass


@app.command("filter")
def filter_command(
    infile: typer.FileText = typer.Argument(
        "-", metavar="FILE", help="Changelog file to read, or '-' for stdin"
    ),
    pattern: str = typer.Option(
        ".", "--filter", "-e",
        help="Regular expression matched against change summaries and detail lines"
    ),
    format: OutputFormat = typer.Option(
        OutputFormat.text, "--format", "-f",
        help="Output format: 'text' for changelog layout, 'json' for a JSON array of entries"
    ),
):
    """
    Print the changes and details of a changelog that match a pattern.
    """
    logger = get_logger("cli")
    logger.debug(f"Output format: {format}")

    try:
        filter_re = compile_pattern(pattern)
        logger.debug(f"Reading changelog from {infile.name}")
        entries = parse_changelog(infile)
        filtered = filter_entries(entries, filter_re)
    except ChangelogFilterError as e:
        report_error(e, infile.name, format)
        raise typer.Exit(code=1)

    logger.info(f"Printing {len(filtered)} of {len(entries)} entries")
    if format == OutputFormat.json:
        output_json(filtered)
    else:
        output_text(filtered)


@app.command("help")
def help_cmd(
    ctx: typer.Context,
    command: Optional[str] = typer.Argument(
        None,
        help="Command to show help for, e.g. `help filter`.",
    ),
):
    """Show the same help text as `--help`."""
    if command is None:
        typer.echo(ctx.parent.get_help())
        raise typer.Exit()

    target = ctx.parent.command.get_command(ctx.parent, command)
    if target is None:
        typer.secho(f"Unknown command: {command}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)

    with typer.Context(target, info_name=command, parent=ctx.parent) as subctx:
        typer.echo(target.get_help(subctx))
    raise typer.Exit()


if __name__ == "__main__":
    app()
