"""CLI interface for treelens."""

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from treelens.config import (
    EngineSettings,
    HighlightSettings,
    IndentSettings,
    RulesSettings,
    get_settings,
    set_settings,
)
from treelens.errors import TreelensError
from treelens.formatters import format_highlights, format_indent, format_outline
from treelens.models.results import HighlightSpan, ThingCategory
from treelens.models.tree import ParsedSource
from treelens.pipeline.parse import parse_file
from treelens.pipeline.pipeline import DocumentEngine
from treelens.pipeline.rules import LanguageRules
from treelens.pipeline.rules_factory import available_languages, build_language_rules

console = Console()

# Rich styles for the console rendering of common tags
TAG_STYLES = {
    "comment": "dim",
    "doc-comment": "dim italic",
    "docstring": "green italic",
    "string": "green",
    "keyword": "bold magenta",
    "type": "cyan",
    "type-name": "bold cyan",
    "function-name": "bold blue",
    "function-call": "blue",
    "number": "yellow",
    "constant": "yellow",
    "builtin": "cyan",
    "decorator": "magenta",
    "bracket": "bright_black",
    "operator": "bright_black",
    "property": "bright_blue",
}


def setup_logging(log_level: str) -> None:
    """Configure logging with rich handler."""
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _parse_patterns(pattern_string: str) -> list[str]:
    """Parse comma-separated string into list."""
    return [p.strip() for p in pattern_string.split(",") if p.strip()]


def _write_output(text: str, output_path: Path | None) -> None:
    """Write output text to file or stdout."""
    if output_path:
        output_path.write_text(text)
    else:
        print(text)


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {message}", soft_wrap=True)
    sys.exit(1)


def _configure_settings(
    ctx: click.Context,
    level: int | None = None,
    enable: str = "",
    disable: str = "",
    indent_offset: int | None = None,
) -> EngineSettings:
    """Build the session settings from the global and command options."""
    highlight = HighlightSettings()
    if level is not None:
        highlight.level = level
    highlight.enable = highlight.enable + _parse_patterns(enable)
    highlight.disable = highlight.disable + _parse_patterns(disable)

    indent = IndentSettings()
    if indent_offset is not None:
        indent.offset = indent_offset

    rules = RulesSettings()
    if ctx.obj["rules_file"]:
        rules.rules_file = str(ctx.obj["rules_file"])
        rules.rules_file_ruleset = ctx.obj["ruleset"]
    if ctx.obj["strict"]:
        rules.strict_tables = True

    settings = EngineSettings(rules=rules, highlight=highlight, indent=indent)
    set_settings(settings)
    return settings


def _open_document(file: Path, language: str | None) -> tuple[ParsedSource, DocumentEngine]:
    """Parse a file and build its engine, exiting on failure."""
    try:
        parsed = parse_file(file, language)
        engine = DocumentEngine.for_language(parsed.language, get_settings())
    except (TreelensError, ValueError, RuntimeError) as e:
        _fail(str(e))
    return parsed, engine


def _render_highlights(parsed: ParsedSource, spans: list[HighlightSpan], byte_range: tuple[int, int]) -> Text:
    """Render the source with tag styles applied (earlier spans win on overlap)."""
    start, end = byte_range
    text = Text()
    styles: list[str | None] = [None] * (end - start)
    for span in reversed(spans):
        style = TAG_STYLES.get(span.tag)
        if style is None:
            continue
        for offset in range(max(span.start_byte, start), min(span.end_byte, end)):
            styles[offset - start] = style

    position = start
    while position < end:
        style = styles[position - start]
        run_end = position
        while run_end < end and styles[run_end - start] == style:
            run_end += 1
        text.append(parsed.source[position:run_end].decode("utf-8", errors="replace"), style=style)
        position = run_end
    return text


@click.group()
@click.pass_context
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default="WARNING",
    help="Set the logging level",
)
@click.option(
    "--rules-file",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="YAML rules file overriding the built-in tables",
)
@click.option(
    "--ruleset",
    type=str,
    default="default",
    help="Ruleset to load from the rules file (default: default)",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Reject indentation tables that do not end in a catch-all rule",
)
def main(
    ctx: click.Context,
    log_level: str,
    rules_file: Path | None,
    ruleset: str,
    strict: bool,
) -> None:
    """Tree-sitter rule engine for highlighting, indentation and navigation."""
    setup_logging(log_level.upper())

    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level
    ctx.obj["rules_file"] = rules_file
    ctx.obj["ruleset"] = ruleset
    ctx.obj["strict"] = strict


@main.command()
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.pass_context
@click.option("--language", type=str, default=None, help="Grammar to use (default: from extension)")
@click.option("--level", type=click.IntRange(1, 4), default=None, help="Feature level (1-4)")
@click.option("--enable", type=str, default="", help="Comma-separated features to enable")
@click.option("--disable", type=str, default="", help="Comma-separated features to disable")
@click.option("--start-line", type=int, default=None, help="First line to highlight (1-indexed)")
@click.option("--end-line", type=int, default=None, help="Last line to highlight (1-indexed)")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    default="console",
    help="Output format (default: console)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file path (default: stdout)",
)
def highlight(
    ctx: click.Context,
    file: Path,
    language: str | None,
    level: int | None,
    enable: str,
    disable: str,
    start_line: int | None,
    end_line: int | None,
    output_format: str,
    output: Path | None,
) -> None:
    """Show the highlight overlay for a file."""
    _configure_settings(ctx, level=level, enable=enable, disable=disable)
    parsed, engine = _open_document(file, language)

    syntax = engine.syntax(parsed)
    first = (start_line or 1) - 1
    last = (end_line or syntax.line_count) - 1
    try:
        spans = engine.highlight_lines(parsed, first, last)
    except TreelensError as e:
        _fail(str(e))
    byte_range = (syntax.line_start_byte(first), syntax.line_end_byte(last))

    if output_format.lower() == "json":
        _write_output(
            format_highlights(file, parsed.language, engine.enabled_features, spans),
            output,
        )
        return

    console.print(f"\nFeatures: [cyan]{', '.join(engine.enabled_features)}[/cyan]\n")
    console.print(_render_highlights(parsed, spans, byte_range))


@main.command()
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.pass_context
@click.option("--language", type=str, default=None, help="Grammar to use (default: from extension)")
@click.option("--line", type=int, default=None, help="Only compute this line (1-indexed)")
@click.option("--indent-offset", type=int, default=None, help="Columns per indent unit")
@click.option(
    "--check",
    is_flag=True,
    default=False,
    help="Report lines whose indentation differs and exit with code 1 if any do",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    default="console",
    help="Output format (default: console)",
)
def indent(
    ctx: click.Context,
    file: Path,
    language: str | None,
    line: int | None,
    indent_offset: int | None,
    check: bool,
    output_format: str,
) -> None:
    """Compute the indentation of each line of a file."""
    _configure_settings(ctx, indent_offset=indent_offset)
    parsed, engine = _open_document(file, language)
    syntax = engine.syntax(parsed)

    rows = [line - 1] if line is not None else list(range(syntax.line_count))
    try:
        results = [engine.compute_indent(parsed, row) for row in rows]
    except TreelensError as e:
        _fail(str(e))
    current = {row: syntax.current_indentation(row) for row in rows}

    if check:
        mismatches = [
            result
            for result in results
            if not syntax.is_blank_line(result.row) and current[result.row] != result.column
        ]
        for result in mismatches:
            console.print(
                f"{file}:{result.row + 1}: expected column {result.column}, "
                f"found {current[result.row]} [dim]({result.rule_name or 'no rule'})[/dim]",
                soft_wrap=True,
            )
        if mismatches:
            sys.exit(1)
        console.print("[green]Indentation OK[/green]")
        return

    if output_format.lower() == "json":
        print(format_indent(file, parsed.language, results, current))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Line", justify="right")
    table.add_column("Column", justify="right")
    table.add_column("Rule", style="cyan")
    table.add_column("Text", style="dim")
    for result in results:
        table.add_row(
            str(result.row + 1),
            str(result.column),
            result.rule_name or "",
            syntax.line_text(result.row).strip(),
        )
    console.print(table)


@main.command()
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.pass_context
@click.option("--language", type=str, default=None, help="Grammar to use (default: from extension)")
@click.option(
    "--category",
    "categories",
    type=click.Choice([c.value for c in ThingCategory], case_sensitive=False),
    multiple=True,
    help="Categories to list (default: definition)",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    default="console",
    help="Output format (default: console)",
)
def outline(
    ctx: click.Context,
    file: Path,
    language: str | None,
    categories: tuple[str, ...],
    output_format: str,
) -> None:
    """List the definitions (or other thing categories) of a file."""
    _configure_settings(ctx)
    parsed, engine = _open_document(file, language)

    wanted = [ThingCategory(c.lower()) for c in categories] or [ThingCategory.DEFINITION]
    grouped = engine.outline(parsed, wanted)

    if output_format.lower() == "json":
        print(format_outline(file, parsed.language, grouped))
        return

    if not grouped:
        console.print("[yellow]Nothing found[/yellow]")
        return
    for category, entries in grouped.items():
        console.print(f"\n[bold cyan]{category.value}[/bold cyan] ({len(entries)})")
        for entry in entries:
            label = entry.name or entry.node_type
            console.print(
                f"  • {label} [dim]{entry.node_type}, lines {entry.start_line}-{entry.end_line}[/dim]"
            )
    console.print()


def _print_rules(rules: LanguageRules) -> None:
    """Print the rule tables of a language."""
    console.print(f"\n[bold blue]Language: {rules.language}[/bold blue]\n")

    levels = Table(title="Highlight features", show_header=True, header_style="bold")
    levels.add_column("Level", justify="right")
    levels.add_column("Features", style="cyan")
    for index, features in enumerate(rules.highlight.levels, 1):
        levels.add_row(str(index), ", ".join(features))
    console.print(levels)

    for title, table in (("Indent rules", rules.indent), ("Thing rules", rules.things)):
        rule_table = Table(title=title, show_header=True, header_style="bold")
        rule_table.add_column("#", justify="right")
        rule_table.add_column("Name", style="cyan")
        rule_table.add_column("Action")
        for index, rule in enumerate(table, 1):
            action = rule.action
            if hasattr(action, "anchor"):
                description = f"{action.anchor.value} {action.offset}"
            else:
                description = action.category.value
            rule_table.add_row(str(index), rule.name, description)
        console.print(rule_table)


@main.command()
@click.argument("language", type=str)
@click.pass_context
def rules(ctx: click.Context, language: str) -> None:
    """Show the rule tables used for a language."""
    settings = _configure_settings(ctx)
    if not settings.rules.rules_file and language not in available_languages():
        _fail(f"No rule tables for '{language}'. Available: {', '.join(available_languages())}")
    try:
        language_rules = build_language_rules(settings, language)
    except (TreelensError, ValueError) as e:
        _fail(str(e))
    _print_rules(language_rules)


if __name__ == "__main__":
    main()
