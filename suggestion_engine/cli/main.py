"""
CLI interface for the suggestion engine.

Provides command-line access to batch, query and trending suggestions.
"""

import asyncio
import logging
import sys
from typing import List, Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from suggestion_engine.config.loader import EngineConfig, load_engine_config
from suggestion_engine.core.errors import QuotaExceeded
from suggestion_engine.engine import create_engine
from suggestion_engine.storage.models import InteractionContext, SuggestionType

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


def _load_config(path: Optional[str]) -> EngineConfig:
    if path is None:
        return EngineConfig()
    return load_engine_config(path)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML engine configuration file"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging"
    ),
):
    """Suggestion Engine CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    ctx.obj = {"config_path": config}
    if ctx.invoked_subcommand is None:
        console.print("Suggestion Engine - Use --help to see available commands")


@app.command()
def batch(
    ctx: typer.Context,
    type: str = typer.Argument(..., help="creative, structured, technical or trending"),
    category: str = typer.Argument(..., help="Category, e.g. marketing"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="User to charge against quota"),
):
    """Generate (or fetch cached) batch suggestions."""
    try:
        suggestion_type = SuggestionType(type.lower())
    except ValueError:
        valid = ", ".join(t.value for t in SuggestionType)
        console.print(f"[red]Error:[/] unknown type '{type}' (expected one of: {valid})")
        sys.exit(EXIT_CODE_FAIL)

    try:
        engine = create_engine(_load_config(ctx.obj["config_path"]))
        suggestions = asyncio.run(engine.process_batch_request(suggestion_type, category, user))
    except QuotaExceeded as e:
        console.print(f"[yellow]Quota exceeded:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    table = Table(title=f"{suggestion_type.value.capitalize()} suggestions for {category}")
    table.add_column("Title")
    table.add_column("Tags")
    table.add_column("Complexity", justify="right")
    table.add_column("Cost", justify="right")
    for suggestion in suggestions:
        table.add_row(
            suggestion.title,
            ", ".join(suggestion.tags),
            str(suggestion.complexity),
            _format_currency(suggestion.estimated_cost),
        )
    console.print(table)
    console.print(f"Provider: {suggestions[0].provider_used.value}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def suggest(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="What you want prompts for"),
    user: str = typer.Option(..., "--user", "-u", help="User asking"),
    preference: List[str] = typer.Option([], "--preference", "-p", help="User preference (repeatable)"),
):
    """Relevance-ranked suggestions for a single query."""
    try:
        engine = create_engine(_load_config(ctx.obj["config_path"]))
        context = InteractionContext(user_preferences=list(preference))
        suggestions = asyncio.run(engine.generate_suggestions(query, user, context))
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    _print_prompt_suggestions(f"Suggestions for \"{query}\"", suggestions)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def trending(
    ctx: typer.Context,
    timeframe: str = typer.Option("week", "--timeframe", "-t", help="day, week or month"),
):
    """Trending suggestions for a timeframe."""
    try:
        engine = create_engine(_load_config(ctx.obj["config_path"]))
        suggestions = asyncio.run(engine.get_trending_suggestions(timeframe))
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if not suggestions:
        console.print("[yellow]No trending suggestions available right now[/]")
        sys.exit(EXIT_CODE_PASS)

    _print_prompt_suggestions(f"Trending this {timeframe}", suggestions)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def tiers(ctx: typer.Context):
    """Show quota limits per tier."""
    try:
        config = _load_config(ctx.obj["config_path"])
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    table = Table(title="Quota tiers")
    table.add_column("Tier")
    table.add_column("Daily", justify="right")
    table.add_column("Session", justify="right")
    for tier, limits in config.tiers.items():
        table.add_row(tier.value, _format_limit(limits.daily), _format_limit(limits.session))
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command("check-config")
def check_config(path: str = typer.Argument(..., help="YAML file to validate")):
    """Validate an engine configuration file."""
    try:
        load_engine_config(path)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Invalid configuration:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] {path} is valid")
    sys.exit(EXIT_CODE_PASS)


def _format_currency(amount: float) -> str:
    """Format a per-suggestion cost."""
    return f"${amount:,.4f}"


def _format_limit(limit: int) -> str:
    return "unlimited" if limit < 0 else str(limit)


def _print_prompt_suggestions(title: str, suggestions) -> None:
    if not suggestions:
        console.print("\n[dim]No suggestions matched.[/]")
        return

    table = Table(title=title)
    table.add_column("Title")
    table.add_column("Category")
    table.add_column("Relevance", justify="right")
    table.add_column("Tokens", justify="right")
    for suggestion in suggestions:
        table.add_row(
            suggestion.title,
            suggestion.category,
            f"{suggestion.relevance_score:.2f}",
            str(suggestion.estimated_tokens),
        )
    console.print(table)


if __name__ == "__main__":
    app()
