"""CLI helpers for inspecting the available color themes."""

from __future__ import annotations

from typing import Annotated

from rich import box
from rich.table import Table
import typer

from codesmith.core.exceptions import ThemeLoadError
from codesmith.core.themes import ThemeManager, builtin_theme_names

from ..state import emit_warning, get_cli_state


def list_themes(
    kind: Annotated[
        str | None,
        typer.Option(
            "--type",
            help="Only list themes of this type (dark or light).",
            case_sensitive=False,
        ),
    ] = None,
) -> None:
    """Print a table listing the built-in themes and their type."""
    wanted = kind.lower() if kind else None
    if wanted not in (None, "dark", "light"):
        raise typer.BadParameter("expected 'dark' or 'light'", param_hint="--type")

    manager = ThemeManager()
    table = Table(
        title="Built-in Themes",
        box=box.SQUARE,
        show_edge=True,
        header_style="bold cyan",
    )
    table.add_column("Name", style="magenta")
    table.add_column("Type", style="green")
    table.add_column("Background")

    rows = 0
    for name in builtin_theme_names():
        try:
            theme = manager.load(name)
        except ThemeLoadError as exc:
            emit_warning(f"Skipping theme '{name}'", exception=exc)
            continue
        if wanted is not None and theme.type != wanted:
            continue
        table.add_row(name, theme.type, theme.background)
        rows += 1

    if not rows:
        table.add_row("-", "-", "No themes found")
    get_cli_state().console.print(table)


__all__ = ["list_themes"]
