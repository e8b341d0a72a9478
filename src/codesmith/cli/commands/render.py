"""Implementation of the ``codesmith render`` command."""

from __future__ import annotations

from html import escape
from pathlib import Path
from typing import Annotated

from pygments.lexers import get_lexer_for_filename
from pygments.util import ClassNotFound
import typer

from codesmith.core.config import RendererConfig, build_config, load_config
from codesmith.core.exceptions import CodesmithError, exception_hint
from codesmith.core.renderer import RenderResult, create_renderer

from ..diagnostics import CliEmitter
from ..state import emit_error, set_cli_state


DIAGNOSTICS_PANEL = "Diagnostics"
OUTPUT_PANEL = "Output"


def guess_language(path: Path) -> str:
    """Return the language identifier Pygments associates with ``path``."""
    try:
        lexer = get_lexer_for_filename(path.name)
    except ClassNotFound:
        return ""
    aliases = getattr(lexer, "aliases", None) or []
    return aliases[0] if aliases else ""


def build_page(result: RenderResult, *, title: str) -> str:
    """Wrap a render result into a standalone HTML page."""
    styles = "".join(f"<style>{payload}</style>" for payload in result.style_payloads)
    scripts = "".join(
        f'<script type="module">{module}</script>' for module in result.script_modules
    )
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '<meta charset="utf-8">\n'
        f"<title>{escape(title)}</title>\n"
        f"{styles}\n"
        "</head>\n"
        "<body>\n"
        f"{result.to_html()}\n"
        f"{scripts}\n"
        "</body>\n"
        "</html>\n"
    )


def _load_configuration(config_path: Path | None, themes: list[str] | None) -> RendererConfig:
    config = load_config(config_path) if config_path is not None else RendererConfig()
    if themes:
        return build_config(config, themes=list(themes))
    return config


def render(
    input_path: Annotated[
        Path,
        typer.Argument(
            exists=True,
            dir_okay=False,
            readable=True,
            help="Source file to render.",
        ),
    ],
    language: Annotated[
        str | None,
        typer.Option(
            "--language",
            "-l",
            help="Language of the code; guessed from the file name when omitted.",
        ),
    ] = None,
    meta: Annotated[
        str,
        typer.Option("--meta", "-m", help='Meta string, e.g. \'title="app.js" {2-3}\'.'),
    ] = "",
    themes: Annotated[
        list[str] | None,
        typer.Option("--theme", "-t", help="Theme to render for; repeat for several themes."),
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            exists=True,
            dir_okay=False,
            help="YAML or JSON renderer configuration.",
        ),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Write the page to this file instead of stdout.",
            rich_help_panel=OUTPUT_PANEL,
        ),
    ] = None,
    fragment: Annotated[
        bool,
        typer.Option(
            "--fragment",
            help="Only emit the rendered node, without styles, scripts or page shell.",
            rich_help_panel=OUTPUT_PANEL,
        ),
    ] = False,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase CLI verbosity. Combine multiple times for additional diagnostics.",
            rich_help_panel=DIAGNOSTICS_PANEL,
        ),
    ] = 0,
    debug: Annotated[
        bool,
        typer.Option(
            "--debug",
            help="Show full tracebacks when an unexpected error occurs.",
            rich_help_panel=DIAGNOSTICS_PANEL,
        ),
    ] = False,
) -> None:
    """Render a source file as highlighted HTML."""
    state = set_cli_state(verbosity=verbose, debug=debug)
    try:
        code = input_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        emit_error(f"Unable to read '{input_path}'", exception=exc)
        raise typer.Exit(code=1) from exc

    selected_language = language if language is not None else guess_language(input_path)
    try:
        config = _load_configuration(config_path, themes)
        renderer = create_renderer(config, emitter=CliEmitter(state))
        block = renderer.create_block(code.rstrip("\n"), selected_language, meta)
        result = renderer.render(block)
    except CodesmithError as exc:
        if debug:
            raise
        hint = exception_hint(exc)
        message = str(exc) if hint is None or hint in str(exc) else f"{exc} ({hint})"
        emit_error(message, exception=exc)
        raise typer.Exit(code=1) from exc

    payload = result.to_html() + "\n" if fragment else build_page(result, title=input_path.name)
    if output is None:
        typer.echo(payload, nl=False)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(payload, encoding="utf-8")
    state.err_console.print(f"[green]Wrote[/] {output}")


__all__ = ["build_page", "guess_language", "render"]
