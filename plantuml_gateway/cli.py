"""CLI interface."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer

from plantuml_gateway.errors import GatewayError
from plantuml_gateway.gateway import PlantUmlGateway
from plantuml_gateway.markdown_blocks import extract_plantuml_blocks
from plantuml_gateway.utils.config import get_settings
from plantuml_gateway.utils.paths import ensure_dir
from plantuml_gateway.utils.plantuml_encode import plantuml_encode

app = typer.Typer(add_completion=False)


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@app.callback()
def main(log_level: Optional[str] = typer.Option(None, "--log-level", help="Override PLANTUML_GATEWAY_LOG_LEVEL.")):
    _configure_logging(log_level or get_settings().log_level)


@app.command()
def encode(
    file: Optional[Path] = typer.Argument(None, help="PlantUML source file."),
    text: Optional[str] = typer.Option(None, "--text", "-t", help="PlantUML text."),
):
    """Print the URL token for a diagram."""
    if file is None and text is None:
        raise typer.BadParameter("Provide FILE or --text")
    source = text if text is not None else file.read_text(encoding="utf-8")
    typer.echo(plantuml_encode(source))


async def _render_all(sources: list[tuple[str, str]], jar: Optional[str]) -> list:
    settings = get_settings()
    async with PlantUmlGateway.create(settings, jar_path=jar) as gateway:
        try:
            await gateway.start()
        except GatewayError as exc:
            typer.echo(f"Cannot start PlantUML: {exc}", err=True)
            raise typer.Exit(code=2)
        results = await asyncio.gather(*(gateway.render(code) for _, code in sources))
    return list(zip((name for name, _ in sources), results))


def _write_results(results: list, output_dir: Path) -> int:
    failures = 0
    for name, result in results:
        if result.ok:
            target = output_dir / f"{name}.svg"
            target.write_text(result.svg, encoding="utf-8")
            typer.echo(str(target))
        else:
            failures += 1
            typer.echo(f"{name}: {result.error}", err=True)
    return failures


@app.command()
def render(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="PlantUML source file."),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o"),
    jar: Optional[str] = typer.Option(None, "--jar", help="Path to plantuml.jar."),
):
    """Render one diagram to SVG."""
    out = ensure_dir(str(output_dir or get_settings().output_dir))
    results = asyncio.run(_render_all([(file.stem, file.read_text(encoding="utf-8"))], jar))
    if _write_results(results, out):
        raise typer.Exit(code=1)


@app.command()
def markdown(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Markdown document."),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o"),
    jar: Optional[str] = typer.Option(None, "--jar", help="Path to plantuml.jar."),
):
    """Render every ```plantuml block of a Markdown file to SVG."""
    blocks = extract_plantuml_blocks(file.read_text(encoding="utf-8"))
    if not blocks:
        typer.echo("No plantuml blocks found.", err=True)
        return
    out = ensure_dir(str(output_dir or get_settings().output_dir))
    results = asyncio.run(_render_all([(f"{file.stem}-{b.id}", b.code) for b in blocks], jar))
    if _write_results(results, out):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
