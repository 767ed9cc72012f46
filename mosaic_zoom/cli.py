"""Rich command-line interface powered by Typer."""

from __future__ import annotations

import logging
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from mosaic_zoom.analyzer import analyze_image
from mosaic_zoom.config import MosaicConfig, MosaicOptions
from mosaic_zoom.errors import MosaicError
from mosaic_zoom.grid import resolution_requirements
from mosaic_zoom.image_io import fit_within, load_image
from mosaic_zoom.pipeline import generate_mosaic
from mosaic_zoom.session import Session

app = typer.Typer(
    name="mosaic-zoom",
    help="Build photo mosaics from a tile pool and export them as Deep Zoom pyramids.",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=True)],
    )


def _collect_images(folder: Path, extensions: frozenset[str]) -> list[Path]:
    if not folder.exists():
        return []
    return sorted(
        f for f in folder.iterdir()
        if f.is_file() and f.suffix.lower() in extensions
    )


# Defaults come from MosaicConfig / MosaicOptions - single source of truth
_DEFAULTS = MosaicConfig()
_OPTIONS = MosaicOptions()


# -- generate command --------------------------------------------------

@app.command()
def generate(
    target: Path = typer.Argument(..., help="Path to the target image"),
    tiles_dir: Path = typer.Argument(..., help="Folder with tile images"),
    output_dir: Path = typer.Option(Path("output"), "--output", "-o", help="Results folder"),
    tier: str = typer.Option(_OPTIONS.tier, "--tier", "-t", help="'low', 'medium' or 'high'"),
    tiles: int | None = typer.Option(None, "--tiles", "-n", help="Exact tile count"),
    all_tiles: bool = typer.Option(
        False, "--all-tiles", help="One cell per tile (with --tier high)",
    ),
    auto: bool = typer.Option(
        False, "--auto", help="Tile count from image complexity",
    ),
    detail: int = typer.Option(
        _OPTIONS.detail_multiplier, "--detail", "-d", help="Split cells n x n (1, 2, 3)",
    ),
    duplicates: bool = typer.Option(
        _OPTIONS.allow_duplicates, "--duplicates/--no-duplicates", help="Reuse tiles",
    ),
    max_usage: int | None = typer.Option(None, "--max-usage", help="Uses per tile"),
    tint: float = typer.Option(
        0.0, "--tint", help="Tint intensity in [0, 1] (0 = off)",
    ),
    max_side: int = typer.Option(
        _DEFAULTS.max_output_side or 0, "--max-side", "-m",
        help="Longest mosaic side (0 = target size)",
    ),
    dzi: bool = typer.Option(True, "--dzi/--no-dzi", help="Write the Deep Zoom pyramid"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Build a mosaic of TARGET from the images in TILES_DIR."""
    _setup_logging(verbose)

    cfg = MosaicConfig(max_output_side=max_side or None)
    try:
        options = MosaicOptions(
            tier=tier,  # type: ignore[arg-type]
            exact_tile_count=tiles,
            use_all_tiles=all_tiles,
            use_recommended=auto,
            detail_multiplier=detail,
            allow_duplicates=duplicates,
            max_usage_per_tile=max_usage,
            allow_tinting=tint > 0,
            tint_intensity=tint if tint > 0 else _OPTIONS.tint_intensity,
        )
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(2) from exc

    tile_paths = _collect_images(tiles_dir, cfg.SUPPORTED_EXTENSIONS)
    if not tile_paths:
        console.print(f"\n[yellow]No images found in {tiles_dir}/[/yellow]")
        raise typer.Exit(1)

    console.print(Panel.fit(
        f"[bold]MOSAIC ZOOM[/bold]\n"
        f"Tier: {options.tier}  |  Detail: x{options.detail_multiplier}\n"
        f"Duplicates: {options.allow_duplicates}  |  Tint: {tint:.2f}\n"
        f"Tiles: {len(tile_paths)}",
        border_style="cyan",
    ))
    t_total = time.perf_counter()

    session = Session(config=cfg)
    session.set_target_image(target.read_bytes())
    summary = session.add_tiles(p.read_bytes() for p in tile_paths)
    if summary.skipped:
        console.print(f"  [yellow]{summary.skipped} tile(s) could not be read[/yellow]")

    try:
        result = generate_mosaic(session, options, cfg)
    except MosaicError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc

    output_dir.mkdir(parents=True, exist_ok=True)
    mosaic_path = output_dir / "mosaic.jpg"
    mosaic_path.write_bytes(result.mosaic_bytes)
    if dzi and session.pyramid is not None:
        dzi_path = session.pyramid.save(output_dir, "mosaic")
        console.print(f"  [green]✓[/green] {dzi_path.name}  "
                      f"[dim]{session.pyramid.tile_count} tiles, "
                      f"{result.dzi_metadata.max_level + 1} levels[/dim]")

    meta = result.dzi_metadata
    console.print(
        f"  [green]✓[/green] {mosaic_path.name}  "
        f"[dim]{meta.width}x{meta.height}  grid={result.grid.cols}x{result.grid.rows}"
        f"  skipped={result.skipped_tiles}"
        f"  time={time.perf_counter() - t_total:.1f}s[/dim]"
    )


# -- analyze command ---------------------------------------------------

@app.command()
def analyze(
    target: Path = typer.Argument(..., help="Path to the target image"),
    max_side: int = typer.Option(
        _DEFAULTS.max_output_side or 0, "--max-side", "-m",
        help="Longest mosaic side (0 = target size)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Report image complexity and tile requirements per tier."""
    _setup_logging(verbose)

    img = fit_within(load_image(target), max_side or None)
    analysis = analyze_image(img)
    requirements = resolution_requirements(img.width, img.height)

    console.print(
        f"[bold]{target.name}[/bold]  {img.width}x{img.height}  "
        f"complexity={analysis.complexity}  "
        f"[dim]variance={analysis.color_variance:.1f}  "
        f"edges={analysis.edge_density:.1f}[/dim]"
    )

    table = Table(title="Tile requirements")
    table.add_column("Tier")
    table.add_column("Tiles", justify="right")
    table.add_column("Grid", justify="right")
    table.add_column("Recommended", justify="right")
    for tier, req in requirements.items():
        table.add_row(
            tier,
            str(req["tiles"]),
            f"{req['cols']}x{req['rows']}",
            str(analysis.recommended_tiles[tier]),
        )
    console.print(table)


if __name__ == "__main__":
    app()
