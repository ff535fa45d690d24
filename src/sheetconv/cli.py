import logging
import sys
from pathlib import Path

import click

from .classifier import slugify
from .dialects import DIALECTS
from .detect import detect_all_formats
from .exceptions import CannotRenderError, UnsupportedFormatError, ValidationError
from .importer import SheetImporter
from .models import PlacementMode, RenderingOptions
from .registry import RendererRegistry
from .transpose import transpose_chordsheet

_EXTENSIONS = {str(descriptor.format): descriptor.extension for descriptor in DIALECTS}


def _default_filename(title: str | None, sheet_id: str, format: str) -> str:
    stem = slugify(title) if title else sheet_id
    return f"{stem or 'chordsheet'}{_EXTENSIONS.get(format, '.txt')}"


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log debug output to stderr.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Convert chord sheets between notation formats."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = RendererRegistry()


@main.command()
@click.pass_obj
def formats(registry: RendererRegistry) -> None:
    """List the supported output formats."""
    for name in registry.get_supported_formats():
        click.echo(name)


@main.command()
@click.argument("input_path", metavar="INPUT", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--all", "show_all", is_flag=True, default=False,
              help="Show the score of every format, best first.")
def detect(input_path: Path, show_all: bool) -> None:
    """Guess the notation format INPUT is written in."""
    result = SheetImporter().import_data(input_path.read_bytes(), input_path.name)
    if not result.ok:
        for error in result.errors:
            click.echo(f"Error: {error}", err=True)
        sys.exit(1)

    if show_all:
        for detection in detect_all_formats(result.content):
            click.echo(f"{str(detection.format):<12} {detection.confidence:.2f}")
        return

    detection = result.detected_format
    click.echo(f"{str(detection.format)} (confidence {detection.confidence:.2f})")
    for indicator in detection.indicators:
        click.echo(f"  - {indicator}")


@main.command()
@click.argument("input_path", metavar="INPUT", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-t", "--to", "target", required=True, metavar="FORMAT",
              help="Output format (see `sheetconv formats`).")
@click.option("-o", "--output", "output_path", default=None, metavar="PATH",
              help="Output file path (default: <title>.<ext>)")
@click.option("--stdout", is_flag=True, default=False,
              help="Print to stdout instead of writing a file.")
@click.option("--placement", type=click.Choice([m.value for m in PlacementMode]),
              default=PlacementMode.AUTO.value, show_default=True,
              help="Place chords above the lyric or inline; auto uses the format's default.")
@click.option("--preserve-original", is_flag=True, default=False,
              help="Emit chords exactly as they were written in the input.")
@click.option("--no-metadata", is_flag=True, default=False,
              help="Leave out the title/artist/key block.")
@click.option("--transpose", "semitones", type=int, default=None, metavar="N",
              help="Move every chord N semitones (negative moves down).")
@click.option("--key", "to_key", default=None, metavar="KEY",
              help="Transpose into KEY; needs a key in the input.")
@click.pass_obj
def convert(
    registry: RendererRegistry,
    input_path: Path,
    target: str,
    output_path: str | None,
    stdout: bool,
    placement: str,
    preserve_original: bool,
    no_metadata: bool,
    semitones: int | None,
    to_key: str | None,
) -> None:
    """Convert the chord sheet in INPUT to another format.

    \b
    Input may be ChordPro, OnSong, chords-over-lyrics text,
    or an HTML page with the chart inside <pre> blocks.
    """
    # --- Resolve renderer ---
    try:
        renderer = registry.create_renderer(target)
    except UnsupportedFormatError as exc:
        click.echo(f"Error: {exc}", err=True)
        click.echo(f"Supported formats: {', '.join(registry.get_supported_formats())}", err=True)
        sys.exit(1)

    # --- Import ---
    result = SheetImporter().import_data(input_path.read_bytes(), input_path.name)
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    if not result.ok:
        for error in result.errors:
            click.echo(f"Error: {error}", err=True)
        sys.exit(1)
    sheet = result.chordsheet

    # --- Transpose ---
    if semitones is not None and to_key is not None:
        click.echo("Error: --transpose and --key cannot be used together", err=True)
        sys.exit(1)
    if semitones is not None or to_key is not None:
        try:
            sheet = transpose_chordsheet(sheet, semitones=semitones, to_key=to_key)
        except ValidationError as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(1)

    # --- Render ---
    options = RenderingOptions(
        preserve_original_text=preserve_original,
        chord_placement=PlacementMode(placement),
        include_metadata=not no_metadata,
    )
    try:
        rendered = renderer.render(sheet, options)
    except CannotRenderError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    # --- Output ---
    if stdout:
        click.echo(rendered.content, nl=False)
        return

    dest = Path(output_path) if output_path else Path(_default_filename(sheet.title, sheet.id, str(renderer.format)))
    dest.write_text(rendered.content, encoding="utf-8")
    click.echo(f"Written to {dest}")
