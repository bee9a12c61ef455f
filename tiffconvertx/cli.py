"""
Command-line interface for tiffconvertx.
"""

import os
import sys

import click
from rich.console import Console
from rich.progress import Progress, TextColumn, BarColumn, TimeRemainingColumn, TaskProgressColumn
from rich.table import Table

from tiffconvertx.config import ConverterSettings
from tiffconvertx.exceptions import TiffConvertXError
from tiffconvertx.files import convert_file, export_pages
from tiffconvertx.router import FormatRouter
from tiffconvertx.utils import configure_logging, format_file_size

console = Console()


def _router(ctx: click.Context) -> FormatRouter:
    return ctx.obj["router"]


def _fail(message):
    console.print(f"\n[bold red]✗ Error:[/bold red] {message}")
    sys.exit(1)


@click.group()
@click.version_option(version="1.0.0")
@click.option(
    '--log-level',
    default=None,
    help='Logging level (overrides TIFFCONVERTX_LOG_LEVEL)',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False)
)
@click.pass_context
def cli(ctx, log_level):
    """
    TIFF Converter CLI - Convert multi-page TIFF files to JPEG or PDF.
    """
    try:
        settings = ConverterSettings.from_env()
    except TiffConvertXError as e:
        _fail(e.message)
    configure_logging(log_level or settings.log_level)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["router"] = FormatRouter(settings)


@cli.command(name="convert")
@click.argument('input_tiff', type=click.Path(exists=True, dir_okay=False))
@click.argument('output_file', type=click.Path(dir_okay=False))
@click.option(
    '--format', '-f', 'output_format',
    default=None,
    help='Output format (jpeg or pdf); inferred from OUTPUT_FILE when omitted',
    type=str
)
@click.option(
    '--quality', '-q',
    default=None,
    help='JPEG quality from 1 to 100',
    type=int
)
@click.option(
    '--compress/--no-compress',
    default=True,
    help='Re-encode PDF pages as JPEG (default) or embed them losslessly'
)
@click.option(
    '--report', '-r',
    is_flag=True,
    help='Print the conversion report'
)
@click.pass_context
def convert_command(ctx, input_tiff, output_file, output_format, quality, compress, report):
    """
    Convert a TIFF file to a JPEG (first page) or a PDF (all pages).

    Examples:

        tiffconvertx convert scan.tiff scan.pdf

        tiffconvertx convert scan.tiff cover.jpg -q 70

        tiffconvertx convert scan.tiff scan.pdf --no-compress --report
    """
    router = _router(ctx)

    console.print(f"\n[bold cyan]Converting {os.path.basename(input_tiff)}...[/bold cyan]")
    outcome = convert_file(
        input_tiff,
        output_file,
        output_format=output_format,
        quality=quality,
        compress=compress,
        router=router,
    )

    if not outcome.success:
        if report:
            console.print(outcome.report, markup=False, highlight=False)
        _fail(outcome.message)

    console.print(f"\n[bold green]✓ {outcome.message}[/bold green]")
    console.print(f"[dim]Output file: {outcome.output_location}[/dim]")
    if report:
        console.print()
        console.print(outcome.report, markup=False, highlight=False)
    console.print()


@cli.command(name="split")
@click.argument('input_tiff', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--output-dir', '-o',
    default='./output',
    help='Output directory for page images',
    type=click.Path(file_okay=False)
)
@click.option(
    '--quality', '-q',
    default=None,
    help='JPEG quality from 1 to 100',
    type=int
)
@click.option(
    '--prefix', '-p',
    default=None,
    help='Prefix for output filenames (defaults to the input name)',
    type=str
)
@click.pass_context
def split_command(ctx, input_tiff, output_dir, quality, prefix):
    """
    Write every page of a TIFF file as its own JPEG.

    Examples:

        tiffconvertx split scan.tiff

        tiffconvertx split scan.tiff -o pages -q 90 -p invoice
    """
    router = _router(ctx)
    try:
        with open(input_tiff, "rb") as handle:
            info = router.describe(handle.read())
        console.print(f"\n[bold cyan]Exporting {info.page_count} page(s)...[/bold cyan]")

        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeRemainingColumn(),
            console=console
        ) as progress:
            task = progress.add_task("Encoding pages", total=info.page_count)

            def update_progress(current, total):
                progress.update(task, completed=current)

            created_files = export_pages(
                input_tiff,
                output_dir,
                quality=quality,
                prefix=prefix,
                router=router,
                progress_callback=update_progress,
            )
    except TiffConvertXError as e:
        _fail(e.message)

    console.print(f"\n[bold green]✓ Successfully wrote {len(created_files)} file(s)[/bold green]")
    console.print(f"[dim]Output directory: {os.path.abspath(output_dir)}[/dim]")

    console.print("\n[bold]Created files:[/bold]")
    sample_size = min(5, len(created_files))
    for file_path in created_files[:sample_size]:
        console.print(f"  • {file_path.name}")

    if len(created_files) > sample_size:
        console.print(f"  ... and {len(created_files) - sample_size} more")

    console.print()


@cli.command(name="info")
@click.argument('input_tiff', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def info_command(ctx, input_tiff):
    """
    Display page information about a TIFF file.

    Example:

        tiffconvertx info scan.tiff
    """
    router = _router(ctx)
    try:
        with open(input_tiff, "rb") as handle:
            info = router.describe(handle.read())
    except TiffConvertXError as e:
        _fail(e.message)

    table = Table(title=f"TIFF Information: {os.path.basename(input_tiff)}")
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")

    table.add_row("File Path", os.path.abspath(input_tiff))
    table.add_row("File Size", format_file_size(info.input_size))
    table.add_row("Number of Pages", str(info.page_count))
    table.add_row("Decoder", f"{info.decoder.value} ({info.decoder_name})")
    table.add_row("Uniform Size", "Yes" if info.uniform else "No")

    pages = Table(title="Pages")
    pages.add_column("Page", justify="right", style="cyan")
    pages.add_column("Size", style="green")
    pages.add_column("Mode")
    pages.add_column("DPI")
    for page in info.pages:
        dpi = f"{page.dpi[0]:g} x {page.dpi[1]:g}" if page.dpi else "-"
        pages.add_row(str(page.index + 1), f"{page.width} x {page.height}", page.mode, dpi)

    console.print()
    console.print(table)
    console.print(pages)
    console.print()


if __name__ == '__main__':
    cli()
