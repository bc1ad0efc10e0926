"""
Command-line front end for spreadsheet backups of the inventory file.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, TextColumn

from . import data_handler, settings
from .exceptions import BackupError
from .images import DirectoryImageStore
from .logger import setup_logger
from .manager import BackupManager
from .schemas import ProgressEvent

console = Console()


def _progress_bar() -> Progress:
    return Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        console=console,
    )


def _progress_sink(progress: Progress, task_id):
    def update(event: ProgressEvent) -> None:
        progress.update(task_id, completed=event.percentage, description=event.message)

    return update


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose):
    """My Scent Keeper - spreadsheet backup and restore."""
    setup_logger("scent_keeper", "DEBUG" if verbose else settings.LOG_LEVEL)


@cli.command("export")
@click.argument("inventory_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--no-images", is_flag=True, help="Leave the image columns out")
@click.option("--filename", "-f", default=None, help="Name of the backup file")
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=settings.OUTPUT_DIR,
    show_default=True,
)
@click.option(
    "--images-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=settings.IMAGE_STORE_DIR,
    help="Directory of stored images named '<item id>.<ext>'",
)
def export_cmd(inventory_file: Path, no_images: bool, filename: Optional[str], output_dir: Path, images_dir: Optional[Path]):
    """Export INVENTORY_FILE (JSON) to an xlsx backup."""
    image_store = DirectoryImageStore(images_dir) if images_dir else None
    manager = BackupManager(image_store=image_store, output_dir=output_dir)

    try:
        inventory = data_handler.load_inventory(inventory_file)
        with _progress_bar() as progress:
            task_id = progress.add_task("Starting export...", total=100)
            result = asyncio.run(
                manager.export_to_excel(
                    inventory,
                    include_images=not no_images,
                    filename=filename,
                    on_progress=_progress_sink(progress, task_id),
                )
            )
    except BackupError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)

    with_images = " with images" if result.include_images else ""
    console.print(
        f"[green]Export successful! Saved {result.item_count} items{with_images} to {result.path}[/green]"
    )


@cli.command("import")
@click.argument("backup_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("inventory_file", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--no-images", is_flag=True, help="Ignore the image columns")
@click.option("--yes", "-y", is_flag=True, help="Replace the inventory without asking")
def import_cmd(backup_file: Path, inventory_file: Path, no_images: bool, yes: bool):
    """Import BACKUP_FILE (xlsx) into INVENTORY_FILE (JSON), replacing it."""
    manager = BackupManager()

    try:
        with _progress_bar() as progress:
            task_id = progress.add_task("Starting import...", total=100)
            result = asyncio.run(
                manager.import_from_excel(
                    backup_file,
                    on_progress=_progress_sink(progress, task_id),
                    load_images=not no_images,
                )
            )
    except BackupError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)

    with_images = " with images" if result.has_images else ""
    prompt = f"Import {result.item_count} items{with_images}? This will replace your current inventory."
    if not yes and not click.confirm(prompt, default=False):
        console.print("Import cancelled. Inventory unchanged.")
        return

    data_handler.save_inventory(result.inventory, inventory_file)
    console.print(f"[green]Successfully imported {result.item_count} products![/green]")

    locations = sorted({item.location for item in result.inventory})
    if locations:
        console.print(f"Locations: {', '.join(locations)}")
