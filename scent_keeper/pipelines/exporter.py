import logging
from pathlib import Path
from typing import Any, Optional, Sequence

from scent_keeper import data_handler, settings, spreadsheet, utils
from scent_keeper.exceptions import ExportError, ValidationError
from scent_keeper.images import ImageOptimizer
from scent_keeper.pipeline import BackupPipeline
from scent_keeper.progress import ProgressSink, StepCounter
from scent_keeper.schemas import ExportResult, InventoryItem

logger = logging.getLogger(__name__)


def build_headers(include_images: bool) -> list[str]:
    headers = list(settings.HEADERS)
    if include_images:
        headers.extend(settings.IMAGE_HEADERS)
    return headers


def build_column_widths(include_images: bool) -> list[int]:
    widths = list(settings.COLUMN_WIDTHS)
    if include_images:
        widths.extend(settings.IMAGE_COLUMN_WIDTHS)
    return widths


def build_row(item: InventoryItem) -> list[Any]:
    """The fixed part of an export row, aligned with settings.HEADERS."""
    return [
        item.name or "",
        item.barcode or "",
        item.quantity or 0,
        item.location or "",
        item.rating or 0,
        item.notes or "",
        utils.format_date(item.date_added, settings.DATE_FORMAT),
    ]


def build_filename(filename: Optional[str] = None) -> str:
    if filename:
        return filename
    timestamp = utils.get_timestamp_for_filename()
    return f"{settings.PRODUCT_NAME}-backup-{timestamp}{settings.BACKUP_EXTENSION}"


class ExportPipeline(BackupPipeline):
    """
    Inventory -> rows -> xlsx document -> file.

    Items are processed in batches of `batch_size`; between batches the
    pipeline sleeps for `batch_delay` seconds so other tasks on the event
    loop (a progress display) get to run. Batching never changes row order.
    """

    error_class = ExportError

    def __init__(
        self,
        inventory: Optional[Sequence[InventoryItem]],
        include_images: bool = True,
        filename: Optional[str] = None,
        on_progress: Optional[ProgressSink] = None,
        optimizer: Optional[ImageOptimizer] = None,
        output_dir: Path = settings.OUTPUT_DIR,
        batch_size: int = settings.BATCH_SIZE,
        batch_delay: float = settings.BATCH_DELAY_SECONDS,
    ):
        super().__init__("export", on_progress)
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        self.inventory = list(inventory) if inventory else []
        self.include_images = include_images
        self.filename = build_filename(filename)
        self.optimizer = optimizer or ImageOptimizer()
        self.output_dir = Path(output_dir)
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        # +2 for setup and finalization
        self.progress = StepCounter(on_progress, len(self.inventory) + 2)

    async def extract(self) -> list[list[Any]]:
        if not self.inventory:
            raise ValidationError("No data to export")
        if not utils.is_plain_filename(self.filename):
            raise ValidationError(f"Invalid backup filename: {self.filename!r}")

        self.progress.advance("Initializing export...")

        rows = [build_headers(self.include_images)]

        for start in range(0, len(self.inventory), self.batch_size):
            batch = self.inventory[start : start + self.batch_size]

            for item in batch:
                self.progress.advance(f"Processing {item.name}...")
                rows.append(await self._build_item_row(item))

            # Allow the UI to update between batches
            await utils.delay(self.batch_delay)

        logger.info(f"Prepared {len(rows) - 1} rows (images: {self.include_images})")
        return rows

    async def _build_item_row(self, item: InventoryItem) -> list[Any]:
        row = build_row(item)
        if not self.include_images:
            return row

        try:
            image = await self.optimizer.get_optimized_image_data(item)
            row.extend([image.data or "", image.type or ""])
        except Exception as e:
            logger.warning(f"⚠️ Image processing failed for '{item.name}': {e}")
            row.extend(["", ""])
        return row

    async def transform(self, rows: list[list[Any]]) -> bytes:
        self.progress.advance("Creating Excel file...")
        return spreadsheet.encode_rows(
            rows,
            column_widths=build_column_widths(self.include_images),
            sheet_name=settings.SHEET_NAME,
        )

    async def load(self, document: bytes) -> ExportResult:
        path = data_handler.save_backup(document, self.filename, self.output_dir)
        self.progress.finish(f"Saved {self.filename}")

        return ExportResult(
            success=True,
            filename=self.filename,
            item_count=len(self.inventory),
            include_images=self.include_images,
            path=path,
        )
