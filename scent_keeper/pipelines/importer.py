import logging
from datetime import datetime, timezone
from typing import Any, Optional

from scent_keeper import data_handler, settings, spreadsheet, utils
from scent_keeper.exceptions import FormatError, ImportFailedError
from scent_keeper.pipeline import BackupPipeline
from scent_keeper.progress import ProgressSink, emit_progress
from scent_keeper.schemas import ImportResult, InventoryItem

logger = logging.getLogger(__name__)

IMAGE_DATA_HEADER = settings.IMAGE_HEADERS[0]

# Percentages reported by the importer.
READ_PERCENT = 10
PROCESS_START_PERCENT = 30
PROCESS_END_PERCENT = 90


def _cell(row: list[Any], index: int) -> Any:
    return row[index] if 0 <= index < len(row) else None


def parse_quantity(value: Any) -> int:
    quantity = utils.parse_int(value)
    return quantity if quantity is not None and quantity >= 0 else 1


def parse_rating(value: Any) -> int:
    rating = utils.parse_int(value)
    return rating if rating is not None and rating >= 0 else 0


def build_item(row: list[Any], item_id: str, now: datetime) -> InventoryItem:
    """Maps one data row onto an InventoryItem, defaulting each column independently."""
    return InventoryItem(
        id=item_id,
        name=str(row[0]),
        barcode=utils.text_or_default(_cell(row, 1), settings.DEFAULT_BARCODE),
        quantity=parse_quantity(_cell(row, 2)),
        location=utils.text_or_default(_cell(row, 3), settings.DEFAULT_LOCATION),
        rating=parse_rating(_cell(row, 4)),
        notes=utils.text_or_default(_cell(row, 5), ""),
        date_added=utils.parse_date(_cell(row, 6)) or now,
    )


def copy_image(item: InventoryItem, row: list[Any], image_index: int) -> None:
    """Attaches the raw 'Image Data' cell and its type to the item."""
    image_data = _cell(row, image_index)
    if utils.is_blank(image_data):
        return

    item.image = str(image_data)
    item.image_type = utils.text_or_default(
        _cell(row, image_index + 1), settings.DEFAULT_IMAGE_TYPE
    )


class ImportPipeline(BackupPipeline):
    """
    xlsx file -> rows -> InventoryItems.

    `replace_existing` is recorded for the caller; this pipeline never
    touches the current inventory. Saving the result is the caller's job.
    """

    error_class = ImportFailedError

    def __init__(
        self,
        source: data_handler.BackupSource,
        replace_existing: bool = True,
        on_progress: Optional[ProgressSink] = None,
        load_images: bool = True,
    ):
        super().__init__("import", on_progress)
        self.source = source
        self.replace_existing = replace_existing
        self.load_images = load_images

    async def extract(self) -> list[list[Any]]:
        try:
            document = await data_handler.read_backup(self.source)
        except Exception as e:
            raise ImportFailedError("Failed to read file", cause=e) from e

        emit_progress(self.on_progress, READ_PERCENT, "Reading file...")
        return spreadsheet.decode_rows(document)

    async def transform(self, rows: list[list[Any]]) -> tuple[list[InventoryItem], bool]:
        if len(rows) < 2:
            raise FormatError("Invalid file format. No data found.")

        emit_progress(self.on_progress, PROCESS_START_PERCENT, "Processing data...")

        headers = rows[0]
        has_images = IMAGE_DATA_HEADER in headers
        image_index = headers.index(IMAGE_DATA_HEADER) if has_images else -1
        copy_images = has_images and self.load_images

        now = datetime.now(timezone.utc)
        batch_stamp = utils.get_batch_stamp(now)
        data_row_count = len(rows) - 1
        imported = []

        for i, row in enumerate(rows[1:], start=1):
            # Only rows with a product name are imported
            if row and not utils.is_blank(row[0]):
                item = build_item(row, f"{batch_stamp}_{i}", now)

                if copy_images:
                    try:
                        copy_image(item, row, image_index)
                    except Exception as e:
                        logger.warning(f"⚠️ Failed to process image for '{item.name}': {e}")

                imported.append(item)

            percentage = PROCESS_START_PERCENT + (
                i / data_row_count
            ) * (PROCESS_END_PERCENT - PROCESS_START_PERCENT)
            emit_progress(
                self.on_progress,
                round(percentage),
                f"Processing item {i} of {data_row_count}...",
                step=i,
                total=data_row_count,
            )

        skipped = data_row_count - len(imported)
        if skipped:
            logger.info(f"Skipped {skipped} rows without a product name")

        return imported, has_images

    async def load(self, transformed: tuple[list[InventoryItem], bool]) -> ImportResult:
        inventory, has_images = transformed
        logger.info(
            f"Imported {len(inventory)} items (replace existing: {self.replace_existing})"
        )
        emit_progress(self.on_progress, 100, "Import completed!")

        return ImportResult(
            success=True,
            inventory=inventory,
            item_count=len(inventory),
            has_images=has_images and self.load_images,
        )
