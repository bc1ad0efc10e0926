"""
Backup manager: the entry point for spreadsheet export and import.

Construct one per application (or per test) and pass it where needed:

    manager = BackupManager(image_store=DirectoryImageStore("images"))
    result = await manager.export_to_excel(inventory, include_images=True)
"""

import logging
from pathlib import Path
from typing import Optional, Sequence

from . import settings
from .data_handler import BackupSource
from .images import ImageOptimizer, ImageStore
from .pipelines.exporter import ExportPipeline
from .pipelines.importer import ImportPipeline
from .progress import ProgressSink
from .schemas import ExportResult, ImportResult, InventoryItem

logger = logging.getLogger(__name__)


class BackupManager:
    def __init__(
        self,
        image_store: Optional[ImageStore] = None,
        output_dir: Path = settings.OUTPUT_DIR,
        batch_size: int = settings.BATCH_SIZE,
        batch_delay: float = settings.BATCH_DELAY_SECONDS,
        max_image_size: int = settings.MAX_IMAGE_SIZE,
        compression_quality: float = settings.COMPRESSION_QUALITY,
    ):
        self.output_dir = Path(output_dir)
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.optimizer = ImageOptimizer(
            image_store=image_store,
            max_image_size=max_image_size,
            compression_quality=compression_quality,
        )

    async def export_to_excel(
        self,
        inventory: Optional[Sequence[InventoryItem]],
        include_images: bool = True,
        filename: Optional[str] = None,
        on_progress: Optional[ProgressSink] = None,
    ) -> ExportResult:
        """
        Writes the inventory to an xlsx backup in the output directory.

        Raises:
            ValidationError: the inventory is empty.
            ExportError: building or saving the file failed.
        """
        pipeline = ExportPipeline(
            inventory,
            include_images=include_images,
            filename=filename,
            on_progress=on_progress,
            optimizer=self.optimizer,
            output_dir=self.output_dir,
            batch_size=self.batch_size,
            batch_delay=self.batch_delay,
        )
        return await pipeline.run()

    async def import_from_excel(
        self,
        source: BackupSource,
        replace_existing: bool = True,
        on_progress: Optional[ProgressSink] = None,
        load_images: bool = True,
    ) -> ImportResult:
        """
        Reads an xlsx backup into fresh InventoryItems.

        Raises:
            FormatError: the sheet has no data rows.
            ImportFailedError: the file could not be read or parsed.
        """
        pipeline = ImportPipeline(
            source,
            replace_existing=replace_existing,
            on_progress=on_progress,
            load_images=load_images,
        )
        return await pipeline.run()
