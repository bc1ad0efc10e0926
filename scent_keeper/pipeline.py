import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from .exceptions import FormatError, OperationError, ValidationError
from .progress import ProgressSink

logger = logging.getLogger(__name__)


class BackupPipeline(ABC):
    """
    Abstract base class for the backup pipelines (Export, Import).
    Follows an Extract -> Transform -> Load (ETL) pattern.

    Input problems (ValidationError, FormatError) propagate unchanged; any
    other failure is logged and re-raised as `error_class`, so the caller
    sees a single error and never a partial result.
    """

    error_class: type[OperationError] = OperationError

    def __init__(self, operation: str, on_progress: Optional[ProgressSink] = None):
        self.operation = operation
        self.on_progress = on_progress

    async def run(self) -> Any:
        """
        Orchestrates the pipeline execution.
        """
        logger.info(f"🚀 STEP: {self.operation.upper()}")

        try:
            # --- 1. EXTRACT ---
            raw_data = await self.extract()

            # --- 2. TRANSFORM ---
            transformed = await self.transform(raw_data)

            # --- 3. LOAD ---
            result = await self.load(transformed)

        except (ValidationError, FormatError) as e:
            logger.error(f"❌ {self.operation.capitalize()} rejected: {e}")
            raise
        except OperationError as e:
            logger.error(f"❌ {e}")
            raise
        except Exception as e:
            logger.error(f"❌ {self.operation.capitalize()} failed: {e}")
            raise self.error_class(
                f"{self.operation.capitalize()} failed: {e}", cause=e
            ) from e

        logger.info(f"✅ {self.operation.capitalize()} Pipeline Finished.")
        return result

    @abstractmethod
    async def extract(self) -> Any:
        """Gathers the source data (inventory rows or spreadsheet rows)."""

    @abstractmethod
    async def transform(self, raw_data: Any) -> Any:
        """Converts the source data into the target representation."""

    @abstractmethod
    async def load(self, transformed: Any) -> Any:
        """Delivers the result (a saved file or an imported inventory)."""
