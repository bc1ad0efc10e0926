import json
import logging
from pathlib import Path
from typing import BinaryIO, Union

import aiofiles
from pydantic import TypeAdapter

from . import settings, utils
from .exceptions import FormatError
from .schemas import InventoryItem

logger = logging.getLogger(__name__)

BackupSource = Union[str, Path, bytes, bytearray, BinaryIO]

_INVENTORY_ADAPTER = TypeAdapter(list[InventoryItem])


def save_backup(
    document: bytes, filename: str, output_dir: Path = settings.OUTPUT_DIR
) -> Path:
    """
    Saves the finished spreadsheet under output_dir.
    The bytes go to a '.part' file first and are renamed into place, so a
    failed write never leaves a half-written backup under the final name.
    """
    if not utils.is_plain_filename(filename):
        raise ValueError(f"Backup filename must not contain a directory: {filename!r}")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    final_path = output_dir / filename
    partial_path = final_path.with_name(final_path.name + ".part")

    try:
        partial_path.write_bytes(document)
        partial_path.replace(final_path)
    except Exception:
        partial_path.unlink(missing_ok=True)
        raise

    logger.info(f"✅ Backup saved to: {final_path}")
    return final_path


async def read_backup(source: BackupSource) -> bytes:
    """Returns the raw bytes of a backup given as a path, bytes, or binary file object."""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)

    if isinstance(source, (str, Path)):
        async with aiofiles.open(source, "rb") as f:
            return await f.read()

    return source.read()


def load_inventory(path: Path) -> list[InventoryItem]:
    """Loads the application's JSON inventory. A missing file is an empty inventory."""
    path = Path(path)
    if not path.exists():
        logger.info(f"INFO: No inventory found at {path}, starting empty.")
        return []

    try:
        with open(path, "r", encoding="utf-8") as f:
            return _INVENTORY_ADAPTER.validate_python(json.load(f))
    # json and pydantic errors are both ValueErrors
    except ValueError as e:
        logger.error(f"❌ Invalid inventory file {path}: {e}")
        raise FormatError(f"Invalid inventory file {path}: {e}") from e


def save_inventory(items: list[InventoryItem], path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json_data = [
            item.model_dump(mode="json", by_alias=True, exclude_none=True)
            for item in items
        ]
        json.dump(json_data, f, indent=2)
    logger.info(f"✅ Inventory saved to: {path}")
