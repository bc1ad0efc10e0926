"""
Image lookup and compression for spreadsheet export.

Images travel as data URLs ("data:image/png;base64,...") both in the stored
inventory and in the "Image Data" column. Anything larger than the configured
limit is scaled down and re-encoded as JPEG before it is written to a cell.
"""

import base64
import glob
import logging
import mimetypes
import re
from io import BytesIO
from pathlib import Path
from typing import Optional, Protocol, Tuple, Union

import aiofiles
from PIL import Image

from . import settings, utils
from .schemas import InventoryItem, OptimizedImage

logger = logging.getLogger(__name__)

_DATA_URL_TYPE = re.compile(r"^data:([^;]+);")


class ImageStore(Protocol):
    """Anything that can find the stored image of an item by its id."""

    async def lookup(self, item_id: str) -> Optional[str]: ...


class DirectoryImageStore:
    """Serves images saved as '<item id>.<ext>' files as data URLs."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    async def lookup(self, item_id: str) -> Optional[str]:
        if not item_id:
            return None
        if not utils.is_plain_filename(item_id):
            logger.warning(f"Ignoring image lookup for unsafe id {item_id!r}")
            return None

        matches = sorted(self.directory.glob(f"{glob.escape(item_id)}.*"))
        if not matches:
            return None

        path = matches[0]
        async with aiofiles.open(path, "rb") as f:
            raw = await f.read()

        mime_type = mimetypes.guess_type(path.name)[0] or settings.DEFAULT_IMAGE_TYPE
        return to_data_url(raw, mime_type)


def to_data_url(raw: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(raw).decode('ascii')}"


def decode_data_url(data_url: str) -> bytes:
    """Returns the binary payload of a base64 data URL (or of bare base64 text)."""
    _, _, payload = data_url.rpartition(",")
    return base64.b64decode(payload)


def get_data_url_size(data_url: Optional[str]) -> float:
    """
    Rough size in bytes of the encoded image: base64 carries 3 bytes per 4
    characters. The prefix is counted too; this is an estimate, not a byte count.
    """
    if not data_url:
        return 0
    return len(data_url) * 0.75


def get_image_type_from_data_url(data_url: Optional[str]) -> str:
    if not data_url:
        return ""
    match = _DATA_URL_TYPE.match(data_url)
    return match.group(1) if match else settings.DEFAULT_IMAGE_TYPE


def scaled_dimensions(width: int, height: int, max_size: int) -> Tuple[int, int]:
    """Clamps the longer side to max_size, keeping the aspect ratio. Never upscales."""
    if width > height:
        if width > max_size:
            height = height * (max_size / width)
            width = max_size
    elif height > max_size:
        width = width * (max_size / height)
        height = max_size

    return max(1, round(width)), max(1, round(height))


class ImageOptimizer:
    """
    Produces the image cells of an export row.

    Args:
        image_store: Optional store consulted before the item's inline image.
        max_image_size: Estimated size in bytes above which images are compressed.
        compression_quality: JPEG quality on a 0-1 scale.
        max_dimension: Longest side, in pixels, of a compressed image.
    """

    def __init__(
        self,
        image_store: Optional[ImageStore] = None,
        max_image_size: int = settings.MAX_IMAGE_SIZE,
        compression_quality: float = settings.COMPRESSION_QUALITY,
        max_dimension: int = settings.MAX_IMAGE_DIMENSION,
    ):
        self.image_store = image_store
        self.max_image_size = max_image_size
        self.compression_quality = compression_quality
        self.max_dimension = max_dimension

    @property
    def jpeg_quality(self) -> int:
        return max(1, min(95, round(self.compression_quality * 100)))

    async def resolve_image(self, item: InventoryItem) -> Optional[str]:
        """Stored image first, then the inline one. A failing store counts as a miss."""
        image_data = None

        if self.image_store is not None and item.id:
            try:
                image_data = await self.image_store.lookup(item.id)
            except Exception as e:
                logger.warning(f"Image lookup failed for '{item.name}': {e}")

        if not image_data and item.image:
            image_data = item.image

        return image_data or None

    async def get_optimized_image_data(self, item: InventoryItem) -> OptimizedImage:
        try:
            image_data = await self.resolve_image(item)
            if not image_data:
                return OptimizedImage()

            if get_data_url_size(image_data) > self.max_image_size:
                return self.compress_image_for_excel(image_data)

            return OptimizedImage(
                data=image_data, type=get_image_type_from_data_url(image_data)
            )

        except Exception as e:
            logger.warning(f"Image optimization failed for '{item.name}': {e}")
            return OptimizedImage()

    def compress_image_for_excel(self, data_url: str) -> OptimizedImage:
        """
        Scales the image down to max_dimension and re-encodes it as JPEG.
        Returns an empty OptimizedImage when the data cannot be decoded or encoded.
        """
        try:
            raw = decode_data_url(data_url)
            with BytesIO(raw) as source, Image.open(source) as img:
                size = scaled_dimensions(img.width, img.height, self.max_dimension)
                with img.convert("RGB") as rgb, rgb.resize(
                    size, Image.Resampling.LANCZOS
                ) as resized, BytesIO() as output:
                    resized.save(output, format="JPEG", quality=self.jpeg_quality)
                    encoded = output.getvalue()

            logger.debug(f"Compressed image to {size[0]}x{size[1]} ({len(encoded)} bytes)")
            return OptimizedImage(data=to_data_url(encoded, "image/jpeg"), type="image/jpeg")

        except Exception as e:
            logger.warning(f"Image compression failed: {e}")
            return OptimizedImage()
