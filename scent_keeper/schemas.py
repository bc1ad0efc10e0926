from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from . import settings


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InventoryItem(BaseModel):
    """
    A single product in the user's collection.
    Aliases match the keys of the stored inventory file, so dumps with
    by_alias=True round-trip through the application's JSON storage.
    Numeric ids, as older inventory files store them, are read as strings.
    """

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: Optional[str] = None
    name: str
    barcode: Optional[str] = None
    quantity: int = Field(default=1, ge=0)
    location: str = settings.DEFAULT_LOCATION
    rating: int = Field(default=0, ge=0)
    notes: str = ""
    date_added: datetime = Field(default_factory=_utc_now, alias="dateAdded")
    image: Optional[str] = None
    image_type: Optional[str] = Field(default=None, alias="imageType")


class ProgressEvent(BaseModel):
    """One progress update. `step`/`total` are absent for percentage-only events."""

    step: Optional[int] = None
    total: Optional[int] = None
    message: str
    percentage: int = Field(ge=0, le=100)


class OptimizedImage(BaseModel):
    data: str = ""
    type: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.data


class ExportResult(BaseModel):
    success: bool
    filename: str
    item_count: int
    include_images: bool
    path: Optional[Path] = None


class ImportResult(BaseModel):
    success: bool
    inventory: list[InventoryItem]
    item_count: int
    has_images: bool
