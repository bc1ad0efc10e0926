"""
Shared fixtures for the backup tests.
"""

import base64
import os
from datetime import datetime, timezone
from io import BytesIO

import pytest
from PIL import Image

from scent_keeper.manager import BackupManager
from scent_keeper.schemas import InventoryItem


def image_data_url(width: int, height: int, fmt: str = "PNG", noisy: bool = False) -> str:
    """Builds a data URL for a generated image. Noisy images barely compress."""
    if noisy:
        img = Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))
    else:
        img = Image.new("RGB", (width, height), color=(180, 90, 200))

    with BytesIO() as buffer:
        img.save(buffer, format=fmt)
        payload = base64.b64encode(buffer.getvalue()).decode("ascii")

    mime_type = "image/png" if fmt == "PNG" else "image/jpeg"
    return f"data:{mime_type};base64,{payload}"


def decode_image_size(data_url: str) -> tuple:
    payload = data_url.split(",", 1)[1]
    with Image.open(BytesIO(base64.b64decode(payload))) as img:
        return img.size


@pytest.fixture
def make_item():
    """Factory for inventory items with sensible defaults."""

    def _make(name="Oud Wood", **overrides):
        fields = {
            "id": f"item-{name.lower().replace(' ', '-')}",
            "name": name,
            "barcode": "3614272049529",
            "quantity": 2,
            "location": "Shelf A",
            "rating": 4,
            "notes": "Evening wear",
            "date_added": datetime(2024, 3, 15, 18, 45, tzinfo=timezone.utc),
        }
        fields.update(overrides)
        return InventoryItem(**fields)

    return _make


@pytest.fixture
def inventory(make_item):
    names = [
        "Oud Wood", "Santal 33", "Aventus", "Baccarat Rouge 540", "Tobacco Vanille",
        "Neroli Portofino", "Grand Soir", "Lost Cherry", "Bleu de Chanel",
        "Terre d'Hermes", "Eros", "Sauvage",
    ]
    return [
        make_item(name, quantity=i + 1, rating=i % 6, location=f"Shelf {i % 3}")
        for i, name in enumerate(names)
    ]


@pytest.fixture
def manager(tmp_path):
    """A manager writing into a temporary directory without batch delays."""
    return BackupManager(output_dir=tmp_path / "backups", batch_delay=0)


@pytest.fixture
def collect_events():
    """Returns (sink, events) where the sink appends every ProgressEvent."""
    events = []
    return events.append, events
