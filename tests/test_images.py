"""
Unit tests for image lookup and compression.
"""

import base64
from io import BytesIO

import pytest
from PIL import Image

from conftest import decode_image_size, image_data_url
from scent_keeper import images
from scent_keeper.images import (
    DirectoryImageStore,
    ImageOptimizer,
    get_data_url_size,
    get_image_type_from_data_url,
    scaled_dimensions,
)
from scent_keeper.schemas import OptimizedImage


class FakeImageStore:
    def __init__(self, images=None, error=None):
        self.images = images or {}
        self.error = error
        self.lookups = []

    async def lookup(self, item_id):
        self.lookups.append(item_id)
        if self.error:
            raise self.error
        return self.images.get(item_id)


class TestDataUrlHelpers:
    def test_size_is_three_quarters_of_length(self):
        assert get_data_url_size("a" * 400) == 300
        assert get_data_url_size("") == 0
        assert get_data_url_size(None) == 0

    def test_image_type_from_prefix(self):
        assert get_image_type_from_data_url("data:image/png;base64,AAAA") == "image/png"
        assert get_image_type_from_data_url("data:image/webp;base64,AAAA") == "image/webp"

    def test_image_type_defaults_to_jpeg(self):
        assert get_image_type_from_data_url("AAAA") == "image/jpeg"
        assert get_image_type_from_data_url("data:broken") == "image/jpeg"
        assert get_image_type_from_data_url("") == ""


class TestScaledDimensions:
    @pytest.mark.parametrize(
        "size, expected",
        [
            ((1600, 1200), (800, 600)),
            ((1200, 1600), (600, 800)),
            ((2000, 2000), (800, 800)),
            ((640, 480), (640, 480)),
            ((4000, 10), (800, 2)),
        ],
    )
    def test_longer_side_clamped(self, size, expected):
        assert scaled_dimensions(*size, 800) == expected


class TestImageOptimizer:
    @pytest.mark.asyncio
    async def test_no_image_is_empty(self, make_item):
        result = await ImageOptimizer().get_optimized_image_data(make_item())

        assert result == OptimizedImage()
        assert result.is_empty

    @pytest.mark.asyncio
    async def test_small_image_passes_through(self, make_item):
        data_url = image_data_url(64, 48)
        item = make_item(image=data_url)

        result = await ImageOptimizer().get_optimized_image_data(item)

        assert result.data == data_url
        assert result.type == "image/png"

    @pytest.mark.asyncio
    async def test_image_at_threshold_passes_through(self, make_item):
        data_url = image_data_url(300, 200)
        optimizer = ImageOptimizer(max_image_size=get_data_url_size(data_url))

        result = await optimizer.get_optimized_image_data(make_item(image=data_url))

        assert result.data == data_url
        assert result.type == "image/png"

    @pytest.mark.asyncio
    async def test_image_above_threshold_is_compressed(self, make_item):
        data_url = image_data_url(1600, 1200)
        optimizer = ImageOptimizer(max_image_size=get_data_url_size(data_url) - 1)

        result = await optimizer.get_optimized_image_data(make_item(image=data_url))

        assert result.type == "image/jpeg"
        assert result.data.startswith("data:image/jpeg;base64,")
        assert decode_image_size(result.data) == (800, 600)

    @pytest.mark.asyncio
    async def test_large_image_with_default_threshold(self, make_item):
        data_url = image_data_url(1000, 1400, noisy=True)
        assert get_data_url_size(data_url) > 1024 * 1024

        result = await ImageOptimizer().get_optimized_image_data(make_item(image=data_url))

        assert result.type == "image/jpeg"
        width, height = decode_image_size(result.data)
        assert max(width, height) <= 800
        assert (width, height) == (571, 800)

    @pytest.mark.asyncio
    async def test_store_is_consulted_first(self, make_item):
        stored = image_data_url(10, 10)
        store = FakeImageStore({"item-oud-wood": stored})
        item = make_item(image=image_data_url(20, 20, fmt="JPEG"))

        result = await ImageOptimizer(image_store=store).get_optimized_image_data(item)

        assert store.lookups == ["item-oud-wood"]
        assert result.data == stored

    @pytest.mark.asyncio
    async def test_store_miss_falls_back_to_inline(self, make_item):
        inline = image_data_url(20, 20, fmt="JPEG")
        store = FakeImageStore()

        result = await ImageOptimizer(image_store=store).get_optimized_image_data(
            make_item(image=inline)
        )

        assert result.data == inline
        assert result.type == "image/jpeg"

    @pytest.mark.asyncio
    async def test_failing_store_counts_as_miss(self, make_item):
        inline = image_data_url(20, 20)
        store = FakeImageStore(error=RuntimeError("database closed"))

        result = await ImageOptimizer(image_store=store).get_optimized_image_data(
            make_item(image=inline)
        )

        assert result.data == inline

    @pytest.mark.asyncio
    async def test_undecodable_large_image_is_empty(self, make_item):
        garbage = "data:image/png;base64," + base64.b64encode(b"not an image" * 100).decode()
        optimizer = ImageOptimizer(max_image_size=10)

        result = await optimizer.get_optimized_image_data(make_item(image=garbage))

        assert result.is_empty
        assert result.type == ""

    def test_compress_handles_transparency(self):
        img = Image.new("RGBA", (1000, 500), color=(0, 0, 0, 0))
        with BytesIO() as buffer:
            img.save(buffer, format="PNG")
            data_url = "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode()

        result = ImageOptimizer().compress_image_for_excel(data_url)

        assert result.type == "image/jpeg"
        assert decode_image_size(result.data) == (800, 400)

    def test_jpeg_quality_from_scale(self):
        assert ImageOptimizer(compression_quality=0.7).jpeg_quality == 70


class TestBufferRelease:
    """Every decode/encode buffer must be closed, including on failures."""

    @pytest.fixture
    def tracked_buffers(self, monkeypatch):
        created = []

        class TrackingBytesIO(BytesIO):
            def __init__(self, *args, **kwargs):
                super().__init__(*args, **kwargs)
                created.append(self)

        monkeypatch.setattr(images, "BytesIO", TrackingBytesIO)
        return created

    def test_buffers_closed_after_success(self, tracked_buffers):
        result = ImageOptimizer().compress_image_for_excel(image_data_url(900, 300))

        assert not result.is_empty
        assert len(tracked_buffers) == 2
        assert all(buffer.closed for buffer in tracked_buffers)

    def test_buffers_closed_after_decode_failure(self, tracked_buffers):
        garbage = "data:image/png;base64," + base64.b64encode(b"\x00" * 2048).decode()

        result = ImageOptimizer().compress_image_for_excel(garbage)

        assert result.is_empty
        assert tracked_buffers
        assert all(buffer.closed for buffer in tracked_buffers)

    def test_buffers_closed_after_encode_failure(self, tracked_buffers, monkeypatch):
        data_url = image_data_url(900, 300)

        def failing_save(self, *args, **kwargs):
            raise OSError("encoder unavailable")

        monkeypatch.setattr(Image.Image, "save", failing_save)

        result = ImageOptimizer().compress_image_for_excel(data_url)

        assert result.is_empty
        assert len(tracked_buffers) == 2
        assert all(buffer.closed for buffer in tracked_buffers)


class TestDirectoryImageStore:
    @pytest.mark.asyncio
    async def test_lookup_returns_data_url(self, tmp_path):
        img = Image.new("RGB", (12, 8), color=(10, 20, 30))
        img.save(tmp_path / "item-1.png", format="PNG")

        data_url = await DirectoryImageStore(tmp_path).lookup("item-1")

        assert data_url.startswith("data:image/png;base64,")
        assert decode_image_size(data_url) == (12, 8)

    @pytest.mark.asyncio
    async def test_lookup_missing_returns_none(self, tmp_path):
        store = DirectoryImageStore(tmp_path)

        assert await store.lookup("missing") is None
        assert await store.lookup("") is None

    @pytest.mark.asyncio
    async def test_lookup_ignores_ids_with_directories(self, tmp_path):
        images_dir = tmp_path / "images"
        images_dir.mkdir()
        Image.new("RGB", (4, 4)).save(tmp_path / "secret.png", format="PNG")

        store = DirectoryImageStore(images_dir)

        assert await store.lookup("../secret") is None
