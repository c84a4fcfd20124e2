"""
Tests for ThumbnailService: JPEG previews, HEIC cache reuse and cancellable streaming.
"""
import io

import pytest
from PIL import Image

from doublefinder.core.cancellation import CancellationToken
from doublefinder.core.heic import HeicNormalizerImpl
from doublefinder.services.thumbnail_service import ThumbnailService, CONTENT_TYPE


class TestRender:
    def test_preview_is_jpeg_at_fixed_width(self, temp_dir, make_image):
        path = make_image(temp_dir / "scene.png", size=(800, 600), fmt="PNG")

        data = ThumbnailService().render(str(path))

        with Image.open(io.BytesIO(data)) as img:
            assert img.format == "JPEG"
            assert img.size == (200, 150)
        assert ThumbnailService.content_type == CONTENT_TYPE == "image/jpeg"

    def test_small_images_are_not_upscaled(self, temp_dir, make_image):
        path = make_image(temp_dir / "tiny.jpg", size=(120, 90))

        with Image.open(io.BytesIO(ThumbnailService().render(str(path)))) as img:
            assert img.size == (120, 90)

    def test_missing_image_raises(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            ThumbnailService().render(str(temp_dir / "missing.jpg"))

    def test_cached_heic_derivative_served_as_is(self, temp_dir, monkeypatch):
        source = temp_dir / "IMG_0001.HEIC"
        source.write_bytes(b"heic bytes")
        (temp_dir / ".cache").mkdir()
        (temp_dir / ".cache" / "IMG_0001.jpg").write_bytes(b"cached jpeg bytes")
        monkeypatch.setattr(HeicNormalizerImpl, "detect_format", staticmethod(lambda p: "heic"))

        assert ThumbnailService().render(str(source)) == b"cached jpeg bytes"

    def test_heic_cache_miss_decodes_and_fills_cache(self, temp_dir, jpeg_bytes, monkeypatch):
        source = temp_dir / "IMG_0002.HEIC"
        source.write_bytes(b"heic bytes")
        monkeypatch.setattr(HeicNormalizerImpl, "detect_format", staticmethod(lambda p: "heic"))
        normalizer = HeicNormalizerImpl()
        normalizer._decode = lambda p: jpeg_bytes

        data = ThumbnailService(heic_normalizer=normalizer).render(str(source))

        with Image.open(io.BytesIO(data)) as img:
            assert img.format == "JPEG"
        assert (temp_dir / ".cache" / "IMG_0002.jpg").read_bytes() == jpeg_bytes


class TestStream:
    def test_chunks_reassemble_preview(self, temp_dir, make_image):
        path = str(make_image(temp_dir / "scene.jpg"))
        service = ThumbnailService()

        chunks = list(service.stream(path, chunk_size=512))

        assert len(chunks) > 1
        assert b"".join(chunks) == service.render(path)

    def test_cancel_stops_stream(self, temp_dir, make_image):
        """Once the client goes away no further chunk is produced."""
        path = str(make_image(temp_dir / "scene.jpg"))
        token = CancellationToken()

        stream = ThumbnailService().stream(path, cancel=token, chunk_size=256)
        first = next(stream)
        token.cancel()

        assert first
        assert list(stream) == []
