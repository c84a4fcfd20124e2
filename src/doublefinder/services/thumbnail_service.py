"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/thumbnail_service.py
JPEG previews for the presentation layer, sharing the HEIC derivative cache with the
search engine.
"""
import io
import os
from typing import Callable, Iterator, Optional
import logging

from PIL import Image, ImageOps

from doublefinder.core.cancellation import is_cancelled
from doublefinder.core.heic import HeicNormalizerImpl
from doublefinder.core.interfaces import HeicNormalizer

logger = logging.getLogger(__name__)

CONTENT_TYPE = "image/jpeg"
PREVIEW_WIDTH = 200
PREVIEW_QUALITY = 80
STREAM_CHUNK_SIZE = 64 * 1024


class ThumbnailService:
    """
    Renders previews: orientation applied, scaled down to a fixed width, JPEG encoded.
    A cached HEIC derivative is served as it is; a HEIC cache miss is decoded through
    the normalizer, which also fills the cache.
    """
    content_type = CONTENT_TYPE

    def __init__(
        self,
        heic_normalizer: HeicNormalizer = None,
        width: int = PREVIEW_WIDTH,
        quality: int = PREVIEW_QUALITY
    ):
        self.heic_normalizer = heic_normalizer or HeicNormalizerImpl()
        self.width = width
        self.quality = quality

    def render(self, path: str) -> bytes:
        """
        Raises:
            FileNotFoundError: If the image does not exist.
            HeicDecodeError: If a HEIC file cannot be converted.
            OSError: If the image cannot be decoded.
        """
        if not os.path.exists(path):
            raise FileNotFoundError(f"Image not found: {path}")

        if self.heic_normalizer.is_heic(path):
            cached = self.heic_normalizer.read_cached(path)
            if cached is not None:
                return cached
            data = self.heic_normalizer.normalize(path)
            with Image.open(io.BytesIO(data)) as img:
                return self._encode(img)

        with Image.open(path) as img:
            return self._encode(img)

    def stream(
        self,
        path: str,
        cancel: Optional[Callable[[], bool]] = None,
        chunk_size: int = STREAM_CHUNK_SIZE
    ) -> Iterator[bytes]:
        """
        Yields the preview in chunks. Stops as soon as the token is set or the consumer
        closes the generator, releasing the rendered buffer either way.
        """
        view = memoryview(self.render(path))
        try:
            for offset in range(0, len(view), chunk_size):
                if is_cancelled(cancel):
                    logger.info(f"Image - Client disconnected, aborting {path}")
                    return
                yield bytes(view[offset:offset + chunk_size])
        finally:
            view.release()

    def _encode(self, img: Image.Image) -> bytes:
        img = ImageOps.exif_transpose(img)
        img = img.convert("RGB")
        if img.width > self.width:
            height = max(1, round(img.height * self.width / img.width))
            img = img.resize((self.width, height))
        buffer = io.BytesIO()
        img.save(buffer, format="JPEG", quality=self.quality)
        return buffer.getvalue()
