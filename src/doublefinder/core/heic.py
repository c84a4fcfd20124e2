"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/heic.py
HEIC/HEIF normalization with a persistent on-disk derivative cache.

Decoding HEIC is expensive, so every decoded file is stored once as a small JPEG in
a `.cache` directory beside its source and served from there on later runs:

    photos/IMG_0001.HEIC  →  photos/.cache/IMG_0001.jpg

Decoders, in order:
- pillow-heif (registered as a Pillow opener)
- an external converter: `sips` on macOS, ImageMagick (`magick`/`convert`) or
  `heif-convert` elsewhere
"""

import io
import os
import sys
import shutil
import subprocess
import tempfile
import threading
from pathlib import Path
from typing import List, Optional
import logging

import xxhash
from PIL import Image, ImageOps
from pillow_heif import register_heif_opener

logger = logging.getLogger(__name__)

from doublefinder.core.errors import CacheWriteError, HeicDecodeError
from doublefinder.core.interfaces import HeicNormalizer
from doublefinder.core.models import (
    CACHE_DIR, HEIC_FORMATS, HEIC_MAX_DIMENSION, Fingerprint, FingerprintKind
)

register_heif_opener()

FALLBACK_PREFIX = "lowconf-"
JPEG_QUALITY = 85
LOCK_STRIPES = 64


class HeicNormalizerImpl(HeicNormalizer):
    """
    Converts HEIC/HEIF files to JPEG bytes, reading and writing the derivative cache.

    Cache writes are serialized per cache path and are write-if-absent, so concurrent
    walkers never race on the same file.
    """

    def __init__(
        self,
        cache_dir_name: str = CACHE_DIR,
        max_dimension: int = HEIC_MAX_DIMENSION,
        use_external_tools: bool = True,
        external_timeout: float = 10.0
    ):
        self.cache_dir_name = cache_dir_name
        self.max_dimension = max_dimension
        self.use_external_tools = use_external_tools
        self.external_timeout = external_timeout
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(LOCK_STRIPES)]

    # ---------- detection ----------

    @staticmethod
    def detect_format(path: str) -> Optional[str]:
        """Declared container format from image metadata (e.g. 'jpeg', 'heif'), or None."""
        try:
            with Image.open(path) as img:
                return img.format.lower() if img.format else None
        except (OSError, ValueError, TypeError, AttributeError, Image.DecompressionBombError):
            return None

    def is_heic(self, path: str) -> bool:
        """Format sniff: True for HEIC/HEIF content regardless of the file extension."""
        return self.detect_format(path) in HEIC_FORMATS

    # ---------- cache ----------

    def cache_path_for(self, path: str) -> str:
        source = Path(path)
        return str(source.parent / self.cache_dir_name / f"{source.stem}.jpg")

    def read_cached(self, path: str) -> Optional[bytes]:
        """Cached derivative bytes for a source file, or None on a cache miss."""
        cache_path = Path(self.cache_path_for(path))
        if not cache_path.is_file():
            return None
        try:
            return cache_path.read_bytes()
        except OSError as e:
            logger.warning(f"Could not read cached derivative {cache_path}: {e}")
            return None

    def normalize(self, path: str) -> bytes:
        """
        JPEG bytes for a HEIC file: the cached derivative if present, otherwise a fresh
        decode that is persisted before returning.

        Raises:
            HeicDecodeError: If no decoder could handle the file.
        """
        cache_path = self.cache_path_for(path)
        with self._lock_for(cache_path):
            cached = self.read_cached(path)
            if cached is not None:
                logger.debug(f"HEIC cache hit: {cache_path}")
                return cached

            data = self._decode(path)
            try:
                self._write_cache(cache_path, data)
            except CacheWriteError as e:
                logger.warning(f"Working without HEIC cache for {path}: {e}")
            return data

    def fallback_fingerprint(self, path: str) -> Fingerprint:
        """
        Low-confidence fingerprint derived from size and path, used when decoding fails.
        Only ever matches exactly and never takes part in similarity comparison.
        """
        size = os.path.getsize(path)
        digest = xxhash.xxh64(f"{size}-{path}".encode("utf-8")).hexdigest()
        return Fingerprint(f"{FALLBACK_PREFIX}{digest}", FingerprintKind.FALLBACK)

    # ---------- decoding ----------

    def _decode(self, path: str) -> bytes:
        try:
            return self._decode_with_pillow(path)
        except (OSError, ValueError, SyntaxError, RuntimeError) as e:
            logger.debug(f"pillow-heif could not decode {path}: {e}")

        if not self.use_external_tools:
            raise HeicDecodeError(path, "pillow-heif decoding failed")

        return self._decode_with_external(path)

    def _decode_with_pillow(self, path: str) -> bytes:
        with Image.open(path) as img:
            return self._to_jpeg(img)

    def _decode_with_external(self, path: str) -> bytes:
        with tempfile.TemporaryDirectory(prefix="doublefinder-heic-") as tmp_dir:
            target = os.path.join(tmp_dir, "converted.jpg")
            cmd = self._external_command(path, target)
            if cmd is None:
                raise HeicDecodeError(path, "no HEIC decoder available")

            try:
                result = subprocess.run(
                    cmd, capture_output=True, text=True, timeout=self.external_timeout
                )
            except (OSError, subprocess.TimeoutExpired) as e:
                raise HeicDecodeError(path, f"external conversion failed: {e}") from e

            if result.returncode != 0 or not os.path.exists(target):
                raise HeicDecodeError(path, result.stderr.strip() or "external conversion failed")

            try:
                with Image.open(target) as img:
                    return self._to_jpeg(img)
            except (OSError, ValueError) as e:
                raise HeicDecodeError(path, f"unreadable conversion output: {e}") from e

    @staticmethod
    def _external_command(source: str, target: str) -> Optional[List[str]]:
        """Command line for the first available external converter."""
        if sys.platform == "darwin":
            sips = shutil.which("sips")
            if sips:
                return [sips, "-s", "format", "jpeg", source, "--out", target]

        magick = shutil.which("magick")
        if magick:
            return [magick, source, target]
        convert = shutil.which("convert")
        if convert:
            return [convert, source, target]
        heif_convert = shutil.which("heif-convert")
        if heif_convert:
            return [heif_convert, source, target]
        return None

    def _to_jpeg(self, img: Image.Image) -> bytes:
        img = ImageOps.exif_transpose(img)
        img = img.convert("RGB")
        img.thumbnail((self.max_dimension, self.max_dimension))
        buffer = io.BytesIO()
        img.save(buffer, format="JPEG", quality=JPEG_QUALITY)
        return buffer.getvalue()

    # ---------- persistence ----------

    @staticmethod
    def _write_cache(cache_path: str, data: bytes) -> None:
        """
        Write-if-absent through a temporary file and an atomic rename.

        Raises:
            CacheWriteError: If the cache directory or file cannot be written.
        """
        if os.path.exists(cache_path):
            return

        cache_dir = os.path.dirname(cache_path)
        tmp_path = None
        try:
            os.makedirs(cache_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=cache_dir, suffix=".part")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, cache_path)
            tmp_path = None
            logger.debug(f"Cached HEIC derivative: {cache_path}")
        except OSError as e:
            raise CacheWriteError(f"Cannot write {cache_path}: {e}") from e
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def _lock_for(self, cache_path: str) -> threading.Lock:
        """Same cache path, same lock. Memory stays fixed however many files are normalized."""
        return self._locks[hash(cache_path) % LOCK_STRIPES]
