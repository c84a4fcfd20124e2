"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/fingerprinter.py

Implements perceptual fingerprints for images.

Every image is standardized before hashing (EXIF orientation applied, downscaled into a
fixed bounding box, alpha dropped, grayscale), so two copies of one photo that differ
only in format, size or orientation produce the same or a very close fingerprint.
The fingerprint is the hash's bit matrix flattened to a '0'/'1' string, which makes
per-position comparison trivial and keeps every image at the same length.
"""

import io
from typing import Callable, Optional, Tuple
import logging

import imagehash
from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

from doublefinder.core.errors import HeicDecodeError, SkippableFileError
from doublefinder.core.hasher import ContentHasherImpl
from doublefinder.core.heic import HeicNormalizerImpl
from doublefinder.core.interfaces import ContentHasher, HeicNormalizer, ImageFingerprinter
from doublefinder.core.models import (
    DEFAULT_HASH_SIZE, HEIC_FORMATS, NORMALIZED_SIZE,
    Fingerprint, FingerprintKind, HashMethod
)

HASH_FUNCTIONS = {
    HashMethod.PHASH: imagehash.phash,
    HashMethod.AVERAGE: imagehash.average_hash,
    HashMethod.DHASH: imagehash.dhash,
    HashMethod.WHASH: imagehash.whash,
}

# Anything Pillow or imagehash may raise on a corrupt or unsupported image
DECODE_ERRORS = (
    SkippableFileError, OSError, ValueError, SyntaxError, RuntimeError,
    Image.DecompressionBombError,
)


def standardize(img: Image.Image, size: Tuple[int, int] = NORMALIZED_SIZE) -> Image.Image:
    """
    Orientation-corrected, downscaled (never upscaled), alpha-free grayscale copy.
    """
    img = ImageOps.exif_transpose(img)
    if img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info):
        img = img.convert("RGBA").convert("RGB")
    img = img.convert("L")
    img.thumbnail(size)
    return img


def hash_to_bits(image_hash: imagehash.ImageHash) -> str:
    """Flattens an ImageHash bit matrix to a '0'/'1' string."""
    return "".join("1" if bit else "0" for bit in image_hash.hash.flatten())


class ImageFingerprinterImpl(ImageFingerprinter):
    """
    Perceptual fingerprinter routing HEIC/HEIF through the normalizer first.
    Falls back to the exact content hash whenever the image cannot be decoded.
    """

    def __init__(
        self,
        heic_normalizer: HeicNormalizer = None,
        content_hasher: ContentHasher = None,
        hash_method: HashMethod = HashMethod.PHASH,
        hash_size: int = DEFAULT_HASH_SIZE,
        normalized_size: Tuple[int, int] = NORMALIZED_SIZE
    ):
        self.heic_normalizer = heic_normalizer or HeicNormalizerImpl()
        self.content_hasher = content_hasher or ContentHasherImpl()
        self.hash_method = hash_method
        self.hash_size = hash_size
        self.normalized_size = normalized_size
        self._hash_func: Callable[..., imagehash.ImageHash] = HASH_FUNCTIONS[hash_method]

    @property
    def fingerprint_length(self) -> int:
        """Number of positions in every perceptual fingerprint this instance produces."""
        return self.hash_size * self.hash_size

    def fingerprint(self, path: str) -> Tuple[Fingerprint, Optional[str]]:
        """
        Returns:
            (perceptual fingerprint, image format) on success,
            (fallback fingerprint, image format) when a HEIC file cannot be decoded,
            (content fingerprint, None) for any other decoding failure.

        Raises:
            OSError: Only if the content-hash fallback itself cannot read the file.
        """
        image_format = None
        try:
            image_format = HeicNormalizerImpl.detect_format(path)
            if image_format is None:
                raise SkippableFileError(path, "unrecognized image format")

            if image_format in HEIC_FORMATS:
                try:
                    data = self.heic_normalizer.normalize(path)
                except HeicDecodeError as e:
                    logger.warning(f"HEIC decoding failed, using low-confidence fingerprint: {e}")
                    return self.heic_normalizer.fallback_fingerprint(path), image_format
                with Image.open(io.BytesIO(data)) as img:
                    return self._perceptual(img), image_format

            with Image.open(path) as img:
                return self._perceptual(img), image_format

        except DECODE_ERRORS as e:
            logger.debug(f"Falling back to content hash for {path} ({image_format}): {e}")
            return self.content_hasher.hash(path), None

    def _perceptual(self, img: Image.Image) -> Fingerprint:
        standardized = standardize(img, self.normalized_size)
        image_hash = self._hash_func(standardized, hash_size=self.hash_size)
        return Fingerprint(hash_to_bits(image_hash), FingerprintKind.PERCEPTUAL)
