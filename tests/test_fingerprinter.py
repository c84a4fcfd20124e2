"""
Tests for ImageFingerprinterImpl: perceptual fingerprints, HEIC routing and fallbacks.
"""
import io

import pytest
from PIL import Image

from doublefinder.core.errors import HeicDecodeError
from doublefinder.core.fingerprinter import ImageFingerprinterImpl, standardize
from doublefinder.core.grouper import similarity
from doublefinder.core.heic import HeicNormalizerImpl
from doublefinder.core.models import FingerprintKind, HashMethod


@pytest.fixture
def fingerprinter():
    return ImageFingerprinterImpl()


class TestStandardize:
    def test_alpha_dropped_and_grayscale(self):
        img = Image.new("RGBA", (640, 480), (255, 0, 0, 128))
        result = standardize(img)
        assert result.mode == "L"
        assert result.size == (200, 150)

    def test_small_images_are_not_upscaled(self):
        img = Image.new("RGB", (50, 40), "blue")
        assert standardize(img).size == (50, 40)


class TestPerceptualFingerprint:
    def test_fixed_length_bit_string(self, temp_dir, make_image, fingerprinter):
        """16×16 hash flattened to 256 '0'/'1' positions."""
        path = make_image(temp_dir / "scene.jpg")
        fingerprint, image_format = fingerprinter.fingerprint(str(path))

        assert fingerprint.kind is FingerprintKind.PERCEPTUAL
        assert len(fingerprint.value) == fingerprinter.fingerprint_length == 256
        assert set(fingerprint.value) <= {"0", "1"}
        assert image_format == "jpeg"

    def test_deterministic(self, temp_dir, make_image, fingerprinter):
        """Same file, same fingerprint, across calls and instances."""
        path = str(make_image(temp_dir / "scene.jpg"))
        assert fingerprinter.fingerprint(path) == fingerprinter.fingerprint(path)
        assert ImageFingerprinterImpl().fingerprint(path) == fingerprinter.fingerprint(path)

    def test_resized_copy_is_similar(self, temp_dir, make_image, fingerprinter):
        """Same picture at half resolution stays above the default threshold."""
        large = make_image(temp_dir / "large.jpg", size=(800, 600))
        small = make_image(temp_dir / "small.jpg", size=(400, 300))

        fp_large, _ = fingerprinter.fingerprint(str(large))
        fp_small, _ = fingerprinter.fingerprint(str(small))

        assert similarity(fp_large.value, fp_small.value) >= 0.90

    def test_format_change_is_similar(self, temp_dir, make_image, fingerprinter):
        """PNG and JPEG encodings of one picture stay above the default threshold."""
        jpeg = make_image(temp_dir / "scene.jpg")
        png = make_image(temp_dir / "scene.png", fmt="PNG")

        fp_jpeg, _ = fingerprinter.fingerprint(str(jpeg))
        fp_png, png_format = fingerprinter.fingerprint(str(png))

        assert png_format == "png"
        assert similarity(fp_jpeg.value, fp_png.value) >= 0.90

    def test_unrelated_picture_is_not_similar(self, temp_dir, make_image, fingerprinter):
        scene = make_image(temp_dir / "scene.jpg")
        checker = make_image(temp_dir / "checker.jpg", variant=1)

        fp_scene, _ = fingerprinter.fingerprint(str(scene))
        fp_checker, _ = fingerprinter.fingerprint(str(checker))

        assert similarity(fp_scene.value, fp_checker.value) < 0.90

    @pytest.mark.parametrize("method", list(HashMethod))
    def test_every_hash_method_has_configured_length(self, temp_dir, make_image, method):
        path = make_image(temp_dir / "scene.jpg")
        fingerprinter = ImageFingerprinterImpl(hash_method=method, hash_size=8)

        fingerprint, _ = fingerprinter.fingerprint(str(path))

        assert len(fingerprint.value) == 64


class TestFallbacks:
    def test_corrupt_image_falls_back_to_content_hash(self, temp_dir, fingerprinter):
        """An undecodable '.jpg' is still fingerprinted, by exact content."""
        path = temp_dir / "broken.jpg"
        path.write_bytes(b"\xff\xd8\xff garbage")

        fingerprint, image_format = fingerprinter.fingerprint(str(path))

        assert fingerprint.kind is FingerprintKind.CONTENT
        assert image_format is None

    def test_heic_routed_through_normalizer(self, temp_dir, jpeg_bytes, monkeypatch):
        """HEIC content is hashed from the normalized JPEG derivative."""
        path = temp_dir / "IMG_0002.HEIC"
        path.write_bytes(b"heic placeholder")
        monkeypatch.setattr(HeicNormalizerImpl, "detect_format", staticmethod(lambda p: "heif"))
        normalizer = HeicNormalizerImpl()
        normalizer._decode = lambda p: jpeg_bytes
        fingerprinter = ImageFingerprinterImpl(heic_normalizer=normalizer)

        fingerprint, image_format = fingerprinter.fingerprint(str(path))

        with Image.open(io.BytesIO(jpeg_bytes)) as img:
            expected = fingerprinter._perceptual(img)
        assert fingerprint == expected
        assert image_format == "heif"
        assert (temp_dir / ".cache" / "IMG_0002.jpg").read_bytes() == jpeg_bytes

    def test_heic_decode_failure_uses_low_confidence_fingerprint(self, temp_dir, monkeypatch):
        """Undecodable HEIC keeps its format and gets a fallback fingerprint."""
        path = temp_dir / "IMG_0003.HEIC"
        path.write_bytes(b"heic placeholder")
        monkeypatch.setattr(HeicNormalizerImpl, "detect_format", staticmethod(lambda p: "heic"))
        normalizer = HeicNormalizerImpl()

        def failing_decode(p):
            raise HeicDecodeError(p, "decoder crashed")

        normalizer._decode = failing_decode
        fingerprinter = ImageFingerprinterImpl(heic_normalizer=normalizer)

        fingerprint, image_format = fingerprinter.fingerprint(str(path))

        assert fingerprint.kind is FingerprintKind.FALLBACK
        assert fingerprint == normalizer.fallback_fingerprint(str(path))
        assert image_format == "heic"
