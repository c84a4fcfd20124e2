"""
Shared fixtures for search engine tests.
Creates isolated temporary directories with controlled text files and drawn images.
"""
import io
import pytest
import tempfile
from pathlib import Path
from typing import Callable, Dict, Tuple
import sys

from PIL import Image, ImageDraw

# Add src/ to sys.path so the 'doublefinder' package is importable without installing
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))


def draw_scene(size: Tuple[int, int] = (400, 300), variant: int = 0) -> Image.Image:
    """
    Structured picture (gradient + solid shapes) that survives resizing and JPEG
    recompression with a near-identical perceptual hash.
    variant=1 draws an unrelated checkerboard instead.
    """
    w, h = size
    img = Image.new("RGB", size, "white")
    draw = ImageDraw.Draw(img)

    if variant == 1:
        cell = max(1, w // 8)
        for x in range(0, w, cell):
            for y in range(0, h, cell):
                if (x // cell + y // cell) % 2 == 0:
                    draw.rectangle([x, y, x + cell - 1, y + cell - 1], fill=(20, 20, 20))
        return img

    for x in range(w):
        shade = int(255 * x / w)
        draw.line([(x, 0), (x, h)], fill=(shade, 90, 255 - shade))
    draw.ellipse([w * 0.08, h * 0.2, w * 0.42, h * 0.85], fill=(0, 0, 0))
    draw.rectangle([w * 0.55, h * 0.1, w * 0.92, h * 0.45], fill=(255, 230, 0))
    draw.polygon([(w * 0.5, h * 0.95), (w * 0.95, h * 0.95), (w * 0.72, h * 0.55)], fill=(255, 255, 255))
    return img


@pytest.fixture
def temp_dir():
    """Creates isolated temporary directory, auto-cleanup after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_image() -> Callable[..., Path]:
    """Factory writing a drawn scene to disk: make_image(path, size=(400, 300), variant=0, fmt="JPEG")."""
    def _make(path: Path, size: Tuple[int, int] = (400, 300), variant: int = 0, fmt: str = "JPEG") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        img = draw_scene(size, variant)
        if fmt == "JPEG":
            img.save(path, format=fmt, quality=95)
        else:
            img.save(path, format=fmt)
        return path
    return _make


@pytest.fixture
def jpeg_bytes() -> bytes:
    """A small valid JPEG, used as a stand-in for decoded HEIC output."""
    buffer = io.BytesIO()
    draw_scene((120, 90)).save(buffer, format="JPEG", quality=85)
    return buffer.getvalue()


@pytest.fixture
def text_files(temp_dir) -> Dict[str, Path]:
    """
    Creates controlled text files:
    - a.txt and b.txt with identical content (duplicates)
    - c.txt with different content
    - sub/d.txt identical to a.txt (duplicate in a subdirectory)
    - .hidden.txt identical to a.txt (must never be visited)
    """
    files = {}
    content = b"duplicate content\n" * 64

    files["a"] = temp_dir / "a.txt"
    files["b"] = temp_dir / "b.txt"
    files["a"].write_bytes(content)
    files["b"].write_bytes(content)

    files["c"] = temp_dir / "c.txt"
    files["c"].write_bytes(b"something else entirely\n")

    subdir = temp_dir / "sub"
    subdir.mkdir()
    files["d"] = subdir / "d.txt"
    files["d"].write_bytes(content)

    files["hidden"] = temp_dir / ".hidden.txt"
    files["hidden"].write_bytes(content)

    return files
