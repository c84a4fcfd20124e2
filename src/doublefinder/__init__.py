"""
doublefinder — duplicate and near-duplicate file finder.

Core features:
- Exact duplicates by streaming SHA-256 content fingerprints
- Visually similar images by perceptual hashing (imagehash), with a tunable threshold
- HEIC/HEIF support (pillow-heif, sips or ImageMagick) with an on-disk JPEG derivative cache
- Cooperative cancellation of long searches
- Safe deletion to system trash (via send2trash), cleaning up HEIC derivatives
- CLI interface for headless/server usage
"""

# Get version
try:
    from importlib.metadata import version as _version
    __version__ = _version("doublefinder")
except Exception:
    import tomllib
    from pathlib import Path

    with open(Path(__file__).resolve().parents[2] / "pyproject.toml", "rb") as f:
        __version__ = tomllib.load(f)["project"]["version"]

# Public API: only what users should import directly
from doublefinder.commands import SearchCommand
from doublefinder.core import (
    CancellationToken, SearchParams, SearchResult, FileRecord, SimilarityGroup, HashMethod,
    DoubleFinderError, ValidationError, SearchCancelledError, DeletionError)
from doublefinder.utils.convert_utils import ConvertUtils
from doublefinder.services import DuplicateService, DeletionService, ThumbnailService
from doublefinder.services.file_service import FileService

__all__ = [
    "SearchCommand",
    "CancellationToken",
    "SearchParams",
    "SearchResult",
    "FileRecord",
    "SimilarityGroup",
    "HashMethod",
    "DoubleFinderError",
    "ValidationError",
    "SearchCancelledError",
    "DeletionError",
    "ConvertUtils",
    "DuplicateService",
    "DeletionService",
    "ThumbnailService",
    "FileService",
    "__version__",
]
