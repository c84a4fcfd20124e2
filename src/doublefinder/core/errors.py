"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/errors.py
Exception hierarchy for the search engine and its services.
"""
from typing import List, Optional, Tuple


class DoubleFinderError(Exception):
    """Base class for all doublefinder errors."""


class ValidationError(DoubleFinderError, ValueError):
    """Request rejected before any work starts (bad or missing roots, bad options)."""

    def __init__(self, message: str, missing_paths: Optional[List[str]] = None):
        super().__init__(message)
        self.missing_paths = missing_paths or []


class SkippableFileError(DoubleFinderError):
    """A single file could not be fingerprinted. The walk continues without it."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class HeicDecodeError(SkippableFileError):
    """No HEIC decoder could produce a raster for this file."""


class CacheWriteError(DoubleFinderError):
    """The HEIC derivative cache could not be created or written."""


class SearchCancelledError(DoubleFinderError):
    """The search was cancelled; no partial result is delivered."""

    def __init__(self, message: str = "Aborted due to client cancel."):
        super().__init__(message)


class TraversalError(DoubleFinderError):
    """A directory could not be enumerated; only that subtree is abandoned."""


class DeletionError(DoubleFinderError):
    """One or more files could not be deleted."""

    def __init__(self, failures: List[Tuple[str, str]]):
        summary = "\n".join(
            f"  • {path}: {reason}" for path, reason in failures[:5]
        )
        if len(failures) > 5:
            summary += f"\n  • ...and {len(failures) - 5} more files"
        super().__init__(f"Error trying to delete {len(failures)} file(s):\n{summary}")
        self.failures = failures
