"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

interfaces.py

Defines core interfaces (Protocols) used throughout the search engine.
These protocols enforce structural typing using Python's `typing.Protocol` to ensure
consistency across modules while maintaining flexibility and modularity.

Key Components:
---------------
- HashAlgorithm: Streaming digest factory (e.g., SHA-256, BLAKE2b).
- ContentHasher: Exact content fingerprint of a file.
- PathFilter: Decides which directories and entries are visited.
- HeicNormalizer: HEIC/HEIF decoding with an on-disk derivative cache.
- ImageFingerprinter: Perceptual fingerprint of an image file.
- Walker: Recursive discovery + fingerprinting into exact-hash buckets.
- SimilarityGrouper: Merges similar image buckets into duplicate groups.
"""

from typing import Protocol, List, Tuple, Optional, Callable
from doublefinder.core.models import (
    Fingerprint,
    HashBuckets,
    SimilarityGroup,
    WalkResult,
)


# ===== Interfaces =====

class HashAlgorithm(Protocol):
    """
    Interface for cryptographic digest algorithms.

    Allows plugging in different hashing functions like SHA-256 or BLAKE2b
    without affecting the rest of the search logic.
    """
    name: str

    def new(self):
        """Returns a fresh hashlib-style object with update() and hexdigest()."""
        ...


class ContentHasher(Protocol):
    """Interface for exact content fingerprints."""
    def hash(self, path: str) -> Fingerprint: ...


class PathFilter(Protocol):
    """Interface for directory/entry visiting rules."""
    def should_descend(self, dir_path: str) -> bool: ...
    def should_visit(self, entry_name: str) -> bool: ...


class HeicNormalizer(Protocol):
    """
    Interface for HEIC/HEIF normalization.

    Methods:
        is_heic: Format sniff (never by extension).
        normalize: JPEG bytes for a HEIC file, served from cache when possible.
        fallback_fingerprint: Low-confidence fingerprint when decoding fails.
    """
    def is_heic(self, path: str) -> bool: ...
    def cache_path_for(self, path: str) -> str: ...
    def read_cached(self, path: str) -> Optional[bytes]: ...
    def normalize(self, path: str) -> bytes: ...
    def fallback_fingerprint(self, path: str) -> Fingerprint: ...


class ImageFingerprinter(Protocol):
    """Interface for perceptual image fingerprints."""
    def fingerprint(self, path: str) -> Tuple[Fingerprint, Optional[str]]:
        """
        Returns:
            (fingerprint, image_format). image_format is None when the file
            fell back to exact content hashing.
        """
        ...


class Walker(Protocol):
    """
    Interface for walking include roots and bucketing files by fingerprint.
    """
    def walk(
        self,
        include_roots: List[str],
        exclude_roots: List[str],
        cancel: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> WalkResult:
        """
        Walk every include root depth-first.

        Args:
            include_roots: Directories to search.
            exclude_roots: Directories never descended into.
            cancel: Token (or callable) that returns True if the walk should stop.
            progress_callback: Optional callback for progress updates (stage, current, total).

        Returns:
            WalkResult with the buckets accumulated so far and a cancelled flag.
        """
        ...


class SimilarityGrouper(Protocol):
    """
    Interface for turning exact buckets into final duplicate groups.
    """
    def group(
        self,
        buckets: HashBuckets,
        threshold: float,
        cancel: Optional[Callable[[], bool]] = None
    ) -> List[SimilarityGroup]:
        """
        Args:
            buckets: Exact-fingerprint buckets produced by a Walker.
            threshold: Minimum similarity ratio in [0, 1] to merge image buckets.
            cancel: Optional token checked between comparisons.

        Returns:
            Groups with at least two files each.
        """
        ...
