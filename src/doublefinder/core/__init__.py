"""
Core search engine — path filtering, fingerprinting, walking and grouping.

This package contains the algorithmic foundation of doublefinder:
- PathFilterImpl: hidden-entry, excluded-directory and cache-directory rules
- ContentHasherImpl: streaming SHA-256 (or other hashlib digest) content fingerprints
- HeicNormalizerImpl: HEIC/HEIF decoding with an on-disk JPEG derivative cache
- ImageFingerprinterImpl: imagehash-based perceptual fingerprints
- WalkerImpl: depth-first discovery into exact-fingerprint buckets
- SimilarityGrouperImpl: greedy merge of visually similar image buckets
- Models: FileRecord, Fingerprint, SimilarityGroup and configuration objects

All components are pure Python with no UI dependencies — suitable for CLI and server usage.
"""

from .cancellation import CancellationToken
from .errors import (
    DoubleFinderError, ValidationError, SkippableFileError, HeicDecodeError,
    CacheWriteError, SearchCancelledError, TraversalError, DeletionError)
from .path_filter import PathFilterImpl
from .hasher import ContentHasherImpl, SHA256AlgorithmImpl, HASH_ALGORITHMS
from .heic import HeicNormalizerImpl
from .fingerprinter import ImageFingerprinterImpl
from .walker import WalkerImpl, is_image_candidate
from .grouper import SimilarityGrouperImpl, similarity
from .models import (
    FileRecord, Fingerprint, FingerprintKind, HashMethod, SimilarityGroup,
    SearchParams, SearchResult, SearchStats, WalkResult)

__all__ = [
    "CancellationToken",
    "DoubleFinderError",
    "ValidationError",
    "SkippableFileError",
    "HeicDecodeError",
    "CacheWriteError",
    "SearchCancelledError",
    "TraversalError",
    "DeletionError",
    "PathFilterImpl",
    "ContentHasherImpl",
    "SHA256AlgorithmImpl",
    "HASH_ALGORITHMS",
    "HeicNormalizerImpl",
    "ImageFingerprinterImpl",
    "WalkerImpl",
    "is_image_candidate",
    "SimilarityGrouperImpl",
    "similarity",
    "FileRecord",
    "Fingerprint",
    "FingerprintKind",
    "HashMethod",
    "SimilarityGroup",
    "SearchParams",
    "SearchResult",
    "SearchStats",
    "WalkResult",
]
