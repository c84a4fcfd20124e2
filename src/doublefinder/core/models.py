"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/models.py
Data models and domain constants for file discovery, fingerprinting and grouping.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Union, Callable, Tuple
import os
from enum import Enum
from pathlib import Path

from doublefinder.core.errors import ValidationError


# =============================
# Constants
# =============================

# Name of the HEIC derivative store created beside each converted source file
CACHE_DIR = ".cache"

SIMILARITY_THRESHOLD = 0.90

# HEIC derivatives are downscaled to this width/height bound before caching
HEIC_MAX_DIMENSION = 300

# Bounding box used to standardize images before perceptual hashing
NORMALIZED_SIZE = (200, 200)

DEFAULT_HASH_SIZE = 16

NB_ITEMS_PER_PAGE = 20

IMAGE_EXTENSIONS = frozenset({
    ".jpg", ".jpeg", ".jpe", ".jfif", ".png", ".gif", ".webp",
    ".tif", ".tiff", ".heic", ".heif", ".avif", ".ico",
})

# Formats that look like images but cannot be decoded reliably for hashing
UNSUPPORTED_IMAGE_EXTENSIONS = frozenset({".ai", ".cr2", ".psd", ".psb", ".bmp"})

HEIC_FORMATS = frozenset({"heic", "heif"})


# =============================
# Enums
# =============================

class FingerprintKind(Enum):
    """
    Origin of a fingerprint. Only PERCEPTUAL fingerprints take part in
    similarity comparison; the others group by exact equality.
    """
    CONTENT = "content"
    PERCEPTUAL = "perceptual"
    FALLBACK = "fallback"

    def __repr__(self) -> str:
        return self.value


class HashMethod(Enum):
    """Perceptual hash algorithm used for images."""
    PHASH = "phash"
    AVERAGE = "average"
    DHASH = "dhash"
    WHASH = "whash"

    @property
    def display_name(self) -> str:
        mapping = {
            HashMethod.PHASH: "Perceptual (DCT)",
            HashMethod.AVERAGE: "Average",
            HashMethod.DHASH: "Difference",
            HashMethod.WHASH: "Wavelet",
        }
        return mapping.get(self, self.value)

    def __repr__(self) -> str:
        return self.value


class Stage(str, Enum):
    WALK = "walk"
    GROUP = "group"


# ======================
#  Core Data Models
# ======================

@dataclass(frozen=True)
class Fingerprint:
    """
    Opaque fingerprint string tagged with the component that produced it.
    """
    value: str
    kind: FingerprintKind = FingerprintKind.CONTENT

    @property
    def is_perceptual(self) -> bool:
        return self.kind is FingerprintKind.PERCEPTUAL

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class FileRecord:
    """
    Represents a single discovered file.
    Created once by the walker and never mutated afterwards.
    """
    path: str
    size: int  # in bytes
    name: Optional[str] = None
    extension: Optional[str] = None
    is_image: bool = False
    image_format: Optional[str] = None

    def __post_init__(self):
        """Derive basename and extension from path if not provided."""
        if self.name is None:
            object.__setattr__(self, "name", os.path.basename(self.path))

        if self.extension is None:
            _, ext = os.path.splitext(self.name)
            object.__setattr__(self, "extension", ext.lower())  # ".JPG" → ".jpg"

    def to_dict(self) -> Dict[str, Union[str, int, bool]]:
        data = {
            "name": self.name,
            "extension": self.extension,
            "fullPath": self.path,
            "size": self.size,
            "isImage": self.is_image,
            "imageType": self.image_format,
        }
        return {k: v for k, v in data.items() if v is not None}

    def __repr__(self):
        return f"<FileRecord path={self.path}, size={self.size}>"


HashBuckets = Dict[Fingerprint, List[FileRecord]]


@dataclass
class WalkResult:
    """
    Output of a single walk: exact-fingerprint buckets owned by the caller.
    `cancelled` is True when the walk stopped early on request.
    """
    buckets: HashBuckets = field(default_factory=dict)
    cancelled: bool = False
    skipped: List[Tuple[str, str]] = field(default_factory=list)
    files_visited: int = 0

    def add(self, fingerprint: Fingerprint, record: FileRecord) -> None:
        self.buckets.setdefault(fingerprint, []).append(record)

    def merge(self, other: "WalkResult") -> None:
        """Appends another walk's buckets after this one's, keeping order."""
        for fingerprint, records in other.buckets.items():
            self.buckets.setdefault(fingerprint, []).extend(records)
        self.skipped.extend(other.skipped)
        self.files_visited += other.files_visited
        self.cancelled = self.cancelled or other.cancelled

    @property
    def file_count(self) -> int:
        return sum(len(records) for records in self.buckets.values())


@dataclass
class SimilarityGroup:
    """
    A set of files considered duplicates: one exact bucket, possibly merged
    with visually similar image buckets.
    """
    representative_fingerprint: Fingerprint
    files: List[FileRecord]
    group_id: Optional[str] = None

    @property
    def duplicate_count(self) -> int:
        """How many files are in this group."""
        return len(self.files)

    @property
    def is_image_group(self) -> bool:
        return bool(self.files) and self.files[0].is_image

    def is_duplicate(self) -> bool:
        """True if this group contains at least two files."""
        return self.duplicate_count >= 2

    def __repr__(self):
        return f"<SimilarityGroup id={self.group_id}, count={len(self.files)}>"


@dataclass
class SearchStats:
    """
    Statistics collected during a search.
    """
    def __init__(self):
        self.total_time: float = 0.0
        self.stage_stats: Dict[str, Dict[str, Union[int, float]]] = {}
        self.skipped_files: int = 0
        self._listeners: List[Callable[[str, Dict], None]] = []

    def add_listener(self, listener: Callable[[str, Dict], None]):
        """Adds a listener to receive updates when stats are updated."""
        self._listeners.append(listener)

    def update_stage(
            self,
            stage_name: str,
            groups_found: int,
            files_processed: int,
            duration: float
    ) -> None:
        if stage_name not in self.stage_stats:
            self.stage_stats[stage_name] = {
                "groups": 0,
                "files": 0,
                "time": 0.0
            }
        self.stage_stats[stage_name]["groups"] += groups_found
        self.stage_stats[stage_name]["files"] += files_processed
        self.stage_stats[stage_name]["time"] += duration

        for listener in self._listeners:
            listener(stage_name, self.stage_stats[stage_name])

    def print_summary(self) -> str:
        labels = {
            "walk": "📁 Exact Fingerprint Buckets",
            "group": "🔍 Duplicate Groups",
        }

        lines = [
            "📊 Search Statistics:",
            f"Total Execution Time: {self.total_time:.3f}s",
            f"Skipped files: {self.skipped_files}\n",
            "Stage: GROUPS / FILES / TIME"
        ]

        for stage, data in self.stage_stats.items():
            label = labels.get(stage.lower(), stage.title())
            lines.append(f"{label}: {data['groups']} / {data['files']} / {data['time']:.3f}s")

        return "\n".join(lines)


@dataclass
class SearchResult:
    """
    Final output of a search: group id → ordered file records (each ≥ 2).
    """
    groups: Dict[str, List[FileRecord]] = field(default_factory=dict)
    stats: Optional[SearchStats] = None

    @classmethod
    def from_groups(cls, groups: List[SimilarityGroup], stats: Optional[SearchStats] = None) -> "SearchResult":
        return cls(
            groups={g.group_id: list(g.files) for g in groups if g.is_duplicate()},
            stats=stats,
        )

    @property
    def file_count(self) -> int:
        return sum(len(files) for files in self.groups.values())

    def to_dict(self) -> Dict[str, Dict[str, List[Dict]]]:
        return {
            "doubles": {
                group_id: [f.to_dict() for f in files]
                for group_id, files in self.groups.items()
            }
        }

    def __len__(self):
        return len(self.groups)

    def __bool__(self):
        return bool(self.groups)

    def __iter__(self):
        return iter(self.groups.items())

    def __repr__(self):
        return f"<SearchResult({len(self.groups)} groups)>"


"""
DTO for search parameters with built-in validation.
Interface-agnostic — used by the CLI and any other front end.
"""

@dataclass
class SearchParams:
    """Parameters for a search request with validation."""
    include_roots: List[str]
    exclude_roots: List[str] = field(default_factory=list)
    threshold: float = SIMILARITY_THRESHOLD
    hash_method: HashMethod = HashMethod.PHASH
    hash_size: int = DEFAULT_HASH_SIZE
    workers: int = 1
    extensions: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Validate parameters immediately after creation."""
        self.include_roots = [r for r in (self.include_roots or []) if r and r.strip()]
        if not self.include_roots:
            raise ValidationError("Missing folder(s) path(s).")

        self.exclude_roots = [r for r in (self.exclude_roots or []) if r and r.strip()]

        if not 0.0 <= self.threshold <= 1.0:
            raise ValidationError("Similarity threshold must be between 0 and 1")

        if self.hash_size < 2:
            raise ValidationError("Hash size must be at least 2")

        if self.hash_method == HashMethod.WHASH and self.hash_size & (self.hash_size - 1):
            raise ValidationError("Wavelet hash size must be a power of 2")

        if self.workers < 1:
            raise ValidationError("Workers count must be at least 1")

        # Normalize extensions: ensure they start with dot and are lowercase
        normalized = []
        for ext in self.extensions:
            ext = ext.strip().lower()
            if ext and not ext.startswith('.'):
                ext = f".{ext}"
            if ext:
                normalized.append(ext)
        self.extensions = normalized

    def missing_include_roots(self) -> List[str]:
        """Include roots that do not exist on disk."""
        return [root for root in self.include_roots if not Path(root).exists()]

    def validate_roots(self) -> None:
        """
        Fail fast before any work starts.
        Raises:
            ValidationError listing every missing include root.
        """
        missing = self.missing_include_roots()
        if missing:
            raise ValidationError(
                f"The following folders weren't found: {', '.join(missing)}",
                missing_paths=missing,
            )
