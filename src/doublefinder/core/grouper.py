"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/grouper.py
Turns exact-fingerprint buckets into final duplicate groups.

Non-image buckets are reported as they are (exact matches only). Image buckets with
perceptual fingerprints are merged greedily: each candidate, in bucket order, absorbs
every later candidate whose fingerprint agrees on at least `threshold` of its
positions. A consumed candidate is never reconsidered, so similarity is measured
against the first group a bucket matched rather than as a transitive closure.
"""

from typing import List, Optional, Callable
import logging

logger = logging.getLogger(__name__)

from doublefinder.core.cancellation import is_cancelled
from doublefinder.core.interfaces import SimilarityGrouper
from doublefinder.core.models import (
    SIMILARITY_THRESHOLD, FileRecord, HashBuckets, SimilarityGroup
)


def similarity(hash1: str, hash2: str) -> float:
    """
    Fraction of positions at which two fingerprints agree.

    Returns:
        A value in [0, 1] (1 = identical); 0 for fingerprints of different lengths.
    """
    if len(hash1) != len(hash2) or not hash1:
        return 0.0

    matching = sum(1 for a, b in zip(hash1, hash2) if a == b)
    return matching / len(hash1)


class SimilarityGrouperImpl(SimilarityGrouper):
    """
    Single-pass, index-ordered greedy merge of similar image buckets.
    """

    def __init__(self, threshold: float = SIMILARITY_THRESHOLD):
        self.threshold = threshold

    def group(
        self,
        buckets: HashBuckets,
        threshold: Optional[float] = None,
        cancel: Optional[Callable[[], bool]] = None
    ) -> List[SimilarityGroup]:
        """
        Args:
            buckets: Exact-fingerprint buckets (read only)
            threshold: Minimum similarity to merge two image candidates; defaults to
                the instance threshold
            cancel: Optional token; when set, grouping stops and returns []

        Returns:
            Groups with ≥ 2 files and ids of the form '<fingerprint>_group<n>'.
        """
        threshold = self.threshold if threshold is None else threshold
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"Similarity threshold must be between 0 and 1, got {threshold}")

        candidates = self._split_candidates(buckets)
        consumed = [False] * len(candidates)
        merged_groups: List[SimilarityGroup] = []

        for i, current in enumerate(candidates):
            if consumed[i]:
                continue
            if is_cancelled(cancel):
                logger.debug("Grouping interrupted by cancellation")
                return []

            consumed[i] = True
            merged = SimilarityGroup(
                representative_fingerprint=current.representative_fingerprint,
                files=list(current.files),
            )

            if self._is_comparable(current):
                for j in range(i + 1, len(candidates)):
                    if consumed[j]:
                        continue
                    other = candidates[j]
                    if not self._is_comparable(other):
                        continue
                    score = similarity(
                        current.representative_fingerprint.value,
                        other.representative_fingerprint.value
                    )
                    if score >= threshold:
                        merged.files.extend(other.files)
                        consumed[j] = True

            if merged.is_duplicate():
                merged_groups.append(merged)

        for index, group in enumerate(merged_groups):
            group.group_id = f"{group.representative_fingerprint.value}_group{index}"

        logger.debug(f"Grouped {len(candidates)} candidates into {len(merged_groups)} duplicate groups")
        return merged_groups

    @staticmethod
    def _split_candidates(buckets: HashBuckets) -> List[SimilarityGroup]:
        """
        One candidate per (bucket, image-ness). Image and non-image files sharing a
        fingerprint string end up in separate candidates and are never compared.
        Single non-image files are dropped here since they can never form a group.
        """
        candidates: List[SimilarityGroup] = []
        for fingerprint, files in buckets.items():
            image_files: List[FileRecord] = [f for f in files if f.is_image]
            other_files: List[FileRecord] = [f for f in files if not f.is_image]

            if image_files:
                candidates.append(SimilarityGroup(fingerprint, image_files))
            if len(other_files) > 1:
                candidates.append(SimilarityGroup(fingerprint, other_files))
        return candidates

    @staticmethod
    def _is_comparable(candidate: SimilarityGroup) -> bool:
        """Only image candidates with a perceptual fingerprint take part in similarity."""
        return candidate.is_image_group and candidate.representative_fingerprint.is_perceptual
