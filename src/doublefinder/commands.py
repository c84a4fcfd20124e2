"""
Unified command orchestrator for a duplicate search.
This is the SINGLE source of truth for request-level logic — used by the CLI and any other front end.
"""
import os
import time
from typing import Optional, Callable
import logging

from doublefinder.core.cancellation import CancellationToken, is_cancelled
from doublefinder.core.errors import SearchCancelledError
from doublefinder.core.fingerprinter import ImageFingerprinterImpl
from doublefinder.core.grouper import SimilarityGrouperImpl
from doublefinder.core.hasher import ContentHasherImpl
from doublefinder.core.heic import HeicNormalizerImpl
from doublefinder.core.interfaces import Walker, SimilarityGrouper
from doublefinder.core.models import SearchParams, SearchResult, SearchStats, Stage
from doublefinder.core.walker import WalkerImpl

logger = logging.getLogger(__name__)


class SearchCommand:
    """
    Orchestrates the entire search workflow:
    1. Validate include roots (fail fast, before any work)
    2. Walk roots into exact-fingerprint buckets
    3. Merge similar image buckets into duplicate groups

    Cancellation is all-or-nothing: a cancelled request raises SearchCancelledError
    and never returns partial groups.

    Usage:
        token = CancellationToken()
        command = SearchCommand()
        result = command.execute(
            SearchParams(include_roots=["~/Pictures"]),
            cancel=token,
            progress_callback=cli_progress_printer
        )
    """

    def __init__(
        self,
        walker: Optional[Walker] = None,
        grouper: Optional[SimilarityGrouper] = None,
        heic_normalizer: Optional[HeicNormalizerImpl] = None
    ):
        self._walker = walker
        self._grouper = grouper or SimilarityGrouperImpl()
        self.heic_normalizer = heic_normalizer or HeicNormalizerImpl()

    def build_walker(self, params: SearchParams) -> Walker:
        """Walker configured from the request (hash method, workers, extensions)."""
        if self._walker is not None:
            return self._walker
        content_hasher = ContentHasherImpl()
        fingerprinter = ImageFingerprinterImpl(
            heic_normalizer=self.heic_normalizer,
            content_hasher=content_hasher,
            hash_method=params.hash_method,
            hash_size=params.hash_size,
        )
        return WalkerImpl(
            content_hasher=content_hasher,
            image_fingerprinter=fingerprinter,
            extensions=params.extensions,
            workers=params.workers,
        )

    def execute(
            self,
            params: SearchParams,
            cancel: Optional[CancellationToken] = None,
            progress_callback: Optional[Callable[[str, int, Optional[int]], None]] = None
    ) -> SearchResult:
        """
        Execute a search with given parameters.

        Args:
            params: Validated search parameters
            cancel: Per-request cancellation token
            progress_callback: (stage: str, current: int, total: Optional[int]) -> None

        Returns:
            SearchResult mapping group ids to ≥ 2 file records

        Raises:
            ValidationError: If an include root does not exist
            SearchCancelledError: If the request was cancelled at any point
        """
        params.validate_roots()
        for root in params.exclude_roots:
            if not os.path.isdir(root):
                logger.warning(f"Excluded directory not found: {root}")

        stats = SearchStats()
        total_start = time.time()

        # Step 1: walk
        start = time.time()
        walk_result = self.build_walker(params).walk(
            params.include_roots,
            params.exclude_roots,
            cancel=cancel,
            progress_callback=progress_callback
        )
        if walk_result.cancelled or is_cancelled(cancel):
            logger.info("Search aborted during walk")
            raise SearchCancelledError()

        stats.skipped_files = len(walk_result.skipped)
        stats.update_stage(
            Stage.WALK.value,
            groups_found=len(walk_result.buckets),
            files_processed=walk_result.file_count,
            duration=time.time() - start
        )

        # Step 2: group
        start = time.time()
        groups = self._grouper.group(walk_result.buckets, params.threshold, cancel=cancel)
        if is_cancelled(cancel):
            logger.info("Search aborted during grouping")
            raise SearchCancelledError()

        stats.update_stage(
            Stage.GROUP.value,
            groups_found=len(groups),
            files_processed=sum(len(g.files) for g in groups),
            duration=time.time() - start
        )
        stats.total_time = time.time() - total_start

        logger.info(f"Search completed: {len(groups)} duplicate groups")
        return SearchResult.from_groups(groups, stats)
