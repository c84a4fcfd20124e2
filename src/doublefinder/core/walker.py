"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/walker.py
Implements file discovery and fingerprinting.
Features:
- Explicit stack-based depth-first traversal of every include root
- Hidden entries, excluded directories and the HEIC cache are never visited
- Overlapping include roots are collapsed, so every file is fingerprinted once
- Images get a perceptual fingerprint, everything else an exact content hash
- Best effort: an unreadable file is logged and skipped, the walk goes on
- Cooperative cancellation checked per entry and around every fingerprint
- Optional thread pool per directory; buckets still fill in discovery order
"""

import os
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import List, Optional, Callable, Set, Tuple
import logging

logger = logging.getLogger(__name__)

# Local imports
from doublefinder.core.cancellation import is_cancelled
from doublefinder.core.errors import SkippableFileError, TraversalError
from doublefinder.core.fingerprinter import ImageFingerprinterImpl
from doublefinder.core.hasher import ContentHasherImpl
from doublefinder.core.interfaces import ContentHasher, ImageFingerprinter, PathFilter, Walker
from doublefinder.core.models import (
    IMAGE_EXTENSIONS, UNSUPPORTED_IMAGE_EXTENSIONS, FileRecord, Fingerprint, WalkResult
)
from doublefinder.core.path_filter import PathFilterImpl

# Report progress every N files (fingerprinting dominates, so keep it frequent)
PROGRESS_INTERVAL = 25

FileOutcome = Tuple[Fingerprint, FileRecord]


def is_image_candidate(path: str) -> bool:
    """
    Fast extension pre-filter deciding which fingerprinter a file goes to.
    The real format is sniffed later from the file's metadata.
    """
    ext = os.path.splitext(path)[1].lower()
    return ext in IMAGE_EXTENSIONS and ext not in UNSUPPORTED_IMAGE_EXTENSIONS


def _reachable_from(root: str, other_root: str) -> bool:
    """True if walking `other_root` already descends into `root` (no hidden directory in between)."""
    if root == other_root or not PathFilterImpl.is_within(root, other_root):
        return False
    relative = os.path.relpath(root, other_root)
    return not any(part.startswith(".") for part in relative.split(os.sep))


class WalkerImpl(Walker):
    """
    Walks include roots and accumulates files into exact-fingerprint buckets.

    Attributes:
        content_hasher: Fingerprinter for non-image files
        image_fingerprinter: Fingerprinter for image files
        extensions: Optional allow-list of extensions (e.g. [".jpg", ".txt"])
        workers: Number of threads fingerprinting files of one directory
    """

    def __init__(
        self,
        content_hasher: ContentHasher = None,
        image_fingerprinter: ImageFingerprinter = None,
        extensions: Optional[List[str]] = None,
        workers: int = 1
    ):
        self.content_hasher = content_hasher or ContentHasherImpl()
        self.image_fingerprinter = image_fingerprinter or ImageFingerprinterImpl(
            content_hasher=self.content_hasher
        )
        self.extensions = [ext.lower() for ext in extensions] if extensions else []
        self.workers = max(1, workers)

    def walk(
        self,
        include_roots: List[str],
        exclude_roots: List[str],
        cancel: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> WalkResult:
        """
        Walks every root in order and merges the per-root results.
        Never raises on cancellation: the returned result has cancelled=True instead.
        """
        logger.debug("Starting walk")
        logger.debug(f"Include roots: {include_roots}")
        logger.debug(f"Exclude roots: {exclude_roots}")

        path_filter = PathFilterImpl(exclude_roots)
        result = WalkResult()
        start_time = time.time()

        seen: Set[str] = set()
        executor = ThreadPoolExecutor(max_workers=self.workers) if self.workers > 1 else None
        try:
            for root in self.distinct_roots(include_roots):
                if is_cancelled(cancel):
                    result.cancelled = True
                    break
                root_result = self._walk_root(
                    root, path_filter, cancel, progress_callback, executor, seen,
                    visited_offset=result.files_visited
                )
                result.merge(root_result)
                if result.cancelled:
                    break
        finally:
            if executor is not None:
                executor.shutdown(wait=True, cancel_futures=True)

        if result.cancelled:
            logger.debug("Walk interrupted by cancellation")
        logger.debug(f"Walk finished in {time.time() - start_time:.2f} seconds: "
                     f"{result.file_count} files in {len(result.buckets)} buckets, "
                     f"{len(result.skipped)} skipped")
        return result

    def _walk_root(
        self,
        root: str,
        path_filter: PathFilter,
        cancel: Optional[Callable[[], bool]],
        progress_callback: Optional[Callable[[str, int, object], None]],
        executor: Optional[Executor],
        seen: Optional[Set[str]] = None,
        visited_offset: int = 0
    ) -> WalkResult:
        """Depth-first traversal of one root into a fresh, caller-owned result."""
        result = WalkResult()
        seen = set() if seen is None else seen
        stack = [root]

        while stack:
            if is_cancelled(cancel):
                result.cancelled = True
                return result

            directory = stack.pop()
            if not path_filter.should_descend(directory):
                continue

            try:
                subdirs, files = self._list_directory(directory, path_filter, cancel)
            except TraversalError as e:
                logger.warning(f"Abandoning subtree: {e}")
                result.skipped.append((directory, str(e)))
                continue

            if is_cancelled(cancel):
                result.cancelled = True
                return result

            self._process_files(files, result, cancel, progress_callback, executor, seen, visited_offset)
            if result.cancelled:
                return result

            # Reversed so the first subdirectory is popped first
            stack.extend(reversed(subdirs))

        return result

    @staticmethod
    def distinct_roots(include_roots: List[str]) -> List[str]:
        """
        Absolute include roots with repeats and nested roots removed, order preserved.

        A root is dropped when it resolves to the same directory as an earlier root,
        or lies inside another root (symbolic link aliases included).
        """
        resolved = [PathFilterImpl.normalize(root) for root in include_roots]
        roots = []
        for i, root in enumerate(include_roots):
            if resolved[i] in resolved[:i]:
                logger.debug(f"Ignoring repeated include root: {root}")
                continue
            if any(_reachable_from(resolved[i], other) for other in resolved):
                logger.debug(f"Ignoring include root nested in another root: {root}")
                continue
            roots.append(os.path.abspath(root))
        return roots

    @staticmethod
    def _list_directory(
        directory: str,
        path_filter: PathFilter,
        cancel: Optional[Callable[[], bool]]
    ) -> Tuple[List[str], List[str]]:
        """
        Splits visible entries of a directory into subdirectories and regular files.

        Raises:
            TraversalError: If the directory itself cannot be enumerated.
        """
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            raise TraversalError(f"Cannot read directory {directory}: {e}") from e

        subdirs, files = [], []
        for entry in entries:
            if is_cancelled(cancel):
                break
            if not path_filter.should_visit(entry.name):
                continue
            try:
                if entry.is_symlink():
                    logger.debug(f"Skipping symbolic link: {entry.path}")
                elif entry.is_dir(follow_symlinks=False):
                    subdirs.append(entry.path)
                elif entry.is_file(follow_symlinks=False):
                    files.append(entry.path)
            except OSError as e:
                logger.debug(f"Could not stat {entry.path}: {e}")
        return subdirs, files

    def _process_files(
        self,
        files: List[str],
        result: WalkResult,
        cancel: Optional[Callable[[], bool]],
        progress_callback: Optional[Callable[[str, int, object], None]],
        executor: Optional[Executor],
        seen: Set[str],
        visited_offset: int
    ) -> None:
        """Fingerprints the files of one directory and appends them to `result` in order."""
        files = [path for path in files if self._extension_passes(path) and self._first_visit(path, seen)]
        if not files:
            return

        if executor is None:
            for path in files:
                if is_cancelled(cancel):
                    result.cancelled = True
                    return
                outcome = self._safe_fingerprint(path, result)
                if is_cancelled(cancel):
                    result.cancelled = True
                    return
                self._record(outcome, result, progress_callback, visited_offset)
            return

        futures: List[Future] = [executor.submit(self._fingerprint_task, path, cancel) for path in files]
        for path, future in zip(files, futures):
            if is_cancelled(cancel):
                for pending in futures:
                    pending.cancel()
                result.cancelled = True
                return
            try:
                outcome = future.result()
            except SkippableFileError as e:
                logger.warning(f"Skipping {path}: {e.reason}")
                result.skipped.append((path, e.reason))
                outcome = None
            if is_cancelled(cancel):
                for pending in futures:
                    pending.cancel()
                result.cancelled = True
                return
            self._record(outcome, result, progress_callback, visited_offset)

    def _fingerprint_task(self, path: str, cancel: Optional[Callable[[], bool]]) -> Optional[FileOutcome]:
        """Thread pool entry point: observes the token before doing any work."""
        if is_cancelled(cancel):
            return None
        return self.fingerprint_file(path)

    def _safe_fingerprint(self, path: str, result: WalkResult) -> Optional[FileOutcome]:
        try:
            return self.fingerprint_file(path)
        except SkippableFileError as e:
            logger.warning(f"Skipping {path}: {e.reason}")
            result.skipped.append((path, e.reason))
            return None

    @staticmethod
    def _record(
        outcome: Optional[FileOutcome],
        result: WalkResult,
        progress_callback: Optional[Callable[[str, int, object], None]],
        visited_offset: int
    ) -> None:
        result.files_visited += 1
        if outcome is not None:
            fingerprint, record = outcome
            result.add(fingerprint, record)
            logger.debug(f"{fingerprint.kind.value} {fingerprint.value[:16]}… {record.path}")

        if progress_callback and result.files_visited % PROGRESS_INTERVAL == 0:
            progress_callback('walk', visited_offset + result.files_visited, None)

    def fingerprint_file(self, path: str) -> FileOutcome:
        """
        Fingerprint one regular file and build its record.

        Raises:
            SkippableFileError: If the file cannot be read.
        """
        try:
            size = os.stat(path).st_size
            if is_image_candidate(path):
                fingerprint, image_format = self.image_fingerprinter.fingerprint(path)
                record = FileRecord(path=path, size=size, is_image=True, image_format=image_format)
            else:
                fingerprint = self.content_hasher.hash(path)
                record = FileRecord(path=path, size=size)
        except OSError as e:
            raise SkippableFileError(path, str(e)) from e
        return fingerprint, record

    @staticmethod
    def _first_visit(path: str, seen: Set[str]) -> bool:
        """Registers a file by its real path; False if this walk has already seen it."""
        real_path = os.path.realpath(path)
        if real_path in seen:
            logger.debug(f"Already visited: {path}")
            return False
        seen.add(real_path)
        return True

    def _extension_passes(self, path: str) -> bool:
        if not self.extensions:
            return True
        ext = os.path.splitext(path)[1].lower()
        return ext in self.extensions
