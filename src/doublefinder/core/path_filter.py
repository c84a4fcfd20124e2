"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/path_filter.py
Visiting rules for the walker: hidden entries, excluded directories and the
HEIC cache directory are never traversed.
"""

import os
from pathlib import Path
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

from doublefinder.core.interfaces import PathFilter
from doublefinder.core.models import CACHE_DIR


class PathFilterImpl(PathFilter):
    """
    Pure predicate over a path plus the configured exclusion list.

    Attributes:
        excluded_dirs: Resolved, normalized directories that are never descended into
        cache_dir_name: Name of the HEIC derivative directory
    """

    def __init__(self, excluded_dirs: Optional[List[str]] = None, cache_dir_name: str = CACHE_DIR):
        self.excluded_dirs = [PathFilterImpl.normalize(d) for d in excluded_dirs] if excluded_dirs else []
        self.cache_dir_name = cache_dir_name

    def should_descend(self, dir_path: str) -> bool:
        """False for excluded directories (and their subdirectories) and cache directories."""
        if self._is_cache_directory(dir_path):
            logger.debug(f"Skipping cache directory: {dir_path}")
            return False

        if self.excluded_dirs and self._is_excluded_directory(dir_path):
            logger.debug(f"Skipping excluded directory: {dir_path}")
            return False

        return True

    @staticmethod
    def should_visit(entry_name: str) -> bool:
        """Hidden entries (dotfiles and dot-directories) are never visited."""
        return not entry_name.startswith(".")

    def _is_cache_directory(self, dir_path: str) -> bool:
        return self.cache_dir_name in Path(dir_path).parts

    def _is_excluded_directory(self, dir_path: str) -> bool:
        """Check if path is an excluded directory or lies within one."""
        try:
            path_str = PathFilterImpl.normalize(dir_path)
        except (OSError, ValueError):
            return False
        return any(PathFilterImpl.is_within(path_str, excluded_dir) for excluded_dir in self.excluded_dirs)

    @staticmethod
    def is_within(path: str, parent: str) -> bool:
        """True if normalized `path` equals normalized `parent` or lies beneath it."""
        return path == parent or path.startswith(parent.rstrip(os.sep) + os.sep)

    @staticmethod
    def normalize(path: str) -> str:
        """Absolute, symlink-resolved, normalized form of a path."""
        return os.path.normpath(str(Path(path).resolve(strict=False)))
