"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/deletion_service.py
Removes user-selected duplicates together with their HEIC cache derivatives.
"""
import os
from typing import Dict, List
import logging

from doublefinder.core.errors import DeletionError, ValidationError
from doublefinder.core.heic import HeicNormalizerImpl
from doublefinder.core.interfaces import HeicNormalizer
from doublefinder.core.walker import is_image_candidate
from doublefinder.services.file_service import FileService

logger = logging.getLogger(__name__)


class DeletionService:
    """
    Deletes a selection of files (group id → absolute paths).

    For a HEIC source the cached JPEG derivative goes first, then the cache folder if it
    is left empty, then the original. Missing paths are skipped silently. Failures are
    collected and reported once, as a single DeletionError.
    """

    def __init__(self, heic_normalizer: HeicNormalizer = None, use_trash: bool = True):
        self.heic_normalizer = heic_normalizer or HeicNormalizerImpl()
        self.use_trash = use_trash

    @staticmethod
    def collect_paths(files_to_delete: Dict[str, List[str]]) -> List[str]:
        """Flattens a selection, keeping first-seen order and dropping repeats."""
        seen = set()
        paths = []
        for file_paths in files_to_delete.values():
            for path in file_paths:
                if path not in seen:
                    seen.add(path)
                    paths.append(path)
        return paths

    def delete(self, files_to_delete: Dict[str, List[str]]) -> int:
        """
        Args:
            files_to_delete: Mapping of group id to the absolute paths selected in it.

        Returns:
            Number of files actually deleted.

        Raises:
            ValidationError: If the selection is empty.
            DeletionError: If one or more files could not be deleted.
        """
        paths = self.collect_paths(files_to_delete)
        if not paths:
            raise ValidationError("There's nothing to delete.")

        deleted = 0
        failures = []
        for path in paths:
            if not os.path.exists(path):
                logger.debug(f"Already gone, skipping: {path}")
                continue

            try:
                self._remove_heic_derivative(path)
            except OSError as e:
                logger.warning(f"HEIC cache cleanup failed for {path}: {e}. Skipping.")

            try:
                if self.use_trash:
                    FileService.move_to_trash(path)
                else:
                    FileService.remove_permanently(path)
                deleted += 1
                logger.info(f"{path} deleted.")
            except (RuntimeError, FileNotFoundError) as e:
                failures.append((path, str(e)))

        if failures:
            raise DeletionError(failures)
        return deleted

    def _remove_heic_derivative(self, path: str) -> None:
        if not is_image_candidate(path) or not self.heic_normalizer.is_heic(path):
            return

        cache_path = self.heic_normalizer.cache_path_for(path)
        if os.path.exists(cache_path):
            os.unlink(cache_path)
            logger.info(f"Cache file {cache_path} deleted.")
            FileService.remove_dir_if_empty(os.path.dirname(cache_path))
