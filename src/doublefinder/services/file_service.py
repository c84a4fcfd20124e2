"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/file_service.py
Low-level file removal: system trash (send2trash) or permanent unlink.
"""
import os
from pathlib import Path
import logging

from send2trash import send2trash

logger = logging.getLogger(__name__)


class FileService:
    """
    Cross-platform removal of single files and of empty directories.
    """

    @staticmethod
    def move_to_trash(file_path: str):
        """Moves a file to the system trash."""
        path = Path(file_path).resolve()

        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        try:
            send2trash(str(path))
        except Exception as e:
            raise RuntimeError(f"Failed to move to trash: {e}") from e

    @staticmethod
    def remove_permanently(file_path: str):
        """Unlinks a file. No trash, no undo."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        try:
            path.unlink()
        except OSError as e:
            raise RuntimeError(f"Failed to delete: {e}") from e

    @staticmethod
    def remove_dir_if_empty(dir_path: str) -> bool:
        """Removes a directory only when it has no entries left. Returns True if removed."""
        try:
            if os.path.isdir(dir_path) and not os.listdir(dir_path):
                os.rmdir(dir_path)
                logger.info(f"Cache folder {dir_path} deleted.")
                return True
        except OSError as e:
            logger.warning(f"Could not remove directory {dir_path}: {e}")
        return False
