"""File removal, previews and duplicate group management services."""

from .file_service import FileService
from .duplicate_service import DuplicateService
from .deletion_service import DeletionService
from .thumbnail_service import ThumbnailService

__all__ = ["FileService", "DuplicateService", "DeletionService", "ThumbnailService"]
