import math
import os
from typing import Dict, List, Tuple
from doublefinder.core.models import NB_ITEMS_PER_PAGE, FileRecord, SearchResult


class DuplicateService:
    @staticmethod
    def remove_paths(result: SearchResult, file_paths: List[str]) -> SearchResult:
        """
        Removes files with the specified paths from all duplicate groups.

        Files that match any of the provided file paths are removed from each group.
        Groups that contain fewer than 2 files after removal are discarded.

        Args:
            result (SearchResult): Search result to update.
            file_paths (List[str]): List of file paths to remove.

        Returns:
            SearchResult: New result; the input is left untouched.
        """
        to_remove = set(file_paths)
        updated = {}
        for group_id, files in result.groups.items():
            filtered_files = [f for f in files if f.path not in to_remove]
            if len(filtered_files) >= 2:
                updated[group_id] = filtered_files
        return SearchResult(groups=updated, stats=result.stats)

    @staticmethod
    def keep_one_per_group(result: SearchResult) -> Tuple[Dict[str, List[str]], SearchResult]:
        """
        Keeps the first file of each group and selects the rest for deletion.
        Returns:
            - Selection mapping group id → paths to delete
            - Result pruned of the selected files
        """
        selection: Dict[str, List[str]] = {}

        for group_id, files in result.groups.items():
            if len(files) > 1:
                # Never select another spelling of the kept file itself
                kept = os.path.realpath(files[0].path)
                doomed = [f.path for f in files[1:] if os.path.realpath(f.path) != kept]
                if doomed:
                    selection[group_id] = doomed

        paths = [path for paths in selection.values() for path in paths]
        return selection, DuplicateService.remove_paths(result, paths)

    @staticmethod
    def file_types(result: SearchResult) -> List[str]:
        """Distinct extensions present in the result, sorted (for type filters)."""
        return sorted({f.extension for files in result.groups.values() for f in files if f.extension})

    @staticmethod
    def filter_by_extensions(result: SearchResult, extensions: List[str]) -> SearchResult:
        """
        Restricts every group to files with one of the given extensions.
        Groups left with fewer than 2 files are dropped. An empty list keeps everything.
        """
        if not extensions:
            return result
        allowed = {ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions}
        filtered = {}
        for group_id, files in result.groups.items():
            kept: List[FileRecord] = [f for f in files if f.extension in allowed]
            if len(kept) >= 2:
                filtered[group_id] = kept
        return SearchResult(groups=filtered, stats=result.stats)

    @staticmethod
    def page_count(result: SearchResult, per_page: int = NB_ITEMS_PER_PAGE) -> int:
        return max(1, math.ceil(len(result.groups) / per_page))

    @staticmethod
    def paginate(result: SearchResult, page: int, per_page: int = NB_ITEMS_PER_PAGE) -> SearchResult:
        """
        Groups of one page (1-based). Pages past the end are empty.
        """
        if page < 1:
            raise ValueError("Page numbers start at 1")
        if per_page < 1:
            raise ValueError("Items per page must be at least 1")
        start = (page - 1) * per_page
        items = list(result.groups.items())[start:start + per_page]
        return SearchResult(groups=dict(items), stats=result.stats)
