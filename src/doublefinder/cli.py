#!/usr/bin/env python3
"""
doublefinder CLI — Command line interface for duplicate and near-duplicate file detection.
Drives the same SearchCommand as any other front end, with console-based interaction.
Deletion moves files to the system trash unless --permanent is given.
"""
from __future__ import annotations  # Enable postponed evaluation of annotations (PEP 563)
import argparse
import json
import os
import signal
import sys
import time
from pathlib import Path
from typing import List, NoReturn, Optional
import logging

logging.basicConfig(
    level=logging.ERROR,
    format="%(levelname)-8s | %(name)-25s | %(message)s"
)

from doublefinder.core.cancellation import CancellationToken
from doublefinder.core.errors import DeletionError, SearchCancelledError, ValidationError
from doublefinder.core.models import NB_ITEMS_PER_PAGE, SIMILARITY_THRESHOLD, HashMethod, SearchParams, SearchResult
from doublefinder.commands import SearchCommand
from doublefinder.utils.convert_utils import ConvertUtils
from doublefinder.services.deletion_service import DeletionService
from doublefinder.services.duplicate_service import DuplicateService
from doublefinder.aliases import (
    HASH_METHOD_ALIASES, HASH_METHOD_CHOICES, HASH_METHOD_HELP_TEXT,
    THRESHOLD_HELP_TEXT, PAGE_HELP_TEXT, EPILOG_TEXT
)

ABORT_EXIT_CODE = 130


class CLIApplication:
    """Main CLI application controller."""

    def __init__(self):
        self.start_time: float = time.time()
        self.verbose: bool = False
        self.quiet: bool = False
        self.cancel_token = CancellationToken()

        # Fix encoding for Windows consoles to prevent UnicodeEncodeError
        for stream in (sys.stdout, sys.stderr):
            if hasattr(stream, "reconfigure"):
                stream.reconfigure(encoding='utf-8')

    @staticmethod
    def parse_args(args=None) -> argparse.Namespace:
        """Parse command-line arguments."""
        parser = argparse.ArgumentParser(
            prog="doublefinder",
            description="doublefinder — Duplicate and near-duplicate file finder",
            formatter_class=argparse.RawTextHelpFormatter,
            epilog=EPILOG_TEXT
        )

        # Required arguments
        parser.add_argument(
            "--input", "-i",
            required=True,
            nargs="+",
            type=str,
            dest="include_dirs",
            help="Directories (space separated) to scan for duplicates"
        )

        # Filtering options
        parser.add_argument(
            "--excluded-dirs", "-e",
            nargs="+",
            default=[],
            type=str,
            metavar='',
            dest="excluded_dirs",
            help="Excluded/ignored directories (space separated)"
        )
        parser.add_argument(
            "--extensions", "-x",
            nargs="+",
            default=[],
            type=str,
            metavar='',
            help="File extensions (space separated) to scan (e.g., .jpg .png). Default: all files"
        )

        # Similarity options
        parser.add_argument(
            "--threshold", "-t",
            default=None,
            type=str,
            metavar='',
            help=THRESHOLD_HELP_TEXT
        )
        parser.add_argument(
            "--hash-method",
            choices=HASH_METHOD_CHOICES,
            default="phash",
            type=str,
            dest="hash_method",
            help=HASH_METHOD_HELP_TEXT
        )
        parser.add_argument(
            "--workers", "-w",
            default=1,
            type=int,
            metavar='',
            help="Number of threads used to fingerprint files. Default: 1"
        )

        # Presentation options
        parser.add_argument(
            "--show-types",
            nargs="+",
            default=[],
            type=str,
            metavar='',
            dest="show_types",
            help="Only show files with these extensions inside the found groups"
        )
        parser.add_argument(
            "--page",
            default=None,
            type=int,
            metavar='',
            help=PAGE_HELP_TEXT
        )
        parser.add_argument(
            "--json",
            action="store_true",
            help="Print the groups as JSON ({\"doubles\": {group id: [files]}})"
        )

        # Actions
        parser.add_argument(
            "--keep-one",
            action="store_true",
            help="Keep one file per duplicate group and move the rest to trash. "
                 "Always shows preview before deletion for safety."
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Skip confirmation prompt when used with --keep-one (for automation/scripts)"
        )
        parser.add_argument(
            "--permanent",
            action="store_true",
            help="With --keep-one, delete files permanently instead of moving them to trash"
        )

        # Output options
        parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output"
        )
        parser.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Show detailed statistics and progress"
        )

        return parser.parse_args(args)

    def validate_args(self, args: argparse.Namespace) -> None:
        """Validate command-line arguments before execution."""
        if args.force and not args.keep_one:
            self.error_exit("--force can only be used with --keep-one")
        if args.permanent and not args.keep_one:
            self.error_exit("--permanent can only be used with --keep-one")
        if args.json and args.keep_one:
            self.error_exit("--json cannot be combined with --keep-one")

        # Prevent interactive confirmation in non-TTY environments
        if args.keep_one and not args.force:
            if not sys.stdin.isatty() or not sys.stdout.isatty():
                self.error_exit(
                    "Cannot request interactive confirmation in non-interactive session.\n"
                    "Use --force flag to proceed without confirmation when piping output or running in scripts."
                )

        if args.workers < 1:
            self.error_exit("Workers count must be at least 1")
        if args.page is not None and args.page < 1:
            self.error_exit("Page numbers start at 1")

        for input_dir in args.include_dirs:
            input_path = Path(input_dir).resolve()
            if input_path.exists() and not input_path.is_dir():
                self.error_exit(f"Path is not a directory: {input_dir}")

        # Validate excluded directories
        for excl_dir in args.excluded_dirs:
            excl_path = Path(excl_dir).resolve()
            if not excl_path.exists():
                self.warning(f"Excluded directory not found: {excl_dir}")
            elif not excl_path.is_dir():
                self.warning(f"Excluded path is not a directory: {excl_dir}")

    def create_params(self, args: argparse.Namespace) -> SearchParams:
        """Create SearchParams from CLI arguments."""
        try:
            threshold = SIMILARITY_THRESHOLD
            if args.threshold is not None:
                threshold = ConvertUtils.parse_threshold(args.threshold)

            # Normalize paths for consistency with core engine
            include_roots = [str(Path(item.strip()).expanduser().resolve()) for item in args.include_dirs if item.strip()]
            exclude_roots = [str(Path(item.strip()).expanduser().resolve()) for item in args.excluded_dirs if item.strip()]

            params = SearchParams(
                include_roots=include_roots,
                exclude_roots=exclude_roots,
                hash_method=HASH_METHOD_ALIASES.get(args.hash_method, HashMethod.PHASH),
                workers=args.workers,
                extensions=args.extensions,
                threshold=threshold
            )
            params.validate_roots()
            return params
        except ValueError as e:
            self.error_exit(str(e))

    def progress_callback(self, stage: str, current: int, total: Optional[int]) -> None:
        """CLI progress callback - shows progress in console."""
        if not self.verbose:
            return

        if total and total > 0:
            percent = (current / total) * 100
            sys.stderr.write(
                f"\r  [{stage}] {current}/{total} ({percent:.1f}%)"
            )
        else:
            sys.stderr.write(f"\r  [{stage}] {current} files processed...")
        sys.stderr.flush()

    def handle_interrupt(self, signum, frame) -> None:
        """SIGINT handler: ask the running search to stop at its next checkpoint."""
        if self.cancel_token.is_cancelled():
            raise KeyboardInterrupt
        self.cancel_token.cancel()

    @staticmethod
    def calculate_space_savings(result: SearchResult, files_to_delete: List[str]) -> int:
        """Calculate total space that would be freed by deleting files."""
        delete_set = set(files_to_delete)
        return sum(
            file.size
            for files in result.groups.values()
            for file in files
            if file.path in delete_set
        )

    def run_search(self, params: SearchParams) -> SearchResult:
        """Execute the search workflow. A cancelled search exits with code 130."""
        command = SearchCommand()
        if self.verbose:
            print(f"Finding duplicates (hash: {params.hash_method.display_name}, "
                  f"threshold: {params.threshold:.2f})...")

        previous_handler = signal.signal(signal.SIGINT, self.handle_interrupt)
        try:
            result = command.execute(
                params,
                cancel=self.cancel_token,
                progress_callback=self.progress_callback if self.verbose else None
            )
        except SearchCancelledError:
            if self.verbose:
                sys.stderr.write("\n")
            print("Search aborted", file=sys.stderr)
            sys.exit(ABORT_EXIT_CODE)
        except ValidationError as e:
            self.error_exit(str(e))
        finally:
            signal.signal(signal.SIGINT, previous_handler)

        if self.verbose:
            sys.stderr.write("\n")
            print("\nSearch Statistics:")
            print(result.stats.print_summary())

        return result

    def output_results(self, result: SearchResult, page: Optional[int] = None, total_pages: int = 1) -> None:
        """Output duplicate groups as plain text in discovery order."""
        if self.quiet:
            return

        if not result:
            print("No duplicate groups found.")
            return

        print(f"\nFound {len(result)} duplicate groups ({result.file_count} files)")
        if page is not None:
            print(f"Page {page}/{total_pages}")
        types = DuplicateService.file_types(result)
        if types:
            print(f"Types: {', '.join(types)}")

        for idx, (group_id, files) in enumerate(result, 1):
            size_str = ConvertUtils.bytes_to_human(sum(f.size for f in files))
            print(f"\n📁 Group {idx} | Size: {size_str} | Files: {len(files)}")
            if self.verbose:
                print(f"   id: {group_id}")

            for file in files:
                image_marker = f" 🖼 {file.image_format}" if file.image_format else ""
                print(f"   {file.path} [{ConvertUtils.bytes_to_human(file.size)}]{image_marker}")

    @staticmethod
    def output_json(result: SearchResult) -> None:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))

    def execute_keep_one(self, result: SearchResult, force: bool = False, permanent: bool = False) -> None:
        """Keep one file per group, delete the rest. Always shows preview before deletion."""
        if not result:
            if not self.quiet:
                print("No duplicate groups found.")
            return

        selection, _ = DuplicateService.keep_one_per_group(result)
        files_to_delete = DeletionService.collect_paths(selection)

        if not files_to_delete:
            if not self.quiet:
                print("No files to delete (all groups already have only one file).")
            return

        space_saved_str = ConvertUtils.bytes_to_human(self.calculate_space_savings(result, files_to_delete))
        target = "permanently delete" if permanent else "move to trash"

        # Always show deletion preview before action (safety first)
        print()
        for idx, (group_id, files) in enumerate(result, 1):
            size_str = ConvertUtils.bytes_to_human(sum(f.size for f in files))
            print(f"📁 Group {idx} | Total size: {size_str} | Files: {len(files)}")
            print("-" * 60)

            # The first file in discovery order is preserved
            print(f"   [KEEP] {files[0].path}")
            print(f"          Size: {ConvertUtils.bytes_to_human(files[0].size)}")

            for file in files[1:]:
                print(f"   [DEL]  {file.path}")
                print(f"          Size: {ConvertUtils.bytes_to_human(file.size)}")
            print()

        print("=" * 60)
        print(f"Summary: Keep 1 file per group ({len(result)} files preserved, "
              f"{len(files_to_delete)} files deleted)")
        print(f"Total space saved: {space_saved_str}")
        print()

        # Skip confirmation if --force is used
        if force:
            print("⚠️  WARNING: --force flag skips confirmation. Proceeding with deletion...")
        else:
            # Safety check: confirm we're still in interactive mode
            if not sys.stdin.isatty() or not sys.stdout.isatty():
                self.error_exit(
                    "Lost interactive terminal during operation. "
                    "Use --force to proceed in non-interactive environments."
                )

            response = input(f"Are you sure you want to {target} {len(files_to_delete)} files? [y/N]: ")
            if response.strip().lower() not in ("y", "yes"):
                print("Deletion cancelled by user.")
                return

        print(f"\nDeleting {len(files_to_delete)} files ({target})...")
        service = DeletionService(use_trash=not permanent)
        try:
            deleted_count = service.delete(selection)
        except DeletionError as e:
            failed = len(e.failures)
            print(f"\n⚠️  Partial success: {len(files_to_delete) - failed}/{len(files_to_delete)} files deleted.")
            print(str(e))
            sys.exit(1)
        except ValidationError as e:
            self.error_exit(str(e))

        print(f"✅ Successfully deleted {deleted_count} files.")
        print(f"Total space saved: {space_saved_str}")

    def warning(self, message: str) -> None:
        """Print a warning message to stderr."""
        if not self.quiet:
            print(f"⚠️  {message}", file=sys.stderr)

    @staticmethod
    def error_exit(message: str, code: int = 1) -> NoReturn:
        """Print error and exit."""
        print(f"❌ Error: {message}", file=sys.stderr)
        sys.exit(code)

    @staticmethod
    def configure_logging(verbose: bool) -> None:
        """ERROR by default, INFO with --verbose, DEBUG when the DEBUG environment variable is set."""
        if os.environ.get("DEBUG"):
            level = logging.DEBUG
        elif verbose:
            level = logging.INFO
        else:
            level = logging.ERROR
        logging.getLogger().setLevel(level)

    def run(self, argv: Optional[List[str]] = None) -> None:
        """Main entry point with conditional output behavior."""
        args = self.parse_args(argv)
        self.verbose = args.verbose
        self.quiet = args.quiet
        self.configure_logging(self.verbose)

        self.validate_args(args)
        params = self.create_params(args)

        if not self.quiet and not args.json:
            print(f"Scanning directories: {', '.join(params.include_roots)}")

        result = self.run_search(params)

        if args.keep_one:
            # Always show preview before deletion (safety first)
            self.execute_keep_one(result, force=args.force, permanent=args.permanent)
        else:
            view = DuplicateService.filter_by_extensions(result, args.show_types)
            total_pages = DuplicateService.page_count(view, NB_ITEMS_PER_PAGE)
            if args.page is not None:
                view = DuplicateService.paginate(view, args.page, NB_ITEMS_PER_PAGE)
            if args.json:
                self.output_json(view)
            else:
                self.output_results(view, page=args.page, total_pages=total_pages)

        # Show completion time
        elapsed = time.time() - self.start_time
        if self.verbose:
            print(f"\n✅ Completed in {elapsed:.2f} seconds")


def main(argv: Optional[List[str]] = None) -> None:
    """Application entry point."""
    app = CLIApplication()
    try:
        app.run(argv)
    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled by user (Ctrl+C)")
        sys.exit(ABORT_EXIT_CODE)
    except Exception as e:
        if os.environ.get("DEBUG"):
            raise
        print(f"❌ Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
