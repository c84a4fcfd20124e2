from doublefinder.core.models import HashMethod, NB_ITEMS_PER_PAGE, SIMILARITY_THRESHOLD

HASH_METHOD_ALIASES = {
    "phash": HashMethod.PHASH,
    "average": HashMethod.AVERAGE,
    "dhash": HashMethod.DHASH,
    "whash": HashMethod.WHASH,
}

HASH_METHOD_CHOICES = list(HASH_METHOD_ALIASES.keys())

HASH_METHOD_HELP_TEXT = (
    "Perceptual hash used to compare images:\n"
    "  phash   : DCT based, robust to resizing and recompression (default)\n"
    "  average : Mean brightness, fastest, least discriminating\n"
    "  dhash   : Gradient between neighbouring pixels\n"
    "  whash   : Haar wavelet\n"
    "Example  : %(prog)s -i ~/Pictures --hash-method dhash\n"
)

THRESHOLD_HELP_TEXT = (
    "Minimum similarity for two images to count as duplicates,\n"
    f"as a ratio (0.9) or a percentage (90%%). Default: {SIMILARITY_THRESHOLD}\n"
    "  1.0 : only images with identical perceptual hashes\n"
    "  0.9 : resized or recompressed copies of the same picture\n"
)

PAGE_HELP_TEXT = (
    f"Show only one page of groups ({NB_ITEMS_PER_PAGE} groups per page, starting at 1)"
)

EPILOG_TEXT = """
Examples:
  Basic usage - find duplicates in Pictures folder
  %(prog)s -i ~/Pictures

  Search several folders, skipping one subfolder
  %(prog)s -i ~/Pictures ~/Downloads -e ~/Pictures/archive

  Only report near-identical images, hashing on 4 threads
  %(prog)s -i ~/Pictures --threshold 0.99 --workers 4

  Show the second page of JPEG/HEIC groups as JSON
  %(prog)s -i ~/Pictures --show-types .jpg .heic --page 2 --json

  Keep one file per group and move the rest to trash (with confirmation prompt)
  %(prog)s -i ~/Pictures --keep-one

  Same as above but without confirmation, deleting permanently (for scripts)
  %(prog)s -i ~/Pictures --keep-one --force --permanent > ~/report.txt
"""
