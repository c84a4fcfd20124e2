"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

utils/convert_utils.py
"""

FILE_SIZES = ["Bytes", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB", "ZiB", "YiB"]


class ConvertUtils:
    @staticmethod
    def bytes_to_human(size_bytes: int, decimals: int = 2) -> str:
        """
        Convert bytes to human-readable string with binary units
        (e.g., 512 Bytes, 1.5 KiB, 3.25 MiB). Trailing zeros are dropped.
        """
        if size_bytes <= 0:
            return "0 Bytes"

        decimals = max(0, decimals)
        value = float(size_bytes)
        unit_index = 0
        while value >= 1024 and unit_index < len(FILE_SIZES) - 1:
            value /= 1024
            unit_index += 1
        return f"{round(value, decimals):g} {FILE_SIZES[unit_index]}"

    @staticmethod
    def parse_threshold(value: str) -> float:
        """
        Parse a similarity threshold given as a ratio ('0.9') or a percentage ('90%').
        Raises ValueError for values outside [0, 1].
        """
        text = value.strip()
        try:
            threshold = float(text[:-1]) / 100 if text.endswith("%") else float(text)
        except ValueError:
            raise ValueError(f"Invalid threshold: '{value}'. Use a ratio (0.9) or a percentage (90%)")
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"Threshold must be between 0 and 1 (or 0% and 100%), got '{value}'")
        return threshold
