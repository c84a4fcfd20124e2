"""Formatting and parsing helpers shared by the CLI and services."""

from .convert_utils import ConvertUtils

__all__ = ["ConvertUtils"]
