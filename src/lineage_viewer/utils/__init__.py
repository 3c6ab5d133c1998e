"""Utility functions."""

from .validation import validate_storage_filename, validate_file_path, validate_page_size

__all__ = ["validate_storage_filename", "validate_file_path", "validate_page_size"]
