"""Input validation utilities."""

from typing import Optional


def validate_storage_filename(filename: str) -> Optional[str]:
    """
    Validate a filename addressed to the file storage directory.
    
    Args:
        filename: Bare file name (no directories)
        
    Returns:
        Error message if invalid, None if valid
    """
    if not filename:
        return "Filename cannot be empty"
    
    if not isinstance(filename, str):
        return "Filename must be a string"
    
    if '..' in filename or '/' in filename:
        return "Invalid filename"
    
    return None


def validate_file_path(file_path: str) -> Optional[str]:
    """
    Validate file path.
    
    Args:
        file_path: File path to validate
        
    Returns:
        Error message if invalid, None if valid
    """
    if not file_path:
        return "File path cannot be empty"
    
    if not isinstance(file_path, str):
        return "File path must be a string"
    
    if len(file_path.strip()) == 0:
        return "File path cannot be empty or whitespace only"
    
    invalid_chars = ['<', '>', '|', '\0']
    if any(char in file_path for char in invalid_chars):
        return f"File path contains invalid characters: {invalid_chars}"
    
    return None


def validate_page_size(page_size: int) -> Optional[str]:
    """Validate a pagination page size."""
    if not isinstance(page_size, int) or isinstance(page_size, bool):
        return "Page size must be an integer"
    
    if page_size <= 0:
        return f"Page size must be positive, got {page_size}"
    
    return None
