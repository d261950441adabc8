"""Helpers for filenames, URL paths, local paths and sizes."""

from pathlib import Path
from urllib.parse import quote

from common.constants import ENCRYPTED_SUFFIX
from filebin.exceptions import InvalidDirectoryError, InvalidInputError


def encrypted_name(filename: str) -> str:
    """Name under which the ciphertext of filename is uploaded."""
    return f"{filename}{ENCRYPTED_SUFFIX}"


def strip_encrypted_suffix(filename: str) -> str:
    """Remove exactly one trailing encrypted suffix, if present."""
    if filename.endswith(ENCRYPTED_SUFFIX):
        return filename[:-len(ENCRYPTED_SUFFIX)]
    return filename


def url_path(*segments: str) -> str:
    """
    Join path segments into a URL path, percent-encoding each one.

    Args:
        *segments: Raw segments (bin id, filename, ...)

    Returns:
        Path such as "/abc123/my%20file.txt"
    """
    return "/" + "/".join(quote(segment, safe="") for segment in segments)


def require_directory(folder) -> Path:
    """
    Check that folder is an existing directory.

    Raises:
        InvalidDirectoryError: If it is missing or not a directory
    """
    path = Path(folder)
    if not path.is_dir():
        raise InvalidDirectoryError(f"Invalid directory: {folder}")
    return path


def require_file(file_path) -> Path:
    """
    Check that file_path is an existing regular file.

    Raises:
        InvalidInputError: If it is missing or not a regular file
    """
    path = Path(file_path)
    if not path.is_file():
        raise InvalidInputError(f"Not a readable file: {file_path}")
    return path


def format_file_size(size_bytes: int) -> str:
    """
    Format a byte count using binary units (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    size = size_bytes / 1024.0
    for unit in ('KiB', 'MiB', 'GiB', 'TiB'):
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"
