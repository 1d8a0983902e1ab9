"""
Path validation and filename sanitization for the uploads directory.
"""
import os
from pathlib import Path


def is_safe_path(base_dir, path):
    """
    Check that path resolves to a location inside base_dir.

    Args:
        base_dir: The directory path must stay within
        path: The path to check

    Returns:
        bool: True if path is inside base_dir, False otherwise
    """
    try:
        base_dir = Path(base_dir).resolve()
        path = Path(path).resolve()
        return path.is_relative_to(base_dir)
    except (ValueError, OSError):
        return False


def sanitize_filename(filename):
    """
    Reduce an uploaded filename to a safe base name.

    Directory components are dropped, separators, null bytes and
    whitespace runs are replaced.
    """
    name = os.path.basename((filename or "").replace("\\", "/"))
    for char in ["\0", "..", " "]:
        name = name.replace(char, "_")
    name = name.strip("._")
    return name or "unnamed"


def display_filename(stored_name):
    # stored names look like "<ms timestamp>_<original name>"
    prefix, sep, rest = stored_name.partition("_")
    if sep and prefix.isdigit() and rest:
        return rest
    return stored_name
