"""
Helper utilities for the PNG relay.

Path predicates shared by the watcher and the upload handler.
"""

from pathlib import Path

RECOGNIZED_EXTENSION = ".png"


def safe_path(path: str | Path) -> Path:
    """
    Convert string to an absolute Path, handling edge cases.

    Args:
        path: Path string

    Returns:
        Path object
    """
    return Path(path).expanduser().resolve()


def has_hidden_segment(path: Path, root: Path | None = None) -> bool:
    """
    Check if any segment of path starts with a dot.

    Args:
        path: Path to check
        root: Optional watch root; only segments below it are inspected so
            a root that itself lives under a dot-directory still works

    Returns:
        True if the path is a dotfile or sits inside a dot-directory
    """
    if root is not None:
        try:
            path = path.relative_to(root)
        except ValueError:
            pass

    return any(part.startswith('.') and part not in ('.', '..') for part in path.parts)


def is_recognized_image(path: Path) -> bool:
    """Check if the final suffix is the relayed image type, ignoring case."""
    return path.suffix.lower() == RECOGNIZED_EXTENSION


def format_bytes(bytes_count: float) -> str:
    """Format bytes as human-readable string."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_count < 1024.0:
            return f"{bytes_count:.1f} {unit}"
        bytes_count /= 1024.0
    return f"{bytes_count:.1f} PB"
