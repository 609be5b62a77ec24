"""Path utilities for expanding paths and naming output files."""

import re
from pathlib import Path


def expand_path(path: str) -> Path:
    """Expand and normalize a path, resolving ~ and relative paths.

    Args:
        path: Path string that may contain ~ or be relative

    Returns:
        Absolute Path object
    """
    return Path(path).expanduser().resolve()


def ensure_dir(path: Path) -> Path:
    """Create a directory (and parents) if it does not exist yet."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def composition_name(path: Path) -> str:
    """Derive a skill name from a composition file name.

    ``incident-response.forge.py`` and ``incident-response.yaml`` both give
    ``incident-response``.
    """
    name = path.name
    for suffix in (".forge.py", ".forge.yaml", ".forge.yml", ".py", ".yaml", ".yml"):
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return path.stem


def safe_filename(name: str) -> str:
    """Turn a skill name into a file name safe for any filesystem."""
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "-", name).strip("-.")
    return cleaned or "skill"
