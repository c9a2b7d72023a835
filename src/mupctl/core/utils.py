"""Common utilities for mupctl."""

import os
from pathlib import Path


def resolve_path(*parts: str | Path) -> Path:
    """Join path parts, expand a leading ``~`` and make the result absolute.

    Relative paths are resolved against the current working directory.
    """
    joined = Path(*[str(p) for p in parts])
    return Path(os.path.abspath(joined.expanduser()))


def pluralize(count: int, word: str, suffix: str = "s") -> str:
    """Return ``word`` with ``suffix`` appended unless ``count`` is one."""
    return word if count == 1 else f"{word}{suffix}"
