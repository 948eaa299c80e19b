"""
GoDev Change Filter.

Decides whether a changed path should trigger a rebuild.
Requires Python 3.11+.
"""

import os
from collections.abc import Iterable
from pathlib import Path

WATCHED_EXTENSIONS: frozenset[str] = frozenset({".go", ".html", ".css", ".js"})


def is_relevant(
    path: Path | str,
    extensions: Iterable[str] = WATCHED_EXTENSIONS,
) -> bool:
    """
    Check whether a path has one of the watched extensions.

    The comparison is exact and case-sensitive on the final extension,
    leading dot included ("b.GO" and "b" are both irrelevant). A
    dotfile named after an extension, such as ".go", counts as having
    that extension.

    Args:
        path: Path of the changed file
        extensions: Allowed extensions

    Returns:
        True if a change to this path should trigger a rebuild
    """
    name = os.path.basename(os.fspath(path))
    idx = name.rfind(".")
    ext = name[idx:] if idx >= 0 else ""
    return bool(ext) and ext in extensions
