"""Path normalization and whiteout classification."""

import posixpath

from ..models import EntryKind

WHITEOUT_PREFIX = ".wh."
OPAQUE_WHITEOUT = ".wh..wh..opq"


def normalize_path(name: str) -> str:
    """Canonicalize an archive entry name or a query path.

    The result is absolute, has exactly one leading slash and no trailing
    slash (except for the root itself).

    Args:
        name: Raw archive name (``etc/passwd``, ``./etc/``) or user path

    Returns:
        Normalized absolute path (e.g. ``/etc/passwd``)
    """
    return posixpath.normpath("/" + name.lstrip("/"))


def is_within(path: str, root: str) -> bool:
    """Check if ``path`` equals ``root`` or is a strict descendant of it."""
    if root == "/":
        return path.startswith("/")
    return path == root or path.startswith(root + "/")


def basename(path: str) -> str:
    """Final path segment, ``/`` for the root."""
    return posixpath.basename(path) or "/"


def parent_dir(path: str) -> str:
    return posixpath.dirname(path) or "/"


def classify_whiteout(path: str) -> tuple[EntryKind, str | None] | None:
    """Classify a normalized path as a deletion marker.

    Returns:
        ``(WHITEOUT, target)`` for ``.wh.<name>`` markers,
        ``(OPAQUE_WHITEOUT, directory)`` for ``.wh..wh..opq`` markers, or
        ``None`` when the path is an ordinary entry. A bare ``.wh.`` marker
        has no target.
    """
    parent, base = posixpath.split(path)
    if base == OPAQUE_WHITEOUT:
        return EntryKind.OPAQUE_WHITEOUT, parent or "/"
    if base.startswith(WHITEOUT_PREFIX):
        hidden = base[len(WHITEOUT_PREFIX) :]
        if not hidden:
            return EntryKind.WHITEOUT, None
        return EntryKind.WHITEOUT, posixpath.join(parent or "/", hidden)
    return None
