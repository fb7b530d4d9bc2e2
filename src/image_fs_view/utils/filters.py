"""Path-prefix and pattern filters over flat entry collections."""

from typing import Iterable, Protocol, TypeVar

from wcmatch import glob

from ..core.paths import is_within, normalize_path

GLOB_CHARS = "*?["

# "**" crosses directories, "*" matches dotfiles, "/" is always the separator.
GLOB_FLAGS = glob.GLOBSTAR | glob.DOTGLOB | glob.BRACE | glob.FORCEUNIX


class HasPath(Protocol):
    path: str


T = TypeVar("T", bound=HasPath)


def has_glob(pattern: str) -> bool:
    """Check if pattern contains glob metacharacters."""
    return any(char in pattern for char in GLOB_CHARS)


def match_glob(pattern: str, path: str) -> bool:
    """Match a doublestar-style glob; malformed patterns never match."""
    try:
        return glob.globmatch(path, pattern, flags=GLOB_FLAGS)
    except ValueError:
        return False


def match_pattern(pattern: str, path: str) -> bool:
    """Check a normalized absolute path against a listing filter.

    - No metacharacters: substring match anywhere in the path.
    - No slash: glob against the basename at any depth (``**/`` prefix).
    - With a slash: glob against the unrooted path, then the rooted path.
    """
    if not has_glob(pattern):
        return pattern in path

    relative = path.lstrip("/")
    if "/" not in pattern:
        return match_glob("**/" + pattern, relative)

    return match_glob(pattern, relative) or match_glob(pattern, path)


def filter_by_pattern(items: Iterable[T], pattern: str) -> list[T]:
    """Keep items whose path matches ``pattern``."""
    return [item for item in items if match_pattern(pattern, item.path)]


def filter_by_path(items: Iterable[T], root: str) -> list[T]:
    """Keep items at ``root`` or below it.

    ``root`` is normalized first, so ``etc``, ``/etc`` and ``/etc/`` are
    equivalent, and ``/etc`` never matches ``/etcx``.
    """
    normalized = normalize_path(root)
    return [item for item in items if is_within(item.path, normalized)]
