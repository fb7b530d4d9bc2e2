"""Hierarchical tree assembly from flat entry collections."""

from collections import defaultdict
from typing import Iterable, Protocol

from ..core.paths import basename, is_within, normalize_path, parent_dir
from ..core.types import TreeOptions
from ..models import TreeEntry, TreeNode
from .filters import match_glob


class TreeItem(Protocol):
    path: str
    size: int

    @property
    def is_dir(self) -> bool: ...


def _is_excluded(pattern: str, name: str, path: str) -> bool:
    # Like tree(1): "*.conf" hits basenames, "/etc/**/*.conf" hits full paths.
    return match_glob(pattern, name) or match_glob(pattern, path)


def group_entries(
    items: Iterable[TreeItem], root: str = "/", options: TreeOptions | None = None
) -> dict[str, list[TreeEntry]]:
    """Group entries below ``root`` by parent directory.

    Hidden, excluded and too-deep entries are dropped, and each group is
    sorted (directories first when enabled, then by name).

    Args:
        items: Flat entries with ``path``, ``is_dir`` and ``size``
        root: Directory the tree starts from
        options: Tree options, defaults to :class:`TreeOptions`

    Returns:
        Mapping of directory path to its sorted children
    """
    options = options or TreeOptions()
    root = normalize_path(root)
    groups: dict[str, list[TreeEntry]] = defaultdict(list)

    for item in items:
        if item.path == root or not is_within(item.path, root):
            continue

        name = basename(item.path)
        if not options.show_hidden and name.startswith("."):
            continue
        if options.dirs_only and not item.is_dir:
            continue
        if options.exclude and _is_excluded(options.exclude, name, item.path):
            continue

        depth = item.path[len(root) :].strip("/").count("/") + 1
        if options.level is not None and 0 < options.level < depth:
            continue

        groups[parent_dir(item.path)].append(
            TreeEntry(name=name, is_dir=item.is_dir, path=item.path, size=item.size)
        )

    for entries in groups.values():
        if options.dirs_first:
            entries.sort(key=lambda e: (not e.is_dir, e.name))
        else:
            entries.sort(key=lambda e: e.name)

    return dict(groups)


def _children(groups: dict[str, list[TreeEntry]], path: str) -> list[TreeNode]:
    nodes = []
    for entry in groups.get(path, []):
        node = TreeNode(name=entry.name, path=entry.path, is_dir=entry.is_dir, size=entry.size)
        if entry.is_dir:
            node.children = _children(groups, entry.path)
        nodes.append(node)
    return nodes


def build_tree(
    items: Iterable[TreeItem], root: str = "/", options: TreeOptions | None = None
) -> TreeNode:
    """Build a nested tree rooted at ``root``.

    Only directories that appear as entries are descended into, so a
    hidden or excluded directory hides its whole subtree.
    """
    root = normalize_path(root)
    groups = group_entries(items, root, options)
    name = "." if root == "/" else basename(root)
    return TreeNode(name=name, path=root, is_dir=True, children=_children(groups, root))
