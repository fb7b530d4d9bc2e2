"""Tests for tree assembly."""

import pytest

from image_fs_view.core.types import TreeOptions
from image_fs_view.models import FileInfo
from image_fs_view.utils.tree import build_tree, group_entries


def entry(path, is_dir=False, size=0):
    return FileInfo(path=path, mode="drwxr-xr-x" if is_dir else "-rw-r--r--", size=size)


@pytest.fixture
def entries():
    return [
        entry("/bin", is_dir=True),
        entry("/bin/sh", size=100),
        entry("/etc", is_dir=True),
        entry("/etc/hosts", size=20),
        entry("/etc/.hidden", size=1),
        entry("/etc/nginx", is_dir=True),
        entry("/etc/nginx/nginx.conf", size=30),
        entry("/etc/nginx/conf.d", is_dir=True),
        entry("/etc/nginx/conf.d/default.conf", size=40),
        entry("/.dockerenv"),
        entry("/.config", is_dir=True),
        entry("/.config/app.ini"),
        entry("/zz.txt"),
    ]


def names(node):
    return [child.name for child in node.children]


def test_tree_root_children_sorted(entries):
    """Test directories-first then lexicographic ordering under the root."""
    tree = build_tree(entries)

    assert tree.name == "."
    assert tree.path == "/"
    assert names(tree) == ["bin", "etc", "zz.txt"]


def test_tree_nesting(entries):
    """Test that directories contain their children."""
    tree = build_tree(entries)
    etc = tree.children[1]

    assert etc.is_dir
    assert names(etc) == ["nginx", "hosts"]
    assert names(etc.children[0]) == ["conf.d", "nginx.conf"]
    assert etc.children[0].children[0].children[0].size == 40


def test_tree_depth_limit_one(entries):
    """Test that depth 1 lists only direct children of the root."""
    tree = build_tree(entries, "/", TreeOptions(level=1))

    assert names(tree) == ["bin", "etc", "zz.txt"]
    assert all(child.children == [] for child in tree.children)


def test_tree_depth_limit_from_subdirectory(entries):
    """Test that depth is measured from the requested root."""
    tree = build_tree(entries, "/etc", TreeOptions(level=2))

    assert tree.name == "etc"
    nginx = tree.children[0]
    assert names(nginx) == ["conf.d", "nginx.conf"]
    assert nginx.children[0].children == []


def test_tree_hidden_entries(entries):
    """Test that hidden entries are excluded unless requested."""
    assert ".dockerenv" not in names(build_tree(entries))

    tree = build_tree(entries, options=TreeOptions(show_hidden=True))

    assert names(tree) == [".config", "bin", "etc", ".dockerenv", "zz.txt"]
    assert names(tree.children[0]) == ["app.ini"]


def test_tree_without_dirs_first(entries):
    """Test plain lexicographic ordering."""
    tree = build_tree(entries, options=TreeOptions(dirs_first=False))

    assert names(tree) == ["bin", "etc", "zz.txt"]
    assert names(tree.children[1]) == ["hosts", "nginx"]


def test_tree_dirs_only(entries):
    """Test listing directories only."""
    tree = build_tree(entries, options=TreeOptions(dirs_only=True))

    assert names(tree) == ["bin", "etc"]
    assert names(tree.children[1]) == ["nginx"]


def test_tree_exclude_by_basename(entries):
    """Test exclusion globs against basenames."""
    tree = build_tree(entries, "/etc", TreeOptions(exclude="*.conf"))

    assert names(tree.children[0]) == ["conf.d"]
    assert tree.children[0].children[0].children == []


def test_tree_exclude_by_full_path(entries):
    """Test exclusion globs against full paths."""
    tree = build_tree(entries, options=TreeOptions(exclude="/etc/nginx/*"))

    assert names(tree.children[1]) == ["nginx", "hosts"]
    assert tree.children[1].children[0].children == []


def test_group_entries(entries):
    """Test grouping of entries by parent directory."""
    groups = group_entries(entries, "/etc/nginx")

    assert set(groups) == {"/etc/nginx", "/etc/nginx/conf.d"}
    assert [e.name for e in groups["/etc/nginx"]] == ["conf.d", "nginx.conf"]
    assert groups["/etc/nginx/conf.d"][0].path == "/etc/nginx/conf.d/default.conf"


def test_tree_missing_root(entries):
    """Test that an unknown root yields an empty tree."""
    tree = build_tree(entries, "/nonexistent")

    assert tree.name == "nonexistent"
    assert tree.children == []
