"""Tests for the cross-image diff engine."""

import pytest

from image_fs_view.core.diff import classify_paths, collect_unique_paths, compare_images
from image_fs_view.exceptions import RepositoryMismatchError
from tests.helpers import (
    MemoryImage,
    MemoryLayer,
    dir_member,
    file_member,
    symlink_member,
    whiteout_member,
)


@pytest.fixture
def shared_layer():
    return MemoryLayer(
        [
            dir_member("etc"),
            file_member("etc/os-release", b"ID=alpine\n"),
            file_member("bin/sh", b"#!shell"),
        ]
    )


def test_classify_paths():
    """Test classification of two unique-layer path sets."""
    result = classify_paths({"/a", "/b"}, {"/b", "/c"})

    assert result.added == ["/c"]
    assert result.removed == ["/a"]
    assert result.modified == ["/b"]
    assert result.identical is False
    assert result.has_changes


def test_compare_images_unique_layers(shared_layer):
    """Test comparing two tags that share a base layer."""
    first = MemoryImage(
        [shared_layer, MemoryLayer([file_member("a", b"1"), file_member("b", b"1")])]
    )
    second = MemoryImage(
        [shared_layer, MemoryLayer([file_member("b", b"2"), file_member("c", b"2")])]
    )

    result = compare_images(first, second)

    assert result.added == ["/c"]
    assert result.removed == ["/a"]
    assert result.modified == ["/b"]


def test_shared_layers_are_not_opened(shared_layer):
    """Test that layers present in both images are skipped entirely."""
    first_unique = MemoryLayer([file_member("v1")])
    second_unique = MemoryLayer([file_member("v2")])

    compare_images(
        MemoryImage([shared_layer, first_unique]),
        MemoryImage([shared_layer, second_unique]),
    )

    assert shared_layer.open_count == 0
    assert first_unique.open_count == 1
    assert second_unique.open_count == 1


def test_identical_digests_skip_layer_io(shared_layer):
    """Test that an image compared with itself needs no layer I/O."""
    image = MemoryImage([shared_layer])

    result = compare_images(image, image)

    assert result.identical is True
    assert (result.added, result.removed, result.modified) == ([], [], [])
    assert not result.has_changes
    assert image.layers_calls == 0
    assert shared_layer.open_count == 0


def test_repository_mismatch_rejected_before_io(shared_layer):
    """Test that images from different repositories are not compared."""
    first = MemoryImage([shared_layer], repository="docker.io/library/alpine")
    second = MemoryImage([shared_layer], repository="docker.io/library/nginx")

    with pytest.raises(RepositoryMismatchError) as exc_info:
        compare_images(first, second)

    assert exc_info.value.first == "docker.io/library/alpine"
    assert first.layers_calls == second.layers_calls == 0


def test_unknown_repository_rejected(shared_layer):
    """Test that untagged images cannot be compared."""
    image = MemoryImage([shared_layer], repository=None)

    with pytest.raises(RepositoryMismatchError):
        compare_images(image, MemoryImage([shared_layer], repository=None))


def test_whiteouts_within_unique_layers(shared_layer):
    """Test that deletions inside the unique layers are applied."""
    layers = [
        shared_layer,
        MemoryLayer([file_member("app/tmp.log"), file_member("app/run.py")]),
        MemoryLayer([whiteout_member("app/tmp.log")]),
    ]

    paths = collect_unique_paths(layers, other_digests={shared_layer.digest})

    assert paths == {"/app/run.py"}


def test_unique_paths_are_regular_files_only():
    """Test that directories and links do not contribute to diffs."""
    layer = MemoryLayer(
        [dir_member("srv"), file_member("srv/index.html"), symlink_member("srv/latest", "index.html")]
    )

    assert collect_unique_paths([layer], other_digests=set()) == {"/srv/index.html"}


def test_results_are_sorted(shared_layer):
    """Test that each result list is sorted lexicographically."""
    first = MemoryImage([shared_layer, MemoryLayer([file_member(p) for p in ["z", "m", "a"]])])
    second = MemoryImage([shared_layer, MemoryLayer([file_member(p) for p in ["y", "b", "x"]])])

    result = compare_images(first, second)

    assert result.added == ["/b", "/x", "/y"]
    assert result.removed == ["/a", "/m", "/z"]


def test_no_file_changes(shared_layer):
    """Test that differing digests with no unique files is an empty success."""
    first = MemoryImage([shared_layer], digest="sha256:" + "1" * 64)
    second = MemoryImage([shared_layer], digest="sha256:" + "2" * 64)

    result = compare_images(first, second)

    assert result.identical is False
    assert not result.has_changes
