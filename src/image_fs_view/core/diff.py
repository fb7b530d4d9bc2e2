"""Cross-image file diff over the layers unique to each image."""

from typing import AbstractSet, Sequence

from ..exceptions import RepositoryMismatchError
from ..models import DiffResult
from .overlay import FilesystemSnapshot
from .scanner import iter_layer_entries
from .types import Image, Layer


def layer_digests(layers: Sequence[Layer]) -> set[str]:
    return {layer.digest for layer in layers}


def collect_unique_paths(
    layers: Sequence[Layer], other_digests: AbstractSet[str]
) -> set[str]:
    """Regular-file paths written by layers absent from the other image.

    Shared layers are skipped without being opened. Whiteouts in the unique
    layers are applied the same way as in a full overlay fold, but only over
    the unique subsequence.

    Args:
        layers: Image layers, base first
        other_digests: Layer digests of the image being compared against

    Returns:
        Set of normalized paths
    """
    snapshot = FilesystemSnapshot()
    for index, layer in enumerate(layers):
        if layer.digest in other_digests:
            continue
        snapshot.apply_layer(iter_layer_entries(layer, index))
    return {entry.path for entry in snapshot.entries() if entry.is_regular}


def classify_paths(first: AbstractSet[str], second: AbstractSet[str]) -> DiffResult:
    """Classify unique-layer path sets into added, removed and modified.

    A path present in both sets was written independently by each image,
    so it is reported as modified without comparing contents.
    """
    return DiffResult(
        added=sorted(second - first),
        removed=sorted(first - second),
        modified=sorted(first & second),
    )


def check_comparable(first: Image, second: Image) -> None:
    """Reject images whose repository identities differ.

    Raises:
        RepositoryMismatchError: If either repository is unknown or they differ
    """
    if first.repository is None or first.repository != second.repository:
        raise RepositoryMismatchError(first.repository, second.repository)


def compare_images(first: Image, second: Image) -> DiffResult:
    """Compare the filesystems of two images of the same repository.

    Args:
        first: Baseline image
        second: Image compared against the baseline

    Returns:
        DiffResult with sorted added/removed/modified paths, or
        ``identical=True`` when both images share a digest

    Raises:
        RepositoryMismatchError: If the repositories differ (no layer I/O)
        LayerAccessError: If a unique layer cannot be read
        LayerDecodeError: If a unique layer archive is malformed
    """
    check_comparable(first, second)

    if first.digest == second.digest:
        return DiffResult(identical=True)

    first_layers = first.layers()
    second_layers = second.layers()

    first_paths = collect_unique_paths(first_layers, layer_digests(second_layers))
    second_paths = collect_unique_paths(second_layers, layer_digests(first_layers))

    return classify_paths(first_paths, second_paths)
