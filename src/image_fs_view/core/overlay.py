"""Overlay resolution of ordered layers into a single filesystem view."""

from typing import BinaryIO, Iterable, Iterator, Sequence

from ..exceptions import FileNotFoundInImageError, LayerNotFoundError, NotARegularFileError
from ..models import ArchiveEntry, EntryKind
from .paths import is_within, normalize_path, parent_dir
from .scanner import ArchiveScanner, EntryReader, iter_layer_entries, open_layer
from .types import Layer

_DELETED = object()


def _ancestors(path: str) -> Iterator[str]:
    while path != "/":
        path = parent_dir(path)
        yield path


class FilesystemSnapshot:
    """Mapping from normalized path to the entry that wins the overlay.

    A snapshot is only built by folding layers in index order with
    :meth:`apply_layer`; callers of :func:`resolve_overlay` receive it once
    every layer has been applied.
    """

    def __init__(self) -> None:
        self._entries: dict[str, ArchiveEntry] = {}

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._entries))

    def get(self, path: str) -> ArchiveEntry | None:
        return self._entries.get(normalize_path(path))

    def paths(self) -> list[str]:
        return sorted(self._entries)

    def entries(self) -> list[ArchiveEntry]:
        """All winning entries, sorted by path."""
        return [self._entries[path] for path in sorted(self._entries)]

    def apply_layer(self, entries: Iterable[ArchiveEntry]) -> None:
        """Fold one layer on top of the snapshot.

        Deletion markers only affect what lower layers contributed, so they
        are applied before this layer's own entries are inserted.
        """
        removed: set[str] = set()
        cleared: set[str] = set()
        additions: list[ArchiveEntry] = []

        for entry in entries:
            if entry.kind is EntryKind.WHITEOUT:
                if entry.whiteout_target is not None:
                    removed.add(entry.whiteout_target)
            elif entry.kind is EntryKind.OPAQUE_WHITEOUT:
                cleared.add(entry.whiteout_target or "/")
            else:
                additions.append(entry)

        if removed or cleared:
            self._delete(removed, cleared)

        for entry in additions:
            self._entries[entry.path] = entry

    def _delete(self, removed: set[str], cleared: set[str]) -> None:
        hidden = removed | cleared
        for path in list(self._entries):
            if path in removed or any(a in hidden for a in _ancestors(path)):
                del self._entries[path]


def check_layer_index(layers: Sequence[Layer], index: int) -> None:
    """Raise :class:`LayerNotFoundError` when ``index`` is out of range."""
    if index < 0 or index >= len(layers):
        raise LayerNotFoundError(index, len(layers))


def resolve_overlay(layers: Sequence[Layer]) -> FilesystemSnapshot:
    """Fold ordered layers (base first) into the merged filesystem.

    Each layer stream is drained and closed before the next one is opened.

    Args:
        layers: Layers ordered bottom to top

    Returns:
        Completed snapshot

    Raises:
        LayerAccessError: If a layer cannot be opened or streamed
        LayerDecodeError: If a layer archive is malformed
    """
    snapshot = FilesystemSnapshot()
    for index, layer in enumerate(layers):
        snapshot.apply_layer(iter_layer_entries(layer, index))
    return snapshot


def extract_layer(layers: Sequence[Layer], index: int) -> list[ArchiveEntry]:
    """Return the raw entries of one layer, in archive order.

    Deletion markers are dropped rather than applied: a single layer has
    nothing below it to delete from.
    """
    check_layer_index(layers, index)
    return [
        entry
        for entry in iter_layer_entries(layers[index], index)
        if not entry.is_whiteout
    ]


def _hides(marker: ArchiveEntry, path: str) -> bool:
    target = marker.whiteout_target
    if target is None:
        return False
    if marker.kind is EntryKind.OPAQUE_WHITEOUT:
        return path != target and is_within(path, target)
    return is_within(path, target)


class LayerFileReader:
    """Open file inside a layer stream.

    Keeps the layer stream positioned at the file's data until closed, so
    large files can be copied in chunks.
    """

    def __init__(self, reader: EntryReader, entries: Iterator[ArchiveEntry], stream: BinaryIO) -> None:
        self._reader = reader
        self._entries = entries
        self._stream = stream

    def read(self, size: int = -1) -> bytes:
        return self._reader.read(size)

    def close(self) -> None:
        try:
            self._entries.close()
        finally:
            self._stream.close()

    def __enter__(self) -> "LayerFileReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def _search_layer(layer: Layer, index: int, path: str, honor_whiteouts: bool):
    stream = open_layer(layer, index)
    scanner = ArchiveScanner(stream, index)
    entries = iter(scanner)
    deleted = False
    try:
        for entry in entries:
            if entry.is_whiteout:
                if honor_whiteouts and _hides(entry, path):
                    deleted = True
                continue
            if entry.path == path:
                if not entry.is_regular:
                    raise NotARegularFileError(path, entry.kind.value)
                return LayerFileReader(scanner.open_current(), entries, stream)
    except BaseException:
        entries.close()
        stream.close()
        raise

    entries.close()
    stream.close()
    return _DELETED if deleted else None


def open_file(layers: Sequence[Layer], path: str, index: int | None = None) -> LayerFileReader:
    """Open one regular file for reading.

    With ``index`` set, only that layer is searched. Otherwise layers are
    searched top-down and the first layer that either provides the file or
    deletes it decides the outcome.

    Raises:
        LayerNotFoundError: If ``index`` is out of range
        FileNotFoundInImageError: If the path does not resolve to a file
        NotARegularFileError: If the path resolves to a non-regular entry
    """
    target = normalize_path(path)

    if index is not None:
        check_layer_index(layers, index)
        candidates = [index]
    else:
        candidates = list(reversed(range(len(layers))))

    for i in candidates:
        found = _search_layer(layers[i], i, target, honor_whiteouts=index is None)
        if isinstance(found, LayerFileReader):
            return found
        if found is _DELETED:
            break

    raise FileNotFoundInImageError(target)


def read_file(layers: Sequence[Layer], path: str, index: int | None = None) -> bytes:
    """Read one regular file's contents; see :func:`open_file`."""
    with open_file(layers, path, index) as reader:
        return reader.read()
