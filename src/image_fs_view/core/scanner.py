"""Archive entry scanner for uncompressed layer tar streams."""

import tarfile
from typing import BinaryIO, Iterator, Optional

from ..exceptions import LayerAccessError, LayerDecodeError
from ..models import ArchiveEntry, EntryKind
from .paths import classify_whiteout, normalize_path
from .types import Layer


def _member_kind(member: tarfile.TarInfo) -> EntryKind:
    if member.isdir():
        return EntryKind.DIRECTORY
    if member.issym():
        return EntryKind.SYMLINK
    if member.islnk():
        return EntryKind.HARDLINK
    if member.ischr():
        return EntryKind.CHAR_DEVICE
    if member.isblk():
        return EntryKind.BLOCK_DEVICE
    if member.isfifo():
        return EntryKind.FIFO
    return EntryKind.REGULAR


def to_entry(member: tarfile.TarInfo) -> ArchiveEntry:
    """Convert a tar header into a normalized archive entry."""
    path = normalize_path(member.name)
    marker = classify_whiteout(path)
    if marker is not None:
        kind, target = marker
        return ArchiveEntry(
            path=path,
            kind=kind,
            mode=member.mode,
            size=member.size,
            whiteout_target=target,
        )

    return ArchiveEntry(
        path=path,
        kind=_member_kind(member),
        mode=member.mode,
        size=member.size,
        linkname=member.linkname,
    )


class _CountingReader:
    """Read-only stream wrapper that counts the bytes handed out."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self.bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        data = self._stream.read(size)
        self.bytes_read += len(data)
        return data


class EntryReader:
    """Chunked reader over the contents of the current archive entry."""

    def __init__(self, scanner: "ArchiveScanner", fileobj: Optional[BinaryIO]) -> None:
        self._scanner = scanner
        self._fileobj = fileobj

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes, or the rest of the entry.

        Raises:
            LayerDecodeError: If the archive data is truncated
        """
        if self._fileobj is None:
            return b""
        return self._scanner._call(self._fileobj.read, size)


class ArchiveScanner:
    """Single-pass reader of one layer's archive stream.

    Iterating yields entries lazily. The contents of the current entry can be
    read with :meth:`read_current` before advancing; content that is not read
    is skipped by the underlying stream reader, so at most one file is ever
    held in memory.

    An empty stream, or one that ends on a header boundary, is a clean end of
    archive. A malformed header or data cut short at any offset raises
    :class:`LayerDecodeError`.
    """

    def __init__(self, stream: BinaryIO, index: Optional[int] = None) -> None:
        """Initialize scanner.

        Args:
            stream: Uncompressed tar stream, not closed by the scanner
            index: Layer index reported in decode errors
        """
        self._stream = stream
        self._index = index
        self._tar: Optional[tarfile.TarFile] = None
        self._member: Optional[tarfile.TarInfo] = None
        self._started = False

    def __iter__(self) -> Iterator[ArchiveEntry]:
        if self._started:
            raise RuntimeError("ArchiveScanner can only be iterated once")
        self._started = True

        source = _CountingReader(self._stream)
        try:
            # Opening reads the header at offset 0.
            self._tar = self._call(tarfile.open, fileobj=source, mode="r|")
        except LayerDecodeError:
            if source.bytes_read == 0:
                return
            raise

        try:
            member = self._call(self._tar.next)
            while member is not None:
                self._member = member
                yield to_entry(member)
                self._member = None
                member = self._call(self._next_header)
        finally:
            self._member = None
            self._tar.close()

    def _next_header(self) -> Optional[tarfile.TarInfo]:
        # TarFile.next() reports a bad header past offset 0 as end of archive,
        # so later headers are read strictly here.
        tar = self._tar
        if tar.offset != tar.fileobj.tell():
            # Skip the unread data (and padding) of the previous member.
            tar.fileobj.seek(tar.offset - 1)
            if not tar.fileobj.read(1):
                raise tarfile.ReadError("unexpected end of data")

        try:
            return tarfile.TarInfo.fromtarfile(tar)
        except (tarfile.EOFHeaderError, tarfile.EmptyHeaderError):
            return None

    def open_current(self) -> EntryReader:
        """Open the entry last yielded for chunked reading.

        Raises:
            RuntimeError: If no entry is current
        """
        if self._tar is None or self._member is None:
            raise RuntimeError("No current archive entry")

        return EntryReader(self, self._call(self._tar.extractfile, self._member))

    def read_current(self) -> bytes:
        """Read the full contents of the entry last yielded.

        Raises:
            RuntimeError: If no entry is current
            LayerDecodeError: If the archive data is truncated
        """
        return self.open_current().read()

    def _call(self, func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except tarfile.TarError as e:
            raise LayerDecodeError(self._index, str(e)) from e
        except (OSError, EOFError) as e:
            raise LayerAccessError(self._index, str(e)) from e


def open_layer(layer: Layer, index: int) -> BinaryIO:
    """Open a layer's uncompressed stream.

    Raises:
        LayerAccessError: If the collaborator fails to open the layer
    """
    try:
        return layer.open()
    except Exception as e:
        raise LayerAccessError(index, str(e)) from e


def iter_layer_entries(layer: Layer, index: int) -> Iterator[ArchiveEntry]:
    """Yield every entry of one layer, closing its stream on every exit path."""
    stream = open_layer(layer, index)
    try:
        yield from ArchiveScanner(stream, index)
    finally:
        stream.close()
