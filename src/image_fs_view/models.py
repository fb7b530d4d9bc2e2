"""Data models for layered filesystem views."""

import stat
from dataclasses import dataclass, field
from enum import Enum


class EntryKind(Enum):
    """Kind of a single archive entry."""

    REGULAR = "regular"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    HARDLINK = "hardlink"
    CHAR_DEVICE = "char_device"
    BLOCK_DEVICE = "block_device"
    FIFO = "fifo"
    WHITEOUT = "whiteout"
    OPAQUE_WHITEOUT = "opaque_whiteout"


_TYPE_CHARS = {
    EntryKind.DIRECTORY: "d",
    EntryKind.SYMLINK: "l",
    EntryKind.BLOCK_DEVICE: "b",
    EntryKind.CHAR_DEVICE: "c",
    EntryKind.FIFO: "p",
}


def format_mode(kind: EntryKind, mode: int) -> str:
    """Render permission bits as an ``ls -l`` style string (e.g. ``drwxr-xr-x``)."""
    perms = []
    for shift in (6, 3, 0):
        bits = (mode >> shift) & 7
        perms.append("r" if bits & 4 else "-")
        perms.append("w" if bits & 2 else "-")
        perms.append("x" if bits & 1 else "-")
    return _TYPE_CHARS.get(kind, "-") + "".join(perms)


@dataclass(frozen=True)
class ArchiveEntry:
    """One normalized record read from a layer archive.

    ``whiteout_target`` is set only for deletion markers: the real path a
    whiteout removes, or the directory an opaque whiteout clears.
    """

    path: str
    kind: EntryKind
    mode: int = 0o644
    size: int = 0
    linkname: str = ""
    whiteout_target: str | None = None

    @property
    def is_whiteout(self) -> bool:
        return self.kind in (EntryKind.WHITEOUT, EntryKind.OPAQUE_WHITEOUT)

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    @property
    def is_regular(self) -> bool:
        return self.kind is EntryKind.REGULAR

    @property
    def mode_string(self) -> str:
        return format_mode(self.kind, stat.S_IMODE(self.mode))

    def to_file_info(self) -> "FileInfo":
        return FileInfo(path=self.path, mode=self.mode_string, size=self.size)


@dataclass(frozen=True)
class FileInfo:
    """Listing row: path, mode string and size."""

    path: str
    mode: str
    size: int

    @property
    def is_dir(self) -> bool:
        return self.mode.startswith("d")


@dataclass
class DiffResult:
    """File-level differences between two images of the same repository.

    ``modified`` lists paths written by layers unique to *both* images. The
    contents are not compared, so a path is reported as changed across the
    layer boundary even if the bytes happen to be identical.
    """

    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    identical: bool = False

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.modified)


@dataclass(frozen=True)
class TreeEntry:
    """Child descriptor grouped under its parent directory."""

    name: str
    is_dir: bool
    path: str
    size: int


@dataclass
class TreeNode:
    """Nested tree structure rooted at a directory."""

    name: str
    path: str
    is_dir: bool
    size: int = 0
    children: list["TreeNode"] = field(default_factory=list)


@dataclass
class LayerInfo:
    """Docker layer information."""

    digest: str
    size: int
    media_type: str
    tar_path: str  # Path within the image tar file


@dataclass
class ImageInfo:
    """Image identity extracted from an image tar file."""

    repository: str | None
    tag: str | None
    digest: str
    repo_tags: list[str]
    layers: list[LayerInfo]
    size: int
