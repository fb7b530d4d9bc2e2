"""Collaborator protocols and option types."""

from dataclasses import dataclass
from typing import BinaryIO, Protocol, Sequence


class Layer(Protocol):
    """One ordered filesystem delta of an image.

    ``open()`` returns the uncompressed archive stream. The engine closes it
    after draining or abandoning it.
    """

    digest: str
    size: int

    def open(self) -> BinaryIO: ...


class Image(Protocol):
    """Image handle supplied by the image-access collaborator."""

    repository: str | None
    digest: str

    def layers(self) -> Sequence[Layer]: ...


@dataclass
class TreeOptions:
    """Tree assembly options.

    Attributes:
        level: Maximum depth below the root, ``None`` for unlimited
        show_hidden: Include dot-prefixed entries
        dirs_only: Only list directories
        exclude: Glob matched against basename and full path
        dirs_first: Sort directories before files within a directory
    """

    level: int | None = None
    show_hidden: bool = False
    dirs_only: bool = False
    exclude: str | None = None
    dirs_first: bool = True


@dataclass
class ViewConfig:
    """Configuration for the public view operations."""

    chunk_size: int = 64 * 1024
