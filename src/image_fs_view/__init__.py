"""Image FS View - layered filesystem views of container image tar files."""

__version__ = "0.1.0"

from .core.diff import compare_images
from .core.overlay import (
    FilesystemSnapshot,
    LayerFileReader,
    extract_layer,
    open_file,
    read_file,
    resolve_overlay,
)
from .core.types import TreeOptions, ViewConfig
from .exceptions import (
    FileNotFoundInImageError,
    ImageViewError,
    LayerAccessError,
    LayerDecodeError,
    LayerNotFoundError,
    NotARegularFileError,
    NotFoundError,
    RepositoryMismatchError,
    TarReadError,
    ValidationError,
)
from .models import ArchiveEntry, DiffResult, EntryKind, FileInfo, TreeNode
from .tar.image import TarImage
from .views import (
    build_image_tree,
    cat_file,
    compare_tars,
    get_tree,
    list_files,
    list_image_files,
    open_image_file,
    read_image_file,
    save_file,
)

__all__ = [
    "ArchiveEntry",
    "DiffResult",
    "EntryKind",
    "FileInfo",
    "TreeNode",
    "TreeOptions",
    "ViewConfig",
    "FilesystemSnapshot",
    "TarImage",
    "resolve_overlay",
    "extract_layer",
    "read_file",
    "open_file",
    "LayerFileReader",
    "compare_images",
    "list_image_files",
    "read_image_file",
    "open_image_file",
    "build_image_tree",
    "list_files",
    "cat_file",
    "save_file",
    "get_tree",
    "compare_tars",
    "ImageViewError",
    "LayerAccessError",
    "LayerDecodeError",
    "NotFoundError",
    "LayerNotFoundError",
    "FileNotFoundInImageError",
    "NotARegularFileError",
    "RepositoryMismatchError",
    "TarReadError",
    "ValidationError",
]
