"""Custom exceptions for the layered filesystem view engine."""

from typing import Optional


class ImageViewError(Exception):
    """Base exception for all image filesystem view errors."""

    pass


class LayerAccessError(ImageViewError):
    """Raised when a layer cannot be opened or streamed."""

    def __init__(self, index: Optional[int], message: str) -> None:
        self.index = index
        if index is None:
            super().__init__(f"Failed to access layer: {message}")
        else:
            super().__init__(f"Failed to access layer {index}: {message}")


class LayerDecodeError(ImageViewError):
    """Raised when a layer archive has a malformed header or is truncated."""

    def __init__(self, index: Optional[int], message: str) -> None:
        self.index = index
        if index is None:
            super().__init__(f"Failed to decode layer archive: {message}")
        else:
            super().__init__(f"Failed to decode layer {index}: {message}")


class NotFoundError(ImageViewError):
    """Raised when a requested layer or file does not exist."""

    pass


class LayerNotFoundError(NotFoundError):
    """Raised when a layer index is outside the image's layer list."""

    def __init__(self, index: int, count: int) -> None:
        self.index = index
        self.count = count
        super().__init__(f"Layer {index} does not exist (image has {count} layers)")


class FileNotFoundInImageError(NotFoundError):
    """Raised when a path is absent from the resolved filesystem."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"File not found: {path}")


class NotARegularFileError(ImageViewError):
    """Raised when file contents are requested for a non-regular entry."""

    def __init__(self, path: str, kind: str) -> None:
        self.path = path
        self.kind = kind
        super().__init__(f"{path} is not a regular file (type: {kind})")


class RepositoryMismatchError(ImageViewError):
    """Raised when two images from different repositories are compared."""

    def __init__(self, first: Optional[str], second: Optional[str]) -> None:
        self.first = first
        self.second = second
        super().__init__(
            f"Images must be from the same repository: {first} != {second}"
        )


class TarReadError(ImageViewError):
    """Raised when unable to read or parse an image tar file."""

    pass


class ValidationError(ImageViewError):
    """Raised when an image tar file has an invalid structure."""

    pass
