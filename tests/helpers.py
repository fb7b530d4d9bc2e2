"""Test helpers for building synthetic layers and image tar files."""

import gzip
import hashlib
import io
import json
import tarfile
from pathlib import Path


def file_member(name: str, content: bytes = b"", mode: int = 0o644):
    """Regular file member."""
    info = tarfile.TarInfo(name)
    info.size = len(content)
    info.mode = mode
    return info, content


def dir_member(name: str, mode: int = 0o755):
    """Directory member."""
    info = tarfile.TarInfo(name)
    info.type = tarfile.DIRTYPE
    info.mode = mode
    return info, None


def symlink_member(name: str, target: str):
    """Symbolic link member."""
    info = tarfile.TarInfo(name)
    info.type = tarfile.SYMTYPE
    info.linkname = target
    info.mode = 0o777
    return info, None


def whiteout_member(name: str):
    """Whiteout marker deleting ``name`` from lower layers."""
    parent, _, base = name.rpartition("/")
    marker = f"{parent}/.wh.{base}" if parent else f".wh.{base}"
    return file_member(marker)


def opaque_member(directory: str):
    """Opaque whiteout marker hiding everything lower layers put in ``directory``."""
    return file_member(f"{directory.rstrip('/')}/.wh..wh..opq")


def make_layer_tar(members) -> bytes:
    """Build an uncompressed layer tar from ``(TarInfo, content)`` pairs."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        for info, content in members:
            if content is None:
                tar.addfile(info)
            else:
                tar.addfile(info, fileobj=io.BytesIO(content))
    return buffer.getvalue()


def sha256_digest(data: bytes) -> str:
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


class TrackingStream(io.BytesIO):
    """BytesIO that records whether it was closed."""

    def __init__(self, data: bytes, owner: "MemoryLayer") -> None:
        super().__init__(data)
        self._owner = owner

    def close(self) -> None:
        if not self.closed:
            self._owner.closed_count += 1
        super().close()


class MemoryLayer:
    """In-memory layer implementing the layer access contract."""

    def __init__(self, members=None, data: bytes | None = None, digest: str | None = None):
        self.data = data if data is not None else make_layer_tar(members or [])
        self.digest = digest or sha256_digest(self.data)
        self.size = len(self.data)
        self.open_count = 0
        self.closed_count = 0

    def open(self):
        self.open_count += 1
        return TrackingStream(self.data, self)


class FailingLayer:
    """Layer whose stream cannot be opened."""

    def __init__(self, digest: str = "sha256:" + "f" * 64) -> None:
        self.digest = digest
        self.size = 0
        self.open_count = 0

    def open(self):
        self.open_count += 1
        raise OSError("connection reset by peer")


class MemoryImage:
    """In-memory image implementing the image access contract."""

    def __init__(self, layers, repository: str | None = "docker.io/library/app", digest: str | None = None):
        self._layers = list(layers)
        self.repository = repository
        self.digest = digest or sha256_digest(
            "".join(layer.digest for layer in self._layers).encode()
        )
        self.layers_calls = 0

    def layers(self):
        self.layers_calls += 1
        return list(self._layers)


def write_image_tar(
    tar_path: Path,
    layers: list[bytes],
    repo_tags: list[str] | None = None,
    compress: bool = False,
    legacy_layout: bool = False,
    include_diff_ids: bool = True,
) -> Path:
    """Write a ``docker save`` style image tar containing ``layers``.

    Args:
        tar_path: Destination file
        layers: Uncompressed layer tars, base first
        repo_tags: RepoTags for manifest.json
        compress: Store layers gzip-compressed
        legacy_layout: Use ``<id>/layer.tar`` paths instead of ``blobs/sha256``
        include_diff_ids: Add rootfs.diff_ids to the config
    """
    config = {
        "architecture": "amd64",
        "os": "linux",
        "rootfs": {"type": "layers"},
    }
    if include_diff_ids:
        config["rootfs"]["diff_ids"] = [sha256_digest(layer) for layer in layers]
    config_content = json.dumps(config).encode("utf-8")
    config_hash = hashlib.sha256(config_content).hexdigest()

    blobs = []
    layer_paths = []
    for layer in layers:
        blob = gzip.compress(layer) if compress else layer
        blob_hash = hashlib.sha256(blob).hexdigest()
        if legacy_layout:
            path = f"{blob_hash}/layer.tar"
        else:
            path = f"blobs/sha256/{blob_hash}"
        layer_paths.append(path)
        blobs.append((path, blob))

    config_path = f"{config_hash}.json" if legacy_layout else f"blobs/sha256/{config_hash}"
    manifest = [
        {
            "Config": config_path,
            "RepoTags": repo_tags or [],
            "Layers": layer_paths,
        }
    ]

    with tarfile.open(tar_path, "w") as tar:
        for name, content in [
            ("manifest.json", json.dumps(manifest).encode("utf-8")),
            (config_path, config_content),
            *blobs,
        ]:
            info = tarfile.TarInfo(name)
            info.size = len(content)
            tar.addfile(info, fileobj=io.BytesIO(content))

    return tar_path
