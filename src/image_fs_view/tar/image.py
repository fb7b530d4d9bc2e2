"""Image tar file reader implementing the layer access contract."""

import gzip
import json
import logging
import tarfile
from pathlib import Path
from typing import Any, BinaryIO, Optional

from ..exceptions import TarReadError, ValidationError
from ..models import ImageInfo, LayerInfo
from ..utils.digest import (
    calculate_digest,
    calculate_stream_digest,
    digest_from_blob_path,
)
from .tags import extract_repo_tags_from_repositories, get_primary_tag
from .validator import load_manifest

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"
LAYER_MEDIA_TYPE = "application/vnd.oci.image.layer.v1.tar"
GZIP_LAYER_MEDIA_TYPE = "application/vnd.oci.image.layer.v1.tar+gzip"


class _GzipMemberStream(gzip.GzipFile):
    """Decompressing stream over a tar member that closes the member too."""

    def __init__(self, member: BinaryIO) -> None:
        self._member = member
        super().__init__(fileobj=member, mode="rb")

    def close(self) -> None:
        try:
            super().close()
        finally:
            self._member.close()


class TarLayer:
    """One layer stored as a member of an image tar file."""

    def __init__(self, image: "TarImage", info: LayerInfo) -> None:
        self._image = image
        self.info = info

    @property
    def digest(self) -> str:
        return self.info.digest

    @property
    def size(self) -> int:
        return self.info.size

    def open(self) -> BinaryIO:
        """Open the layer as an uncompressed tar stream.

        Raises:
            TarReadError: If the layer member cannot be extracted
        """
        return self._image._open_layer_member(self.info.tar_path)

    def __repr__(self) -> str:
        return f"TarLayer(digest={self.digest!r}, size={self.size})"


class TarImage:
    """Reader for ``docker save`` and OCI layout image tar files."""

    def __init__(self, tar_path: str | Path) -> None:
        """Initialize tar image.

        Args:
            tar_path: Path to the image tar file
        """
        self.tar_path = Path(tar_path)
        if not self.tar_path.exists():
            raise TarReadError(f"Tar file not found: {tar_path}")
        self._tar_file: Optional[tarfile.TarFile] = None
        self._info: Optional[ImageInfo] = None
        self._layers: list[TarLayer] = []

    def __enter__(self) -> "TarImage":
        """Enter context manager."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager."""
        self.close()

    def open(self) -> None:
        """Open the tar file and load manifest, config and layer list.

        Raises:
            TarReadError: If the tar file cannot be read
            ValidationError: If the manifest is invalid
        """
        try:
            self._tar_file = tarfile.open(self.tar_path, "r")
        except (tarfile.TarError, OSError) as e:
            raise TarReadError(f"Cannot read tar file: {e}") from e

        try:
            self._load()
        except BaseException:
            self.close()
            raise

    def close(self) -> None:
        """Close the tar file."""
        if self._tar_file:
            self._tar_file.close()
            self._tar_file = None

    @property
    def info(self) -> ImageInfo:
        if self._info is None:
            raise TarReadError("Tar file not opened")
        return self._info

    @property
    def repository(self) -> str | None:
        return self.info.repository

    @property
    def digest(self) -> str:
        return self.info.digest

    def layers(self) -> list[TarLayer]:
        """Layers ordered base first."""
        if self._info is None:
            raise TarReadError("Tar file not opened")
        return list(self._layers)

    def _load(self) -> None:
        manifest = load_manifest(self._tar_file)

        config_data = self._extract_file_content(manifest["Config"])
        try:
            config = json.loads(config_data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValidationError(f"Invalid image config {manifest['Config']}: {e}") from e
        if not isinstance(config, dict):
            raise ValidationError(f"Invalid image config {manifest['Config']}")

        repo_tags = manifest.get("RepoTags") or []
        if not repo_tags:
            try:
                repo_tags = extract_repo_tags_from_repositories(self._tar_file)
            except ValidationError:
                repo_tags = []

        primary = get_primary_tag(repo_tags)
        repository, tag = primary if primary else (None, None)

        layer_paths = manifest["Layers"]
        digests = self._layer_digests(layer_paths, config)

        layer_infos = []
        for layer_path, digest in zip(layer_paths, digests):
            member = self._tar_file.getmember(layer_path)
            layer_infos.append(
                LayerInfo(
                    digest=digest,
                    size=member.size,
                    media_type=self._layer_media_type(layer_path),
                    tar_path=layer_path,
                )
            )

        self._info = ImageInfo(
            repository=repository,
            tag=tag,
            digest=calculate_digest(config_data),
            repo_tags=list(repo_tags),
            layers=layer_infos,
            size=sum(layer.size for layer in layer_infos),
        )
        self._layers = [TarLayer(self, info) for info in layer_infos]

        logger.debug(
            f"Loaded {self.tar_path.name}: repository={repository} "
            f"layers={len(self._layers)}"
        )

    def _layer_digests(self, layer_paths: list[str], config: dict[str, Any]) -> list[str]:
        # diff_ids identify uncompressed content, so layers shared between
        # images compare equal regardless of how each tar stores them.
        rootfs = config.get("rootfs") or {}
        diff_ids = rootfs.get("diff_ids") or []
        if isinstance(diff_ids, list) and len(diff_ids) == len(layer_paths):
            return [str(diff_id) for diff_id in diff_ids]

        digests = []
        for layer_path in layer_paths:
            digest = digest_from_blob_path(layer_path)
            if digest is None:
                with self._open_layer_member(layer_path) as stream:
                    digest = calculate_stream_digest(stream)
            digests.append(digest)
        return digests

    def _layer_media_type(self, layer_path: str) -> str:
        with self._extract_member(layer_path) as fileobj:
            magic = fileobj.read(2)
        return GZIP_LAYER_MEDIA_TYPE if magic == GZIP_MAGIC else LAYER_MEDIA_TYPE

    def _extract_member(self, filename: str) -> BinaryIO:
        if not self._tar_file:
            raise TarReadError("Tar file not opened")

        try:
            file_obj = self._tar_file.extractfile(filename)
        except KeyError as e:
            raise TarReadError(f"File {filename} not found in tar") from e
        except tarfile.TarError as e:
            raise TarReadError(f"Failed to extract {filename}: {e}") from e

        if file_obj is None:
            raise TarReadError(f"Could not extract {filename}")
        return file_obj

    def _extract_file_content(self, filename: str) -> bytes:
        with self._extract_member(filename) as file_obj:
            return file_obj.read()

    def _open_layer_member(self, layer_path: str) -> BinaryIO:
        file_obj = self._extract_member(layer_path)
        if file_obj.read(2) == GZIP_MAGIC:
            file_obj.seek(0)
            return _GzipMemberStream(file_obj)
        file_obj.seek(0)
        return file_obj
