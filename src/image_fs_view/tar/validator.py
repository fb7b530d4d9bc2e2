"""Structural validation of image tar files."""

import json
import tarfile
from pathlib import Path
from typing import Any

from ..exceptions import ValidationError

MANIFEST_FILE = "manifest.json"
REQUIRED_FIELDS = ["Config", "Layers"]


def get_tar_members(tar: tarfile.TarFile) -> set[str]:
    """Extract member names from tar file."""
    return {member.name for member in tar.getmembers()}


def extract_manifest_content(tar: tarfile.TarFile) -> str | None:
    """Extract manifest.json content from tar file."""
    try:
        manifest_member = tar.extractfile(MANIFEST_FILE)
        if manifest_member is None:
            return None
        return manifest_member.read().decode("utf-8")
    except (UnicodeDecodeError, KeyError):
        return None


def parse_manifest_json(manifest_content: str) -> list[dict[str, Any]] | None:
    """Parse manifest JSON content."""
    try:
        manifest_data = json.loads(manifest_content)
        if not isinstance(manifest_data, list) or len(manifest_data) == 0:
            return None
        return manifest_data
    except json.JSONDecodeError:
        return None


def has_required_fields(manifest_entry: Any, required_fields: list[str]) -> bool:
    """Check if manifest entry has all required fields."""
    return isinstance(manifest_entry, dict) and all(
        field in manifest_entry for field in required_fields
    )


def validate_manifest_entry(
    manifest_entry: dict[str, Any], tar_members: set[str]
) -> bool:
    """Validate a single manifest entry."""
    if not has_required_fields(manifest_entry, REQUIRED_FIELDS):
        return False

    if manifest_entry["Config"] not in tar_members:
        return False

    layers = manifest_entry["Layers"]
    if not isinstance(layers, list):
        return False

    return all(layer in tar_members for layer in layers)


def load_manifest(tar: tarfile.TarFile) -> dict[str, Any]:
    """Load and validate the first manifest entry of an open image tar.

    Raises:
        ValidationError: If manifest.json is missing or malformed, or
            references members that are not in the tar
    """
    manifest_content = extract_manifest_content(tar)
    if manifest_content is None:
        raise ValidationError("manifest.json not found in tar file")

    manifest_data = parse_manifest_json(manifest_content)
    if manifest_data is None:
        raise ValidationError("manifest.json must be a non-empty array")

    manifest = manifest_data[0]
    if not validate_manifest_entry(manifest, get_tar_members(tar)):
        raise ValidationError("Invalid manifest entry structure")

    return manifest


def validate_image_tar(tar_path: Path) -> bool:
    """tar 파일이 유효한 이미지 tar 파일인지 검증합니다.

    Args:
        tar_path: 검증할 tar 파일 경로
            - Path 객체: Path("/Users/user/images/app.tar")

    Returns:
        bool: 유효한 이미지 tar 파일인 경우 True, 그렇지 않으면 False

    Raises:
        ValidationError: 파일이 없거나 읽을 수 없는 경우

    Examples:
        is_valid = validate_image_tar(Path("nginx.tar"))
    """
    if not tar_path.exists():
        raise ValidationError(f"Tar file does not exist: {tar_path}")

    try:
        if not tarfile.is_tarfile(tar_path):
            return False

        with tarfile.open(tar_path, "r") as tar:
            load_manifest(tar)
            return True

    except ValidationError:
        return False
    except (tarfile.TarError, OSError) as e:
        raise ValidationError(f"Error reading tar file: {e}") from e
