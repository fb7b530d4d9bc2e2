"""Digest calculation and validation utilities."""

import hashlib
import re
from typing import BinaryIO, Union

# Regex pattern for valid digest format (algorithm:hex)
DIGEST_PATTERN = re.compile(r"^[a-z0-9]+:[a-f0-9]+$")


def _new_hasher(algorithm: str):
    if algorithm not in hashlib.algorithms_available:
        raise ValueError(f"Unsupported algorithm: {algorithm}")
    return hashlib.new(algorithm)


def calculate_digest(data: Union[bytes, bytearray], algorithm: str = "sha256") -> str:
    """Calculate digest of data.

    Args:
        data: Data to hash
        algorithm: Hash algorithm (default: sha256)

    Returns:
        Digest string in format "algorithm:hex"

    Raises:
        ValueError: If algorithm is not supported
        ValueError: If data is not bytes-like
    """
    if not isinstance(data, (bytes, bytearray)):
        raise ValueError("Data must be bytes or bytearray")

    hasher = _new_hasher(algorithm)
    hasher.update(data)
    return f"{algorithm}:{hasher.hexdigest()}"


def calculate_stream_digest(
    stream: BinaryIO, algorithm: str = "sha256", chunk_size: int = 1024 * 1024
) -> str:
    """Calculate digest of a stream without loading it into memory."""
    hasher = _new_hasher(algorithm)
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        hasher.update(chunk)
    return f"{algorithm}:{hasher.hexdigest()}"


def validate_digest(digest: str) -> bool:
    """Validate digest format.

    Args:
        digest: Digest string to validate

    Returns:
        True if valid digest format
    """
    if not isinstance(digest, str):
        return False

    if not DIGEST_PATTERN.match(digest):
        return False

    # Check if algorithm is valid
    algorithm, _ = digest.split(":", 1)
    return algorithm in ["sha256", "sha512", "sha1", "md5"]


def digest_from_blob_path(blob_path: str) -> str | None:
    """Derive a digest from an OCI layout path (``blobs/<alg>/<hex>``)."""
    parts = blob_path.strip("/").split("/")
    if len(parts) < 3 or parts[-3] != "blobs":
        return None

    digest = f"{parts[-2]}:{parts[-1]}"
    return digest if validate_digest(digest) else None
