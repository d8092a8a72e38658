"""Artifact checks and status reporting.

This module handles:
- Precondition checks for files a stage consumes
- Describing final artifacts (presence, size, optional SHA-256)
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from osboot.errors import ArtifactNotFoundError
from osboot.layout import Layout
from osboot.types import ArtifactInfo

logger = logging.getLogger(__name__)

# Default chunk size for hashing
HASH_CHUNK_SIZE = 64 * 1024  # 64KB


def require_artifact(path: Path, label: str = "Artifact") -> Path:
    """Return path if it is an existing file.

    Raises:
        ArtifactNotFoundError: If the file does not exist.
    """
    if not path.is_file():
        logger.debug("Missing %s: %s", label, path)
        raise ArtifactNotFoundError(path.name, label=label)
    return path


def compute_file_hash(
    file_path: Path,
    chunk_size: int = HASH_CHUNK_SIZE,
) -> str:
    """Compute SHA-256 hash of a file.

    Args:
        file_path: Path to the file.
        chunk_size: Size of chunks for streaming hash.

    Returns:
        SHA-256 hex digest.
    """
    sha256 = hashlib.sha256()
    with file_path.open("rb") as f:
        while chunk := f.read(chunk_size):
            sha256.update(chunk)
    return sha256.hexdigest()


def describe_artifact(path: Path, include_hash: bool = False) -> ArtifactInfo:
    if not path.is_file():
        return ArtifactInfo(name=path.name, path=str(path), exists=False)
    return ArtifactInfo(
        name=path.name,
        path=str(path),
        exists=True,
        size_bytes=path.stat().st_size,
        sha256=compute_file_hash(path) if include_hash else None,
    )


def collect_artifacts(layout: Layout, include_hash: bool = False) -> list[ArtifactInfo]:
    """Describe every final artifact of the work directory, present or not."""
    return [describe_artifact(p, include_hash) for p in layout.final_artifacts()]


def format_size(size_bytes: int) -> str:
    """Format a byte count for humans (e.g. '12.3 MiB')."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    size = float(size_bytes)
    for unit in ("KiB", "MiB"):
        size /= 1024
        if size < 1024:
            return f"{size:.1f} {unit}"
    return f"{size / 1024:.1f} GiB"


__all__ = [
    "collect_artifacts",
    "compute_file_hash",
    "describe_artifact",
    "format_size",
    "require_artifact",
]
