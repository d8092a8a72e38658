"""Kernel source fetch module.

This module handles:
- URL discovery for kernel.org source archives
- Download with checksum verification
- Extraction into the work directory
- Skip-if-present reuse of the archive and the extracted tree
"""

from __future__ import annotations

import hashlib
import logging
import shutil
import tarfile
import tempfile
from dataclasses import dataclass
from pathlib import Path

import httpx

from osboot.errors import (
    DOWNLOAD_ERROR,
    EXTRACTION_ERROR,
    VERIFICATION_ERROR,
    OsbootError,
)

logger = logging.getLogger(__name__)

# Official kernel.org CDN base URL
KERNEL_CDN_BASE = "https://cdn.kernel.org/pub/linux/kernel"

# Timeout for the sha256sums listing (seconds)
CHECKSUMS_TIMEOUT = 30

# Timeout for downloads (seconds)
DOWNLOAD_TIMEOUT = 3600

# Chunk size for downloads (bytes)
DOWNLOAD_CHUNK_SIZE = 64 * 1024  # 64 KB


class DownloadError(OsbootError):
    """Raised when the source archive download fails."""

    def __init__(self, message: str, code: str = DOWNLOAD_ERROR) -> None:
        super().__init__(message, code=code)


class VerificationError(OsbootError):
    """Raised when checksum verification fails."""

    def __init__(self, message: str, code: str = VERIFICATION_ERROR) -> None:
        super().__init__(message, code=code)


class ExtractionError(OsbootError):
    """Raised when archive extraction fails."""

    def __init__(self, message: str, code: str = EXTRACTION_ERROR) -> None:
        super().__init__(message, code=code)


@dataclass
class KernelURLs:
    """URLs for a kernel source archive and its checksum list."""

    archive_url: str
    sha256sums_url: str

    @property
    def archive_filename(self) -> str:
        return self.archive_url.rsplit("/", 1)[-1]


def build_kernel_urls(version: str, base_url: str = KERNEL_CDN_BASE) -> KernelURLs:
    """Build URLs for a kernel release.

    Args:
        version: Kernel version (e.g., '6.1.1').
        base_url: Base URL of the kernel.org mirror.

    Returns:
        KernelURLs for the .tar.xz archive and sha256sums.asc.
    """
    major = version.split(".", 1)[0]
    if not major.isdigit():
        raise ValueError(f"Invalid kernel version: {version}")
    prefix = f"{base_url.rstrip('/')}/v{major}.x"
    return KernelURLs(
        archive_url=f"{prefix}/linux-{version}.tar.xz",
        sha256sums_url=f"{prefix}/sha256sums.asc",
    )


def parse_sha256sums(content: str, archive_filename: str) -> str | None:
    """Find the checksum for archive_filename in a sha256sums listing.

    The kernel.org listing is clearsigned; armour and header lines never
    match a file name and fall through.
    """
    for line in content.splitlines():
        fields = line.split()
        if len(fields) != 2:
            continue
        checksum, filename = fields
        # '*' marks binary mode
        if filename.lstrip("*") == archive_filename:
            return checksum.lower()
    return None


def _download_error(error: httpx.HTTPError, url: str) -> DownloadError:
    """Map an httpx failure onto a DownloadError with a stable code."""
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        return DownloadError(
            f"HTTP {response.status_code} {response.reason_phrase} from {url}",
            code="http_error",
        )
    if isinstance(error, httpx.TimeoutException):
        return DownloadError(f"Timed out fetching {url}", code="timeout")
    return DownloadError(f"Network error fetching {url}: {error}", code="network_error")


def download_file(
    client: httpx.Client,
    url: str,
    dest_path: Path,
    expected_checksum: str | None = None,
    timeout: float = DOWNLOAD_TIMEOUT,
    chunk_size: int = DOWNLOAD_CHUNK_SIZE,
) -> str:
    """Stream url to dest_path, hashing as it goes.

    A failed or mismatching download leaves nothing at dest_path.

    Returns:
        SHA-256 hex digest of the downloaded bytes.

    Raises:
        DownloadError: If the request fails.
        VerificationError: If expected_checksum is given and does not match.
    """
    logger.info("Downloading %s to %s", url, dest_path)
    sha256 = hashlib.sha256()
    dest_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with (
            client.stream("GET", url, timeout=timeout) as response,
            dest_path.open("wb") as f,
        ):
            response.raise_for_status()
            for chunk in response.iter_bytes(chunk_size):
                f.write(chunk)
                sha256.update(chunk)
    except httpx.HTTPError as e:
        dest_path.unlink(missing_ok=True)
        raise _download_error(e, url) from e

    digest = sha256.hexdigest()
    if expected_checksum and digest != expected_checksum.lower():
        dest_path.unlink(missing_ok=True)
        raise VerificationError(
            f"Checksum mismatch for {dest_path.name}: "
            f"expected {expected_checksum}, got {digest}"
        )

    logger.info(
        "Downloaded %s (%d bytes, sha256 %s)",
        dest_path.name,
        dest_path.stat().st_size,
        digest,
    )
    return digest


def fetch_checksums(
    client: httpx.Client,
    sha256sums_url: str,
    timeout: float = CHECKSUMS_TIMEOUT,
) -> str:
    """Return the text of the sha256sums listing.

    Raises:
        DownloadError: If the request fails.
    """
    logger.debug("Fetching checksums from %s", sha256sums_url)
    try:
        response = client.get(sha256sums_url, timeout=timeout)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise _download_error(e, sha256sums_url) from e
    return response.text


def ensure_source_archive(
    client: httpx.Client,
    version: str,
    work_dir: Path,
    base_url: str = KERNEL_CDN_BASE,
    verify_checksum: bool = True,
    timeout: float = DOWNLOAD_TIMEOUT,
) -> tuple[Path, bool]:
    """Download the kernel source archive unless it is already present.

    The archive is streamed to a temp file in work_dir and moved into place
    only after it downloaded (and verified) completely.

    Args:
        client: HTTPX client instance.
        version: Kernel version.
        work_dir: Directory that holds the archive.
        base_url: Base URL of the kernel.org mirror.
        verify_checksum: Whether to verify the SHA256 checksum.
        timeout: Download timeout in seconds.

    Returns:
        Tuple of (archive path, whether it was downloaded by this call).

    Raises:
        DownloadError: If download fails.
        VerificationError: If checksum verification fails.
    """
    urls = build_kernel_urls(version, base_url)
    archive_path = work_dir / urls.archive_filename

    if archive_path.is_file():
        logger.info("Kernel archive already exists, skipping download: %s", archive_path)
        return archive_path, False

    work_dir.mkdir(parents=True, exist_ok=True)

    expected_checksum: str | None = None
    if verify_checksum:
        checksums_content = fetch_checksums(client, urls.sha256sums_url)
        expected_checksum = parse_sha256sums(checksums_content, urls.archive_filename)
        if not expected_checksum:
            logger.warning(
                "Could not find checksum for %s in sha256sums", urls.archive_filename
            )

    with tempfile.NamedTemporaryFile(
        dir=work_dir, suffix=".tmp", delete=False
    ) as tmp_file:
        tmp_path = Path(tmp_file.name)

    try:
        download_file(
            client,
            urls.archive_url,
            tmp_path,
            expected_checksum=expected_checksum,
            timeout=timeout,
        )
        shutil.move(str(tmp_path), str(archive_path))
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise

    return archive_path, True


def extract_archive(archive_path: Path, dest_dir: Path) -> Path:
    """Extract a .tar.xz source archive into dest_dir.

    Args:
        archive_path: Path to the archive file.
        dest_dir: Destination directory for extraction.

    Returns:
        Path to the single top-level directory of the archive.

    Raises:
        ExtractionError: If extraction fails or the archive is malformed.
    """
    logger.info("Extracting %s to %s", archive_path.name, dest_dir)

    dest_dir.mkdir(parents=True, exist_ok=True)

    try:
        with tarfile.open(archive_path, "r:xz") as tar:
            members = tar.getmembers()
            if not members:
                raise ExtractionError(
                    f"Archive {archive_path} is empty",
                    code="empty_archive",
                )

            for member in members:
                # Security: prevent path traversal
                member_path = Path(member.name)
                if member_path.is_absolute() or ".." in member_path.parts:
                    raise ExtractionError(
                        f"Refusing to extract {member.name}: path traversal detected",
                        code="path_traversal",
                    )

            tar.extractall(dest_dir, filter="data")

    except tarfile.TarError as e:
        raise ExtractionError(
            f"Failed to extract {archive_path}: {e}",
            code="tar_error",
        ) from e
    except OSError as e:
        raise ExtractionError(
            f"OS error extracting {archive_path}: {e}",
            code="os_error",
        ) from e

    top_level = [d for d in dest_dir.iterdir() if d.is_dir()]
    if len(top_level) != 1:
        raise ExtractionError(
            f"Expected one top-level directory in {archive_path.name}, "
            f"found {sorted(d.name for d in top_level)}",
            code="unexpected_layout",
        )
    return top_level[0]


def ensure_source_tree(archive_path: Path, source_dir: Path) -> tuple[Path, bool]:
    """Extract the source archive unless source_dir already exists.

    Extraction happens in a scratch directory next to source_dir and the
    tree is renamed into place at the end, so an interrupted run never
    leaves a partial tree behind that a later run would skip.

    Returns:
        Tuple of (source directory, whether it was extracted by this call).

    Raises:
        ExtractionError: If extraction fails.
    """
    if source_dir.is_dir():
        logger.info("Kernel source already extracted: %s", source_dir)
        return source_dir, False

    scratch = Path(
        tempfile.mkdtemp(prefix=f".{source_dir.name}.", dir=source_dir.parent)
    )
    try:
        extracted = extract_archive(archive_path, scratch)
        extracted.rename(source_dir)
    finally:
        shutil.rmtree(scratch, ignore_errors=True)

    logger.info("Extracted kernel source to %s", source_dir)
    return source_dir, True


__all__ = [
    "KERNEL_CDN_BASE",
    "DownloadError",
    "ExtractionError",
    "KernelURLs",
    "VerificationError",
    "build_kernel_urls",
    "download_file",
    "ensure_source_archive",
    "ensure_source_tree",
    "extract_archive",
    "fetch_checksums",
    "parse_sha256sums",
]
