"""Kernel source fetch and build.

This subpackage provides:
- fetch: kernel.org archive download, verification and extraction
- build: tinyconfig + feature fragment configuration and compilation
"""

from osboot.kernel.build import (
    KERNEL_CONFIG_OPTIONS,
    KernelBuildError,
    compile_kernel,
    configure_kernel,
)
from osboot.kernel.fetch import (
    DownloadError,
    ExtractionError,
    VerificationError,
    ensure_source_archive,
    ensure_source_tree,
)

__all__ = [
    "KERNEL_CONFIG_OPTIONS",
    "DownloadError",
    "ExtractionError",
    "KernelBuildError",
    "VerificationError",
    "compile_kernel",
    "configure_kernel",
    "ensure_source_archive",
    "ensure_source_tree",
]
