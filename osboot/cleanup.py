"""Removal of intermediate files.

Only generated scripts and staging directories are deleted; the source
archive, source tree, kernel image, ramdisks and ISOs are kept.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from osboot.layout import Layout

logger = logging.getLogger(__name__)


def cleanup_workspace(layout: Layout) -> list[Path]:
    """Delete intermediates in the work directory without confirmation.

    Returns:
        Paths that existed and were removed.
    """
    removed: list[Path] = []
    for path in layout.intermediates():
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()
        else:
            continue
        logger.info("Removed %s", path)
        removed.append(path)
    return removed


__all__ = ["cleanup_workspace"]
