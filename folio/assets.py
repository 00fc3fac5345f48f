"""Static asset copying for Folio.

Files under the project's ``assets`` directory are copied verbatim into the
output directory, keeping their paths relative to ``assets``.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def copy_assets(assets_dir: Path, output_dir: Path) -> list[Path]:
    """Copy every file under ``assets_dir`` into ``output_dir``.

    A missing assets directory is not an error. Copy failures propagate.

    Args:
        assets_dir: Source directory of static assets.
        output_dir: Destination root.

    Returns:
        Paths of the copied files in the destination.
    """
    if not assets_dir.is_dir():
        logger.debug("No assets directory at %s", assets_dir)
        return []

    copied: list[Path] = []
    for item in sorted(assets_dir.rglob("*")):
        if item.is_dir():
            continue
        dest = output_dir / item.relative_to(assets_dir)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(item, dest)
        copied.append(dest)
    logger.info("Copied %d asset(s)", len(copied))
    return copied
