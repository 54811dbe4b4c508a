"""Devuelve los artefactos generados como root al usuario original."""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def chown_path(path: Path, uid: int, gid: int) -> None:
    os.chown(path, uid, gid)


def chown_tree(root: Path, uid: int, gid: int) -> int:
    """`chown -R` sobre `root`; devuelve cuántas entradas se tocaron."""

    count = 1
    os.chown(root, uid, gid)
    for dirpath, dirnames, filenames in os.walk(root):
        for name in [*dirnames, *filenames]:
            os.chown(Path(dirpath) / name, uid, gid, follow_symlinks=False)
            count += 1
    logger.debug("chowned %d entries under %s to %d:%d", count, root, uid, gid)
    return count
