from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def copy_tree(src: str | Path, dst: str | Path, *, dry_run: bool = False) -> int:
    """Copy the contents of src into dst (cp -r src/* dst/). Returns files copied.

    File metadata is not preserved: the installer media is FAT32.
    """

    s = Path(src)
    d = Path(dst)
    if not s.exists():
        raise FileNotFoundError(str(src))

    if dry_run:
        logger.info("Would copy tree %s -> %s", s, d)
        return 0

    count = 0
    d.mkdir(parents=True, exist_ok=True)
    for item in sorted(s.rglob("*")):
        rel = item.relative_to(s)
        if any(part == ".git" for part in rel.parts):
            continue
        out = d / rel
        if item.is_dir():
            out.mkdir(parents=True, exist_ok=True)
        else:
            out.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(item, out)
            count += 1
    logger.debug("Copied %d file(s) %s -> %s", count, s, d)
    return count


def copy_file(src: str | Path, dst_dir: str | Path, *, mode: Optional[int] = None, dry_run: bool = False) -> Path:
    s = Path(src)
    out = Path(dst_dir) / s.name
    if dry_run:
        logger.info("Would copy %s -> %s", s, out)
        return out

    out.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(s, out)
    if mode is not None:
        os.chmod(out, mode)
    return out


def write_private(path: str | Path, contents: str, *, mode: int = 0o600) -> Path:
    """Write a secret file readable only by its owner."""

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(p, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(contents)
    os.chmod(p, mode)
    return p
