from __future__ import annotations

import logging
import os
import re
import stat
from pathlib import Path
from typing import Callable, Iterable, Optional

from ..errors import TargetDeviceError
from .partition import is_partition_of

logger = logging.getLogger(__name__)

DEFAULT_TARGET = "/dev/nvme0n1"

_NVME_DISK = re.compile(r"^nvme\d+n\d+$")


def is_block_device(path: str) -> bool:
    try:
        return stat.S_ISBLK(os.stat(path).st_mode)
    except OSError:
        return False


def list_nvme_disks(sys_block: str | Path = "/sys/block") -> list[str]:
    d = Path(sys_block)
    if not d.is_dir():
        return []
    return [f"/dev/{p.name}" for p in sorted(d.iterdir()) if _NVME_DISK.match(p.name)]


def _holds(dev: str, excluded: set[str]) -> bool:
    return any(is_partition_of(e, dev) for e in excluded)


def detect_target_device(
    explicit: Optional[str] = None,
    *,
    configured: Optional[str] = None,
    exclude: Iterable[str] = (),
    sys_block: str | Path = "/sys/block",
    exists: Callable[[str], bool] = is_block_device,
) -> str:
    """Pick the disk to flash.

    Order: explicit argument, configured device, /dev/nvme0n1, first NVMe disk
    listed in sys_block. A device holding anything in `exclude` (the
    installer media) is never returned.
    """

    excluded = {e for e in exclude if e}

    for dev in (explicit, configured):
        if not dev:
            continue
        if _holds(dev, excluded):
            raise TargetDeviceError(f"Refusing {dev}: it holds the installer media")
        if not exists(dev):
            raise TargetDeviceError(f"Target device {dev} not found")
        return dev

    for dev in [DEFAULT_TARGET] + list_nvme_disks(sys_block):
        if _holds(dev, excluded):
            logger.warning("Skipping %s: it holds the installer media", dev)
            continue
        if exists(dev):
            logger.info("Detected target device %s", dev)
            return dev

    raise TargetDeviceError("No NVMe target device found")
