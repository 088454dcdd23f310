from __future__ import annotations

import logging
from typing import Any, Dict

from ..config import InstallerConfig
from ..lib.diskutil import detect_external_disk, find_fat32_partition

logger = logging.getLogger(__name__)


class DetectDiskStep:
    step_id = "20_detect_disk"
    # The attached disk belongs to this session; never trust a recorded one.
    always_run = True

    def run(self, state: Dict[str, Any], cfg: InstallerConfig) -> Dict[str, Any]:
        disk = detect_external_disk()
        partition = find_fat32_partition(disk)

        media = state.setdefault("media", {})
        media["disk"] = disk.device
        media["partition"] = partition
        media["size_bytes"] = disk.size_bytes
        return state
