from __future__ import annotations

import logging
from typing import Any, Dict

from ..config import InstallerConfig
from ..lib.diskutil import mount_partition

logger = logging.getLogger(__name__)


class MountMediaStep:
    step_id = "25_mount_media"
    always_run = True

    def run(self, state: Dict[str, Any], cfg: InstallerConfig) -> Dict[str, Any]:
        media = state.setdefault("media", {})
        partition = media.get("partition")
        if not partition:
            raise RuntimeError("Missing media partition; run disk detection first")

        media["mount_point"] = mount_partition(partition, cfg.mount_point)
        return state
