from __future__ import annotations

import logging
from typing import Any, Dict

from ..config import InstallerConfig
from ..lib.diskutil import ensure_mounted
from ..lib.firmware import ensure_firmware, install_boot_files

logger = logging.getLogger(__name__)


def live_mount_point(state: Dict[str, Any]) -> str:
    """Mount point of the media, re-validated (macOS may remount it elsewhere)."""

    media = state.get("media") or {}
    partition = media.get("partition")
    mount_point = media.get("mount_point")
    if not partition or not mount_point:
        raise RuntimeError("Media is not mounted; run the mount step first")

    mount_point = ensure_mounted(partition, mount_point)
    state.setdefault("media", {})["mount_point"] = mount_point
    return mount_point


class SetupBootloaderStep:
    step_id = "50_setup_bootloader"

    def run(self, state: Dict[str, Any], cfg: InstallerConfig) -> Dict[str, Any]:
        logger.info("Setting up bootloader...")
        firmware = ensure_firmware(cfg.work_dir, cfg.firmware_repo)
        install_boot_files(firmware, live_mount_point(state))
        state.setdefault("artifacts", {})["firmware_dir"] = str(firmware)
        return state
