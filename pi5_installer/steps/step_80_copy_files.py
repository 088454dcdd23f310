from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from ..config import InstallerConfig
from ..lib.assets import copy_file, copy_tree
from .step_50_setup_bootloader import live_mount_point

logger = logging.getLogger(__name__)


class CopyFilesStep:
    step_id = "80_copy_files"

    def run(self, state: Dict[str, Any], cfg: InstallerConfig) -> Dict[str, Any]:
        selection = state.get("selection") or {}
        creds = state.get("credentials") or {}
        artifacts = state.get("artifacts") or {}

        image = selection.get("image")
        initramfs = artifacts.get("initramfs")
        key_file = creds.get("tailscale_key")
        if not image or not initramfs or not key_file:
            raise RuntimeError("Missing image, initramfs or Tailscale key; run the earlier steps first")

        mp = live_mount_point(state)
        logger.info("Copying files to %s...", mp)

        copy_file(image, mp)
        copy_file(key_file, mp, mode=0o600)
        copy_file(initramfs, mp)
        copy_tree(cfg.os_setups_dir, Path(mp) / "os-setups")

        wifi_file = creds.get("wifi_file")
        if wifi_file and Path(wifi_file).is_file():
            copy_file(wifi_file, mp, mode=0o600)

        ssh_key = creds.get("ssh_public_key")
        if ssh_key and Path(ssh_key).is_file():
            copy_file(ssh_key, mp)

        logger.info("Files copied")
        return state
