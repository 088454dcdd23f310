from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from ..config import InstallerConfig
from ..lib.assets import copy_tree, write_private
from ..lib.firmware import git_clone
from .step_50_setup_bootloader import live_mount_point

logger = logging.getLogger(__name__)

ADDON_DIR = "haos-tailscale-addon"


class SetupHaosAddonStep:
    step_id = "70_setup_haos_addon"

    def run(self, state: Dict[str, Any], cfg: InstallerConfig) -> Dict[str, Any]:
        selection = state.get("selection") or {}
        if selection.get("os_type") != "haos":
            logger.info("Selected image is not Home Assistant OS; skipping add-on setup")
            return state

        key_file = (state.get("credentials") or {}).get("tailscale_key")
        if not key_file:
            raise RuntimeError("Tailscale key missing; run the credentials step first")
        auth_key = Path(key_file).read_text(encoding="utf-8").strip()

        logger.info("Setting up Home Assistant Tailscale add-on...")
        repo = git_clone(cfg.tailscale_addon_repo, Path(cfg.work_dir) / "hass-addons")

        dst = Path(live_mount_point(state)) / ADDON_DIR
        copy_tree(repo / "tailscale", dst)
        write_private(dst / "options.json", json.dumps({"auth_key": auth_key}, indent=2) + "\n")

        state.setdefault("artifacts", {})["haos_addon"] = str(dst)
        logger.info("Tailscale add-on staged at %s", dst)
        return state
