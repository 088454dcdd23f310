from __future__ import annotations

import logging
from typing import Any, Dict

from ..config import InstallerConfig
from ..lib.command import run_cmd

logger = logging.getLogger(__name__)


class FinalizeStep:
    step_id = "90_finalize"

    def run(self, state: Dict[str, Any], cfg: InstallerConfig) -> Dict[str, Any]:
        run_cmd(["sync"])

        media = state.get("media") or {}
        selection = state.get("selection") or {}
        creds = state.get("credentials") or {}

        logger.info("Installation media ready on %s", media.get("disk"))
        logger.info("  image:    %s (%s)", selection.get("filename"), selection.get("os_type"))
        logger.info("  wifi:     %s", creds.get("wifi_ssid") or "not configured")
        logger.info("  ssh key:  %s", "yes" if creds.get("ssh_public_key") else "no")
        logger.info("Insert the media into the Raspberry Pi 5 and power on; it flashes the NVMe and reboots")
        return state
