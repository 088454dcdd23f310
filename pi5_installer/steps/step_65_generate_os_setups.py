from __future__ import annotations

import logging
from typing import Any, Dict

from ..config import InstallerConfig
from ..lib.images import find_images
from ..lib.os_setup import generate_os_setups

logger = logging.getLogger(__name__)


class GenerateOsSetupsStep:
    step_id = "65_generate_os_setups"

    def run(self, state: Dict[str, Any], cfg: InstallerConfig) -> Dict[str, Any]:
        logger.info("Generating OS-specific setup scripts...")
        scripts = generate_os_setups(find_images(cfg.images_dir), cfg.os_setups_dir, policy=cfg.reservation)
        state.setdefault("artifacts", {})["os_setups"] = [str(p) for p in scripts]
        return state
