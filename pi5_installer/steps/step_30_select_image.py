from __future__ import annotations

import logging
from typing import Any, Dict

from ..config import InstallerConfig
from ..lib.images import find_images, select_image

logger = logging.getLogger(__name__)


class SelectImageStep:
    step_id = "30_select_image"

    def run(self, state: Dict[str, Any], cfg: InstallerConfig) -> Dict[str, Any]:
        logger.info("Looking for OS images in %s", cfg.images_dir)
        image = select_image(find_images(cfg.images_dir), choice=cfg.image)

        state["selection"] = {
            "image": str(image.path),
            "filename": image.filename,
            "os_type": image.os_type,
        }
        return state
