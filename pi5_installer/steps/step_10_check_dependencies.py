from __future__ import annotations

import logging
from typing import Any, Dict

from ..config import InstallerConfig
from ..lib.deps import check_dependencies

logger = logging.getLogger(__name__)


class CheckDependenciesStep:
    step_id = "10_check_dependencies"

    def run(self, state: Dict[str, Any], cfg: InstallerConfig) -> Dict[str, Any]:
        tailscale = check_dependencies(cfg.tailscale_paths)
        state.setdefault("host", {})["tailscale_binary"] = tailscale
        return state
