from __future__ import annotations

import logging
from typing import Any, Dict

from ..config import InstallerConfig
from ..lib.initramfs import InitramfsSpec, build_initramfs

logger = logging.getLogger(__name__)


class BuildInitramfsStep:
    step_id = "60_build_initramfs"

    def run(self, state: Dict[str, Any], cfg: InstallerConfig) -> Dict[str, Any]:
        tailscale = (state.get("host") or {}).get("tailscale_binary")
        if not tailscale:
            raise RuntimeError("Tailscale binary unknown; run the dependency check first")

        spec = InitramfsSpec(
            work_dir=cfg.work_dir,
            busybox_repo=cfg.busybox_repo,
            tailscale_binary=tailscale,
            target_device=cfg.target_device,
            extra_binaries=cfg.extra_binaries,
        )
        state.setdefault("artifacts", {})["initramfs"] = str(build_initramfs(spec))
        return state
