from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from ..config import InstallerConfig
from ..lib.assets import write_private
from ..lib.credentials import WIFI_FILE, ensure_tailscale_key, resolve_wifi, write_wifi_file
from ..lib.os_setup import SSH_KEY_FILE
from ..lib.ssh_keys import find_private_key, public_key_for

logger = logging.getLogger(__name__)


class CredentialsStep:
    """Collect the Tailscale key, WiFi and SSH key into the work dir.

    The copy step moves whatever exists here onto the media, so stale optional
    files from an earlier run are removed when no longer configured.
    """

    step_id = "40_credentials"

    def run(self, state: Dict[str, Any], cfg: InstallerConfig) -> Dict[str, Any]:
        work = Path(cfg.work_dir)
        creds = state.setdefault("credentials", {})

        creds["tailscale_key"] = str(ensure_tailscale_key(work))

        wifi_path = work / WIFI_FILE
        wifi = resolve_wifi(cfg.wifi_ssid, cfg.wifi_password, interactive=cfg.wifi_prompt)
        if wifi:
            write_wifi_file(wifi, work)
            creds["wifi_file"] = str(wifi_path)
            creds["wifi_ssid"] = wifi.ssid
        else:
            wifi_path.unlink(missing_ok=True)
            creds["wifi_file"] = None
            creds["wifi_ssid"] = None

        pub_path = work / SSH_KEY_FILE
        key = find_private_key(cfg.ssh_key) if cfg.ssh_enabled else None
        if key:
            logger.info("Using SSH key %s", key)
            write_private(pub_path, public_key_for(key) + "\n", mode=0o644)
            creds["ssh_public_key"] = str(pub_path)
        else:
            if cfg.ssh_enabled:
                logger.warning("No SSH key found; the installed OS will not get an authorized key")
            pub_path.unlink(missing_ok=True)
            creds["ssh_public_key"] = None

        return state
