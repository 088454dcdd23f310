from __future__ import annotations

import getpass
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ..errors import CredentialsError
from .assets import write_private

logger = logging.getLogger(__name__)

TAILSCALE_KEY_FILE = "tailscale.key"
WIFI_FILE = "wifi.txt"


@dataclass(frozen=True)
class WifiCredentials:
    ssid: str
    password: str = ""

    def render(self) -> str:
        # Read by the boot init script with `sed -n 1p` / `sed -n 2p`.
        return f"{self.ssid}\n{self.password}\n"


def ensure_tailscale_key(
    work_dir: str | Path,
    *,
    ask: Callable[[str], str] = getpass.getpass,
) -> Path:
    """Reuse <work>/tailscale.key or prompt for an auth key and store it (mode 600)."""

    key_file = Path(work_dir) / TAILSCALE_KEY_FILE
    if key_file.is_file() and key_file.read_text(encoding="utf-8").strip():
        logger.info("Using existing Tailscale key file")
        return key_file

    logger.info("Tailscale key not found. Please enter your auth key")
    auth_key = ask("Auth key: ").strip()
    if not auth_key:
        raise CredentialsError("Auth key cannot be empty")

    write_private(key_file, auth_key + "\n")
    logger.info("Tailscale key saved securely")
    return key_file


def resolve_wifi(
    ssid: Optional[str],
    password: str = "",
    *,
    interactive: bool = True,
    ask: Callable[[str], str] = input,
    ask_secret: Callable[[str], str] = getpass.getpass,
) -> Optional[WifiCredentials]:
    """WiFi settings from configuration, else an optional prompt (empty SSID = wired only)."""

    if not ssid and interactive:
        ssid = ask("WiFi SSID (leave empty to skip): ").strip()
        if ssid:
            password = ask_secret(f"Password for {ssid}: ")

    if not ssid:
        logger.info("No WiFi network configured")
        return None

    if "\n" in ssid or "\n" in password:
        raise CredentialsError("WiFi SSID and password must be single-line values")

    return WifiCredentials(ssid=ssid, password=password)


def write_wifi_file(creds: WifiCredentials, dst_dir: str | Path) -> Path:
    return write_private(Path(dst_dir) / WIFI_FILE, creds.render())
