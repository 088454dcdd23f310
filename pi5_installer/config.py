from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .lib.sizing import ReservationPolicy

DEFAULT_CONFIG_PATH = "installer.yaml"

DEFAULT_TAILSCALE_PATHS = ["/usr/local/bin/tailscale", "/opt/homebrew/bin/tailscale"]


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    return raw.get(name) or {}


@dataclass(frozen=True)
class InstallerConfig:
    raw: Dict[str, Any] = field(default_factory=dict)
    base_dir: str = "."

    def _path(self, value: str) -> str:
        p = Path(value).expanduser()
        if not p.is_absolute():
            p = Path(self.base_dir) / p
        return str(p)

    @property
    def images_dir(self) -> str:
        return self._path(str(_section(self.raw, "paths").get("images_dir") or "images4rpi"))

    @property
    def work_dir(self) -> str:
        return self._path(str(_section(self.raw, "paths").get("work_dir") or "pi5_installer_work"))

    @property
    def os_setups_dir(self) -> str:
        return str(Path(self.work_dir) / "os-setups")

    @property
    def mount_point(self) -> str:
        return str(_section(self.raw, "paths").get("mount_point") or "/tmp/pi5_installer")

    @property
    def state_path(self) -> str:
        return str(Path(self.work_dir) / "state.json")

    @property
    def log_path(self) -> str:
        return str(Path(self.work_dir) / "pi5-installer.log")

    @property
    def firmware_repo(self) -> str:
        return str(_section(self.raw, "repos").get("firmware") or "https://github.com/raspberrypi/firmware.git")

    @property
    def busybox_repo(self) -> str:
        return str(_section(self.raw, "repos").get("busybox") or "https://git.busybox.net/busybox")

    @property
    def tailscale_addon_repo(self) -> str:
        return str(_section(self.raw, "repos").get("tailscale_addon") or "https://github.com/tsujamin/hass-addons.git")

    @property
    def tailscale_paths(self) -> List[str]:
        return list(_section(self.raw, "tailscale").get("search_paths") or DEFAULT_TAILSCALE_PATHS)

    @property
    def target_device(self) -> Optional[str]:
        return _section(self.raw, "install").get("target_device") or None

    @property
    def image(self) -> Optional[str]:
        return _section(self.raw, "install").get("image") or None

    @property
    def extra_binaries(self) -> List[str]:
        return list(_section(self.raw, "initramfs").get("extra_binaries") or [])

    @property
    def reservation(self) -> ReservationPolicy:
        r = _section(self.raw, "reservation")
        d = ReservationPolicy()
        return ReservationPolicy(
            percent=int(r.get("percent", d.percent)),
            floor_mb=int(r.get("floor_mb", d.floor_mb)),
            min_available_mb=int(r.get("min_available_mb", d.min_available_mb)),
        )

    @property
    def wifi_ssid(self) -> Optional[str]:
        return _section(self.raw, "wifi").get("ssid") or None

    @property
    def wifi_password(self) -> str:
        return str(_section(self.raw, "wifi").get("password") or "")

    @property
    def wifi_prompt(self) -> bool:
        return bool(_section(self.raw, "wifi").get("prompt", True))

    @property
    def ssh_key(self) -> Optional[str]:
        key = _section(self.raw, "ssh").get("private_key")
        return str(Path(key).expanduser()) if key else None

    @property
    def ssh_enabled(self) -> bool:
        return bool(_section(self.raw, "ssh").get("enabled", True))


def load_installer_config(path: str = DEFAULT_CONFIG_PATH, *, required: bool = False) -> InstallerConfig:
    p = Path(path)
    if not p.exists():
        if required:
            raise FileNotFoundError(path)
        return InstallerConfig(raw={}, base_dir=str(Path.cwd()))

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("installer config must be YAML")

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{p.name} must contain a mapping/object")

    return InstallerConfig(raw=raw, base_dir=str(p.resolve().parent))
