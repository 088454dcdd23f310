from __future__ import annotations

import os
import stat

import pytest

from pi5_installer.errors import CredentialsError
from pi5_installer.lib.credentials import (
    WifiCredentials,
    ensure_tailscale_key,
    resolve_wifi,
    write_wifi_file,
)


def _mode(path):
    return stat.S_IMODE(os.stat(path).st_mode)


def test_existing_tailscale_key_is_reused(tmp_path):
    (tmp_path / "tailscale.key").write_text("tskey-auth-123\n", encoding="utf-8")

    def ask(_msg):
        raise AssertionError("should not prompt")

    assert ensure_tailscale_key(tmp_path, ask=ask) == tmp_path / "tailscale.key"


def test_tailscale_key_prompt(tmp_path):
    path = ensure_tailscale_key(tmp_path / "work", ask=lambda _m: "  tskey-auth-456 ")
    assert path.read_text(encoding="utf-8") == "tskey-auth-456\n"
    assert _mode(path) == 0o600


def test_empty_tailscale_key(tmp_path):
    with pytest.raises(CredentialsError):
        ensure_tailscale_key(tmp_path, ask=lambda _m: "")


def test_wifi_from_config():
    creds = resolve_wifi("home", "secret", interactive=True, ask=lambda _m: "unused")
    assert creds == WifiCredentials("home", "secret")


def test_wifi_prompt():
    creds = resolve_wifi(None, ask=lambda _m: "cafe", ask_secret=lambda _m: "latte")
    assert creds == WifiCredentials("cafe", "latte")


def test_wifi_skipped():
    assert resolve_wifi(None, ask=lambda _m: "") is None
    assert resolve_wifi(None, interactive=False) is None


def test_wifi_rejects_multiline():
    with pytest.raises(CredentialsError):
        resolve_wifi("home", "pass\nword")


def test_write_wifi_file(tmp_path):
    path = write_wifi_file(WifiCredentials("home", "secret"), tmp_path)
    assert path.name == "wifi.txt"
    assert path.read_text(encoding="utf-8").splitlines() == ["home", "secret"]
    assert _mode(path) == 0o600
