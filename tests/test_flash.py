from __future__ import annotations

import lzma

from pi5_installer.lib import flash
from pi5_installer.lib.flash import flash_image, write_image


def _make_image(path, payload: bytes):
    with lzma.open(path, "wb") as f:
        f.write(payload)
    return path


def test_write_image_decompresses(tmp_path):
    payload = b"\x55\xaa" * 50000
    image = _make_image(tmp_path / "test.img.xz", payload)
    device = tmp_path / "device"
    device.write_bytes(b"")

    assert write_image(image, str(device)) == len(payload)
    assert device.read_bytes() == payload


def test_flash_image_dry_run_writes_nothing(tmp_path, fake_run):
    image = _make_image(tmp_path / "raspios.img.xz", b"x")
    result = flash_image(image, "/dev/nvme0n1", dry_run=True)
    assert result.bytes_written == 0
    assert result.data_partition is None


def test_flash_creates_data_partition_for_known_os(tmp_path, fake_run, monkeypatch):
    image = _make_image(tmp_path / "ubuntu-24.04-preinstalled-server-arm64+raspi.img.xz", b"abc")
    device = tmp_path / "nvme"
    device.write_bytes(b"")
    seen = []
    monkeypatch.setattr(flash, "create_data_partition", lambda disk, label, **kw: seen.append((disk, label)) or None)

    flash_image(image, str(device))

    assert seen == [(str(device), "UBUNTU_HOME")]
    assert ["partprobe", str(device)] in fake_run.calls


def test_flash_without_data_partition(tmp_path, fake_run, monkeypatch):
    image = _make_image(tmp_path / "haos_rpi5-64-16.0.img.xz", b"abc")
    device = tmp_path / "nvme"
    device.write_bytes(b"")
    def unexpected(*_a, **_kw):
        raise AssertionError("data partition requested")

    monkeypatch.setattr(flash, "create_data_partition", unexpected)

    result = flash_image(image, str(device), data_partition=False)
    assert result.bytes_written == 3
