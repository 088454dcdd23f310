from __future__ import annotations

import pytest

from pi5_installer.errors import TargetDeviceError
from pi5_installer.lib.target import detect_target_device, list_nvme_disks


@pytest.fixture
def sys_block(tmp_path):
    for name in ("sda", "nvme1n1", "loop0", "mmcblk0"):
        (tmp_path / name).mkdir()
    return tmp_path


def _exists(*devices):
    return lambda dev: dev in devices


def test_list_nvme_disks(sys_block):
    assert list_nvme_disks(sys_block) == ["/dev/nvme1n1"]
    assert list_nvme_disks(sys_block / "missing") == []


def test_explicit_device_wins(sys_block):
    dev = detect_target_device("/dev/sdb", sys_block=sys_block, exists=_exists("/dev/sdb", "/dev/nvme0n1"))
    assert dev == "/dev/sdb"


def test_explicit_device_must_exist(sys_block):
    with pytest.raises(TargetDeviceError, match="not found"):
        detect_target_device("/dev/sdz", sys_block=sys_block, exists=_exists("/dev/nvme0n1"))


def test_configured_device(sys_block):
    dev = detect_target_device(configured="/dev/nvme1n1", sys_block=sys_block, exists=_exists("/dev/nvme0n1", "/dev/nvme1n1"))
    assert dev == "/dev/nvme1n1"


def test_default_nvme(sys_block):
    assert detect_target_device(sys_block=sys_block, exists=_exists("/dev/nvme0n1", "/dev/nvme1n1")) == "/dev/nvme0n1"


def test_first_listed_nvme(sys_block):
    assert detect_target_device(sys_block=sys_block, exists=_exists("/dev/nvme1n1")) == "/dev/nvme1n1"


def test_media_device_is_never_a_target(sys_block):
    with pytest.raises(TargetDeviceError, match="installer media"):
        detect_target_device("/dev/sda", exclude=["/dev/sda1"], sys_block=sys_block, exists=_exists("/dev/sda"))

    dev = detect_target_device(
        exclude=["/dev/nvme0n1p1"], sys_block=sys_block, exists=_exists("/dev/nvme0n1", "/dev/nvme1n1")
    )
    assert dev == "/dev/nvme1n1"


def test_media_on_sibling_disk_does_not_block_target(sys_block):
    dev = detect_target_device(exclude=["/dev/nvme0n10p1"], sys_block=sys_block, exists=_exists("/dev/nvme0n1"))
    assert dev == "/dev/nvme0n1"


def test_no_target(sys_block):
    with pytest.raises(TargetDeviceError, match="No NVMe"):
        detect_target_device(sys_block=sys_block, exists=_exists())
