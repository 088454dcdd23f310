from __future__ import annotations

import pytest

from conftest import PARTED_NVME, parted_output
from pi5_installer.errors import PartitioningError
from pi5_installer.lib.partition import (
    DiskLayout,
    Partition,
    create_data_partition,
    find_root_partition,
    is_partition_of,
    parse_parted_machine,
    part_device,
    read_disk_layout,
)


@pytest.mark.parametrize(
    "disk,n,expected",
    [
        ("/dev/nvme0n1", 3, "/dev/nvme0n1p3"),
        ("/dev/mmcblk0", 1, "/dev/mmcblk0p1"),
        ("/dev/sda", 3, "/dev/sda3"),
    ],
)
def test_part_device(disk, n, expected):
    assert part_device(disk, n) == expected


def test_parse_parted_machine():
    layout = parse_parted_machine(PARTED_NVME)
    assert layout.device == "/dev/nvme0n1"
    assert layout.total_mb == 512110
    assert layout.table == "msdos"
    assert [p.number for p in layout.partitions] == [1, 2]
    # ends round up so a new partition never overlaps
    assert layout.get(2).end_mb == 4001
    assert layout.last_end_mb == 4001
    assert layout.get(1).fstype == "fat32"


def test_parse_without_disk_line():
    with pytest.raises(PartitioningError):
        parse_parted_machine("")


def test_read_disk_layout_wraps_command_errors(fake_run):
    fake_run.on(["parted"], returncode=1)
    with pytest.raises(PartitioningError):
        read_disk_layout("/dev/nvme0n1")


def test_root_partition_prefers_index():
    layout = parse_parted_machine(PARTED_NVME)
    assert find_root_partition(layout, 2) == "/dev/nvme0n1p2"


def test_root_partition_falls_back_to_largest():
    layout = parse_parted_machine(PARTED_NVME)
    assert find_root_partition(layout, 8) == "/dev/nvme0n1p2"


def test_root_partition_none_large_enough():
    layout = DiskLayout(device="/dev/sda", total_mb=2000, partitions=[Partition(1, 1, 300), Partition(2, 300, 700)])
    with pytest.raises(PartitioningError):
        find_root_partition(layout, 8)


def test_create_data_partition(fake_run):
    fake_run.on(["blkid"], returncode=2)
    fake_run.on(["parted", "-m"], stdout=parted_output(128000, 8000))

    result = create_data_partition("/dev/nvme0n1", "UBUNTU_HOME")

    assert result.created
    assert result.device == "/dev/nvme0n1p3"
    assert result.plan.end_mb == 102400
    mkpart = [c for c in fake_run.commands("parted") if "mkpart" in c]
    assert mkpart == [
        ["parted", "-s", "/dev/nvme0n1", "unit", "MB", "mkpart", "primary", "ext4", "8000MB", "102400MB"]
    ]
    assert fake_run.commands("partprobe") == [["partprobe", "/dev/nvme0n1"]]
    assert fake_run.commands("mkfs.ext4") == [["mkfs.ext4", "-F", "-L", "UBUNTU_HOME", "/dev/nvme0n1p3"]]


def test_create_data_partition_reuses_label(fake_run):
    fake_run.on(["blkid"], stdout="/dev/nvme0n1p3\n")

    result = create_data_partition("/dev/nvme0n1", "HAOS_DATA")

    assert result.reused and not result.created
    assert result.device == "/dev/nvme0n1p3"
    assert fake_run.commands("parted") == []


def test_label_on_other_disk_is_ignored(fake_run):
    fake_run.on(["blkid"], stdout="/dev/sda3\n")
    fake_run.on(["parted", "-m"], stdout=parted_output(32000, 30000))

    result = create_data_partition("/dev/nvme0n1", "HAOS_DATA")
    assert result.device is None


def test_create_data_partition_skips_small_disk(fake_run):
    fake_run.on(["blkid"], returncode=2)
    fake_run.on(["parted", "-m"], stdout=parted_output(32000, 30000))

    result = create_data_partition("/dev/nvme0n1", "HAOS_DATA")

    assert result.device is None and not result.created
    assert not [c for c in fake_run.commands("parted") if "mkpart" in c]
    assert fake_run.commands("mkfs.ext4") == []


def test_create_data_partition_failure_raises(fake_run):
    fake_run.on(["blkid"], returncode=2)
    fake_run.on(["parted", "-m"], stdout=parted_output(128000, 8000))
    fake_run.on(["parted", "-s"], returncode=1)

    with pytest.raises(PartitioningError, match="UBUNTU_HOME"):
        create_data_partition("/dev/nvme0n1", "UBUNTU_HOME")
    assert fake_run.commands("mkfs.ext4") == []


@pytest.mark.parametrize(
    "dev,disk,expected",
    [
        ("/dev/nvme0n1p3", "/dev/nvme0n1", True),
        ("/dev/nvme0n1", "/dev/nvme0n1", True),
        ("/dev/nvme0n10p1", "/dev/nvme0n1", False),
        ("/dev/nvme0n10", "/dev/nvme0n1", False),
        ("/dev/sda1", "/dev/sda", True),
        ("/dev/sdaa1", "/dev/sda", False),
    ],
)
def test_is_partition_of(dev, disk, expected):
    assert is_partition_of(dev, disk) is expected


def test_label_on_sibling_nvme_disk_is_ignored(fake_run):
    fake_run.on(["blkid"], stdout="/dev/nvme0n10p1\n")
    fake_run.on(["parted", "-m"], stdout=parted_output(128000, 8000))

    result = create_data_partition("/dev/nvme0n1", "UBUNTU_HOME")

    assert result.created and not result.reused
    assert result.device == "/dev/nvme0n1p3"
