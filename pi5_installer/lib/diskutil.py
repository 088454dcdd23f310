from __future__ import annotations

import logging
import os
import plistlib
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import CommandError, DiskDetectionError, MountError
from .command import run_cmd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExternalDisk:
    device: str
    size_bytes: int = 0
    partitions: List[str] = field(default_factory=list)


def _plist(argv: list[str]) -> Dict[str, Any]:
    r = run_cmd(argv)
    data = plistlib.loads(r.stdout.encode("utf-8"))
    if not isinstance(data, dict):
        raise DiskDetectionError(f"Unexpected output from {' '.join(argv)}")
    return data


def disk_info(identifier: str) -> Dict[str, Any]:
    dev = identifier if identifier.startswith("/dev/") else f"/dev/{identifier}"
    try:
        return _plist(["diskutil", "info", "-plist", dev])
    except CommandError:
        return {}


def _is_external(info: Dict[str, Any]) -> bool:
    if info.get("Internal", True):
        return False
    if str(info.get("VirtualOrPhysical", "Physical")) == "Virtual":
        return False
    return bool(info.get("WholeDisk", True))


def find_external_disks() -> list[ExternalDisk]:
    listing = _plist(["diskutil", "list", "-plist"])
    disks: list[ExternalDisk] = []

    for entry in listing.get("AllDisksAndPartitions") or []:
        ident = str(entry.get("DeviceIdentifier") or "")
        if not ident.startswith("disk"):
            continue
        if not _is_external(disk_info(ident)):
            continue
        parts = [str(p.get("DeviceIdentifier")) for p in entry.get("Partitions") or [] if p.get("DeviceIdentifier")]
        disks.append(ExternalDisk(device=f"/dev/{ident}", size_bytes=int(entry.get("Size") or 0), partitions=parts))

    return disks


def detect_external_disk() -> ExternalDisk:
    """Return the single attached external disk."""

    disks = find_external_disks()
    if not disks:
        raise DiskDetectionError("No external disks found; please connect an external USB/M.2 disk")
    if len(disks) > 1:
        names = " ".join(d.device for d in disks)
        raise DiskDetectionError(f"Multiple external disks found: {names}; please connect only one external disk")

    logger.info("Found external disk: %s", disks[0].device)
    return disks[0]


def _is_fat32(info: Dict[str, Any]) -> bool:
    for key in ("FilesystemName", "FilesystemUserVisibleName", "FilesystemPersonality"):
        if "FAT32" in str(info.get(key) or "").upper():
            return True
    return False


def find_fat32_partition(disk: ExternalDisk) -> str:
    for ident in disk.partitions:
        if _is_fat32(disk_info(ident)):
            partition = f"/dev/{ident}"
            logger.info("Found FAT32 partition: %s", partition)
            return partition
    raise DiskDetectionError(f"No FAT32 partition found on {disk.device}; please format the disk with a FAT32 partition")


def current_mount_point(partition: str) -> Optional[str]:
    mp = str(disk_info(partition).get("MountPoint") or "")
    return mp or None


def unmount(target: str) -> None:
    run_cmd(["diskutil", "unmount", target], check=False)


def mount_partition(partition: str, mount_point: str, *, settle: float = 1.0) -> str:
    Path(mount_point).mkdir(parents=True, exist_ok=True)

    # macOS auto-mounts under /Volumes; take it back for a predictable path.
    unmount(partition)
    time.sleep(settle)

    try:
        run_cmd(["diskutil", "mount", "-mountPoint", mount_point, partition])
    except CommandError as e:
        raise MountError(f"Failed to mount {partition}; check the device is accessible: {e}") from e

    logger.info("Mounted %s at %s", partition, mount_point)
    return mount_point


def ensure_mounted(partition: str, mount_point: str) -> str:
    """Return a live mount point for the partition, recovering if it moved or dropped."""

    if not os.path.isdir(mount_point):
        logger.warning("Mount point %s no longer exists, looking up the new one", mount_point)
        new_mp = current_mount_point(partition)
        if not new_mp:
            raise MountError(f"Could not find mount point for {partition}")
        logger.info("Found new mount point: %s", new_mp)
        mount_point = new_mp

    if not os.path.ismount(mount_point):
        logger.warning("%s is no longer mounted, remounting", mount_point)
        try:
            run_cmd(["diskutil", "mount", "-mountPoint", mount_point, partition])
        except CommandError as e:
            raise MountError(f"Failed to remount {partition}") from e
        logger.info("Remounted %s at %s", partition, mount_point)

    return mount_point


def release(mount_point: str) -> None:
    """Unmount and remove the mount point (best-effort)."""

    if os.path.ismount(mount_point):
        unmount(mount_point)
    try:
        os.rmdir(mount_point)
    except OSError:
        pass
