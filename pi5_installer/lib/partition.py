from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import List, Optional

from ..errors import CommandError, PartitioningError
from .command import run_cmd
from .sizing import DEFAULT_POLICY, DataPartitionPlan, ReservationPolicy, compute_data_partition

logger = logging.getLogger(__name__)

SETTLE_SECONDS = 2
ROOT_MIN_MB = 500


@dataclass(frozen=True)
class Partition:
    number: int
    start_mb: int
    end_mb: int
    fstype: str = ""
    name: str = ""

    @property
    def size_mb(self) -> int:
        return self.end_mb - self.start_mb


@dataclass(frozen=True)
class DiskLayout:
    device: str
    total_mb: int
    table: str = ""
    partitions: List[Partition] = field(default_factory=list)

    @property
    def last_end_mb(self) -> int:
        return max((p.end_mb for p in self.partitions), default=0)

    def get(self, number: int) -> Optional[Partition]:
        for p in self.partitions:
            if p.number == number:
                return p
        return None


@dataclass(frozen=True)
class DataPartitionResult:
    device: Optional[str]
    label: str
    created: bool
    reused: bool = False
    plan: Optional[DataPartitionPlan] = None


def part_device(disk: str, n: int) -> str:
    # nvme/mmcblk devices use p suffix
    if disk.endswith(tuple("0123456789")):
        return f"{disk}p{n}"
    return f"{disk}{n}"


def is_partition_of(dev: str, disk: str) -> bool:
    """True for disk itself or one of its numbered partitions, never a sibling disk."""

    if dev == disk:
        return True
    prefix = part_device(disk, 0)[:-1]
    return dev.startswith(prefix) and dev[len(prefix):].isdigit()


def _mb(value: str) -> float:
    v = value.strip()
    if v.endswith("MB"):
        v = v[:-2]
    return float(v)


def parse_parted_machine(output: str, device: str = "") -> DiskLayout:
    """Parse `parted -m -s <disk> unit MB print`.

    Total size is floored and partition ends rounded up to whole MB, so a
    partition planned from last_end_mb never overlaps the previous one.
    """

    total_mb: Optional[int] = None
    table = ""
    partitions: list[Partition] = []

    for raw in output.splitlines():
        line = raw.strip().rstrip(";")
        if not line or line in {"BYT", "CHS", "CYL"}:
            continue
        fields = line.split(":")
        if fields[0].startswith("/dev/") or (total_mb is None and not fields[0].isdigit()):
            device = device or fields[0]
            total_mb = int(math.floor(_mb(fields[1])))
            table = fields[5] if len(fields) > 5 else ""
            continue
        if fields[0].isdigit() and len(fields) >= 4:
            partitions.append(
                Partition(
                    number=int(fields[0]),
                    start_mb=int(math.floor(_mb(fields[1]))),
                    end_mb=int(math.ceil(_mb(fields[2]))),
                    fstype=fields[4] if len(fields) > 4 else "",
                    name=fields[5] if len(fields) > 5 else "",
                )
            )

    if total_mb is None:
        raise PartitioningError(f"Unable to read disk size from parted output for {device or 'disk'}")

    return DiskLayout(device=device, total_mb=total_mb, table=table, partitions=partitions)


def read_disk_layout(disk: str, *, dry_run: bool = False) -> DiskLayout:
    try:
        r = run_cmd(["parted", "-m", "-s", disk, "unit", "MB", "print"], dry_run=dry_run)
    except CommandError as e:
        raise PartitioningError(f"Unable to inspect {disk}: {e}") from e
    if dry_run and not r.stdout:
        return DiskLayout(device=disk, total_mb=0)
    return parse_parted_machine(r.stdout, device=disk)


def find_root_partition(layout: DiskLayout, preferred: Optional[int] = None, *, min_mb: int = ROOT_MIN_MB) -> str:
    """Locate a flashed image's root/data partition.

    The preferred index follows the image publisher's layout; without it, the
    largest partition over min_mb wins.
    """

    if preferred is not None and layout.get(preferred) is not None:
        return part_device(layout.device, preferred)

    candidates = [p for p in layout.partitions if p.size_mb > min_mb]
    if not candidates:
        raise PartitioningError(f"No partition over {min_mb}MB found on {layout.device}")

    largest = max(candidates, key=lambda p: p.size_mb)
    logger.info(
        "Partition %s not found on %s, using largest partition %s (%sMB)",
        preferred,
        layout.device,
        largest.number,
        largest.size_mb,
    )
    return part_device(layout.device, largest.number)


def find_partition_by_label(disk: str, label: str, *, dry_run: bool = False) -> Optional[str]:
    r = run_cmd(["blkid", "-o", "device", "-t", f"LABEL={label}"], check=False, dry_run=dry_run)
    for dev in (r.stdout or "").split():
        if is_partition_of(dev, disk):
            return dev
    return None


def create_data_partition(
    disk: str,
    label: str,
    *,
    policy: ReservationPolicy = DEFAULT_POLICY,
    dry_run: bool = False,
) -> DataPartitionResult:
    """Carve the spare space after the last partition into a labelled ext4 volume.

    A partition already carrying `label` is reused as-is. Any failing
    parted/mkfs call raises PartitioningError.
    """

    existing = find_partition_by_label(disk, label, dry_run=dry_run)
    if existing:
        logger.info("Reusing existing %s partition %s", label, existing)
        return DataPartitionResult(device=existing, label=label, created=False, reused=True)

    layout = read_disk_layout(disk, dry_run=dry_run)
    plan = compute_data_partition(layout.total_mb, layout.last_end_mb, policy)
    if plan is None:
        return DataPartitionResult(device=None, label=label, created=False)

    number = max((p.number for p in layout.partitions), default=0) + 1
    dev = part_device(disk, number)

    try:
        run_cmd(
            [
                "parted",
                "-s",
                disk,
                "unit",
                "MB",
                "mkpart",
                "primary",
                "ext4",
                f"{plan.start_mb}MB",
                f"{plan.end_mb}MB",
            ],
            dry_run=dry_run,
        )
        run_cmd(["partprobe", disk], dry_run=dry_run)
        if not dry_run:
            time.sleep(SETTLE_SECONDS)
        run_cmd(["mkfs.ext4", "-F", "-L", label, dev], dry_run=dry_run)
    except CommandError as e:
        raise PartitioningError(f"Failed to create {label} partition on {disk}: {e}") from e

    logger.info("Created %s partition %s (%sMB)", label, dev, plan.size_mb)
    return DataPartitionResult(device=dev, label=label, created=True, plan=plan)
