from __future__ import annotations

import logging
import lzma
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .command import run_cmd
from .images import data_label_for, detect_os_type
from .partition import SETTLE_SECONDS, DataPartitionResult, create_data_partition
from .sizing import DEFAULT_POLICY, ReservationPolicy

logger = logging.getLogger(__name__)

CHUNK_SIZE = 4 * 1024 * 1024


@dataclass(frozen=True)
class FlashResult:
    image: str
    device: str
    bytes_written: int
    data_partition: Optional[DataPartitionResult] = None


def write_image(image: str | Path, device: str, *, dry_run: bool = False) -> int:
    """Stream-decompress an .img.xz onto a block device (xz -dc | dd bs=4M)."""

    logger.info("Flashing %s to %s", Path(image).name, device)
    if dry_run:
        logger.info("Would write %s -> %s", image, device)
        return 0

    written = 0
    last_report = 0
    with lzma.open(image, "rb") as src, open(device, "wb", buffering=0) as dst:
        while True:
            chunk = src.read(CHUNK_SIZE)
            if not chunk:
                break
            dst.write(chunk)
            written += len(chunk)
            if written - last_report >= 256 * CHUNK_SIZE:
                logger.info("... %d MiB written", written // (1024 * 1024))
                last_report = written
        os.fsync(dst.fileno())

    logger.info("Wrote %d MiB to %s", written // (1024 * 1024), device)
    return written


def flash_image(
    image: str | Path,
    device: str,
    *,
    data_partition: bool = True,
    policy: ReservationPolicy = DEFAULT_POLICY,
    dry_run: bool = False,
) -> FlashResult:
    """Flash an image, let the kernel re-read the table, then add the data partition."""

    written = write_image(image, device, dry_run=dry_run)

    run_cmd(["sync"], dry_run=dry_run)
    run_cmd(["partprobe", device], check=False, dry_run=dry_run)
    if not dry_run:
        time.sleep(SETTLE_SECONDS)

    result: Optional[DataPartitionResult] = None
    label = data_label_for(detect_os_type(Path(image).name))
    if data_partition and label:
        result = create_data_partition(device, label, policy=policy, dry_run=dry_run)

    return FlashResult(image=str(image), device=device, bytes_written=written, data_partition=result)
