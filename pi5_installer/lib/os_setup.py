from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .images import OsImage, data_label_for
from .partition import ROOT_MIN_MB, SETTLE_SECONDS
from .sizing import DEFAULT_POLICY, ReservationPolicy
from .templates import load_template, render, render_template

logger = logging.getLogger(__name__)

SSH_KEY_FILE = "ssh_authorized_key.pub"


@dataclass(frozen=True)
class OsProfile:
    template: str
    # Partition holding what the setup script writes into (HAOS data, Ubuntu root).
    root_partition: Optional[int] = None


PROFILES = {
    "haos": OsProfile(template="setup_haos.sh", root_partition=8),
    "ubuntu": OsProfile(template="setup_ubuntu.sh", root_partition=2),
    "unknown": OsProfile(template="setup_generic.sh"),
}


def partition_functions(policy: ReservationPolicy = DEFAULT_POLICY) -> str:
    return render_template(
        "partition.sh",
        {
            "RESERVE_PERCENT": policy.percent,
            "RESERVE_FLOOR_MB": policy.floor_mb,
            "MIN_DATA_MB": policy.min_available_mb,
            "ROOT_MIN_MB": ROOT_MIN_MB,
            "SETTLE_SECONDS": SETTLE_SECONDS,
        },
    ).rstrip("\n")


def render_setup_script(image: OsImage, policy: ReservationPolicy = DEFAULT_POLICY) -> str:
    profile = PROFILES.get(image.os_type, PROFILES["unknown"])
    values = {
        "IMAGE_NAME": image.filename,
        "COMMON_FUNCTIONS": load_template("common.sh").rstrip("\n"),
        "PARTITION_FUNCTIONS": partition_functions(policy),
        "DATA_LABEL": data_label_for(image.os_type) or "",
        "ROOT_PARTITION": profile.root_partition or "",
        "SSH_KEY_FILE": SSH_KEY_FILE,
    }
    return render(load_template(profile.template), values)


def generate_setup_script(
    image: OsImage,
    out_dir: str | Path,
    *,
    policy: ReservationPolicy = DEFAULT_POLICY,
    dry_run: bool = False,
) -> Path:
    out = Path(out_dir) / image.setup_script_name
    if image.os_type == "unknown":
        logger.warning("Unknown OS type for %s, generating generic setup script", image.filename)
    logger.info("Generating %s setup script: %s", image.os_type, out)

    if dry_run:
        return out

    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(render_setup_script(image, policy), encoding="utf-8")
    os.chmod(out, 0o755)
    return out


def generate_os_setups(
    images: Sequence[OsImage],
    out_dir: str | Path,
    *,
    policy: ReservationPolicy = DEFAULT_POLICY,
    dry_run: bool = False,
) -> list[Path]:
    written = []
    for image in images:
        logger.info("Processing %s (detected as: %s)", image.filename, image.os_type)
        written.append(generate_setup_script(image, out_dir, policy=policy, dry_run=dry_run))
    logger.info("Generated %d setup script(s) in %s", len(written), out_dir)
    return written
