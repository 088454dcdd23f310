from __future__ import annotations

import logging
from pathlib import Path

from .assets import copy_tree
from .command import run_cmd

logger = logging.getLogger(__name__)

CONFIG_TXT = """\
# Pi 5 Installer Configuration
dtparam=pciex1
dtoverlay=rpi-poe
initramfs initramfs.img followkernel
"""

CMDLINE_TXT = "console=serial0,115200 console=tty1 root=/dev/ram0 init=/sbin/init earlyprintk\n"


def git_clone(repo: str, dest: str | Path, *, dry_run: bool = False) -> Path:
    """Shallow clone unless dest already exists."""

    d = Path(dest)
    if d.is_dir():
        logger.info("Using existing checkout %s", d)
        return d
    logger.info("Cloning %s...", repo)
    run_cmd(["git", "clone", "--depth", "1", repo, str(d)], dry_run=dry_run, capture=False)
    return d


def ensure_firmware(work_dir: str | Path, repo: str, *, dry_run: bool = False) -> Path:
    return git_clone(repo, Path(work_dir) / "firmware", dry_run=dry_run)


def write_boot_config(mount_point: str | Path, *, dry_run: bool = False) -> None:
    mp = Path(mount_point)
    if dry_run:
        logger.info("Would write config.txt and cmdline.txt to %s", mp)
        return
    logger.info("Creating config.txt...")
    (mp / "config.txt").write_text(CONFIG_TXT, encoding="utf-8")
    logger.info("Creating cmdline.txt...")
    (mp / "cmdline.txt").write_text(CMDLINE_TXT, encoding="utf-8")


def install_boot_files(firmware_dir: str | Path, mount_point: str | Path, *, dry_run: bool = False) -> int:
    """Copy firmware boot/* to the media, then write the installer boot config."""

    boot = Path(firmware_dir) / "boot"
    if not boot.is_dir() and not dry_run:
        raise FileNotFoundError(f"Firmware boot directory missing: {boot}")

    logger.info("Copying boot files...")
    count = copy_tree(boot, mount_point, dry_run=dry_run)
    write_boot_config(mount_point, dry_run=dry_run)
    logger.info("Bootloader setup completed (%d files)", count)
    return count
