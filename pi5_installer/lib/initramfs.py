from __future__ import annotations

import gzip
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .. import __version__
from ..errors import CommandError, DependencyError
from .command import run_cmd, which
from .firmware import git_clone
from .templates import load_template, render_template

logger = logging.getLogger(__name__)

ROOTFS_DIRS = ("proc", "sys", "dev", "tmp", "media")


@dataclass(frozen=True)
class InitramfsSpec:
    work_dir: str
    busybox_repo: str
    tailscale_binary: str
    target_device: Optional[str] = None
    extra_binaries: List[str] = field(default_factory=list)

    @property
    def output(self) -> Path:
        return Path(self.work_dir) / "initramfs.img"

    @property
    def busybox_dir(self) -> Path:
        return Path(self.work_dir) / "busybox"

    @property
    def rootfs_dir(self) -> Path:
        return Path(self.work_dir) / "rootfs"


def render_init_script(target_device: Optional[str] = None) -> str:
    return render_template(
        "init.sh",
        {
            "VERSION": __version__,
            "TARGET_DEVICE": target_device or "",
            "TARGET_FUNCTIONS": load_template("target.sh").rstrip("\n"),
        },
    )


def enable_static(config_path: str | Path) -> None:
    p = Path(config_path)
    text = p.read_text(encoding="utf-8")
    text = text.replace("# CONFIG_STATIC is not set", "CONFIG_STATIC=y")
    p.write_text(text, encoding="utf-8")


def build_busybox(spec: InitramfsSpec, *, dry_run: bool = False) -> None:
    src = git_clone(spec.busybox_repo, spec.busybox_dir, dry_run=dry_run)
    logger.info("Building BusyBox...")
    run_cmd(["make", "defconfig"], cwd=str(src), dry_run=dry_run)
    if not dry_run:
        enable_static(src / ".config")
    run_cmd(["make", f"-j{os.cpu_count() or 1}"], cwd=str(src), dry_run=dry_run, capture=False)
    run_cmd(["make", "install", f"CONFIG_PREFIX={spec.rootfs_dir}"], cwd=str(src), dry_run=dry_run)


def _install_binary(src: str, dst_dir: Path) -> None:
    dst_dir.mkdir(parents=True, exist_ok=True)
    out = dst_dir / Path(src).name
    shutil.copyfile(src, out)
    os.chmod(out, 0o755)


def populate_rootfs(spec: InitramfsSpec, *, dry_run: bool = False) -> None:
    rootfs = spec.rootfs_dir
    if dry_run:
        logger.info("Would populate %s", rootfs)
        return

    logger.info("Adding additional binaries...")
    _install_binary(spec.tailscale_binary, rootfs / "usr/bin")

    xz = which("xz")
    if not xz:
        raise DependencyError("xz not found; it is required inside the initramfs")
    _install_binary(xz, rootfs / "bin")

    for extra in spec.extra_binaries:
        path = extra if os.path.isabs(extra) else which(extra)
        if not path or not os.path.exists(path):
            logger.warning("Extra binary %s not found, skipping", extra)
            continue
        _install_binary(path, rootfs / "usr/sbin")

    logger.info("Creating init script...")
    init = rootfs / "sbin/init"
    init.parent.mkdir(parents=True, exist_ok=True)
    # busybox install leaves /sbin/init as a symlink to busybox
    if init.is_symlink():
        init.unlink()
    init.write_text(render_init_script(spec.target_device), encoding="utf-8")
    os.chmod(init, 0o755)

    for name in ROOTFS_DIRS:
        (rootfs / name).mkdir(parents=True, exist_ok=True)


def pack_initramfs(root_dir: str | Path, output: str | Path) -> Path:
    """find . | cpio -o -H newc | gzip"""

    root = str(root_dir)
    out = Path(output)
    out.parent.mkdir(parents=True, exist_ok=True)

    logger.info("CMD find . -print0 | cpio --null -o -H newc --quiet (cwd=%s)", root)
    find_proc = subprocess.Popen(["find", ".", "-print0"], cwd=root, stdout=subprocess.PIPE)
    cpio_proc = subprocess.Popen(
        ["cpio", "--null", "-o", "-H", "newc", "--quiet"],
        cwd=root,
        stdin=find_proc.stdout,
        stdout=subprocess.PIPE,
    )
    if find_proc.stdout is not None:
        find_proc.stdout.close()

    cpio_data, _ = cpio_proc.communicate()
    find_proc.wait()

    if find_proc.returncode != 0:
        raise CommandError(["find", ".", "-print0"], find_proc.returncode)
    if cpio_proc.returncode != 0:
        raise CommandError(["cpio", "--null", "-o", "-H", "newc"], cpio_proc.returncode)

    with gzip.open(out, "wb") as f:
        f.write(cpio_data)

    logger.info("initramfs: %s (%dK)", out, out.stat().st_size // 1024)
    return out


def build_initramfs(spec: InitramfsSpec, *, force: bool = False, dry_run: bool = False) -> Path:
    if spec.output.exists() and not force:
        logger.info("Using existing initramfs.img")
        return spec.output

    logger.info("Building new initramfs...")
    build_busybox(spec, dry_run=dry_run)
    populate_rootfs(spec, dry_run=dry_run)
    if dry_run:
        logger.info("Would pack %s -> %s", spec.rootfs_dir, spec.output)
        return spec.output
    pack_initramfs(spec.rootfs_dir, spec.output)
    logger.info("Initramfs built successfully")
    return spec.output
