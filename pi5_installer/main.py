from __future__ import annotations

import argparse
import logging
import shutil
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from .config import DEFAULT_CONFIG_PATH, InstallerConfig, load_installer_config
from .lib import diskutil
from .lib.deps import check_dependencies
from .lib.download import download_images
from .lib.flash import flash_image
from .lib.images import DATA_LABELS, IMAGE_SUFFIX, find_images
from .lib.os_setup import PROFILES, generate_os_setups
from .lib.partition import create_data_partition, find_root_partition, read_disk_layout
from .lib.sizing import compute_data_partition
from .lib.target import detect_target_device
from .logging_utils import configure_logging
from .pipeline import run_pipeline
from .state_store import completed_steps, ensure_defaults, load_state, record_error, save_state
from .steps import (
    BuildInitramfsStep,
    CheckDependenciesStep,
    CopyFilesStep,
    CredentialsStep,
    DetectDiskStep,
    FinalizeStep,
    GenerateOsSetupsStep,
    MountMediaStep,
    SelectImageStep,
    SetupBootloaderStep,
    SetupHaosAddonStep,
)

logger = logging.getLogger(__name__)

MANUAL_DOWNLOAD = """\
No automatic downloads requested.
Please download the following images manually into {images_dir}:

Home Assistant OS:
  - haos_rpi5-64-16.0.img.xz (or latest version)
  - Download from: https://github.com/home-assistant/operating-system/releases

Ubuntu Server:
  - ubuntu-25.04-preinstalled-server-arm64+raspi.img.xz (or latest version)
  - Download from: https://ubuntu.com/download/raspberry-pi

Or run with options:
  pi5-installer download-images --haos      # Home Assistant OS only
  pi5-installer download-images --ubuntu    # Ubuntu Server only
  pi5-installer download-images --all       # both images
"""


def build_steps():
    return [
        CheckDependenciesStep(),
        DetectDiskStep(),
        MountMediaStep(),
        SelectImageStep(),
        CredentialsStep(),
        SetupBootloaderStep(),
        BuildInitramfsStep(),
        GenerateOsSetupsStep(),
        SetupHaosAddonStep(),
        CopyFilesStep(),
        FinalizeStep(),
    ]


def run_install(
    cfg: InstallerConfig,
    *,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
) -> Dict[str, Any]:
    """Run the media build pipeline, persisting state for resume."""

    state = ensure_defaults(load_state(cfg.state_path))
    steps = build_steps()

    try:
        result = run_pipeline(
            state=state,
            steps=steps,
            cfg=cfg,
            start_at=start_at,
            stop_after=stop_after,
            force=force,
        )
        state = result.state
        state.setdefault("execution", {}).setdefault("summary", {})["ran_steps"] = result.ran_steps
        state.setdefault("execution", {}).setdefault("summary", {})["skipped_steps"] = result.skipped_steps
        return state
    except Exception as e:
        record_error(state, e)
        raise
    finally:
        save_state(cfg.state_path, state)
        mount_point = (state.get("media") or {}).get("mount_point")
        if mount_point:
            logger.info("Cleaning up mount point %s", mount_point)
            diskutil.release(mount_point)


def cmd_check_deps(cfg: InstallerConfig, args: argparse.Namespace) -> int:
    check_dependencies(cfg.tailscale_paths, install=not args.no_install)
    return 0


def _list_images(images_dir: str) -> None:
    d = Path(images_dir)
    found = sorted(p for p in d.glob(f"*{IMAGE_SUFFIX}") if p.is_file()) if d.is_dir() else []
    if not found:
        logger.warning("No images found in %s", d)
        return
    logger.info("Available images in %s:", d)
    for p in found:
        logger.info("  %s (%d MB)", p.name, p.stat().st_size // (1024 * 1024))


def cmd_download_images(cfg: InstallerConfig, args: argparse.Namespace) -> int:
    haos = bool(args.haos or args.all or args.auto)
    ubuntu = bool(args.ubuntu or args.all or args.auto)

    Path(cfg.images_dir).mkdir(parents=True, exist_ok=True)
    if not (haos or ubuntu):
        print(MANUAL_DOWNLOAD.format(images_dir=cfg.images_dir))
    else:
        download_images(cfg.images_dir, haos=haos, ubuntu=ubuntu)

    _list_images(cfg.images_dir)
    return 0


def cmd_generate(cfg: InstallerConfig, args: argparse.Namespace) -> int:
    generate_os_setups(find_images(cfg.images_dir), cfg.os_setups_dir, policy=cfg.reservation)
    return 0


def cmd_install(cfg: InstallerConfig, args: argparse.Namespace) -> int:
    run_install(cfg, start_at=args.start_at, stop_after=args.stop_after, force=bool(args.force))
    return 0


def cmd_plan_partition(cfg: InstallerConfig, args: argparse.Namespace) -> int:
    policy = cfg.reservation

    if args.apply:
        if not args.disk or not args.os_type:
            raise SystemExit("--apply requires --disk and --os-type")
        result = create_data_partition(
            args.disk, DATA_LABELS[args.os_type], policy=policy, dry_run=bool(args.dry_run)
        )
        if result.device:
            print(f"{result.label}: {result.device} ({'reused' if result.reused else 'created'})")
        else:
            print(f"{result.label}: skipped (not enough free space)")
        return 0

    if args.disk:
        layout = read_disk_layout(args.disk)
        total_mb, last_end_mb = layout.total_mb, layout.last_end_mb
    elif args.total_mb is not None and args.last_end_mb is not None:
        total_mb, last_end_mb = args.total_mb, args.last_end_mb
    else:
        raise SystemExit("plan-partition needs --disk or both --total-mb and --last-end-mb")

    reserved = policy.reserved_mb(total_mb)
    available = total_mb - last_end_mb - reserved
    print(f"total={total_mb}MB last_end={last_end_mb}MB reserved={reserved}MB available={available}MB")
    if args.disk and args.os_type:
        print(f"root: {find_root_partition(layout, PROFILES[args.os_type].root_partition)}")

    plan = compute_data_partition(total_mb, last_end_mb, policy)
    if plan is None:
        print(f"skip: {available}MB available (needs more than {policy.min_available_mb}MB)")
    else:
        print(f"create: {plan.start_mb}MB - {plan.end_mb}MB ({plan.size_mb}MB)")
    return 0


def cmd_flash(cfg: InstallerConfig, args: argparse.Namespace) -> int:
    image = Path(args.image)
    if not image.is_file():
        raise SystemExit(f"Image not found: {image}")

    device = detect_target_device(args.device, configured=cfg.target_device)
    if not args.yes and not args.dry_run:
        answer = input(f"All data on {device} will be erased. Type the device path to continue: ").strip()
        if answer != device:
            logger.error("Confirmation did not match; aborting")
            return 1

    result = flash_image(
        image,
        device,
        data_partition=not args.no_data_partition,
        policy=cfg.reservation,
        dry_run=bool(args.dry_run),
    )
    logger.info("Flashed %s to %s (%d bytes)", image.name, result.device, result.bytes_written)
    return 0


def cmd_status(cfg: InstallerConfig, args: argparse.Namespace) -> int:
    images_dir = Path(cfg.images_dir)
    images = sorted(images_dir.glob(f"*{IMAGE_SUFFIX}")) if images_dir.is_dir() else []
    setups_dir = Path(cfg.os_setups_dir)
    scripts = sorted(setups_dir.glob("setup_*.sh")) if setups_dir.is_dir() else []

    print(f"Images directory: {images_dir} ({len(images)} image(s))")
    for p in images:
        print(f"  {p.name}")
    print(f"Work directory:   {cfg.work_dir} ({'exists' if Path(cfg.work_dir).is_dir() else 'missing'})")
    print(f"Setup scripts:    {len(scripts)}")
    for p in scripts:
        print(f"  {p.name}")

    completed = completed_steps(load_state(cfg.state_path))
    if completed:
        print(f"Completed steps:  {', '.join(completed)}")
    return 0


def cmd_clean(cfg: InstallerConfig, args: argparse.Namespace) -> int:
    work = Path(cfg.work_dir)
    if not work.exists():
        logger.info("Nothing to clean (%s does not exist)", work)
        return 0
    logger.info("Removing %s", work)
    shutil.rmtree(work)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="pi5-installer")
    p.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Installer config (yaml)")
    p.add_argument("--log", default=None, help="Path to installer log (defaults to <work_dir>/pi5-installer.log)")
    p.add_argument("--debug", action="store_true", help="Show debug output on the console")

    sub = p.add_subparsers(dest="subcmd", required=True)

    sp = sub.add_parser("check-deps", help="Check host dependencies")
    sp.add_argument("--no-install", action="store_true", help="Do not install missing tools with Homebrew")
    sp.set_defaults(func=cmd_check_deps)

    sp = sub.add_parser("download-images", help="Download OS images")
    sp.add_argument("--haos", action="store_true", help="Download Home Assistant OS")
    sp.add_argument("--ubuntu", action="store_true", help="Download Ubuntu Server")
    sp.add_argument("--all", action="store_true", help="Download both images")
    sp.add_argument("--auto", action="store_true", help="Download both images without prompts")
    sp.set_defaults(func=cmd_download_images)

    sp = sub.add_parser("generate", help="Generate OS setup scripts for all images")
    sp.set_defaults(func=cmd_generate)

    sp = sub.add_parser("install", help="Build the installer media")
    sp.add_argument("--start-at", default=None, help="Start at step_id (e.g. 50_setup_bootloader)")
    sp.add_argument("--stop-after", default=None, help="Stop after step_id")
    sp.add_argument("--force", action="store_true", help="Re-run steps even if marked completed")
    sp.set_defaults(func=cmd_install)

    sp = sub.add_parser("plan-partition", help="Compute (and optionally create) the OS data partition")
    sp.add_argument("--total-mb", type=int, default=None)
    sp.add_argument("--last-end-mb", type=int, default=None)
    sp.add_argument("--disk", default=None, help="Read sizes from this disk with parted")
    sp.add_argument("--apply", action="store_true", help="Create the partition on --disk")
    sp.add_argument("--os-type", choices=sorted(DATA_LABELS), default=None)
    sp.add_argument("--dry-run", action="store_true")
    sp.set_defaults(func=cmd_plan_partition)

    sp = sub.add_parser("flash", help="Flash an image onto a target device from this host")
    sp.add_argument("image")
    sp.add_argument("--device", default=None, help="Target block device (default: detect NVMe)")
    sp.add_argument("--no-data-partition", action="store_true")
    sp.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    sp.add_argument("--dry-run", action="store_true")
    sp.set_defaults(func=cmd_flash)

    sp = sub.add_parser("status", help="Show images, work dir and generated scripts")
    sp.set_defaults(func=cmd_status)

    sp = sub.add_parser("clean", help="Remove the work directory")
    sp.set_defaults(func=cmd_clean)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)

    try:
        cfg = load_installer_config(args.config, required=args.config != DEFAULT_CONFIG_PATH)
    except (OSError, ValueError) as e:
        print(f"[ERROR] Cannot load config {args.config}: {e}", file=sys.stderr)
        return 1

    configure_logging(log_path=args.log or cfg.log_path, level=logging.DEBUG if args.debug else logging.INFO)

    try:
        return int(args.func(cfg, args))
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130
    except (RuntimeError, OSError) as e:
        logger.error("%s", e)
        logger.debug("Traceback", exc_info=True)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
