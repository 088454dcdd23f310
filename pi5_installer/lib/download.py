from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import requests

from ..errors import DownloadError

logger = logging.getLogger(__name__)

HAOS_RELEASES_API = "https://api.github.com/repos/home-assistant/operating-system/releases/latest"
HAOS_ASSET = re.compile(r"^haos_rpi5-64-.*\.img\.xz$")
HAOS_FALLBACK_VERSION = "16.0"

UBUNTU_RELEASES = ("25.04", "24.04")
UBUNTU_URL = "https://cdimage.ubuntu.com/releases/{version}/release/{filename}"
UBUNTU_FILENAME = "ubuntu-{version}-preinstalled-server-arm64+raspi.img.xz"

TIMEOUT = 30
CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class ImageRelease:
    url: str
    filename: str


def haos_fallback() -> ImageRelease:
    filename = f"haos_rpi5-64-{HAOS_FALLBACK_VERSION}.img.xz"
    url = f"https://github.com/home-assistant/operating-system/releases/download/{HAOS_FALLBACK_VERSION}/{filename}"
    return ImageRelease(url=url, filename=filename)


def latest_haos_release(session: requests.Session) -> ImageRelease:
    """Latest HAOS RPi5 asset from GitHub; any lookup problem falls back to a known release."""

    logger.info("Fetching latest Home Assistant OS release...")
    try:
        resp = session.get(HAOS_RELEASES_API, timeout=TIMEOUT)
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.error("Failed to fetch Home Assistant OS release information: %s", e)
        logger.warning("Falling back to known version %s", HAOS_FALLBACK_VERSION)
        return haos_fallback()

    assets = data.get("assets") if isinstance(data, dict) else None
    if not assets:
        logger.error("No assets found in latest release")
        logger.warning("Falling back to known version %s", HAOS_FALLBACK_VERSION)
        return haos_fallback()

    for asset in assets:
        name = str(asset.get("name") or "")
        url = asset.get("browser_download_url")
        if HAOS_ASSET.match(name) and url:
            return ImageRelease(url=str(url), filename=name)

    logger.error("Could not find RPi5 image in latest release; available assets:")
    for asset in assets:
        logger.error("  %s", asset.get("name"))
    logger.warning("Falling back to known version %s", HAOS_FALLBACK_VERSION)
    return haos_fallback()


def ubuntu_release(session: requests.Session, versions: Sequence[str] = UBUNTU_RELEASES) -> ImageRelease:
    """First Ubuntu Server preinstalled image that answers a HEAD request."""

    for version in versions:
        filename = UBUNTU_FILENAME.format(version=version)
        url = UBUNTU_URL.format(version=version, filename=filename)
        logger.info("Checking for Ubuntu Server %s release...", version)
        try:
            resp = session.head(url, allow_redirects=True, timeout=TIMEOUT)
        except requests.RequestException as e:
            logger.warning("Ubuntu %s lookup failed: %s", version, e)
            continue
        if resp.status_code == 200:
            return ImageRelease(url=url, filename=filename)
        logger.warning("Ubuntu %s not found (HTTP %s)", version, resp.status_code)

    raise DownloadError("Could not find Ubuntu Server image")


def download_file(session: requests.Session, url: str, dest: str | Path) -> Path:
    """Stream url to dest; an existing dest is kept, a failed download leaves nothing behind."""

    out = Path(dest)
    if out.exists():
        logger.warning("%s already exists. Skipping download.", out.name)
        return out

    out.parent.mkdir(parents=True, exist_ok=True)
    partial = out.with_name(out.name + ".part")
    logger.info("Downloading %s...", out.name)

    try:
        with session.get(url, stream=True, timeout=TIMEOUT) as resp:
            resp.raise_for_status()
            total = int(resp.headers.get("content-length") or 0)
            done = 0
            next_report = 0.1
            with open(partial, "wb") as f:
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    f.write(chunk)
                    done += len(chunk)
                    if total and done / total >= next_report:
                        logger.info("... %s: %d%%", out.name, int(done * 100 / total))
                        next_report += 0.1
    except (requests.RequestException, OSError) as e:
        partial.unlink(missing_ok=True)
        raise DownloadError(f"Failed to download {out.name}: {e}") from e

    partial.replace(out)
    logger.info("Successfully downloaded %s", out.name)
    return out


def sha256_file(path: str | Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(CHUNK_SIZE), b""):
            h.update(block)
    return h.hexdigest()


def verify_checksum(path: str | Path, expected: Optional[str]) -> bool:
    name = Path(path).name
    if not expected:
        logger.warning("No checksum provided for %s - skipping verification", name)
        return False

    logger.info("Verifying %s...", name)
    actual = sha256_file(path)
    if actual.lower() != expected.strip().lower():
        raise DownloadError(f"{name} verification failed!\nExpected: {expected}\nActual:   {actual}")
    logger.info("%s verified successfully", name)
    return True


def download_images(
    images_dir: str | Path,
    *,
    haos: bool = False,
    ubuntu: bool = False,
    session: Optional[requests.Session] = None,
) -> list[Path]:
    """Download the requested images. Every requested OS is attempted before failing."""

    sess = session or requests.Session()
    done: list[Path] = []
    failures: list[str] = []

    jobs = []
    if haos:
        jobs.append(("Home Assistant OS", latest_haos_release))
    if ubuntu:
        jobs.append(("Ubuntu Server", ubuntu_release))

    for label, lookup in jobs:
        try:
            release = lookup(sess)
            logger.info("Found %s: %s", label, release.filename)
            done.append(download_file(sess, release.url, Path(images_dir) / release.filename))
            logger.info("%s downloaded successfully", label)
        except DownloadError as e:
            logger.error("%s", e)
            failures.append(label)

    if failures:
        raise DownloadError(f"Some downloads failed ({', '.join(failures)}). Please check the errors above.")
    return done
