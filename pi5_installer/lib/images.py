from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from ..errors import ImageSelectionError

logger = logging.getLogger(__name__)

IMAGE_SUFFIX = ".img.xz"

# OS type -> label of the spare data partition created after flashing.
DATA_LABELS = {
    "haos": "HAOS_DATA",
    "ubuntu": "UBUNTU_HOME",
}


def image_basename(filename: str) -> str:
    name = Path(filename).name
    if name.endswith(IMAGE_SUFFIX):
        return name[: -len(IMAGE_SUFFIX)]
    return name


def detect_os_type(filename: str) -> str:
    """Map an image filename to haos|ubuntu|unknown by its prefix."""

    base = image_basename(filename)
    if base.startswith("haos_"):
        return "haos"
    if base.startswith("ubuntu-"):
        return "ubuntu"
    return "unknown"


def data_label_for(os_type: str) -> Optional[str]:
    return DATA_LABELS.get(os_type)


@dataclass(frozen=True)
class OsImage:
    path: Path

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def basename(self) -> str:
        return image_basename(self.path.name)

    @property
    def os_type(self) -> str:
        return detect_os_type(self.path.name)

    @property
    def setup_script_name(self) -> str:
        return f"setup_{self.basename}.sh"


def find_images(images_dir: str | Path) -> list[OsImage]:
    d = Path(images_dir)
    if not d.is_dir():
        raise ImageSelectionError(f"Images directory not found: {d}")

    images = sorted(
        (OsImage(path=p) for p in d.rglob(f"*{IMAGE_SUFFIX}") if p.is_file()),
        key=lambda img: img.filename,
    )
    if not images:
        raise ImageSelectionError(f"No *{IMAGE_SUFFIX} files found in {d}")

    logger.info("Found %d OS image(s) in %s", len(images), d)
    return images


def select_image(
    images: Sequence[OsImage],
    *,
    prompt: Callable[[str], str] = input,
    choice: Optional[str] = None,
) -> OsImage:
    """Pick one image; several images ask for a 1-based index.

    `choice` preselects by index or filename (non-interactive runs).
    """

    if not images:
        raise ImageSelectionError("No OS images to select from")

    if choice:
        for img in images:
            if choice in (img.filename, img.basename):
                logger.info("Selected image: %s", img.filename)
                return img

    if len(images) == 1 and not choice:
        logger.info("Using single available image: %s", images[0].filename)
        return images[0]

    if choice:
        selection = choice
    else:
        lines = ["Available OS images:"]
        lines += [f"  {i}. {img.filename}" for i, img in enumerate(images, start=1)]
        print("\n".join(lines), file=sys.stderr)
        selection = prompt(f"Select image (1-{len(images)}): ").strip()

    if not selection.isdigit() or not 1 <= int(selection) <= len(images):
        raise ImageSelectionError(f"Invalid selection: {selection}")

    img = images[int(selection) - 1]
    logger.info("Selected image: %s", img.filename)
    return img
