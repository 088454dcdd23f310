from __future__ import annotations

import logging
import os
from typing import Optional, Sequence

from ..errors import CommandError, DependencyError
from .command import run_cmd, which

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("git", "xz", "cpio", "make")


def find_tailscale(search_paths: Sequence[str]) -> Optional[str]:
    for p in search_paths:
        if os.path.isfile(p):
            return p
    return None


def missing_tools(tools: Sequence[str] = REQUIRED_TOOLS) -> list[str]:
    return [t for t in tools if which(t) is None]


def check_dependencies(
    tailscale_paths: Sequence[str],
    *,
    tools: Sequence[str] = REQUIRED_TOOLS,
    install: bool = True,
    dry_run: bool = False,
) -> str:
    """Verify host tools, installing missing ones with Homebrew. Returns the Tailscale path."""

    logger.info("Checking dependencies...")

    tailscale = find_tailscale(tailscale_paths)
    if not tailscale:
        raise DependencyError("Tailscale binary not found; please install Tailscale: brew install tailscale")
    logger.info("Found Tailscale at: %s", tailscale)

    missing = missing_tools(tools)
    if missing:
        logger.warning("Missing tools: %s", " ".join(missing))
        if not install:
            raise DependencyError(f"Missing tools: {' '.join(missing)}")
        if which("brew") is None:
            raise DependencyError("Homebrew is required but not installed; please install Homebrew: https://brew.sh/")
        logger.info("Installing missing tools with Homebrew...")
        try:
            run_cmd(["brew", "install", *missing], dry_run=dry_run, capture=False)
        except CommandError as e:
            raise DependencyError(f"brew install failed: {e}") from e

    logger.info("All dependencies satisfied")
    return tailscale
