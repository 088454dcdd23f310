"""Raspberry Pi 5 installer media builder.

Core design goals:
- One external FAT32 drive carries everything the Pi needs to install itself
- Resumable build steps, state recorded in the work dir
- Boot-time flashing and per-OS setup run from a BusyBox initramfs
- Centralized logging
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
