from __future__ import annotations

import getpass
import logging
from pathlib import Path
from typing import Callable, Optional, Sequence

from ..errors import CredentialsError
from .command import run_cmd

logger = logging.getLogger(__name__)

DEFAULT_KEYS = ("~/.ssh/id_ed25519", "~/.ssh/id_rsa")
MAX_ATTEMPTS = 3


def find_private_key(configured: Optional[str] = None, candidates: Sequence[str] = DEFAULT_KEYS) -> Optional[Path]:
    if configured:
        p = Path(configured).expanduser()
        if not p.is_file():
            raise CredentialsError(f"SSH key not found: {p}")
        return p
    for c in candidates:
        p = Path(c).expanduser()
        if p.is_file():
            return p
    return None


def _derive(key: Path, passphrase: str) -> Optional[str]:
    r = run_cmd(["ssh-keygen", "-y", "-P", passphrase, "-f", str(key)], check=False, redact=[passphrase])
    if r.ok and r.stdout.strip():
        return r.stdout.strip()
    return None


def public_key_for(
    key: Path,
    *,
    ask_passphrase: Callable[[str], str] = getpass.getpass,
) -> str:
    """Public key for a private key: the .pub sibling, else derived with ssh-keygen."""

    pub = key.with_name(key.name + ".pub")
    if pub.is_file():
        return pub.read_text(encoding="utf-8").strip()

    # Probe with an empty passphrase; failure means the key is protected.
    derived = _derive(key, "")
    if derived:
        return derived

    logger.info("%s is passphrase protected", key)
    for _ in range(MAX_ATTEMPTS):
        passphrase = ask_passphrase(f"Passphrase for {key}: ")
        derived = _derive(key, passphrase)
        if derived:
            return derived
        logger.warning("Incorrect passphrase")

    raise CredentialsError(f"Could not unlock {key} after {MAX_ATTEMPTS} attempts")
