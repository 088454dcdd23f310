"""Shared fixtures: a scripted stand-in for run_cmd and logging isolation."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Tuple, Union

import pytest

from pi5_installer.errors import CommandError
from pi5_installer.lib import deps, diskutil, firmware, flash, initramfs, partition, ssh_keys
from pi5_installer.lib.command import CmdResult
from pi5_installer.logging_utils import ConsoleFormatter
from pi5_installer.steps import step_90_finalize

PATCHED_MODULES = (deps, diskutil, firmware, flash, initramfs, partition, ssh_keys, step_90_finalize)

Response = Union[Tuple[int, str], Callable[[List[str]], Tuple[int, str]]]


class FakeRunner:
    """Records argv lists and answers by longest matching argv prefix."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self._responses: List[Tuple[Tuple[str, ...], Response]] = []

    def on(self, prefix: Sequence[str], stdout: str = "", returncode: int = 0, handler: Optional[Callable] = None) -> None:
        self._responses.append((tuple(prefix), handler or (returncode, stdout)))

    def commands(self, program: str) -> List[List[str]]:
        return [c for c in self.calls if c and c[0] == program]

    def __call__(self, argv, *, check: bool = True, dry_run: bool = False, **kwargs) -> CmdResult:
        argv = [str(a) for a in argv]
        self.calls.append(argv)

        rc, out = 0, ""
        best = -1
        for prefix, response in self._responses:
            if tuple(argv[: len(prefix)]) == prefix and len(prefix) > best:
                best = len(prefix)
                rc, out = response(argv) if callable(response) else response

        if dry_run:
            rc, out = 0, ""
        if check and rc != 0:
            raise CommandError(argv, rc, "")
        return CmdResult(argv=argv, returncode=rc, stdout=out, stderr="")


@pytest.fixture
def fake_run(monkeypatch) -> FakeRunner:
    runner = FakeRunner()
    for mod in PATCHED_MODULES:
        monkeypatch.setattr(mod, "run_cmd", runner)
    monkeypatch.setattr("time.sleep", lambda _s: None)
    return runner


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    root = logging.getLogger()
    for h in list(root.handlers):
        if isinstance(h, logging.FileHandler) or isinstance(h.formatter, ConsoleFormatter):
            root.removeHandler(h)
            h.close()
    for attr in ("_pi5_configured", "_pi5_log_path"):
        if hasattr(root, attr):
            delattr(root, attr)


PARTED_NVME = """\
BYT;
/dev/nvme0n1:512110MB:nvme:512:512:msdos:Samsung SSD 980:;
1:4.19MB:541MB:537MB:fat32::boot, lba;
2:541MB:4000.5MB:3459.5MB:ext4::;
"""


def parted_output(total_mb: int, last_end_mb: int, device: str = "/dev/nvme0n1") -> str:
    return (
        "BYT;\n"
        f"{device}:{total_mb}MB:nvme:512:512:msdos:Test Disk:;\n"
        "1:4.19MB:541MB:537MB:fat32::boot, lba;\n"
        f"2:541MB:{last_end_mb}MB:{last_end_mb - 541}MB:ext4::;\n"
    )
