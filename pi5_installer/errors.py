from __future__ import annotations

import shlex


class InstallerError(RuntimeError):
    """Base class for installer failures reported to the user."""


class CommandError(InstallerError):
    def __init__(self, argv: list[str], returncode: int, stderr: str = "") -> None:
        self.argv = argv
        self.returncode = returncode
        self.stderr = stderr
        msg = f"Command failed ({returncode}): {shlex.join(argv)}"
        if stderr.strip():
            msg += f"\n{stderr.strip()}"
        super().__init__(msg)


class DependencyError(InstallerError):
    pass


class DiskDetectionError(InstallerError):
    pass


class MountError(InstallerError):
    pass


class ImageSelectionError(InstallerError):
    pass


class CredentialsError(InstallerError):
    pass


class DownloadError(InstallerError):
    pass


class PartitioningError(InstallerError):
    pass


class TargetDeviceError(InstallerError):
    pass
