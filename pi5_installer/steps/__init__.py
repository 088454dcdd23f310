from .step_10_check_dependencies import CheckDependenciesStep
from .step_20_detect_disk import DetectDiskStep
from .step_25_mount_media import MountMediaStep
from .step_30_select_image import SelectImageStep
from .step_40_credentials import CredentialsStep
from .step_50_setup_bootloader import SetupBootloaderStep
from .step_60_build_initramfs import BuildInitramfsStep
from .step_65_generate_os_setups import GenerateOsSetupsStep
from .step_70_setup_haos_addon import SetupHaosAddonStep
from .step_80_copy_files import CopyFilesStep
from .step_90_finalize import FinalizeStep

__all__ = [
    "CheckDependenciesStep",
    "DetectDiskStep",
    "MountMediaStep",
    "SelectImageStep",
    "CredentialsStep",
    "SetupBootloaderStep",
    "BuildInitramfsStep",
    "GenerateOsSetupsStep",
    "SetupHaosAddonStep",
    "CopyFilesStep",
    "FinalizeStep",
]
