from .step_10_gather_config import GatherConfigurationStep
from .step_20_partition_fs import PartitionDiskStep
from .step_30_mount_filesystems import MountFilesystemsStep
from .step_40_install_stage3 import ExtractStage3Step
from .step_50_configure_chroot import ConfigureChrootStep
from .step_60_write_phase2 import GeneratePhase2Step
from .step_70_prepare_reboot import PrepareRebootStep
from .step_90_finalize_reboot import FinalizeReboot

__all__ = [
    "GatherConfigurationStep",
    "PartitionDiskStep",
    "MountFilesystemsStep",
    "ExtractStage3Step",
    "ConfigureChrootStep",
    "GeneratePhase2Step",
    "PrepareRebootStep",
    "FinalizeReboot",
]
