from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .config_store import ConfigStore, ConfigurationSnapshot
from .lib.storage import PartitionLayout, layout_for
from .settings import InstallerSettings


@dataclass
class PipelineContext:
    """Working set for one installer invocation.

    Built once in ``main.run`` and handed to every step; only the completion
    log and the configuration store survive a restart.
    """

    settings: InstallerSettings
    config_store: ConfigStore
    prompter: Any
    dry_run: bool = False
    snapshot: Optional[ConfigurationSnapshot] = None
    decisions: Dict[str, Any] = field(default_factory=dict)

    @property
    def chroot_dir(self) -> str:
        return self.settings.chroot_dir

    def require_snapshot(self) -> ConfigurationSnapshot:
        if self.snapshot is None:
            raise RuntimeError("Installation configuration missing; run the configuration step first")
        return self.snapshot

    @property
    def partitions(self) -> PartitionLayout:
        return layout_for(self.require_snapshot().target_disk)
