from __future__ import annotations

import logging

from ..context import PipelineContext
from ..lib.storage import partition_and_format

logger = logging.getLogger(__name__)


class PartitionDiskStep:
    step_id = "PARTITIONING_COMPLETE"

    def run(self, ctx: PipelineContext) -> None:
        snapshot = ctx.require_snapshot()

        layout = partition_and_format(
            disk=snapshot.target_disk,
            root_fs=snapshot.root_fs,
            efi_size_mib=ctx.settings.efi_size_mib,
            dry_run=ctx.dry_run,
        )
        ctx.decisions["efi_part"] = layout.efi_part
        ctx.decisions["root_part"] = layout.root_part
        logger.info("Disk partitioning and formatting complete")
