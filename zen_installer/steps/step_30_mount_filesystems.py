from __future__ import annotations

import logging

from ..context import PipelineContext
from ..lib.storage import mount_target

logger = logging.getLogger(__name__)


class MountFilesystemsStep:
    step_id = "FILESYSTEMS_MOUNTED"

    def run(self, ctx: PipelineContext) -> None:
        mount_target(ctx.partitions, ctx.chroot_dir, dry_run=ctx.dry_run)
        logger.info("Filesystems mounted at %s", ctx.chroot_dir)

    def restore(self, ctx: PipelineContext) -> None:
        # Mounts do not survive an interrupt or a reboot of the live system.
        mount_target(ctx.partitions, ctx.chroot_dir, dry_run=ctx.dry_run)
