from __future__ import annotations

import logging
import time

from ..context import PipelineContext
from ..lib.chroot import umount_recursive
from ..lib.command import run_cmd

logger = logging.getLogger(__name__)


class FinalizeReboot:
    """Terminal handoff: unmount the target and reboot into phase 2.

    Not a guarded step; it has no completion record because the reboot ends
    the process.
    """

    def __init__(self, ctx: PipelineContext, *, sleep=time.sleep):
        self.ctx = ctx
        self.sleep = sleep

    def __call__(self) -> None:
        ctx = self.ctx
        prompter = ctx.prompter
        prompter.header("PHASE 1 COMPLETE")
        prompter.out("The system is now ready to reboot into your new Gentoo installation.")
        prompter.out("Phase 2 of the installation will begin automatically after reboot.")
        prompter.out("Please remove the installation media now.")
        logger.info("Finalize summary: %s", ctx.decisions)

        if not ctx.settings.assume_yes:
            prompter.pause("Press ENTER to unmount filesystems and reboot...")

        umount_recursive(ctx.chroot_dir, dry_run=ctx.dry_run)
        delay = ctx.settings.reboot_delay_s
        prompter.out(f"Rebooting in {delay:g} seconds...")
        if not ctx.dry_run and delay:
            self.sleep(delay)
        run_cmd(["sync"], dry_run=ctx.dry_run)
        run_cmd(["reboot"], dry_run=ctx.dry_run)
