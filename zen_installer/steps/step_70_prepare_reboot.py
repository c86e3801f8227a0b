from __future__ import annotations

import logging
import os
from pathlib import Path

from ..context import PipelineContext
from ..lib.chroot import chroot_cmd
from ..lib.templates import render_prepare_reboot

logger = logging.getLogger(__name__)

SCRIPT_NAME = "prepare_reboot.sh"


class PrepareRebootStep:
    step_id = "REBOOT_PREPARED"

    def run(self, ctx: PipelineContext) -> None:
        script = Path(ctx.chroot_dir) / SCRIPT_NAME
        contents = render_prepare_reboot(nproc=os.cpu_count() or 1)
        if ctx.dry_run:
            logger.info("Would write %s", script)
        else:
            script.write_text(contents, encoding="utf-8")
            os.chmod(script, 0o755)

        chroot_cmd(ctx.chroot_dir, [f"/{SCRIPT_NAME}"], dry_run=ctx.dry_run)
        logger.info("System is ready for reboot")
