from __future__ import annotations

import logging
import os
from pathlib import Path

from ..context import PipelineContext
from ..lib.chroot import mount_pseudo_filesystems
from ..lib.command import run_cmd
from ..lib.templates import render_make_conf

logger = logging.getLogger(__name__)


class ConfigureChrootStep:
    step_id = "CHROOT_CONFIGURED"

    def run(self, ctx: PipelineContext) -> None:
        root = Path(ctx.chroot_dir)
        run_cmd(["cp", "--dereference", "/etc/resolv.conf", str(root / "etc") + "/"], dry_run=ctx.dry_run)

        make_conf = root / "etc/portage/make.conf"
        contents = render_make_conf(nproc=os.cpu_count() or 1, video_cards=ctx.settings.video_cards)
        if ctx.dry_run:
            logger.info("Would write %s", make_conf)
        else:
            make_conf.parent.mkdir(parents=True, exist_ok=True)
            make_conf.write_text(contents, encoding="utf-8")
            logger.info("Generated %s", make_conf)

        mount_pseudo_filesystems(ctx.chroot_dir, dry_run=ctx.dry_run)

    def restore(self, ctx: PipelineContext) -> None:
        mount_pseudo_filesystems(ctx.chroot_dir, dry_run=ctx.dry_run)
