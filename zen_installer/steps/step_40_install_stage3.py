from __future__ import annotations

import logging

from ..context import PipelineContext
from ..lib.stage3 import fetch_and_extract

logger = logging.getLogger(__name__)


class ExtractStage3Step:
    step_id = "STAGE3_EXTRACTED"

    def run(self, ctx: PipelineContext) -> None:
        url = fetch_and_extract(
            base_url=ctx.settings.stage3_base_url,
            pointer=ctx.settings.stage3_pointer,
            chroot_dir=ctx.chroot_dir,
            dry_run=ctx.dry_run,
        )
        ctx.decisions["stage3_url"] = url
        logger.info("Stage3 download and extraction complete")
