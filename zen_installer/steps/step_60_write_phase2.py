from __future__ import annotations

import logging
import os
from pathlib import Path

from ..config_store import render_snapshot
from ..context import PipelineContext
from ..lib.templates import PHASE2_CONFIG, PHASE2_SCRIPT, render_phase2_script

logger = logging.getLogger(__name__)


def _target(chroot_dir: str, abs_path: str) -> Path:
    return Path(chroot_dir) / abs_path.lstrip("/")


class GeneratePhase2Step:
    step_id = "PHASE2_SCRIPT_GENERATED"

    def run(self, ctx: PipelineContext) -> None:
        snapshot = ctx.require_snapshot()
        if snapshot.missing_secrets():
            raise RuntimeError("Passwords are required to generate the phase 2 configuration")

        script = _target(ctx.chroot_dir, PHASE2_SCRIPT)
        config = _target(ctx.chroot_dir, PHASE2_CONFIG)

        if ctx.dry_run:
            logger.info("Would write %s and %s", script, config)
            return

        script.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(config, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(render_snapshot(snapshot))
        os.chmod(config, 0o600)
        script.write_text(render_phase2_script(profile=snapshot.profile), encoding="utf-8")
        os.chmod(script, 0o755)
        logger.info("Phase 2 script generated at %s", script)
