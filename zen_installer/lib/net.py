from __future__ import annotations

import logging
from .command import run_cmd

logger = logging.getLogger(__name__)


def is_online(host: str = "8.8.8.8", *, dry_run: bool = False) -> bool:
    """Best-effort reachability check: one ICMP echo to ``host``."""

    try:
        r = run_cmd(["ping", "-c", "1", "-W", "2", host], check=False, dry_run=dry_run)
    except RuntimeError:
        logger.debug("ping unavailable", exc_info=True)
        return False
    return r.returncode == 0
