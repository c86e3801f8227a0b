from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from typing import Callable, List, Optional

from .errors import ValidationError
from .lib.net import is_online
from .settings import InstallerSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Check:
    name: str
    probe: Callable[[], Optional[str]]


def check_root() -> Optional[str]:
    if os.geteuid() != 0:
        return "This installer must be run as root. Please use 'sudo'."
    return None


def check_network(host: str, *, dry_run: bool = False) -> Optional[str]:
    if not is_online(host, dry_run=dry_run):
        return f"No internet connection (cannot reach {host}). Connect to the internet and try again."
    return None


def check_tool(tool: str) -> Optional[str]:
    if shutil.which(tool) is None:
        return f"Required command '{tool}' not found. Please use a standard Gentoo live environment."
    return None


def default_checks(settings: InstallerSettings, *, dry_run: bool = False) -> List[Check]:
    checks = [
        Check("root", check_root),
        Check("network", lambda: check_network(settings.ping_host, dry_run=dry_run)),
    ]
    for tool in settings.required_tools:
        checks.append(Check(f"tool:{tool}", lambda tool=tool: check_tool(tool)))
    return checks


def run_preflight_checks(checks: List[Check]) -> None:
    """Run every check; raise ValidationError listing each one that failed.

    Runs on every invocation, before any state is read, because the live
    environment can change between a crash and the resume.
    """

    logger.info("Running pre-flight checks")
    failures: List[str] = []
    for check in checks:
        problem = check.probe()
        if problem:
            logger.error("[%s] %s", check.name, problem)
            failures.append(problem)
        else:
            logger.debug("[%s] ok", check.name)

    if failures:
        raise ValidationError(failures)
    logger.info("All pre-flight checks passed")
