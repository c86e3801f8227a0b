from __future__ import annotations

import logging
from typing import Sequence

from .command import run_cmd

logger = logging.getLogger(__name__)


def chroot_cmd(chroot_dir: str, argv: Sequence[str], *, dry_run: bool = False) -> None:
    """Run a command inside the chroot, streaming its output."""

    run_cmd(["chroot", chroot_dir, *argv], capture=False, dry_run=dry_run)


def is_mounted(path: str) -> bool:
    r = run_cmd(["mountpoint", "-q", path], check=False)
    return r.returncode == 0


def mount_pseudo_filesystems(chroot_dir: str, *, dry_run: bool = False) -> None:
    # proc is mounted fresh; sys and dev are recursive binds so udev and efivars work
    for argv in (
        ["mount", "--types", "proc", "/proc", f"{chroot_dir}/proc"],
        ["mount", "--rbind", "/sys", f"{chroot_dir}/sys"],
        ["mount", "--make-rslave", f"{chroot_dir}/sys"],
        ["mount", "--rbind", "/dev", f"{chroot_dir}/dev"],
        ["mount", "--make-rslave", f"{chroot_dir}/dev"],
    ):
        target = argv[-1]
        if argv[1] != "--make-rslave" and not dry_run and is_mounted(target):
            logger.info("%s already mounted", target)
            continue
        run_cmd(argv, dry_run=dry_run)


def umount_recursive(chroot_dir: str, *, dry_run: bool = False) -> None:
    """Unmount everything below and including ``chroot_dir``; failures are not fatal."""

    r = run_cmd(["umount", "-R", chroot_dir], check=False, dry_run=dry_run)
    if r.returncode != 0:
        logger.warning("umount -R %s returned %s", chroot_dir, r.returncode)
