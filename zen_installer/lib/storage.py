from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from .chroot import is_mounted
from .command import run_cmd

logger = logging.getLogger(__name__)

ROOT_LABEL = "GENTOO_ROOT"

MKFS = {
    "ext4": ["mkfs.ext4", "-F", "-L", ROOT_LABEL],
    "btrfs": ["mkfs.btrfs", "-f", "-L", ROOT_LABEL],
    "xfs": ["mkfs.xfs", "-f", "-L", ROOT_LABEL],
}


@dataclass(frozen=True)
class PartitionLayout:
    disk: str
    efi_part: str
    root_part: str


def part_path(disk: str, n: int) -> str:
    # nvme/mmcblk devices use p suffix
    if disk.endswith(tuple("0123456789")):
        return f"{disk}p{n}"
    return f"{disk}{n}"


def layout_for(disk: str) -> PartitionLayout:
    return PartitionLayout(disk=disk, efi_part=part_path(disk, 1), root_part=part_path(disk, 2))


def partition_and_format(
    *,
    disk: str,
    root_fs: str,
    efi_size_mib: int = 600,
    settle_s: float = 2.0,
    dry_run: bool = False,
) -> PartitionLayout:
    """Wipe ``disk`` and create GPT: ESP (FAT32) + root (``root_fs``).

    Re-running after a crash repeats the whole wipe, so a half-partitioned
    disk is always rebuilt from scratch.
    """

    if root_fs not in MKFS:
        raise RuntimeError(f"Unsupported root filesystem: {root_fs}")

    logger.info("Partitioning disk=%s root_fs=%s", disk, root_fs)

    run_cmd(["sgdisk", "--zap-all", disk], dry_run=dry_run)
    run_cmd(
        [
            "sgdisk",
            f"--new=1:0:+{efi_size_mib}M",
            "--typecode=1:ef00",
            "--change-name=1:EFI System",
            disk,
        ],
        dry_run=dry_run,
    )
    run_cmd(
        [
            "sgdisk",
            "--new=2:0:0",
            "--typecode=2:8300",
            "--change-name=2:Gentoo Root",
            disk,
        ],
        dry_run=dry_run,
    )

    # Inform kernel
    run_cmd(["partprobe", disk], dry_run=dry_run)
    if not dry_run and settle_s:
        time.sleep(settle_s)

    layout = layout_for(disk)
    logger.info("EFI partition: %s, root partition: %s", layout.efi_part, layout.root_part)

    run_cmd(["mkfs.vfat", "-F", "32", layout.efi_part], dry_run=dry_run)
    run_cmd([*MKFS[root_fs], layout.root_part], dry_run=dry_run)
    return layout


def mount_target(layout: PartitionLayout, chroot_dir: str, *, dry_run: bool = False) -> None:
    """Mount root at ``chroot_dir`` and the ESP at ``<chroot_dir>/efi``; mounted targets are left alone."""

    for dev, mountpoint in ((layout.root_part, chroot_dir), (layout.efi_part, f"{chroot_dir}/efi")):
        run_cmd(["mkdir", "-p", mountpoint], dry_run=dry_run)
        if not dry_run and is_mounted(mountpoint):
            logger.info("%s already mounted", mountpoint)
            continue
        run_cmd(["mount", dev, mountpoint], dry_run=dry_run)
