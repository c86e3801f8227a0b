from __future__ import annotations

import logging
from pathlib import Path

from .command import run_cmd

logger = logging.getLogger(__name__)


def parse_stage3_pointer(text: str) -> str:
    """Return the tarball path from a ``latest-stage3-*.txt`` pointer file.

    The pointer is PGP-signed; the payload line looks like
    ``20240101T170000Z/stage3-amd64-desktop-openrc-20240101T170000Z.tar.xz 312345678``.
    """

    for line in text.splitlines():
        parts = line.split()
        if parts and parts[0].endswith(".tar.xz"):
            return parts[0]
    raise RuntimeError("No stage3 tarball listed in pointer file")


def fetch_and_extract(*, base_url: str, pointer: str, chroot_dir: str, dry_run: bool = False) -> str:
    logger.info("Finding the latest stage3 tarball (%s%s)", base_url, pointer)
    r = run_cmd(["curl", "-fsSL", f"{base_url}{pointer}"], dry_run=dry_run)
    if dry_run:
        stage3_path = "stage3-dry-run.tar.xz"
    else:
        stage3_path = parse_stage3_pointer(r.stdout)

    url = f"{base_url}{stage3_path}"
    tarball = Path(chroot_dir) / Path(stage3_path).name
    logger.info("Downloading stage3 from %s", url)
    run_cmd(["wget", "-c", "-O", str(tarball), url], capture=False, dry_run=dry_run)

    logger.info("Extracting stage3 (this may take a while)")
    run_cmd(
        [
            "tar",
            "xpf",
            str(tarball),
            "--xattrs-include=*.*",
            "--numeric-owner",
            "-C",
            chroot_dir,
        ],
        dry_run=dry_run,
    )
    run_cmd(["rm", "-f", str(tarball)], dry_run=dry_run)
    return url
