from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from .command import run_cmd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Disk:
    name: str
    size: str
    model: str

    @property
    def path(self) -> str:
        return f"/dev/{self.name}"

    def label(self) -> str:
        return f"{self.name:<10} {self.size:<10} {self.model}".rstrip()


def parse_lsblk(output: str) -> List[Disk]:
    """Parse ``lsblk -d -n -o NAME,SIZE,TYPE,MODEL``; only whole disks are kept."""

    disks: List[Disk] = []
    for line in output.splitlines():
        parts = line.split(None, 3)
        if len(parts) < 3 or parts[2] != "disk":
            continue
        model = parts[3].strip() if len(parts) > 3 else ""
        disks.append(Disk(name=parts[0], size=parts[1], model=model))
    return disks


def list_disks() -> List[Disk]:
    r = run_cmd(["lsblk", "-d", "-n", "-o", "NAME,SIZE,TYPE,MODEL"])
    return parse_lsblk(r.stdout)
