from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    chroot_dir: str = "/mnt/gentoo"
    state_dir: str = "/var/lib/zen-installer"
    log_default: str = "/var/log/zen-installer.log"
    state_file: str = ".install_state"
    config_file: str = ".install_config"


PATHS = Paths()
