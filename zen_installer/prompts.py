from __future__ import annotations

import getpass
import logging
from typing import Callable, List, Optional, Sequence, Tuple

from .config_store import PROFILES, ROOT_FILESYSTEMS, ConfigurationSnapshot
from .lib.block import Disk, list_disks

logger = logging.getLogger(__name__)

CONFIRM_PHRASE = "YES, I AM SURE"

PROFILE_LABELS = {
    "minimal": "Minimal (KDE Desktop + Tools)",
    "standard": "Standard (Minimal + Office/Media)",
    "full": "Full (Standard + All Extras)",
}


class ConsolePrompter:
    """Terminal front end for the configuration step.

    Input, secret input, output and disk discovery are injectable so the
    same code drives tests and a real TTY.
    """

    def __init__(
        self,
        *,
        input_fn: Callable[[str], str] = input,
        secret_fn: Callable[[str], str] = getpass.getpass,
        out: Callable[[str], None] = print,
        disks_fn: Callable[[], List[Disk]] = list_disks,
    ):
        self.input = input_fn
        self.secret = secret_fn
        self.out = out
        self.disks = disks_fn

    def header(self, title: str) -> None:
        self.out(f"\n#\n# {title}\n#")

    def error(self, message: str) -> None:
        self.out(f"[ERROR] {message}")

    def ask(self, prompt: str, *, validate: Optional[Callable[[str], bool]] = None) -> str:
        while True:
            value = self.input(prompt).strip()
            if value and (validate is None or validate(value)):
                return value
            self.error("Invalid value. Please try again.")

    def ask_password(self, label: str) -> str:
        while True:
            first = self.secret(f"Enter a password for {label}: ")
            second = self.secret("Confirm password: ")
            if first and first == second:
                return first
            self.error("Passwords do not match or are empty. Please try again.")

    def choose(self, prompt: str, options: Sequence[str]) -> int:
        """Numbered menu; returns the chosen index."""

        self.out(prompt)
        for i, opt in enumerate(options, start=1):
            self.out(f"{i}) {opt}")
        while True:
            raw = self.input("#? ").strip()
            if raw.isdigit() and 1 <= int(raw) <= len(options):
                return int(raw) - 1
            self.error(f"Invalid option. Please choose 1-{len(options)}.")

    def ask_secrets(self, username: str) -> Tuple[str, str]:
        user_pw = self.ask_password(f"'{username}'")
        same = self.input("Use the same password for the 'root' account? (y/n): ").strip().lower()
        root_pw = user_pw if same == "y" else self.ask_password("the 'root' user")
        return user_pw, root_pw

    def gather(self) -> ConfigurationSnapshot:
        self.header("Gathering System Configuration")

        username = self.ask(
            "Enter your desired username: ",
            validate=lambda v: not _field_problems(username=v),
        )
        user_pw, root_pw = self.ask_secrets(username)
        hostname = self.ask(
            "Enter the hostname for this computer (e.g., gentoo-desktop): ",
            validate=lambda v: not _field_problems(hostname=v),
        )
        timezone = self.ask("Enter your Timezone (e.g., Europe/Athens): ", validate=lambda v: " " not in v)
        locale = self.ask("Enter your desired locale (e.g., en_US.UTF-8): ")

        profile = PROFILES[self.choose("Choose an installation profile:", [PROFILE_LABELS[p] for p in PROFILES])]
        root_fs = ROOT_FILESYSTEMS[self.choose("Choose a filesystem for your root partition:", ROOT_FILESYSTEMS)]

        disks = self.disks()
        if not disks:
            raise RuntimeError("No disks detected")
        disk = disks[self.choose("Please select the target disk for installation:", [d.label() for d in disks])]

        return ConfigurationSnapshot(
            username=username,
            user_password=user_pw,
            root_password=root_pw,
            hostname=hostname,
            timezone=timezone,
            locale=locale,
            profile=profile,
            root_fs=root_fs,
            target_disk=disk.path,
        ).validate()

    def summary(self, snapshot: ConfigurationSnapshot) -> None:
        self.header("Installation Summary")
        for label, value in (
            ("Username", snapshot.username),
            ("Hostname", snapshot.hostname),
            ("Timezone", snapshot.timezone),
            ("Locale", snapshot.locale),
            ("Profile", snapshot.profile),
            ("Target Disk", snapshot.target_disk),
            ("Root Filesystem", snapshot.root_fs),
        ):
            self.out(f"{label + ':':<19}{value}")

    def confirm_destructive(self, snapshot: ConfigurationSnapshot) -> bool:
        self.summary(snapshot)
        self.out(f"\nWARNING: All data on {snapshot.target_disk} will be destroyed!")
        return self.input(f"To proceed, type '{CONFIRM_PHRASE}': ") == CONFIRM_PHRASE

    def pause(self, message: str) -> None:
        self.input(message)


def _field_problems(**values: str) -> List[str]:
    base = dict(
        username="user",
        hostname="host",
        timezone="UTC",
        locale="C",
        profile=PROFILES[0],
        root_fs=ROOT_FILESYSTEMS[0],
        target_disk="/dev/sda",
    )
    base.update(values)
    return ConfigurationSnapshot(**base).problems()
