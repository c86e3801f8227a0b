"""Shared fixtures: throwaway state directories, a scripted prompter, and a
subprocess recorder so no real system command ever runs.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from zen_installer.config_store import ConfigurationSnapshot
from zen_installer.settings import InstallerSettings


@pytest.fixture
def snapshot() -> ConfigurationSnapshot:
    return ConfigurationSnapshot(
        username="zen",
        user_password="p@ss 'word' $HOME; rm -rf / # \\n",
        root_password='r00t"pw`echo`',
        hostname="gentoo-desktop",
        timezone="Europe/Athens",
        locale="en_US.UTF-8",
        profile="standard",
        root_fs="btrfs",
        target_disk="/dev/nvme0n1",
    )


@pytest.fixture
def settings(tmp_path: Path) -> InstallerSettings:
    return InstallerSettings(
        raw={
            "paths": {
                "state_dir": str(tmp_path / "state"),
                "chroot_dir": str(tmp_path / "chroot"),
                "log_path": str(tmp_path / "zen.log"),
            },
            "reboot": {"delay_s": 0},
        }
    )


class ScriptedPrompter:
    """Prompter double: returns preset answers and records what it showed."""

    def __init__(
        self,
        snapshot: Optional[ConfigurationSnapshot] = None,
        *,
        confirm: bool = True,
        secrets: tuple = ("user-secret", "root-secret"),
    ):
        self.snapshot = snapshot
        self.confirm = confirm
        self.secrets = secrets
        self.calls: List[str] = []
        self.lines: List[str] = []

    def gather(self) -> ConfigurationSnapshot:
        self.calls.append("gather")
        assert self.snapshot is not None
        return self.snapshot

    def ask_secrets(self, username: str):
        self.calls.append("ask_secrets")
        return self.secrets

    def summary(self, snapshot: ConfigurationSnapshot) -> None:
        self.calls.append("summary")

    def confirm_destructive(self, snapshot: ConfigurationSnapshot) -> bool:
        self.calls.append("confirm")
        return self.confirm

    def header(self, title: str) -> None:
        self.lines.append(title)

    def out(self, message: str) -> None:
        self.lines.append(message)

    def pause(self, message: str) -> None:
        self.calls.append("pause")


@pytest.fixture
def prompter(snapshot: ConfigurationSnapshot) -> ScriptedPrompter:
    return ScriptedPrompter(snapshot)


class CommandRecorder:
    def __init__(self):
        self.argvs: List[List[str]] = []
        self.responders: Dict[str, Callable[[List[str]], subprocess.CompletedProcess]] = {}

    def respond(self, program: str, *, returncode: int = 0, stdout: str = "") -> None:
        self.responders[program] = lambda argv: subprocess.CompletedProcess(argv, returncode, stdout, "")

    def __call__(self, argv, **kwargs):
        self.argvs.append(list(argv))
        responder = self.responders.get(argv[0])
        if responder is not None:
            return responder(list(argv))
        # mountpoint -q: report nothing mounted unless told otherwise
        rc = 1 if argv[0] == "mountpoint" else 0
        return subprocess.CompletedProcess(list(argv), rc, "", "")

    def programs(self) -> List[str]:
        return [a[0] for a in self.argvs]

    def find(self, program: str) -> List[List[str]]:
        return [a for a in self.argvs if a[0] == program]


@pytest.fixture
def commands(monkeypatch: pytest.MonkeyPatch) -> CommandRecorder:
    recorder = CommandRecorder()
    monkeypatch.setattr("zen_installer.lib.command.subprocess.run", recorder)
    return recorder
