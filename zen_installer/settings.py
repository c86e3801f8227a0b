from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .lib.env import PATHS

DEFAULT_REQUIRED_TOOLS = ["curl", "lsblk", "sgdisk", "nproc", "dmidecode", "lspci"]
DEFAULT_STAGE3_BASE_URL = "https://distfiles.gentoo.org/releases/amd64/autobuilds/"
DEFAULT_STAGE3_POINTER = "latest-stage3-amd64-desktop-openrc.txt"


@dataclass(frozen=True)
class InstallerSettings:
    raw: Dict[str, Any] = field(default_factory=dict)

    def _section(self, name: str) -> Dict[str, Any]:
        return self.raw.get(name) or {}

    @property
    def chroot_dir(self) -> str:
        return str(self._section("paths").get("chroot_dir") or PATHS.chroot_dir)

    @property
    def state_dir(self) -> str:
        return str(self._section("paths").get("state_dir") or PATHS.state_dir)

    @property
    def state_path(self) -> str:
        return str(Path(self.state_dir) / PATHS.state_file)

    @property
    def config_path(self) -> str:
        return str(Path(self.state_dir) / PATHS.config_file)

    @property
    def log_path(self) -> str:
        return str(self._section("paths").get("log_path") or PATHS.log_default)

    @property
    def stage3_base_url(self) -> str:
        url = str(self._section("stage3").get("base_url") or DEFAULT_STAGE3_BASE_URL)
        return url if url.endswith("/") else url + "/"

    @property
    def stage3_pointer(self) -> str:
        return str(self._section("stage3").get("pointer") or DEFAULT_STAGE3_POINTER)

    @property
    def ping_host(self) -> str:
        return str(self._section("preflight").get("ping_host") or "8.8.8.8")

    @property
    def required_tools(self) -> List[str]:
        tools = self._section("preflight").get("required_tools")
        return list(DEFAULT_REQUIRED_TOOLS if tools is None else tools)

    @property
    def efi_size_mib(self) -> int:
        return int(self._section("disk").get("efi_size_mib") or 600)

    @property
    def video_cards(self) -> str:
        return str(self._section("portage").get("video_cards") or "amdgpu")

    @property
    def persist_secrets(self) -> bool:
        value = self._section("secrets").get("persist")
        return True if value is None else bool(value)

    @property
    def reboot_delay_s(self) -> float:
        value = self._section("reboot").get("delay_s")
        return 5.0 if value is None else float(value)

    @property
    def assume_yes(self) -> bool:
        return bool(self.raw.get("assume_yes", False))

    @property
    def answers(self) -> Dict[str, Any]:
        return dict(self.raw.get("answers") or {})

    def with_overrides(self, **overrides: Any) -> "InstallerSettings":
        """Return settings with CLI values applied (``None`` means not given)."""

        raw = {k: (dict(v) if isinstance(v, dict) else v) for k, v in self.raw.items()}
        paths = raw.setdefault("paths", {})
        for key in ("chroot_dir", "state_dir", "log_path"):
            if overrides.get(key) is not None:
                paths[key] = overrides[key]
        if overrides.get("assume_yes"):
            raw["assume_yes"] = True
        return InstallerSettings(raw=raw)


def load_settings(path: Optional[str]) -> InstallerSettings:
    if path is None:
        return InstallerSettings()

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("settings file must be YAML")

    try:
        import yaml  # type: ignore
    except Exception as e:
        raise RuntimeError("PyYAML is required to read installer settings") from e

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"settings file is not valid YAML: {e}") from e
    if not isinstance(raw, dict):
        raise ValueError("settings file must contain a mapping/object")

    return InstallerSettings(raw=raw)
