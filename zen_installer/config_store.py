from __future__ import annotations

import logging
import os
import re
import shlex
import tempfile
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .errors import PersistenceError

logger = logging.getLogger(__name__)

PROFILES = ("minimal", "standard", "full")
ROOT_FILESYSTEMS = ("ext4", "btrfs", "xfs")

# Snapshot field -> key in the on-disk file.
FILE_KEYS = {
    "username": "GENTOO_USER",
    "user_password": "GENTOO_USER_PASSWORD",
    "root_password": "GENTOO_ROOT_PASSWORD",
    "hostname": "GENTOO_HOSTNAME",
    "timezone": "GENTOO_TIMEZONE",
    "locale": "GENTOO_LOCALE",
    "profile": "GENTOO_PROFILE",
    "root_fs": "ROOT_FS",
    "target_disk": "TARGET_DISK",
}
SECRET_FIELDS = ("user_password", "root_password")

_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_USERNAME_RE = re.compile(r"^[a-z_][a-z0-9_-]{0,31}$")
_HOSTNAME_RE = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")


@dataclass(frozen=True)
class ConfigurationSnapshot:
    username: str
    hostname: str
    timezone: str
    locale: str
    profile: str
    root_fs: str
    target_disk: str
    user_password: Optional[str] = None
    root_password: Optional[str] = None

    def problems(self) -> List[str]:
        out: List[str] = []
        if not _USERNAME_RE.match(self.username or ""):
            out.append(f"invalid username {self.username!r}")
        if not _HOSTNAME_RE.match(self.hostname or ""):
            out.append(f"invalid hostname {self.hostname!r}")
        if not self.timezone or " " in self.timezone:
            out.append(f"invalid timezone {self.timezone!r}")
        if not self.locale:
            out.append("locale is empty")
        if self.profile not in PROFILES:
            out.append(f"profile must be one of {', '.join(PROFILES)}, got {self.profile!r}")
        if self.root_fs not in ROOT_FILESYSTEMS:
            out.append(f"root_fs must be one of {', '.join(ROOT_FILESYSTEMS)}, got {self.root_fs!r}")
        if not (self.target_disk or "").startswith("/dev/"):
            out.append(f"target_disk must be a /dev path, got {self.target_disk!r}")
        return out

    def validate(self) -> "ConfigurationSnapshot":
        problems = self.problems()
        if problems:
            raise ValueError("; ".join(problems))
        return self

    def missing_secrets(self) -> List[str]:
        return [f for f in SECRET_FIELDS if getattr(self, f) is None]

    def with_secrets(self, *, user_password: str, root_password: str) -> "ConfigurationSnapshot":
        return replace(self, user_password=user_password, root_password=root_password)

    def to_mapping(self, *, include_secrets: bool = True) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for field_name, key in FILE_KEYS.items():
            value = getattr(self, field_name)
            if field_name in SECRET_FIELDS and (not include_secrets or value is None):
                continue
            out[key] = value
        return out

    @classmethod
    def from_mapping(cls, data: Mapping[str, str]) -> "ConfigurationSnapshot":
        by_key = {key: name for name, key in FILE_KEYS.items()}
        unknown = sorted(set(data) - set(by_key))
        if unknown:
            raise ValueError(f"unknown keys: {', '.join(unknown)}")
        kwargs = {by_key[k]: v for k, v in data.items()}
        missing = [FILE_KEYS[f.name] for f in fields(cls) if f.name not in kwargs and f.name not in SECRET_FIELDS]
        if missing:
            raise ValueError(f"missing keys: {', '.join(missing)}")
        return cls(**kwargs)

    @classmethod
    def from_answers(cls, answers: Mapping[str, Any]) -> "ConfigurationSnapshot":
        """Build from a preseed mapping keyed by field name (settings ``answers``)."""

        names = {f.name for f in fields(cls)}
        unknown = sorted(set(answers) - names)
        if unknown:
            raise ValueError(f"unknown answers: {', '.join(unknown)}")
        kwargs = {k: (None if v is None else str(v)) for k, v in answers.items()}
        if kwargs.get("root_password") is None and kwargs.get("user_password") is not None:
            kwargs["root_password"] = kwargs["user_password"]
        return cls(**kwargs)

    def redacted(self) -> Dict[str, Any]:
        d = asdict(self)
        for f in SECRET_FIELDS:
            if d[f] is not None:
                d[f] = "********"
        return d


def quote_value(value: str) -> str:
    return "'" + value.replace("'", "'\\''") + "'"


def render_snapshot(snapshot: ConfigurationSnapshot, *, include_secrets: bool = True) -> str:
    lines = ["# Gentoo Zen Installer configuration"]
    for key, value in snapshot.to_mapping(include_secrets=include_secrets).items():
        lines.append(f"{key}={quote_value(value)}")
    return "\n".join(lines) + "\n"


def parse_snapshot(text: str) -> Dict[str, str]:
    try:
        tokens = shlex.split(text, comments=True, posix=True)
    except ValueError as e:
        raise ValueError(f"unparseable configuration: {e}") from e

    out: Dict[str, str] = {}
    for tok in tokens:
        key, sep, value = tok.partition("=")
        if not sep or not _KEY_RE.match(key):
            raise ValueError(f"malformed assignment {tok!r}")
        out[key] = value
    return out


class ConfigStore:
    """Whole-file snapshot store: atomic overwrite on save, ``None`` when absent."""

    def __init__(self, path: str | Path, *, persist_secrets: bool = True, dry_run: bool = False):
        self.path = Path(path)
        self.persist_secrets = persist_secrets
        self.dry_run = dry_run

    def load(self) -> Optional[ConfigurationSnapshot]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(f"Unable to read configuration {self.path}: {e}") from e

        try:
            snapshot = ConfigurationSnapshot.from_mapping(parse_snapshot(text)).validate()
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Corrupt configuration {self.path}: {e}") from e

        logger.info("Previous configuration found in %s", self.path)
        return snapshot

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Unable to remove configuration {self.path}: {e}") from e

    def save(self, snapshot: ConfigurationSnapshot) -> None:
        contents = render_snapshot(snapshot, include_secrets=self.persist_secrets)
        if self.dry_run:
            logger.info("Would write configuration to %s", self.path)
            return

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                os.fchmod(f.fileno(), 0o600)
                f.write(contents)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
            dir_fd = os.open(str(self.path.parent), os.O_RDONLY)
            try:
                os.fsync(dir_fd)
            finally:
                os.close(dir_fd)
        except OSError as e:
            raise PersistenceError(f"Unable to save configuration to {self.path}: {e}") from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        logger.info("Configuration saved to %s (secrets %s)", self.path, "included" if self.persist_secrets else "omitted")
