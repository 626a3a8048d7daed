# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/config.py

"""Typed configuration loaded from YAML."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

import yaml
from loguru import logger
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from vmstash.errors import ConfigError
from vmstash.lvm import parse_size

DEFAULT_CONFIG_PATH = Path("config.yaml")


class MachineKind(str, Enum):
    VM = "vm"
    LXC = "lxc"


class Machine(BaseModel):
    """One guest to back up: a full VM or an LXC container."""
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    kind: MachineKind = MachineKind.VM
    disks: tuple[str, ...] = ()

    @property
    def label(self) -> str:
        return f"{self.kind.value}-{self.id}"

    def config_path(self, pve_root: Path) -> Path:
        """Location of the guest's Proxmox config file."""
        subdir = "qemu-server" if self.kind is MachineKind.VM else "lxc"
        return Path(pve_root) / subdir / f"{self.id}.conf"


class ResticConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    binary: str = "restic"
    repository: Optional[str] = None
    password: Optional[str] = None
    password_file: Optional[Path] = None
    env: dict[str, str] = Field(default_factory=dict)

    def environment(self) -> dict[str, str]:
        """Variables injected into every restic invocation."""
        env: dict[str, str] = {}
        if self.repository:
            env["RESTIC_REPOSITORY"] = self.repository
        if self.password_file:
            env["RESTIC_PASSWORD_FILE"] = str(self.password_file)
        elif self.password:
            env["RESTIC_PASSWORD"] = self.password
        env.update(self.env)
        return env

    def local_repository(self) -> Optional[Path]:
        """The repository as a local directory, if it is one."""
        repo = self.repository or self.env.get("RESTIC_REPOSITORY")
        if not repo:
            return None
        if repo.startswith("local:"):
            repo = repo[len("local:"):]
        if not repo.startswith("/"):
            return None  # sftp:, s3:, rest:, ...
        return Path(repo)


class SnapshotConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    size: str = "5G"  # copy-on-write headroom, independent of LV size
    block_size: str = "4M"

    @field_validator("size")
    @classmethod
    def _valid_size(cls, value: str) -> str:
        parse_size(value)
        return value

    @property
    def size_bytes(self) -> int:
        return parse_size(self.size)


class Config(BaseModel):
    model_config = ConfigDict(frozen=True)

    machines: tuple[Machine, ...] = Field(
        default=(), validation_alias=AliasChoices("machines", "vms"))
    restic: ResticConfig = Field(default_factory=ResticConfig)
    snapshot: SnapshotConfig = Field(default_factory=SnapshotConfig)
    preflight_dir: Optional[Path] = None
    pve_config_root: Path = Path("/etc/pve")

    def preflight_destination(self) -> Optional[Path]:
        if self.preflight_dir is not None:
            return self.preflight_dir
        return self.restic.local_repository()


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> Config:
    """Read and validate the YAML config at `path`."""
    path = Path(path)
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config {path} must be a mapping")

    try:
        cfg = Config.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {path}:\n{e}") from e

    if not cfg.machines:
        raise ConfigError(f"No machines configured in {path}")

    logger.debug(f"Loaded {len(cfg.machines)} machines from {path}")
    return cfg
