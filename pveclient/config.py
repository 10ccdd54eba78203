"""Proxmox connection settings loaded from config.yaml."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

REQUIRED_KEYS = ("url", "node", "username", "password")


@dataclass(frozen=True)
class ProxmoxConfig:
    url: str
    node: str
    username: str
    password: str = field(repr=False)
    realm: str = "pam"
    verify_ssl: bool = True
    ca_bundle: Optional[str] = None
    timeout: Optional[float] = None
    fail_fast: bool = False


def load_raw_config(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found at {config_path}. "
            "Copy config.example.yaml next to it and fill in your cluster credentials."
        )

    with config_path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config at {config_path} must be a YAML mapping")

    return data


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def parse_config(raw: Dict[str, Any], source: str = "<config>") -> ProxmoxConfig:
    """
    Build a ProxmoxConfig from the `proxmox` section of a raw config mapping.

    Args:
        raw: Parsed YAML document
        source: Name used in error messages

    Returns:
        ProxmoxConfig with defaults applied

    Raises:
        ValueError: If the section or a required key is missing
    """
    section = raw.get("proxmox")
    if not isinstance(section, dict):
        raise ValueError(f"Config {source} has no 'proxmox' mapping")

    missing = [key for key in REQUIRED_KEYS if not section.get(key)]
    if missing:
        raise ValueError(f"Config {source} is missing proxmox keys: {', '.join(missing)}")

    ca_bundle = section.get("ca_bundle")

    return ProxmoxConfig(
        url=str(section["url"]),
        node=str(section["node"]),
        username=str(section["username"]),
        password=str(section["password"]),
        realm=str(section.get("realm") or "pam"),
        verify_ssl=bool(section.get("verify_ssl", True)),
        ca_bundle=str(ca_bundle) if ca_bundle else None,
        timeout=_optional_float(section.get("timeout")),
        fail_fast=bool(section.get("fail_fast", False)),
    )


def load_config(config_path: Path | str) -> ProxmoxConfig:
    """
    Load connection settings from a YAML file.

    Args:
        config_path: Path to config.yaml

    Returns:
        ProxmoxConfig

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a valid proxmox config
    """
    path = Path(config_path)
    return parse_config(load_raw_config(path), source=str(path))
