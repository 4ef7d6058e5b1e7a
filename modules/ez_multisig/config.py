from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from modules.ez_p2p.config import P2PConfig

from .models import DISPATCH_SECTIONS


@dataclass
class MultisigConfig:
    sections: List[str] = field(default_factory=lambda: list(DISPATCH_SECTIONS))
    first_correlation_id: int = 1
    log_level: str = "INFO"

    def __post_init__(self):
        unknown = [s for s in self.sections if s not in DISPATCH_SECTIONS]
        if unknown:
            raise ValueError(f"unknown_section:{unknown[0]}")

    @staticmethod
    def from_dict(d: dict) -> "MultisigConfig":
        return MultisigConfig(**d)


@dataclass
class TrackConfig:
    p2p: P2PConfig = field(default_factory=P2PConfig)
    multisig: MultisigConfig = field(default_factory=MultisigConfig)


def _parse_scalar(value: str) -> Any:
    if value.startswith("[") and value.endswith("]"):
        return json.loads(value)
    lowered = value.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if lowered in {"null", "~", ""}:
        return None
    try:
        return int(value)
    except ValueError:
        return value.strip('"')


def _parse_min_yaml(text: str) -> Dict[str, Dict[str, Any]]:
    """Two-level YAML subset: ``section:`` lines followed by ``  key: value`` lines."""
    result: Dict[str, Dict[str, Any]] = {}
    section: str | None = None
    for raw in text.splitlines():
        line = raw.rstrip()
        if not line or line.lstrip().startswith("#"):
            continue
        if not line.startswith(" ") and line.endswith(":"):
            section = line[:-1].strip()
            result[section] = {}
        elif section is not None and line.startswith("  ") and ":" in line:
            key, val = line.strip().split(":", 1)
            result[section][key.strip()] = _parse_scalar(val.strip())
    return result


def load_config(path: str | Path = "ezmultisig.yaml") -> TrackConfig:
    config_path = Path(path)
    if not config_path.exists():
        return TrackConfig()

    text = config_path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = _parse_min_yaml(text)
    if not isinstance(data, dict):
        raise ValueError("config_not_object")

    p2p = data.get("p2p") if isinstance(data.get("p2p"), dict) else {}
    multisig = data.get("multisig") if isinstance(data.get("multisig"), dict) else {}
    return TrackConfig(
        p2p=P2PConfig.from_dict({k: v for k, v in p2p.items() if v is not None}),
        multisig=MultisigConfig.from_dict({k: v for k, v in multisig.items() if v is not None}),
    )
