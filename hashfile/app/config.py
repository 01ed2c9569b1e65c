from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from hashfile.core.errors import ConfigError


@dataclass(frozen=True)
class HasherConfig:
    native_max_bytes: int = 500_000_000       # ~500MB, one-shot buffer cap
    incremental_max_bytes: int = 50_000_000   # ~50MB, software digest cap
    read_chunk_bytes: int = 1024 * 1024
    secure_context: bool = True
    allow_software_digest: bool = True
    probe_timeout_s: float = 2.0
    worker_poll_interval_s: float = 0.1
    worker_idle_timeout_s: float = 30.0


@dataclass(frozen=True)
class ApiConfig:
    base_url: str = "https://api.woleet.io/v1"
    provider: str = "woleet.io"
    timeout_s: float = 10.0
    token: Optional[str] = None


@dataclass(frozen=True)
class HashfileConfig:
    hasher: HasherConfig = field(default_factory=HasherConfig)
    api: ApiConfig = field(default_factory=ApiConfig)


_POSITIVE = (
    "native_max_bytes",
    "incremental_max_bytes",
    "read_chunk_bytes",
    "probe_timeout_s",
    "worker_poll_interval_s",
    "worker_idle_timeout_s",
    "timeout_s",
)


def _build(cls, section: str, raw: Any):
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ConfigError(f"'{section}' must be a mapping", details={"section": section})

    known = {f.name: f for f in fields(cls)}
    unknown = sorted(set(raw) - set(known))
    if unknown:
        raise ConfigError(
            f"Unknown key(s) in '{section}': {', '.join(unknown)}",
            hint=f"Valid keys: {', '.join(sorted(known))}",
            details={"section": section},
        )

    values: Dict[str, Any] = {}
    for name, value in raw.items():
        default = getattr(cls(), name)
        if isinstance(default, bool):
            if not isinstance(value, bool):
                raise ConfigError(f"{section}.{name} must be true/false, got {value!r}")
        elif isinstance(default, (int, float)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"{section}.{name} must be a number, got {value!r}")
            value = type(default)(value)
            if name in _POSITIVE and value <= 0:
                raise ConfigError(f"{section}.{name} must be > 0, got {value!r}")
        elif value is not None and not isinstance(value, str):
            raise ConfigError(f"{section}.{name} must be a string, got {value!r}")
        values[name] = value

    return cls(**values)


def load_config(path: str | Path | None = None) -> HashfileConfig:
    """
    Load a YAML config file with optional `hasher:` and `api:` sections.
    No path -> built-in defaults.
    """
    if path is None:
        return HashfileConfig()

    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            doc = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}", details={"path": str(path)}) from None
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(
            f"Failed to load config: {path}",
            hint=str(e),
            details={"path": str(path)},
        ) from None

    if not isinstance(doc, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")

    extra = sorted(set(doc) - {"hasher", "api"})
    if extra:
        raise ConfigError(
            f"Unknown config section(s): {', '.join(extra)}",
            hint="Valid sections: api, hasher",
        )

    return HashfileConfig(
        hasher=_build(HasherConfig, "hasher", doc.get("hasher")),
        api=_build(ApiConfig, "api", doc.get("api")),
    )
