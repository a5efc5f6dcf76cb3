from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.target_schema import TargetSchema
from ..schemas.catalog import SCHEMAS

"""Config loader.

Responsibilities:
- Load YAML config/import.yml
- Validate it against contracts/config_schema.json
- Apply defaults (max_rows=500, error_display_cap=10, logs_directory=./logs)
- Environment variables override the API connection settings
- Derive per-kind TargetSchemas with the configured overrides (build_schema)
"""

__all__ = [
    "ApiConfig",
    "ConfigError",
    "ImportConfig",
    "KindConfig",
    "build_schema",
    "load_config",
]

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "contracts" / "config_schema.json"

ENV_API_URL = "ACADEMIC_IMPORT_API_URL"
ENV_API_TOKEN = "ACADEMIC_IMPORT_API_TOKEN"

DEFAULT_MAX_ROWS = 500
DEFAULT_ERROR_DISPLAY_CAP = 10
DEFAULT_TIMEOUT_SECONDS = 30.0


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class ApiConfig:
    base_url: str | None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    token: str | None = None


@dataclass(frozen=True)
class KindConfig:
    endpoint: str | None = None
    max_rows: int | None = None
    error_display_cap: int | None = None
    required_context: tuple[str, ...] | None = None  # None = catalogue default
    defaults: dict[str, Any] = field(default_factory=dict)
    extra_aliases: dict[str, tuple[str, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class ImportConfig:
    api: ApiConfig
    max_rows: int = DEFAULT_MAX_ROWS
    error_display_cap: int = DEFAULT_ERROR_DISPLAY_CAP
    logs_directory: str = "./logs"
    import_kinds: dict[str, KindConfig] = field(default_factory=dict)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema contract.

    Raises:
        ConfigError: schema file missing or not JSON, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigError(f"config validation failed at {location}: {e.message}") from e


def _kind_config(raw: dict[str, Any]) -> KindConfig:
    context = raw.get("required_context")
    return KindConfig(
        endpoint=raw.get("endpoint"),
        max_rows=raw.get("max_rows"),
        error_display_cap=raw.get("error_display_cap"),
        required_context=tuple(context) if context is not None else None,
        defaults=dict(raw.get("defaults") or {}),
        extra_aliases={k: tuple(v) for k, v in (raw.get("extra_aliases") or {}).items()},
    )


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed at <root>: top level must be a mapping")

    _validate_config_schema(data)

    api_raw = data.get("api") or {}
    # 接続情報は環境変数 (.env) を優先
    api = ApiConfig(
        base_url=os.getenv(ENV_API_URL) or api_raw.get("base_url"),
        timeout_seconds=float(api_raw.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)),
        token=os.getenv(ENV_API_TOKEN) or api_raw.get("token"),
    )
    limits = data.get("limits") or {}
    return ImportConfig(
        api=api,
        max_rows=limits.get("max_rows", DEFAULT_MAX_ROWS),
        error_display_cap=limits.get("error_display_cap", DEFAULT_ERROR_DISPLAY_CAP),
        logs_directory=data.get("logs_directory", "./logs"),
        import_kinds={k: _kind_config(v or {}) for k, v in (data.get("import_kinds") or {}).items()},
    )


def build_schema(kind: str, config: ImportConfig) -> TargetSchema:
    """Catalogue schema for ``kind`` with this configuration's overrides applied."""
    base = SCHEMAS.get(kind)
    if base is None:
        raise ConfigError(f"unknown import kind '{kind}' (known: {', '.join(sorted(SCHEMAS))})")
    kc = config.import_kinds.get(kind, KindConfig())

    unknown = (set(kc.defaults) | set(kc.extra_aliases)) - set(base.field_names)
    if unknown:
        raise ConfigError(
            f"config validation failed at import_kinds/{kind}: unknown fields {sorted(unknown)}"
        )
    fields = []
    for spec in base.fields:
        if spec.name in kc.defaults:
            spec = replace(spec, default=kc.defaults[spec.name])
        if spec.name in kc.extra_aliases:
            spec = replace(spec, aliases=spec.aliases | frozenset(kc.extra_aliases[spec.name]))
        fields.append(spec)

    return replace(
        base,
        fields=tuple(fields),
        endpoint=kc.endpoint or base.endpoint,
        max_rows=kc.max_rows if kc.max_rows is not None else config.max_rows,
        error_display_cap=(
            kc.error_display_cap if kc.error_display_cap is not None else config.error_display_cap
        ),
        required_context=(
            kc.required_context if kc.required_context is not None else base.required_context
        ),
    )
