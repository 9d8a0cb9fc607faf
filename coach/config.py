"""Effective configuration for a run.

Sources, highest precedence first: CLI flags, environment, IDE settings,
project config file, built-in defaults. Each source is turned into a partial
"layer" (plain dict, snake_case keys) and the layers are folded in order,
lowest first. The `provider` block merges key by key in every fold step.
"""
from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from coach.errors import ConfigError
from coach.model import (
  ANALYSIS_DEPTHS,
  FAIL_ON_LEVELS,
  PROVIDER_KINDS,
  EffectiveConfig,
  ProviderConfig,
)
from coach.workspace import find_config_file

_LOG = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = ".coachrc.yaml"

PROVIDER_ENV_VARS = ("COACH_PROVIDER", "COACH_API_KEY", "COACH_API_ENDPOINT", "COACH_MODEL")
DEPTH_ENV_VAR = "COACH_DEPTH"

DEFAULTS: dict[str, Any] = {
  "provider": {"kind": "anthropic"},
  "include": ["**/*.{ts,tsx,js,jsx,py,java,cs,go,rs,cpp,c,rb,php,swift,kt}"],
  "exclude": [
    "**/node_modules/**",
    "**/dist/**",
    "**/.git/**",
    "**/coverage/**",
    "**/out/**",
    "**/build/**",
  ],
  "analysis_depth": "moderate",
  "max_files": 200,
  "max_file_size_bytes": 1024 * 1024,
  "fail_on": "warning",
  "max_findings": 200,
}

_FIELD_ALIASES = {
  "analysisDepth": "analysis_depth",
  "maxFiles": "max_files",
  "maxFileSizeBytes": "max_file_size_bytes",
  "maxFindings": "max_findings",
  "failOn": "fail_on",
}
_PROVIDER_ALIASES = {
  "provider": "kind",
  "apiKey": "api_key",
  "apiEndpoint": "api_endpoint",
}
_FIELDS = set(DEFAULTS)
_PROVIDER_FIELDS = {"kind", "api_key", "api_endpoint", "model"}


@dataclass(frozen=True)
class LoadedConfig:
  config: EffectiveConfig
  config_file: Path | None = None


@dataclass(frozen=True)
class IdeSettings:
  provider: ProviderConfig | None = None
  analysis_depth: str | None = None
  exclude: tuple[str, ...] | None = None


def fold_layers(layers: list[Mapping[str, Any]]) -> dict[str, Any]:
  """Merge layers left to right; later layers win field by field."""
  merged: dict[str, Any] = {}
  for layer in layers:
    for key, value in layer.items():
      if value is None:
        continue
      if key == "provider":
        prov = dict(merged.get("provider") or {})
        for pk, pv in value.items():
          if pv is not None:
            prov[pk] = pv
        merged["provider"] = prov
      else:
        merged[key] = value
  return merged


def _env_value(env: Mapping[str, str], name: str) -> str | None:
  v = env.get(name)
  if v is None:
    return None
  v = v.strip()
  return v or None


def _env_int(env: Mapping[str, str], name: str) -> int | None:
  v = _env_value(env, name)
  if v is None:
    return None
  try:
    return int(v)
  except ValueError:
    _LOG.debug("ignoring non-numeric %s=%r", name, v)
    return None


def env_layer(env: Mapping[str, str]) -> dict[str, Any]:
  layer: dict[str, Any] = {
    "provider": {
      "kind": _env_value(env, "COACH_PROVIDER"),
      "api_key": _env_value(env, "COACH_API_KEY"),
      "api_endpoint": _env_value(env, "COACH_API_ENDPOINT"),
      "model": _env_value(env, "COACH_MODEL"),
    },
    "analysis_depth": _env_value(env, DEPTH_ENV_VAR),
    "fail_on": _env_value(env, "COACH_FAIL_ON"),
    "max_findings": _env_int(env, "COACH_MAX_FINDINGS"),
    "max_files": _env_int(env, "COACH_MAX_FILES"),
  }
  return layer


def provider_env_used(env: Mapping[str, str]) -> bool:
  return any(_env_value(env, name) for name in PROVIDER_ENV_VARS)


def _touches_provider(layer: Mapping[str, Any]) -> bool:
  prov = layer.get("provider") or {}
  return any(v is not None for v in prov.values())


def ide_layer(ide: IdeSettings | None, cli: Mapping[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
  """IDE settings restricted to the fields neither CLI nor env supplied."""
  if ide is None:
    return {}
  layer: dict[str, Any] = {}
  if ide.provider is not None and ide.provider.kind:
    if not _touches_provider(cli) and not provider_env_used(env):
      layer["provider"] = {
        "kind": ide.provider.kind,
        "api_key": ide.provider.api_key,
        "api_endpoint": ide.provider.api_endpoint,
        "model": ide.provider.model,
      }
  if ide.analysis_depth and cli.get("analysis_depth") is None and _env_value(env, DEPTH_ENV_VAR) is None:
    layer["analysis_depth"] = ide.analysis_depth
  return layer


def file_layer(raw: Mapping[str, Any]) -> dict[str, Any]:
  layer: dict[str, Any] = {}
  for key, value in raw.items():
    key = _FIELD_ALIASES.get(key, key)
    if key == "provider":
      layer["provider"] = _provider_from_raw(value)
    elif key in _FIELDS:
      layer[key] = value
    else:
      _LOG.debug("ignoring unknown config key %r", key)
  return layer


def _provider_from_raw(value: Any) -> dict[str, Any]:
  if isinstance(value, str):
    return {"kind": value}
  if not isinstance(value, dict):
    return {}
  prov: dict[str, Any] = {}
  for k, v in value.items():
    k = _PROVIDER_ALIASES.get(k, k)
    if k in _PROVIDER_FIELDS and v is not None:
      prov[k] = str(v)
  return prov


def load_config_file(path: Path) -> dict[str, Any]:
  try:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
  except (OSError, yaml.YAMLError) as e:
    raise ConfigError(f"Failed to load config at {path}: {e}") from e
  if data is None:
    return {}
  if not isinstance(data, dict):
    raise ConfigError(f"Failed to load config at {path}: config root must be a mapping")
  return data


def _as_int(value: Any, default: int, minimum: int) -> int:
  if isinstance(value, bool):
    return default
  if isinstance(value, str):
    try:
      value = int(value.strip())
    except ValueError:
      return default
  if isinstance(value, float):
    if not math.isfinite(value):
      return default
    value = int(value)
  if not isinstance(value, int):
    return default
  return max(minimum, value)


def _as_patterns(value: Any, default: list[str]) -> tuple[str, ...]:
  if isinstance(value, str):
    return (value,)
  if isinstance(value, (list, tuple)):
    return tuple(str(v) for v in value if isinstance(v, str))
  return tuple(default)


def _choice(value: Any, allowed: tuple[str, ...], default: str) -> str:
  if isinstance(value, str) and value.strip().lower() in allowed:
    return value.strip().lower()
  if value is not None and value != default:
    _LOG.warning("invalid value %r (allowed: %s); using %r", value, "|".join(allowed), default)
  return default


def _provider_kind(value: Any) -> str:
  if value is None:
    return DEFAULTS["provider"]["kind"]
  kind = str(value).strip().lower()
  if kind not in PROVIDER_KINDS:
    raise ConfigError(f"Unknown AI provider: {value}")
  return kind


def normalize(merged: Mapping[str, Any]) -> EffectiveConfig:
  prov = merged.get("provider") or {}
  provider = ProviderConfig(
    kind=_provider_kind(prov.get("kind")),
    api_key=prov.get("api_key"),
    api_endpoint=prov.get("api_endpoint"),
    model=prov.get("model"),
  )
  return EffectiveConfig(
    provider=provider,
    analysis_depth=_choice(merged.get("analysis_depth"), ANALYSIS_DEPTHS, DEFAULTS["analysis_depth"]),
    include=_as_patterns(merged.get("include"), DEFAULTS["include"]),
    exclude=_as_patterns(merged.get("exclude"), DEFAULTS["exclude"]),
    max_files=_as_int(merged.get("max_files"), DEFAULTS["max_files"], 1),
    max_file_size_bytes=_as_int(merged.get("max_file_size_bytes"), DEFAULTS["max_file_size_bytes"], 1024),
    max_findings=_as_int(merged.get("max_findings"), DEFAULTS["max_findings"], 1),
    fail_on=_choice(merged.get("fail_on"), FAIL_ON_LEVELS, DEFAULTS["fail_on"]),
  )


def resolve_config(
  root: Path,
  cli: Mapping[str, Any] | None = None,
  env: Mapping[str, str] | None = None,
  ide: IdeSettings | None = None,
) -> LoadedConfig:
  cli = dict(cli or {})
  env = dict(env or {})

  config_file = find_config_file(root)
  from_file: dict[str, Any] = {}
  if config_file is not None:
    _LOG.debug("using config file %s", config_file)
    from_file = file_layer(load_config_file(config_file))

  layers = [
    DEFAULTS,
    from_file,
    ide_layer(ide, cli, env),
    env_layer(env),
    cli,
  ]
  return LoadedConfig(config=normalize(fold_layers(layers)), config_file=config_file)


def config_to_file_dict(cfg: EffectiveConfig) -> dict[str, Any]:
  provider = {
    "kind": cfg.provider.kind,
    "api_key": cfg.provider.api_key,
    "api_endpoint": cfg.provider.api_endpoint,
    "model": cfg.provider.model,
  }
  return {
    "provider": {k: v for k, v in provider.items() if v is not None},
    "include": list(cfg.include),
    "exclude": list(cfg.exclude),
    "analysis_depth": cfg.analysis_depth,
    "max_files": cfg.max_files,
    "max_file_size_bytes": cfg.max_file_size_bytes,
    "fail_on": cfg.fail_on,
    "max_findings": cfg.max_findings,
  }


def default_config() -> EffectiveConfig:
  return normalize(DEFAULTS)


def seeded_from_ide(ide: IdeSettings) -> EffectiveConfig:
  layer: dict[str, Any] = {}
  if ide.provider is not None and ide.provider.kind:
    layer["provider"] = {
      "kind": ide.provider.kind,
      "api_key": ide.provider.api_key,
      "api_endpoint": ide.provider.api_endpoint,
      "model": ide.provider.model,
    }
  layer["analysis_depth"] = ide.analysis_depth
  layer["exclude"] = list(ide.exclude) if ide.exclude is not None else None
  return normalize(fold_layers([DEFAULTS, layer]))


def write_config(directory: Path, cfg: EffectiveConfig, force: bool = False) -> Path:
  p = directory / DEFAULT_CONFIG_FILE
  if p.exists() and not force:
    raise ConfigError(f"Config file already exists at {p}")
  p.write_text(yaml.safe_dump(config_to_file_dict(cfg), sort_keys=False, allow_unicode=True), encoding="utf-8")
  return p
