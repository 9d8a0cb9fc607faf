from __future__ import annotations
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Mapping

from coach.config import IdeSettings
from coach.errors import ConfigError
from coach.model import ANALYSIS_DEPTHS, ProviderConfig

_LOG = logging.getLogger(__name__)

_EDITORS = ["Code", "Code - Insiders", "VSCodium", "Cursor"]


def strip_jsonc(text: str) -> str:
  """Drop // and /* */ comments and trailing commas, leaving string contents alone."""
  out: list[str] = []
  i = 0
  n = len(text)
  in_str = False
  while i < n:
    ch = text[i]
    if in_str:
      out.append(ch)
      if ch == "\\" and i + 1 < n:
        out.append(text[i + 1])
        i += 2
        continue
      if ch == '"':
        in_str = False
      i += 1
      continue
    if ch == '"':
      in_str = True
      out.append(ch)
      i += 1
    elif text.startswith("//", i):
      j = text.find("\n", i)
      i = n if j == -1 else j
    elif text.startswith("/*", i):
      j = text.find("*/", i + 2)
      i = n if j == -1 else j + 2
    elif ch == "," and _closes_after(text, i + 1):
      i += 1
    else:
      out.append(ch)
      i += 1
  return "".join(out)


def _closes_after(text: str, i: int) -> bool:
  """True when the next token after `i`, skipping whitespace and comments, is `}` or `]`."""
  n = len(text)
  while i < n:
    if text[i].isspace():
      i += 1
    elif text.startswith("//", i):
      j = text.find("\n", i)
      i = n if j == -1 else j
    elif text.startswith("/*", i):
      j = text.find("*/", i + 2)
      i = n if j == -1 else j + 2
    else:
      return text[i] in "}]"
  return False


def parse_vscode_settings(text: str) -> IdeSettings:
  try:
    parsed = json.loads(strip_jsonc(text)) if text.strip() else {}
  except json.JSONDecodeError as e:
    raise ValueError(f"invalid settings JSON: {e}") from e
  if not isinstance(parsed, dict):
    return IdeSettings()

  def _str(key: str) -> str | None:
    v = parsed.get(key)
    return v if isinstance(v, str) else None

  provider = None
  kind = _str("codeReviewer.aiProvider")
  if kind:
    provider = ProviderConfig(
      kind=kind,
      api_key=_str("codeReviewer.apiKey"),
      api_endpoint=_str("codeReviewer.apiEndpoint"),
      model=_str("codeReviewer.model"),
    )
  depth = _str("codeReviewer.analysisDepth")
  excludes = parsed.get("codeReviewer.excludePatterns")
  return IdeSettings(
    provider=provider,
    analysis_depth=depth if depth in ANALYSIS_DEPTHS else None,
    exclude=tuple(s for s in excludes if isinstance(s, str)) if isinstance(excludes, list) else None,
  )


def settings_candidates(env: Mapping[str, str], platform: str | None = None) -> list[Path]:
  platform = platform or sys.platform
  if platform.startswith("win"):
    app_data = env.get("APPDATA") or os.path.join(env.get("USERPROFILE", ""), "AppData", "Roaming")
    base = Path(app_data)
  elif platform == "darwin":
    base = Path(env.get("HOME") or Path.home()) / "Library" / "Application Support"
  else:
    base = Path(env.get("HOME") or Path.home()) / ".config"
  return [base / editor / "User" / "settings.json" for editor in _EDITORS]


def find_vscode_settings(env: Mapping[str, str], platform: str | None = None) -> Path | None:
  for p in settings_candidates(env, platform):
    if p.exists():
      return p
  return None


def load_vscode_settings(path: Path) -> IdeSettings:
  if not path.is_file():
    raise ConfigError(f"VS Code settings not found: {path}")
  try:
    return parse_vscode_settings(path.read_text(encoding="utf-8"))
  except (OSError, ValueError) as e:
    raise ConfigError(f"Failed to read VS Code settings at {path}: {e}") from e


def discover_ide_settings(env: Mapping[str, str], explicit: str | None = None) -> IdeSettings | None:
  """Explicit path must exist; auto-discovered settings that fail to load are skipped."""
  if explicit:
    return load_vscode_settings(Path(explicit).expanduser())
  p = find_vscode_settings(env)
  if p is None:
    _LOG.debug("VS Code settings.json not found; continuing without it")
    return None
  try:
    return load_vscode_settings(p)
  except ConfigError as e:
    _LOG.warning("Failed to load VS Code settings; continuing without them: %s", e)
    return None
