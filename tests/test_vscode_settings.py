from __future__ import annotations

from pathlib import Path

import pytest

from coach.errors import ConfigError
from coach.vscode_settings import (
  discover_ide_settings,
  parse_vscode_settings,
  settings_candidates,
  strip_jsonc,
)

SETTINGS = """
{
  // editor settings
  "editor.fontSize": 13,
  "codeReviewer.aiProvider": "openai", /* inline */
  "codeReviewer.apiKey": "sk-from-editor",
  "codeReviewer.model": "gpt-4o-mini",
  "codeReviewer.analysisDepth": "deep",
  "codeReviewer.excludePatterns": ["**/vendor/**", 3],
  "files.exclude": {"http://not-a-comment": true,},
}
"""


def test_strip_jsonc_keeps_comment_markers_inside_strings() -> None:
  assert strip_jsonc('{"u": "http://x/*y*/", // c\n "v": [1,],}') == '{"u": "http://x/*y*/", \n "v": [1]}'


def test_parse_vscode_settings_reads_code_reviewer_keys() -> None:
  ide = parse_vscode_settings(SETTINGS)

  assert ide.provider is not None
  assert ide.provider.kind == "openai"
  assert ide.provider.api_key == "sk-from-editor"
  assert ide.provider.model == "gpt-4o-mini"
  assert ide.provider.api_endpoint is None
  assert ide.analysis_depth == "deep"
  assert ide.exclude == ("**/vendor/**",)


def test_parse_vscode_settings_without_provider() -> None:
  ide = parse_vscode_settings('{"codeReviewer.analysisDepth": "bottomless"}')

  assert ide.provider is None
  assert ide.analysis_depth is None
  assert ide.exclude is None


def test_invalid_json_raises_value_error() -> None:
  with pytest.raises(ValueError):
    parse_vscode_settings("{not json")


def test_candidates_per_platform() -> None:
  linux = settings_candidates({"HOME": "/home/u"}, "linux")
  mac = settings_candidates({"HOME": "/Users/u"}, "darwin")
  win = settings_candidates({"APPDATA": "C:/Users/u/AppData/Roaming"}, "win32")

  assert linux[0] == Path("/home/u/.config/Code/User/settings.json")
  assert mac[0] == Path("/Users/u/Library/Application Support/Code/User/settings.json")
  assert win[0] == Path("C:/Users/u/AppData/Roaming/Code/User/settings.json")


def test_explicit_missing_settings_is_config_error(tmp_path: Path) -> None:
  with pytest.raises(ConfigError, match="not found"):
    discover_ide_settings({}, str(tmp_path / "missing.json"))


def test_explicit_settings_file_is_loaded(tmp_path: Path) -> None:
  p = tmp_path / "settings.json"
  p.write_text(SETTINGS, encoding="utf-8")

  ide = discover_ide_settings({}, str(p))

  assert ide.provider.kind == "openai"


def test_broken_discovered_settings_are_skipped(tmp_path: Path, monkeypatch) -> None:
  p = tmp_path / "settings.json"
  p.write_text("{broken", encoding="utf-8")
  monkeypatch.setattr("coach.vscode_settings.find_vscode_settings", lambda env: p)

  assert discover_ide_settings({}) is None


def test_no_discovered_settings(clean_env) -> None:
  assert discover_ide_settings(clean_env) is None


def test_commas_inside_string_values_are_kept() -> None:
  ide = parse_vscode_settings('{"codeReviewer.aiProvider": "openai", "codeReviewer.model": "x,}", "a": ["y, ]",],}')

  assert ide.provider.model == "x,}"


def test_trailing_comma_before_comment_and_closer_is_dropped() -> None:
  assert strip_jsonc('[1, // last\n]') == "[1 \n]"
