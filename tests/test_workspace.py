from __future__ import annotations

from pathlib import Path

from coach.workspace import find_config_file, resolve_workspace_root


def test_resolves_nearest_marker_directory(tmp_path: Path) -> None:
  root = tmp_path / "proj"
  (root / ".git").mkdir(parents=True)
  deep = root / "src" / "pkg"
  deep.mkdir(parents=True)

  assert resolve_workspace_root(deep) == root


def test_config_file_marker_wins_over_outer_git(tmp_path: Path) -> None:
  (tmp_path / "outer" / ".git").mkdir(parents=True)
  inner = tmp_path / "outer" / "inner"
  inner.mkdir()
  (inner / ".coachrc.yaml").write_text("max_files: 3\n", encoding="utf-8")

  assert resolve_workspace_root(inner / ".") == inner
  assert find_config_file(inner) == inner / ".coachrc.yaml"


def test_marker_file_must_be_a_file(tmp_path: Path) -> None:
  root = tmp_path / "proj"
  (root / ".git").mkdir(parents=True)
  sub = root / "sub"
  (sub / ".coachrc.json").mkdir(parents=True)

  assert resolve_workspace_root(sub) == root


def test_falls_back_to_start_path_without_markers(tmp_path: Path, monkeypatch) -> None:
  start = tmp_path / "nowhere" / "deeper"
  start.mkdir(parents=True)
  monkeypatch.setattr(Path, "is_dir", lambda self: False)
  monkeypatch.setattr(Path, "is_file", lambda self: False)

  assert resolve_workspace_root(start) == start
