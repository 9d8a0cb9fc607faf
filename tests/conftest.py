"""Shared fixtures: fake analysis capability and workspace builders."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable

import pytest

from coach.capability import Document, FileAnalysis, Issue
from coach.model import AgentContext


class FakeAnalyzer:
  """Returns canned issues per file name; records the order files were analyzed in."""

  def __init__(self, issues_by_name: dict[str, list[dict]] | None = None, fail_on: set[str] | None = None):
    self.issues_by_name = issues_by_name or {}
    self.fail_on = fail_on or set()
    self.calls: list[str] = []
    self.contexts: list[AgentContext] = []

  def analyze(self, document: Document, context: AgentContext) -> FileAnalysis:
    name = os.path.basename(document.path)
    self.calls.append(name)
    self.contexts.append(context)
    if name in self.fail_on:
      raise ValueError(f"provider exploded on {name}")
    document.get_text()
    issues = [
      Issue(file_path=document.path, **spec)
      for spec in self.issues_by_name.get(name, [])
    ]
    return FileAnalysis(
      file_path=document.path,
      language_id=document.language_id,
      issues=issues,
      summary={"purpose": f"fake summary of {name}"},
      metrics={"linesOfCode": len(document.get_text().splitlines())},
    )

  def summarize_project(self, analyses):
    return {
      "overview": f"{len(analyses)} files",
      "architecture": "",
      "modules": [],
      "hotspots": [],
      "recommendations": [],
    }


def issue(severity: str, title: str = "Problem", line: int = 1, **extra) -> dict:
  return {"severity": severity, "title": title, "description": f"{title} details", "start_line": line, **extra}


@pytest.fixture
def make_workspace(tmp_path: Path) -> Callable[[dict[str, str | bytes]], Path]:
  """Create files under a fresh root anchored by a `.coach/` marker."""

  def _make(files: dict[str, str | bytes]) -> Path:
    root = tmp_path / "ws"
    (root / ".coach").mkdir(parents=True, exist_ok=True)
    for rel, content in files.items():
      p = root / rel
      p.parent.mkdir(parents=True, exist_ok=True)
      if isinstance(content, bytes):
        p.write_bytes(content)
      else:
        p.write_text(content, encoding="utf-8")
    return root

  return _make


@pytest.fixture
def clean_env(tmp_path: Path) -> dict[str, str]:
  """Environment with no COACH_* variables and a HOME without editor settings."""
  home = tmp_path / "home"
  home.mkdir()
  return {"HOME": str(home), "APPDATA": str(home), "USERPROFILE": str(home)}
