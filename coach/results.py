from __future__ import annotations
import os
from datetime import datetime, timezone
from typing import Iterable

from coach.capability import Issue
from coach.model import (
  Finding,
  Position,
  Range,
  RunMeta,
  SelectionMeta,
  ToolInfo,
)

DEFAULT_CATEGORY = "code_smell"
DEFAULT_RULE_ID = "coach"


def map_severity(raw: object) -> str:
  # Anything not recognizably info/warning (including "critical") is an error.
  value = str(raw or "").strip().lower()
  if value in ("info", "warning"):
    return value
  return "error"


def display_path(file_path: str, root: str) -> str:
  abs_path = os.path.abspath(file_path)
  try:
    rel = os.path.relpath(abs_path, root)
  except ValueError:  # different drive
    return abs_path
  if rel == "." or rel.startswith("..") or os.path.isabs(rel):
    return abs_path
  return rel.replace(os.sep, "/")


def normalize(issue: Issue, root: str) -> Finding:
  rng = None
  if issue.start_line:
    rng = Range(
      start=Position(line=issue.start_line, column=issue.start_column),
      end=Position(line=issue.end_line or issue.start_line, column=issue.end_column),
    )
  confidence = issue.confidence
  if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
    confidence = None
  return Finding(
    file=display_path(issue.file_path, root),
    range=rng,
    severity=map_severity(issue.severity),
    category=str(issue.category or DEFAULT_CATEGORY),
    title=str(issue.title or "Issue"),
    message=str(issue.description or ""),
    suggestion=str(issue.suggestion) if issue.suggestion else None,
    rule_id=str(issue.category or DEFAULT_RULE_ID),
    confidence=confidence,
  )


def build_summary(findings: Iterable[Finding], files_analyzed: int) -> str:
  counts = {"info": 0, "warning": 0, "error": 0}
  total = 0
  for f in findings:
    counts[f.severity] += 1
    total += 1
  return (
    f"Analyzed {files_analyzed} file(s). Found {total} finding(s) "
    f"({counts['error']} error, {counts['warning']} warning, {counts['info']} info)."
  )


def iso(ts: datetime) -> str:
  return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_meta(
  root: str,
  started: datetime,
  ended: datetime,
  files_analyzed: int,
  tool: ToolInfo,
  selection: SelectionMeta,
  config_file: str | None,
  truncated: bool,
) -> RunMeta:
  return RunMeta(
    root_path=root,
    started_at=iso(started),
    ended_at=iso(ended),
    duration_ms=int((ended - started).total_seconds() * 1000),
    files_analyzed=files_analyzed,
    tool=tool,
    selection=selection,
    config_file=config_file,
    truncated=True if truncated else None,
  )
