from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

SEVERITIES = ("info", "warning", "error")
FAIL_ON_LEVELS = ("none", "info", "warning", "error")
ANALYSIS_DEPTHS = ("light", "moderate", "deep")
PROVIDER_KINDS = ("anthropic", "openai", "azure", "ollama", "custom")
SELECTION_MODES = ("path", "changed", "since")

_SEVERITY_ORDER = {"info": 0, "warning": 1, "error": 2}


@dataclass(frozen=True)
class ProviderConfig:
  kind: str = "anthropic"
  api_key: str | None = None
  api_endpoint: str | None = None
  model: str | None = None

  def to_dict(self) -> dict[str, Any]:
    return {
      "provider": self.kind,
      "apiKey": self.api_key,
      "apiEndpoint": self.api_endpoint,
      "model": self.model,
    }


@dataclass(frozen=True)
class EffectiveConfig:
  provider: ProviderConfig
  analysis_depth: str
  include: tuple[str, ...]
  exclude: tuple[str, ...]
  max_files: int
  max_file_size_bytes: int
  max_findings: int
  fail_on: str

  def to_dict(self) -> dict[str, Any]:
    return {
      "provider": self.provider.to_dict(),
      "analysisDepth": self.analysis_depth,
      "include": list(self.include),
      "exclude": list(self.exclude),
      "maxFiles": self.max_files,
      "maxFileSizeBytes": self.max_file_size_bytes,
      "maxFindings": self.max_findings,
      "failOn": self.fail_on,
    }


@dataclass(frozen=True)
class SelectionMeta:
  mode: str  # path|changed|since
  target_path: str | None = None
  since_ref: str | None = None

  def to_dict(self) -> dict[str, Any]:
    d: dict[str, Any] = {"mode": self.mode}
    if self.target_path is not None:
      d["targetPath"] = self.target_path
    if self.since_ref is not None:
      d["sinceRef"] = self.since_ref
    return d


@dataclass(frozen=True)
class Position:
  line: int
  column: int | None = None

  def to_dict(self) -> dict[str, Any]:
    d: dict[str, Any] = {"line": self.line}
    if self.column is not None:
      d["column"] = self.column
    return d


@dataclass(frozen=True)
class Range:
  start: Position
  end: Position

  def to_dict(self) -> dict[str, Any]:
    return {"start": self.start.to_dict(), "end": self.end.to_dict()}


@dataclass(frozen=True)
class Finding:
  file: str
  severity: str
  category: str
  title: str
  message: str
  rule_id: str
  range: Range | None = None
  suggestion: str | None = None
  confidence: float | None = None

  def to_dict(self) -> dict[str, Any]:
    d: dict[str, Any] = {"file": self.file}
    if self.range is not None:
      d["range"] = self.range.to_dict()
    d.update({
      "severity": self.severity,
      "category": self.category,
      "title": self.title,
      "message": self.message,
    })
    if self.suggestion is not None:
      d["suggestion"] = self.suggestion
    d["ruleId"] = self.rule_id
    if self.confidence is not None:
      d["confidence"] = self.confidence
    return d


@dataclass(frozen=True)
class ToolInfo:
  name: str
  version: str

  def to_dict(self) -> dict[str, Any]:
    return {"name": self.name, "version": self.version}


@dataclass(frozen=True)
class RunMeta:
  root_path: str
  started_at: str
  ended_at: str
  duration_ms: int
  files_analyzed: int
  tool: ToolInfo
  selection: SelectionMeta
  config_file: str | None = None
  truncated: bool | None = None

  def to_dict(self) -> dict[str, Any]:
    d: dict[str, Any] = {
      "rootPath": self.root_path,
      "startedAt": self.started_at,
      "endedAt": self.ended_at,
      "durationMs": self.duration_ms,
      "filesAnalyzed": self.files_analyzed,
      "tool": self.tool.to_dict(),
    }
    if self.config_file is not None:
      d["configFile"] = self.config_file
    d["selection"] = self.selection.to_dict()
    if self.truncated:
      d["truncated"] = True
    return d


@dataclass(frozen=True)
class RunResult:
  findings: tuple[Finding, ...]
  summary: str
  meta: RunMeta

  def to_dict(self) -> dict[str, Any]:
    return {
      "findings": [f.to_dict() for f in self.findings],
      "summary": self.summary,
      "meta": self.meta.to_dict(),
    }


@dataclass(frozen=True)
class ProgressEvent:
  kind: str  # fileStart|fileDone|fileSkipped|truncated
  total: int
  files_analyzed: int
  findings: int
  index: int | None = None
  file_path: str | None = None


@dataclass
class AgentContext:
  """Per-run state handed to the analysis capability. Never shared between runs."""
  workspace_root: str
  analysis_depth: str
  exclude_patterns: list[str] = field(default_factory=list)
  analysis_cache: dict[str, Any] = field(default_factory=dict)


def compare_severity(a: str, b: str) -> int:
  return _SEVERITY_ORDER[a] - _SEVERITY_ORDER[b]


def should_fail(fail_on: str, findings) -> bool:
  if fail_on == "none":
    return False
  threshold = fail_on if fail_on in _SEVERITY_ORDER else "info"
  return any(compare_severity(f.severity, threshold) >= 0 for f in findings)
