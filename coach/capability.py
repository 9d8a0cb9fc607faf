from __future__ import annotations
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from coach.model import AgentContext

_LANGUAGE_IDS = {
  ".ts": "typescript",
  ".tsx": "typescriptreact",
  ".js": "javascript",
  ".jsx": "javascriptreact",
  ".py": "python",
  ".java": "java",
  ".cs": "csharp",
  ".go": "go",
  ".rs": "rust",
  ".cpp": "cpp",
  ".c": "c",
  ".rb": "ruby",
  ".php": "php",
  ".swift": "swift",
  ".kt": "kotlin",
}


def language_id_for(path: str) -> str:
  return _LANGUAGE_IDS.get(os.path.splitext(path)[1].lower(), "plaintext")


@dataclass(frozen=True)
class Document:
  path: str
  language_id: str
  _text: Callable[[], str] = field(repr=False)

  def get_text(self) -> str:
    return self._text()


@dataclass(frozen=True)
class Issue:
  """One issue as reported by the analysis capability, before normalization."""
  file_path: str
  severity: str
  title: str = ""
  description: str = ""
  category: str | None = None
  start_line: int | None = None
  start_column: int | None = None
  end_line: int | None = None
  end_column: int | None = None
  suggestion: str | None = None
  confidence: float | None = None


@dataclass(frozen=True)
class FileAnalysis:
  file_path: str
  language_id: str
  issues: list[Issue]
  summary: dict[str, Any] = field(default_factory=dict)
  metrics: dict[str, Any] = field(default_factory=dict)


class AnalysisCapability(Protocol):
  def analyze(self, document: Document, context: AgentContext) -> FileAnalysis: ...


@dataclass(frozen=True)
class AnalysisOutcome:
  analysis: FileAnalysis | None = None
  error: BaseException | None = None

  @property
  def ok(self) -> bool:
    return self.error is None


def invoke_capability(capability: AnalysisCapability, document: Document, context: AgentContext) -> AnalysisOutcome:
  try:
    return AnalysisOutcome(analysis=capability.analyze(document, context))
  except Exception as e:
    return AnalysisOutcome(error=e)
