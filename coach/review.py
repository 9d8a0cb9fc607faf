from __future__ import annotations
import logging
import os
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Sequence

from coach import TOOL
from coach.capability import AnalysisCapability, Document, Issue, invoke_capability, language_id_for
from coach.errors import RunError
from coach.model import (
  AgentContext,
  EffectiveConfig,
  Finding,
  ProgressEvent,
  RunResult,
  SelectionMeta,
  ToolInfo,
)
from coach.results import build_meta, build_summary, normalize
from coach.selection import read_text_file

_LOG = logging.getLogger(__name__)

ProgressSink = Callable[[ProgressEvent], None]


@dataclass(frozen=True)
class ReviewState:
  findings: tuple[Finding, ...] = ()
  files_analyzed: int = 0
  truncated: bool = False


def make_context(root: str, config: EffectiveConfig) -> AgentContext:
  return AgentContext(
    workspace_root=root,
    analysis_depth=config.analysis_depth,
    exclude_patterns=list(config.exclude),
  )


def make_document(path: Path, text: str) -> Document:
  return Document(path=str(path), language_id=language_id_for(str(path)), _text=lambda: text)


def absorb_issues(state: ReviewState, issues: Sequence[Issue], root: str, max_findings: int) -> ReviewState:
  """Append one analyzed file's issues, stopping as soon as the ceiling is reached."""
  findings = list(state.findings)
  truncated = False
  for issue in issues:
    findings.append(normalize(issue, root))
    if len(findings) >= max_findings:
      truncated = True
      break
  return replace(state, findings=tuple(findings), files_analyzed=state.files_analyzed + 1, truncated=truncated)


def run_review(
  file_paths: Sequence[Path],
  config: EffectiveConfig,
  capability: AnalysisCapability,
  *,
  root: str | Path,
  selection: SelectionMeta,
  config_file: str | None = None,
  tool: ToolInfo = TOOL,
  on_event: ProgressSink | None = None,
) -> RunResult:
  started = datetime.now(timezone.utc)
  root = os.path.abspath(root)
  context = make_context(root, config)
  total = len(file_paths)
  state = ReviewState()

  def emit(kind: str, index: int | None = None, path: Path | None = None) -> None:
    if on_event is None:
      return
    on_event(ProgressEvent(
      kind=kind,
      total=total,
      files_analyzed=state.files_analyzed,
      findings=len(state.findings),
      index=index,
      file_path=str(path) if path is not None else None,
    ))

  for index, path in enumerate(file_paths, start=1):
    path = Path(path)
    emit("fileStart", index, path)
    text = read_text_file(path, config.max_file_size_bytes)
    if text is None:
      _LOG.debug("Skipping file (binary/too large): %s", path)
      emit("fileSkipped", index, path)
      continue

    outcome = invoke_capability(capability, make_document(path, text), context)
    if not outcome.ok:
      raise RunError(f"Failed to analyze {path}: {outcome.error}") from outcome.error

    state = absorb_issues(state, outcome.analysis.issues, root, config.max_findings)
    if state.truncated:
      _LOG.warning("Max findings reached (%d); truncating output", config.max_findings)
      emit("truncated")
    emit("fileDone", index, path)
    if state.truncated:
      break

  ended = datetime.now(timezone.utc)
  return RunResult(
    findings=state.findings,
    summary=build_summary(state.findings, state.files_analyzed),
    meta=build_meta(
      root=root,
      started=started,
      ended=ended,
      files_analyzed=state.files_analyzed,
      tool=tool,
      selection=selection,
      config_file=config_file,
      truncated=state.truncated,
    ),
  )
