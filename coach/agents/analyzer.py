from __future__ import annotations
import hashlib
import json
import logging
import os
import re
from typing import Any

from coach.agents.analyzer_prompt import (
  PROJECT_SYSTEM_PROMPT,
  PROJECT_USER_PROMPT,
  SYSTEM_PROMPT,
  USER_PROMPT,
)
from coach.capability import Document, FileAnalysis, Issue
from coach.llm import LLM
from coach.model import AgentContext

_LOG = logging.getLogger(__name__)

MAX_CODE_CHARS = 15000
HOTSPOT_MIN_ISSUES = 4

_FENCE_RE = re.compile(r"```json\n?([\s\S]*?)\n?```")
_BRANCH_RE = [re.compile(p) for p in (
  r"\bif\b", r"\belse\b", r"\bfor\b", r"\bwhile\b", r"\bswitch\b",
  r"\bcatch\b", r"\bexcept\b", r"&&", r"\|\|", r"\bcase\b",
)]
_SEVERITY_RANK = {"info": 0, "warning": 1, "error": 2, "critical": 3}


def extract_json(text: str) -> Any:
  m = _FENCE_RE.search(text)
  return json.loads(m.group(1) if m else text)


def truncate_code(code: str, max_chars: int = MAX_CODE_CHARS) -> str:
  if len(code) <= max_chars:
    return code
  out = []
  count = 0
  for line in code.split("\n"):
    if count + len(line) > max_chars:
      out.append("// ... (truncated)")
      break
    out.append(line)
    count += len(line) + 1
  return "\n".join(out)


def add_line_numbers(code: str) -> str:
  lines = code.split("\n")
  width = len(str(len(lines)))
  return "\n".join(f"{str(i).rjust(width)} | {line}" for i, line in enumerate(lines, start=1))


def compute_metrics(code: str) -> dict[str, Any]:
  lines = code.split("\n")
  comments = sum(1 for line in lines if line.strip().startswith(("//", "#", "/*", "*")))
  loc = sum(1 for line in lines if line.strip()) - comments
  cyclomatic = 1
  for line in lines:
    cyclomatic += sum(1 for rx in _BRANCH_RE if rx.search(line))
  return {
    "totalLines": len(lines),
    "linesOfCode": loc,
    "commentLines": comments,
    "cyclomaticComplexity": cyclomatic,
  }


def _as_list(value: Any) -> list:
  return value if isinstance(value, list) else []


def _norm(s: str | None) -> str:
  return " ".join((s or "").lower().split())


def _int_or(value: Any, default: int | None) -> int | None:
  if isinstance(value, bool):
    return default
  if isinstance(value, (int, float)) and value:
    return int(value)
  return default


def _issue_severity(raw: Any) -> str:
  value = str(raw or "").strip().lower()
  return value if value in _SEVERITY_RANK else "warning"


def parse_issues(raw_issues: Any, file_path: str) -> list[Issue]:
  if not isinstance(raw_issues, list):
    return []
  seen_exact: set[tuple] = set()
  seen_fingerprint: set[tuple] = set()
  issues: list[Issue] = []
  for item in raw_issues:
    if not isinstance(item, dict):
      continue
    start = _int_or(item.get("startLine"), 1)
    end = _int_or(item.get("endLine"), start)
    severity = _issue_severity(item.get("severity"))
    category = str(item.get("category") or "code_smell").strip().lower()
    title = str(item.get("title") or "Unnamed Issue")
    exact = (start, end, severity, category, title.strip())
    if exact in seen_exact:
      continue
    seen_exact.add(exact)
    description = str(item.get("description") or "")
    suggestion = item.get("suggestion")
    # models repeat one finding with different ranges; keep the first
    fingerprint = (category, severity, _norm(title), _norm(description), _norm(suggestion))
    if fingerprint in seen_fingerprint:
      continue
    seen_fingerprint.add(fingerprint)
    confidence = item.get("confidence")
    issues.append(Issue(
      file_path=file_path,
      start_line=start,
      start_column=_int_or(item.get("startColumn"), None),
      end_line=end,
      end_column=_int_or(item.get("endColumn"), None),
      severity=severity,
      category=category,
      title=title,
      description=description,
      suggestion=str(suggestion) if suggestion else None,
      confidence=float(confidence) if isinstance(confidence, (int, float)) and not isinstance(confidence, bool) else 0.8,
    ))
  return issues


def parse_analysis_response(text: str, file_path: str) -> tuple[list[Issue], dict[str, Any], dict[str, Any]]:
  try:
    parsed = extract_json(text)
  except (json.JSONDecodeError, TypeError) as e:
    _LOG.warning("Failed to parse analysis response for %s: %s", file_path, e)
    return [], {"purpose": "Analysis failed - could not parse response"}, {}
  if not isinstance(parsed, dict):
    return [], {"purpose": "Analysis failed - could not parse response"}, {}
  summary = parsed.get("summary") if isinstance(parsed.get("summary"), dict) else {}
  metrics = parsed.get("metrics") if isinstance(parsed.get("metrics"), dict) else {}
  return (
    parse_issues(parsed.get("issues"), file_path),
    {
      "purpose": summary.get("purpose") or "No summary available",
      "components": summary.get("components") or [],
      "dependencies": summary.get("dependencies") or [],
      "publicApi": summary.get("publicApi") or [],
      "complexity": summary.get("complexity") or "moderate",
    },
    {k: v for k, v in metrics.items() if k == "cognitiveComplexity"},
  )


class CodeAnalyzer:
  """Analysis capability backed by a chat completion provider."""

  def __init__(self, llm: LLM):
    self.llm = llm

  def analyze(self, document: Document, context: AgentContext) -> FileAnalysis:
    code = document.get_text()
    key = f"{document.path}:{hashlib.sha1(code.encode('utf-8')).hexdigest()}"
    cached = context.analysis_cache.get(key)
    if cached is not None:
      return cached

    messages = [
      {"role": "system", "content": SYSTEM_PROMPT},
      {"role": "user", "content": USER_PROMPT.format(
        language=document.language_id,
        file_name=os.path.basename(document.path) or "unknown",
        depth=context.analysis_depth,
        code=add_line_numbers(truncate_code(code)),
      )},
    ]
    response = self.llm.chat(messages)
    issues, summary, extra_metrics = parse_analysis_response(response, document.path)
    analysis = FileAnalysis(
      file_path=document.path,
      language_id=document.language_id,
      issues=issues,
      summary=summary,
      metrics={**compute_metrics(code), **extra_metrics},
    )
    context.analysis_cache[key] = analysis
    return analysis

  def summarize_project(self, analyses: dict[str, FileAnalysis]) -> dict[str, Any]:
    data = [
      {
        "path": path,
        "issues": len(a.issues),
        "summary": a.summary.get("purpose", ""),
        "complexity": a.metrics.get("cyclomaticComplexity"),
      }
      for path, a in analyses.items()
    ]
    response = self.llm.chat([
      {"role": "system", "content": PROJECT_SYSTEM_PROMPT},
      {"role": "user", "content": PROJECT_USER_PROMPT.format(analysis_data=json.dumps(data, indent=2))},
    ])
    hotspots = sorted(
      (
        {
          "path": path,
          "reason": f"{len(a.issues)} issues found",
          "issueCount": len(a.issues),
          "severity": max((i.severity for i in a.issues), key=lambda s: _SEVERITY_RANK.get(s, 0)),
        }
        for path, a in analyses.items()
        if len(a.issues) >= HOTSPOT_MIN_ISSUES
      ),
      key=lambda h: -h["issueCount"],
    )[:10]
    try:
      parsed = extract_json(response)
    except (json.JSONDecodeError, TypeError) as e:
      _LOG.warning("Failed to parse project summary: %s", e)
      parsed = {}
    if not isinstance(parsed, dict):
      parsed = {}
    modules = [
      {
        "name": m.get("name", ""),
        "path": m.get("path", ""),
        "purpose": m.get("purpose", ""),
        "healthScore": m.get("healthScore") or 80,
        "issueCount": m.get("issueCount") or 0,
      }
      for m in _as_list(parsed.get("modules"))
      if isinstance(m, dict)
    ]
    return {
      "overview": parsed.get("overview") or "Analysis complete",
      "architecture": parsed.get("architecture") or "",
      "modules": modules,
      "hotspots": hotspots,
      "recommendations": [str(r) for r in _as_list(parsed.get("recommendations"))],
    }
