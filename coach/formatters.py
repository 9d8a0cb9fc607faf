from __future__ import annotations
import json
import os
from pathlib import Path
from typing import Any

from coach.capability import FileAnalysis
from coach.errors import ConfigError
from coach.model import Finding, RunResult

FORMATS = ("pretty", "json", "sarif", "md", "markdown")

_ICONS = {"error": "✖", "warning": "⚠", "info": "ℹ"}
_SARIF_LEVELS = {"info": "note", "warning": "warning", "error": "error"}


def format_pretty(result: RunResult) -> str:
  lines = [result.summary]
  for f in result.findings:
    loc = ""
    if f.range is not None:
      loc = f":{f.range.start.line}"
      if f.range.start.column:
        loc += f":{f.range.start.column}"
    lines.append(f"{_ICONS[f.severity]} {f.severity.upper()} {f.file}{loc} {f.title}")
    if f.message:
      lines.append(f"  {f.message}")
    if f.suggestion:
      lines.append(f"  Suggestion: {f.suggestion}")
  lines.append("")
  return "\n".join(lines) + "\n"


def format_json(result: RunResult) -> str:
  return json.dumps(result.to_dict(), ensure_ascii=False, indent=2) + "\n"


def _sarif_location(root: str, f: Finding) -> list[dict[str, Any]]:
  abs_path = f.file if os.path.isabs(f.file) else os.path.join(root, f.file)
  loc: dict[str, Any] = {"artifactLocation": {"uri": Path(abs_path).as_uri()}}
  if f.range is not None:
    region = {
      "startLine": f.range.start.line,
      "startColumn": f.range.start.column,
      "endLine": f.range.end.line,
      "endColumn": f.range.end.column,
    }
    loc["region"] = {k: v for k, v in region.items() if v is not None}
  return [{"physicalLocation": loc}]


def format_sarif(result: RunResult) -> str:
  rules: dict[str, dict[str, Any]] = {}
  for f in result.findings:
    rid = f.rule_id or f.category
    if rid not in rules:
      rules[rid] = {"id": rid, "name": f.category, "shortDescription": {"text": f.title}}
  results = []
  for f in result.findings:
    props: dict[str, Any] = {"category": f.category}
    if f.confidence is not None:
      props["confidence"] = f.confidence
    results.append({
      "ruleId": f.rule_id or f.category,
      "level": _SARIF_LEVELS[f.severity],
      "message": {"text": f"{f.title}: {f.message}" if f.message else f.title},
      "locations": _sarif_location(result.meta.root_path, f),
      "properties": props,
    })
  log = {
    "$schema": "https://json.schemastore.org/sarif-2.1.0.json",
    "version": "2.1.0",
    "runs": [{
      "tool": {"driver": {
        "name": result.meta.tool.name,
        "version": result.meta.tool.version,
        "rules": list(rules.values()),
      }},
      "results": results,
    }],
  }
  return json.dumps(log, ensure_ascii=False, indent=2) + "\n"


def _md_cell(s: str) -> str:
  return s.replace("|", "\\|").replace("\r\n", " ").replace("\n", " ")


def format_markdown(result: RunResult) -> str:
  lines = ["# Coach", "", result.summary, ""]
  if not result.findings:
    lines += ["No findings.", ""]
    return "\n".join(lines)
  lines.append("| Severity | File | Line | Title |")
  lines.append("|---|---|---:|---|")
  for f in result.findings:
    line = str(f.range.start.line) if f.range is not None else ""
    lines.append(f"| {f.severity} | {_md_cell(f.file)} | {line} | {_md_cell(f.title)} |")
  lines.append("")
  return "\n".join(lines)


def render(result: RunResult, fmt: str) -> str:
  fmt = (fmt or "pretty").lower()
  if fmt == "pretty":
    return format_pretty(result)
  if fmt == "json":
    return format_json(result)
  if fmt == "sarif":
    return format_sarif(result)
  if fmt in ("md", "markdown"):
    return format_markdown(result)
  raise ConfigError(f"Unknown format: {fmt}")


def format_file_summary(analysis: FileAnalysis, display_path: str) -> str:
  s = analysis.summary
  lines = [f"# {display_path}", "", f"**Language:** {analysis.language_id}", "", "## Purpose", "", str(s.get("purpose", "")), ""]
  for title, key in (("Components", "components"), ("Dependencies", "dependencies"), ("Public API", "publicApi")):
    items = s.get(key) or []
    if items:
      lines += [f"## {title}", ""] + [f"- {item}" for item in items] + [""]
  if analysis.metrics:
    lines += ["## Metrics", ""] + [f"- {k}: {v}" for k, v in analysis.metrics.items()] + [""]
  if analysis.issues:
    lines += [f"## Issues Found ({len(analysis.issues)})", ""]
    for issue in analysis.issues:
      lines.append(f"### {_ICONS.get(issue.severity, '✖')} {issue.title}")
      lines.append("")
      lines.append(f"**Line {issue.start_line}** | {issue.category} | {issue.severity}")
      lines.append("")
      if issue.description:
        lines += [issue.description, ""]
      if issue.suggestion:
        lines += [f"**Suggestion:** {issue.suggestion}", ""]
  return "\n".join(lines)


def format_project_summary(summary: dict[str, Any], root: str, files_analyzed: int, total_issues: int) -> str:
  lines = ["# Project Summary", "", f"- Root: {root}", f"- Files analyzed: {files_analyzed}", f"- Total issues: {total_issues}", ""]
  lines += ["## Overview", "", summary.get("overview", ""), ""]
  if summary.get("architecture"):
    lines += ["## Architecture", "", summary["architecture"], ""]
  if summary.get("modules"):
    lines += ["## Modules", ""]
    for m in summary["modules"]:
      lines.append(f"- **{m['name']}** ({m['path']}): {m['purpose']}")
    lines.append("")
  if summary.get("hotspots"):
    lines += ["## Hotspots", ""]
    for h in summary["hotspots"]:
      lines.append(f"- {_ICONS.get(h['severity'], '✖')} {h['path']} ({h['issueCount']} issues): {h['reason']}")
    lines.append("")
  if summary.get("recommendations"):
    lines += ["## Recommendations", ""] + [f"{i}. {r}" for i, r in enumerate(summary["recommendations"], start=1)] + [""]
  return "\n".join(lines)
