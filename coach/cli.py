from __future__ import annotations
import argparse
import dataclasses
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable, Mapping, TextIO

import yaml
from dotenv import find_dotenv, load_dotenv

from coach import __version__
from coach.agents.analyzer import CodeAnalyzer
from coach.capability import invoke_capability
from coach.config import (
  IdeSettings,
  LoadedConfig,
  config_to_file_dict,
  default_config,
  resolve_config,
  seeded_from_ide,
  write_config,
)
from coach.errors import CoachError, ConfigError, RunError
from coach.formatters import FORMATS, format_file_summary, format_project_summary, render
from coach.llm import LLM, LLMConfig, resolve_provider
from coach.model import EffectiveConfig, ProgressEvent, should_fail
from coach.results import display_path
from coach.review import make_context, make_document, run_review
from coach.run_log import make_run_log
from coach.selection import read_text_file, select_files, select_for_review
from coach.vscode_settings import discover_ide_settings
from coach.workspace import resolve_workspace_root

_LOG = logging.getLogger(__name__)

AnalyzerFactory = Callable[[EffectiveConfig, Mapping[str, str]], Any]


def _int_arg(value: str) -> int:
  try:
    return int(value)
  except ValueError:
    raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")


def _add_provider_args(p: argparse.ArgumentParser) -> None:
  p.add_argument("--provider", help="anthropic|openai|azure|ollama|custom")
  p.add_argument("--api-key", help="Provider API key (prefer env vars in CI)")
  p.add_argument("--api-endpoint", help="Provider endpoint (azure/custom/ollama)")
  p.add_argument("--model", help="Model/deployment name")
  p.add_argument("--depth", choices=["light", "moderate", "deep"])
  p.add_argument("--no-from-vscode", dest="from_vscode", action="store_false",
                 help="Do not use VS Code user settings (codeReviewer.*)")
  p.add_argument("--vscode-settings", help="Explicit VS Code settings.json to read")


def _add_selection_args(p: argparse.ArgumentParser) -> None:
  p.add_argument("--include", nargs="+", metavar="GLOB", help="Include glob(s) (overrides config include)")
  p.add_argument("--exclude", nargs="+", metavar="GLOB", help="Exclude glob(s) (overrides config exclude)")
  p.add_argument("--max-files", type=_int_arg)
  p.add_argument("--max-file-size", type=_int_arg, metavar="BYTES")
  p.add_argument("--output", help="Write output to a file (default: stdout)")
  p.add_argument("--no-progress", dest="progress", action="store_false", help="Do not print progress to stderr")


def build_parser() -> argparse.ArgumentParser:
  p = argparse.ArgumentParser(prog="coach", description="Agent-based code review and summaries")
  p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
  p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging on stderr")

  sub = p.add_subparsers(dest="cmd", required=True)

  review = sub.add_parser("review", help="Review files and report findings.")
  review.add_argument("path", nargs="?", help="File or directory (default: current directory)")
  review.add_argument("--changed", action="store_true", help="Review only changed files (git status)")
  review.add_argument("--since", metavar="REF", help="Review files changed since a git ref")
  review.add_argument("--format", default="pretty", help="pretty|json|sarif|md")
  review.add_argument("--fail-on", choices=["none", "info", "warning", "error"])
  review.add_argument("--max-findings", type=_int_arg)
  review.add_argument("--log-dir", help="Write run artifacts (config, selection, result) under this directory")
  _add_provider_args(review)
  _add_selection_args(review)

  summarize = sub.add_parser("summarize", help="Summarize a file or a workspace.")
  summarize.add_argument("path", nargs="?", help="File or directory (default: current directory)")
  summarize.add_argument("--format", default="md", help="md|json")
  _add_provider_args(summarize)
  _add_selection_args(summarize)

  config = sub.add_parser("config", help="Configuration helpers.")
  config_sub = config.add_subparsers(dest="config_cmd", required=True)
  init = config_sub.add_parser("init", help="Write a default .coachrc.yaml")
  init.add_argument("--dir", help="Target directory (default: current directory)")
  init.add_argument("-f", "--force", action="store_true", help="Overwrite if it already exists")
  init.add_argument("--from-vscode", action="store_true", help="Seed provider/depth/exclude from VS Code settings")
  init.add_argument("--vscode-settings", help="Explicit VS Code settings.json to read")
  show = config_sub.add_parser("show", help="Print the effective configuration")
  show.add_argument("path", nargs="?", help="Directory to resolve from (default: current directory)")
  show.add_argument("--no-from-vscode", dest="from_vscode", action="store_false")
  show.add_argument("--vscode-settings", help="Explicit VS Code settings.json to read")

  return p


def cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
  """CLI layer for the config fold; unset flags are None and do not override."""
  return {
    "provider": {
      "kind": args.provider,
      "api_key": args.api_key,
      "api_endpoint": args.api_endpoint,
      "model": args.model,
    },
    "analysis_depth": args.depth,
    "include": args.include,
    "exclude": args.exclude,
    "max_files": args.max_files,
    "max_file_size_bytes": args.max_file_size,
    "max_findings": getattr(args, "max_findings", None),
    "fail_on": getattr(args, "fail_on", None),
  }


def default_analyzer(config: EffectiveConfig, env: Mapping[str, str]) -> CodeAnalyzer:
  return CodeAnalyzer(LLM(LLMConfig(provider=resolve_provider(config.provider, env))))


def _ide_settings(args: argparse.Namespace, env: Mapping[str, str]) -> IdeSettings | None:
  if args.vscode_settings:
    return discover_ide_settings(env, explicit=args.vscode_settings)
  if not args.from_vscode:
    return None
  return discover_ide_settings(env)


def _target_and_root(raw: str | None) -> tuple[Path, Path]:
  target = Path(os.path.abspath(Path(raw).expanduser() if raw else Path.cwd()))
  if not os.path.lexists(target):
    raise ConfigError(f"Path not found: {target}")
  start = target.parent if target.is_file() else target
  return target, resolve_workspace_root(start)


class ProgressPrinter:
  def __init__(self, root: Path, out: TextIO):
    self.root = root
    self.out = out

  def __call__(self, e: ProgressEvent) -> None:
    rel = display_path(e.file_path, str(self.root)) if e.file_path else ""
    if e.kind == "fileStart":
      print(f"[review] {e.index}/{e.total}: {rel}", file=self.out)
    elif e.kind == "fileSkipped":
      print(f"[skip] {e.index}/{e.total}: {rel} (binary or too large)", file=self.out)
    elif e.kind == "truncated":
      print(f"[truncated] at {e.findings} finding(s) (max findings)", file=self.out)


def _emit_output(text: str, output: str | None, stdout: TextIO) -> None:
  if output:
    out = Path(output).expanduser().absolute()
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(text, encoding="utf-8")
  else:
    stdout.write(text)


def cmd_review(args, env, analyzer_factory: AnalyzerFactory, stdout: TextIO, stderr: TextIO) -> int:
  if (args.format or "").lower() not in FORMATS:
    raise ConfigError(f"Unknown format: {args.format}")
  target, root = _target_and_root(args.path)
  loaded = resolve_config(root, cli_overrides(args), env, _ide_settings(args, env))
  config = loaded.config

  files, selection = select_for_review(
    root,
    config,
    target=None if target == root else target,
    changed=args.changed,
    since=args.since,
  )
  _LOG.info("selected %d file(s) under %s (%s)", len(files), root, selection.mode)

  log = make_run_log(Path(args.log_dir).expanduser(), selection.mode) if args.log_dir else None
  if log is not None:
    log.record_setup(config, loaded.config_file, selection, files)

  capability = analyzer_factory(config, env)
  result = run_review(
    files,
    config,
    capability,
    root=root,
    selection=selection,
    config_file=str(loaded.config_file) if loaded.config_file else None,
    on_event=ProgressPrinter(root, stderr) if args.progress else None,
  )
  output = render(result, args.format)
  if log is not None:
    log.record_result(result)
    print(f"[ok] run log: {log.root}", file=stderr)
  _emit_output(output, args.output, stdout)
  return 1 if should_fail(config.fail_on, result.findings) else 0


def _summary_format(fmt: str) -> str:
  fmt = (fmt or "md").lower()
  if fmt not in ("md", "markdown", "json"):
    raise ConfigError(f"Unknown format: {fmt}")
  return fmt


def cmd_summarize(args, env, analyzer_factory: AnalyzerFactory, stdout: TextIO, stderr: TextIO) -> int:
  fmt = _summary_format(args.format)
  target, root = _target_and_root(args.path)
  config = resolve_config(root, cli_overrides(args), env, _ide_settings(args, env)).config
  analyzer = analyzer_factory(config, env)
  context = make_context(str(root), config)

  def analyze(path: Path, text: str):
    outcome = invoke_capability(analyzer, make_document(path, text), context)
    if not outcome.ok:
      raise RunError(f"Failed to analyze {path}: {outcome.error}") from outcome.error
    return outcome.analysis

  if target.is_file():
    text = read_text_file(target, config.max_file_size_bytes)
    if text is None:
      raise ConfigError(f"File is too large or appears to be binary: {target}")
    analysis = analyze(target, text)
    if fmt == "json":
      output = json.dumps(dataclasses.asdict(analysis), ensure_ascii=False, indent=2) + "\n"
    else:
      output = format_file_summary(analysis, display_path(str(target), str(root)))
    _emit_output(output, args.output, stdout)
    return 0

  files = select_files(root, None if target == root else target, config.include, config.exclude, config.max_files)
  if not files:
    raise ConfigError("No files matched include/exclude for workspace summary")

  analyses = {}
  for i, path in enumerate(files, start=1):
    rel = display_path(str(path), str(root))
    if args.progress:
      print(f"[summarize] {i}/{len(files)}: {rel}", file=stderr)
    text = read_text_file(path, config.max_file_size_bytes)
    if text is None:
      continue
    analyses[rel] = analyze(path, text)

  total_issues = sum(len(a.issues) for a in analyses.values())
  try:
    project = analyzer.summarize_project(analyses)
  except Exception as e:
    raise RunError(f"Failed to summarize project: {e}") from e

  if fmt == "json":
    output = json.dumps({
      "rootPath": str(root),
      "filesAnalyzed": len(analyses),
      "totalIssues": total_issues,
      "projectSummary": project,
    }, ensure_ascii=False, indent=2) + "\n"
  else:
    output = format_project_summary(project, str(root), len(analyses), total_issues)
  _emit_output(output, args.output, stdout)
  return 0


def cmd_config(args, env, stdout: TextIO) -> int:
  if args.config_cmd == "init":
    directory = Path(args.dir).expanduser().absolute() if args.dir else Path.cwd()
    if args.from_vscode:
      ide = discover_ide_settings(env, explicit=args.vscode_settings)
      if ide is None:
        raise ConfigError("Could not find VS Code settings.json to seed config")
      written = write_config(directory, seeded_from_ide(ide), force=args.force)
      print(f"Wrote config (seeded from VS Code): {written}", file=stdout)
    else:
      written = write_config(directory, default_config(), force=args.force)
      print(f"Wrote config: {written}", file=stdout)
    return 0

  target = Path(os.path.abspath(args.path)) if args.path else Path.cwd()
  root = resolve_workspace_root(target)
  loaded: LoadedConfig = resolve_config(root, {}, env, _ide_settings(args, env))
  data = config_to_file_dict(loaded.config)
  if data["provider"].get("api_key"):
    data["provider"]["api_key"] = "***"
  print(f"# root: {root}", file=stdout)
  print(f"# config file: {loaded.config_file or '(none)'}", file=stdout)
  stdout.write(yaml.safe_dump(data, sort_keys=False, allow_unicode=True))
  return 0


def main(
  argv: list[str] | None = None,
  env: Mapping[str, str] | None = None,
  analyzer_factory: AnalyzerFactory | None = None,
  stdout: TextIO | None = None,
  stderr: TextIO | None = None,
) -> int:
  stdout = stdout or sys.stdout
  stderr = stderr or sys.stderr
  if env is None:
    load_dotenv(find_dotenv(usecwd=True))
    env = dict(os.environ)

  args = build_parser().parse_args(argv)
  logging.basicConfig(
    level=logging.DEBUG if args.verbose else logging.WARNING,
    format="[%(levelname)s] %(name)s: %(message)s",
    stream=stderr,
  )

  try:
    if args.cmd == "review":
      return cmd_review(args, env, analyzer_factory or default_analyzer, stdout, stderr)
    if args.cmd == "summarize":
      return cmd_summarize(args, env, analyzer_factory or default_analyzer, stdout, stderr)
    return cmd_config(args, env, stdout)
  except CoachError as e:
    print(f"[error] {' '.join(str(e).split())}", file=stderr)
    return 2


if __name__ == "__main__":
  raise SystemExit(main())
