from __future__ import annotations
import logging
import subprocess
from pathlib import Path

from coach.errors import RunError

_LOG = logging.getLogger(__name__)


class GitError(RunError):
  pass


def _run(repo: Path, args: list[str], strip: bool = True) -> str:
  _LOG.debug("git %s (cwd=%s)", " ".join(args), repo)
  try:
    p = subprocess.run(
      ["git", *args],
      cwd=str(repo),
      capture_output=True,
      text=True,
      encoding="utf-8",
    )
  except OSError as e:
    raise GitError(f"Git command failed: git {' '.join(args)}\n{e}") from e
  if p.returncode != 0:
    msg = (p.stderr or p.stdout or "").strip() or f"exit code {p.returncode}"
    raise GitError(f"Git command failed: git {' '.join(args)}\n{msg}")
  out = p.stdout or ""
  return out.strip() if strip else out


def assert_git_repo(repo: Path) -> None:
  try:
    _run(repo, ["rev-parse", "--is-inside-work-tree"])
  except GitError as e:
    raise GitError(f"Not a git repository (needed for --changed/--since): {repo}") from e


def _dedupe(paths: list[str]) -> list[str]:
  return list(dict.fromkeys(paths))


def parse_porcelain(output: str) -> list[str]:
  """Paths from `git status --porcelain=v1 -z`; renames and copies report the new path."""
  files: list[str] = []
  entries = output.split("\0")
  i = 0
  while i < len(entries):
    entry = entries[i]
    i += 1
    if len(entry) < 4:
      continue
    status, path = entry[:2], entry[3:]
    if "R" in status or "C" in status:
      i += 1  # origin path follows as its own entry
    files.append(path)
  return _dedupe(files)


def changed_files(repo: Path) -> list[str]:
  """Paths with working-tree changes, relative to `repo`."""
  assert_git_repo(repo)
  prefix = _run(repo, ["rev-parse", "--show-prefix"])
  out = _run(repo, ["status", "--porcelain=v1", "-z", "--untracked-files=all", "--", "."], strip=False)
  files = []
  for p in parse_porcelain(out):
    if prefix and p.startswith(prefix):
      p = p[len(prefix):]
    files.append(p)
  return _dedupe(files)


def files_since(repo: Path, ref: str) -> list[str]:
  """Paths changed between `ref` and HEAD, relative to `repo`."""
  assert_git_repo(repo)
  out = _run(repo, ["diff", "--name-only", "-z", "--relative", "--diff-filter=ACMRTUXB", f"{ref}...HEAD"], strip=False)
  return _dedupe([p for p in out.split("\0") if p])
