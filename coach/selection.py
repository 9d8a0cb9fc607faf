from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Iterable

from coach import git_ops
from coach.errors import ConfigError, RunError
from coach.globs import dir_excluded, is_included, matches_any
from coach.model import EffectiveConfig, SelectionMeta

_LOG = logging.getLogger(__name__)

SOURCE_EXTENSIONS = frozenset({
  ".ts", ".tsx", ".js", ".jsx",
  ".py", ".java", ".cs", ".go", ".rs",
  ".cpp", ".c", ".rb", ".php", ".swift", ".kt",
})

BINARY_SCAN_BYTES = 8000
BINARY_CONTROL_RATIO = 0.3


def has_source_extension(path: str | Path) -> bool:
  ext = os.path.splitext(str(path))[1].lower()
  return bool(ext) and ext in SOURCE_EXTENSIONS


def to_posix_rel(path: Path, base: Path) -> str:
  return os.path.relpath(path, base).replace(os.sep, "/")


def select_files(
  root: Path,
  target: str | Path | None,
  include: Iterable[str],
  exclude: Iterable[str],
  max_files: int,
) -> list[Path]:
  root = Path(os.path.abspath(root))
  target_abs = Path(os.path.abspath(root / target)) if target else root
  include = tuple(include) or ("**/*",)
  exclude = tuple(exclude)

  if not os.path.lexists(target_abs):
    raise ConfigError(f"Path not found: {target_abs}")
  if target_abs.is_file():
    return [target_abs]
  if not target_abs.is_dir():
    raise ConfigError(f"Unsupported path type: {target_abs}")

  # os.walk yields a directory's files before descending; entries are sorted
  # so the order is stable across runs.
  selected: list[Path] = []
  seen: set[Path] = set()
  for dirpath, dirnames, filenames in os.walk(target_abs, followlinks=False):
    base = Path(dirpath)
    kept_dirs = []
    for d in sorted(dirnames):
      sub = base / d
      if sub.is_symlink():
        continue
      if dir_excluded(to_posix_rel(sub, target_abs), exclude):
        _LOG.debug("pruning excluded directory %s", sub)
        continue
      kept_dirs.append(d)
    dirnames[:] = kept_dirs

    for name in sorted(filenames):
      p = base / name
      if p in seen or p.is_symlink() or not p.is_file():
        continue
      rel = to_posix_rel(p, target_abs)
      if not matches_any(rel, include) or matches_any(rel, exclude):
        continue
      if not has_source_extension(p):
        continue
      seen.add(p)
      selected.append(p)
      if len(selected) >= max_files:
        return selected
  return selected


def _filter_change_set(root: Path, rel_paths: list[str], cfg: EffectiveConfig) -> list[Path]:
  out: list[Path] = []
  for rel in rel_paths:
    abs_path = Path(os.path.abspath(root / rel))
    if not abs_path.is_file():
      continue
    if not is_included(to_posix_rel(abs_path, root), cfg.include, cfg.exclude):
      continue
    out.append(abs_path)
    if len(out) >= cfg.max_files:
      break
  return out


def select_changed(root: Path, cfg: EffectiveConfig) -> list[Path]:
  return _filter_change_set(root, git_ops.changed_files(root), cfg)


def select_since(root: Path, ref: str, cfg: EffectiveConfig) -> list[Path]:
  return _filter_change_set(root, git_ops.files_since(root, ref), cfg)


def select_for_review(
  root: Path,
  cfg: EffectiveConfig,
  target: str | Path | None = None,
  changed: bool = False,
  since: str | None = None,
) -> tuple[list[Path], SelectionMeta]:
  if changed and since:
    raise ConfigError("Use only one of --changed or --since")
  root = Path(os.path.abspath(root))
  if changed:
    return select_changed(root, cfg), SelectionMeta(mode="changed", target_path=str(root))
  if since:
    return select_since(root, since, cfg), SelectionMeta(mode="since", target_path=str(root), since_ref=since)
  files = select_files(root, target, cfg.include, cfg.exclude, cfg.max_files)
  target_path = str(Path(os.path.abspath(root / target))) if target else str(root)
  return files, SelectionMeta(mode="path", target_path=target_path)


def is_likely_binary(data: bytes) -> bool:
  window = data[:BINARY_SCAN_BYTES]
  suspicious = 0
  for byte in window:
    if byte == 0:
      return True
    if byte < 9 or 13 < byte < 32:
      suspicious += 1
  return suspicious / max(1, len(window)) > BINARY_CONTROL_RATIO


def read_text_file(path: Path, max_bytes: int) -> str | None:
  """File text, or None when it is larger than `max_bytes` or looks binary."""
  try:
    if path.stat().st_size > max_bytes:
      return None
    data = path.read_bytes()
  except OSError as e:
    raise RunError(f"Failed to read {path}: {e}") from e
  if is_likely_binary(data):
    return None
  return data.decode("utf-8", errors="replace")
