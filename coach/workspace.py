from __future__ import annotations
import os
from pathlib import Path

CONFIG_FILES = [".coachrc.yaml", ".coachrc.yml", ".coachrc.json", ".agentreviewrc.json"]
MARKER_DIRS = [".coach", ".git"]


def resolve_workspace_root(start: str | Path) -> Path:
  """Nearest ancestor of `start` holding a config file, `.coach/` or `.git/`.

  Falls back to `start` itself (made absolute) when no marker is found.
  """
  start_abs = Path(os.path.abspath(Path(start).expanduser()))
  cur = start_abs
  while True:
    for name in CONFIG_FILES:
      if (cur / name).is_file():
        return cur
    for name in MARKER_DIRS:
      if (cur / name).is_dir():
        return cur
    if cur.parent == cur:
      break
    cur = cur.parent
  return start_abs


def find_config_file(root: str | Path) -> Path | None:
  cur = Path(os.path.abspath(root))
  while True:
    for name in CONFIG_FILES:
      p = cur / name
      if p.exists():
        return p
    if cur.parent == cur:
      return None
    cur = cur.parent
