from __future__ import annotations
import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Sequence

from coach.model import EffectiveConfig, RunResult, SelectionMeta


@dataclass(frozen=True)
class RunLog:
  root: Path  # .../<log-dir>/run_<mode>/<timestamp>/

  def write_text(self, name: str, text: str) -> None:
    (self.root / name).write_text(text, encoding="utf-8")

  def write_json(self, name: str, obj) -> None:
    (self.root / name).write_text(json.dumps(obj, ensure_ascii=False, indent=2), encoding="utf-8")

  def record_setup(self, config: EffectiveConfig, config_file: Path | None, selection: SelectionMeta, files: Sequence[Path]) -> None:
    cfg = config.to_dict()
    if cfg["provider"].get("apiKey"):
      cfg["provider"]["apiKey"] = "***"
    self.write_json("config.json", {"configFile": str(config_file) if config_file else None, "config": cfg})
    self.write_json("selection.json", {"selection": selection.to_dict(), "files": [str(f) for f in files]})

  def record_result(self, result: RunResult) -> None:
    self.write_json("result.json", result.to_dict())
    self.write_text("summary.txt", result.summary + "\n")


def make_run_log(log_dir: Path, mode: str) -> RunLog:
  ts = datetime.now().strftime("%Y%m%d_%H%M%S")
  run_root = log_dir / f"run_{mode}" / ts
  run_root.mkdir(parents=True, exist_ok=True)
  return RunLog(root=run_root)
