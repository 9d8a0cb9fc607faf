from __future__ import annotations


class CoachError(RuntimeError):
  kind = "runtime"


class ConfigError(CoachError):
  """Bad input: missing path, conflicting flags, unreadable config or settings."""
  kind = "config"


class RunError(CoachError):
  """Failure while a run is in progress (analysis capability, I/O, git)."""
  kind = "runtime"
