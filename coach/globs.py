"""Glob matching over POSIX relative paths.

Supports `*`, `?`, `[...]`, `{a,b}` and whole-segment `**`. Wildcards match
dotfiles too.
"""
from __future__ import annotations
import re
from functools import lru_cache
from typing import Iterable


def expand_braces(pattern: str) -> list[str]:
  depth = 0
  start = -1
  for i, ch in enumerate(pattern):
    if ch == "{":
      if depth == 0:
        start = i
      depth += 1
    elif ch == "}" and depth > 0:
      depth -= 1
      if depth == 0:
        options = _split_top_level(pattern[start + 1:i])
        if len(options) > 1:
          head, tail = pattern[:start], pattern[i + 1:]
          out: list[str] = []
          for opt in options:
            out.extend(expand_braces(head + opt + tail))
          return out
  return [pattern]


def _split_top_level(body: str) -> list[str]:
  parts: list[str] = []
  depth = 0
  cur = ""
  for ch in body:
    if ch == "," and depth == 0:
      parts.append(cur)
      cur = ""
      continue
    if ch == "{":
      depth += 1
    elif ch == "}":
      depth -= 1
    cur += ch
  parts.append(cur)
  return parts


def _translate_segment(seg: str) -> str:
  out = ""
  i = 0
  while i < len(seg):
    ch = seg[i]
    if ch == "*":
      out += "[^/]*"
    elif ch == "?":
      out += "[^/]"
    elif ch == "[":
      j = seg.find("]", i + 2)
      if j == -1:
        out += re.escape(ch)
      else:
        body = seg[i + 1:j]
        if body[:1] in ("!", "^"):
          body = "^" + body[1:]
        out += "[" + body.replace("\\", "\\\\") + "]"
        i = j
    else:
      out += re.escape(ch)
    i += 1
  return out


def translate(pattern: str) -> str:
  """Regex source for one brace-free glob."""
  if pattern.startswith("./"):
    pattern = pattern[2:]
  segs = pattern.split("/")
  out = ""
  need_sep = False
  for k, seg in enumerate(segs):
    last = k == len(segs) - 1
    if seg == "**":
      if last:
        out += "(?:/.*)?" if need_sep else ".*"
      else:
        out += "(?:/.*)?/" if need_sep else "(?:.*/)?"
      need_sep = False
      continue
    if need_sep:
      out += "/"
    out += _translate_segment(seg)
    need_sep = True
  return out


@lru_cache(maxsize=256)
def _compile(patterns: tuple[str, ...]) -> re.Pattern[str] | None:
  sources = [translate(p) for raw in patterns for p in expand_braces(raw)]
  if not sources:
    return None
  return re.compile("(?s)(?:" + "|".join(sources) + ")")


@lru_cache(maxsize=256)
def _compile_dir_prefixes(patterns: tuple[str, ...]) -> re.Pattern[str] | None:
  sources = [
    translate(p[:-3])
    for raw in patterns
    for p in expand_braces(raw)
    if p.endswith("/**") and len(p) > 3
  ]
  if not sources:
    return None
  return re.compile("(?s)(?:" + "|".join(sources) + ")")


def matches_any(rel_path: str, patterns: Iterable[str]) -> bool:
  rx = _compile(tuple(patterns))
  return rx is not None and rx.fullmatch(rel_path) is not None


def is_included(rel_path: str, include: Iterable[str], exclude: Iterable[str]) -> bool:
  include = tuple(include)
  if include and not matches_any(rel_path, include):
    return False
  return not matches_any(rel_path, exclude)


def dir_excluded(rel_dir: str, exclude: Iterable[str]) -> bool:
  """True when every path under `rel_dir` is excluded by some `<prefix>/**` pattern."""
  rx = _compile_dir_prefixes(tuple(exclude))
  return rx is not None and rx.fullmatch(rel_dir) is not None
