from __future__ import annotations

import pytest

from coach.globs import dir_excluded, expand_braces, is_included, matches_any


def test_expand_braces_handles_nesting() -> None:
  assert expand_braces("**/*.{ts,tsx}") == ["**/*.ts", "**/*.tsx"]
  assert expand_braces("a{b,{c,d}}e") == ["abe", "ace", "ade"]
  assert expand_braces("{single}") == ["{single}"]


@pytest.mark.parametrize(
  "path,pattern,expected",
  [
    ("a.ts", "**/*.ts", True),
    ("src/deep/a.ts", "**/*.ts", True),
    ("src/a.ts", "*.ts", False),
    ("a.ts", "*.ts", True),
    ("src/a.tsx", "src/*.{ts,tsx}", True),
    ("node_modules/x/y.js", "**/node_modules/**", True),
    ("pkg/node_modules/y.js", "**/node_modules/**", True),
    ("src/nodes/y.js", "**/node_modules/**", False),
    (".hidden/a.py", "**/*.py", True),
    (".eslintrc.js", "*.js", True),
    ("a1.c", "a?.c", True),
    ("ab.c", "a[!b].c", False),
    ("ac.c", "a[!b].c", True),
    ("src/x/y/z.go", "src/**/z.go", True),
    ("src/z.go", "src/**/z.go", True),
  ],
)
def test_matches_any(path: str, pattern: str, expected: bool) -> None:
  assert matches_any(path, [pattern]) is expected


def test_is_included_with_empty_include_means_everything() -> None:
  assert is_included("any/file.rb", [], [])
  assert not is_included("dist/file.rb", [], ["**/dist/**"])
  assert not is_included("a.md", ["**/*.py"], [])


def test_dir_excluded_only_for_recursive_excludes() -> None:
  assert dir_excluded("node_modules", ["**/node_modules/**"])
  assert dir_excluded("a/b/build", ["**/{dist,build}/**"])
  assert not dir_excluded("src", ["**/node_modules/**"])
  assert not dir_excluded("src", ["**/*.min.js"])
