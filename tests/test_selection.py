from __future__ import annotations

import os
from pathlib import Path

import pytest

from coach.config import default_config
from coach.errors import ConfigError
from coach.globs import is_included
from coach.selection import (
  is_likely_binary,
  read_text_file,
  select_files,
  select_for_review,
)

DEFAULT = default_config()


def _names(root: Path, files: list[Path]) -> list[str]:
  return [p.relative_to(root).as_posix() for p in files]


def test_selects_source_files_and_prunes_excluded_dirs(make_workspace) -> None:
  root = make_workspace({
    "src/a.ts": "let a = 1;\n",
    "src/b.py": "b = 2\n",
    "src/readme.md": "# notes\n",
    "node_modules/lib/index.js": "module.exports = 1;\n",
    "dist/out.js": "x\n",
    "Makefile": "all:\n",
  })

  files = select_files(root, None, DEFAULT.include, DEFAULT.exclude, DEFAULT.max_files)

  assert _names(root, files) == ["src/a.ts", "src/b.py"]
  for p in files:
    assert is_included(p.relative_to(root).as_posix(), DEFAULT.include, DEFAULT.exclude)


def test_allow_list_applies_even_with_permissive_include(make_workspace) -> None:
  root = make_workspace({"a.ts": "", "b.txt": "", "c.json": "{}", "d.KT": ""})

  files = select_files(root, None, ["**/*"], [], 50)

  assert _names(root, files) == ["a.ts", "d.KT"]


def test_empty_include_means_everything(make_workspace) -> None:
  root = make_workspace({"x/y.go": "package y\n"})

  assert _names(root, select_files(root, None, [], [], 10)) == ["x/y.go"]


def test_selection_is_deterministic_and_without_duplicates(make_workspace) -> None:
  root = make_workspace({f"pkg{i}/m{j}.py": "" for i in range(3) for j in range(3)})

  first = select_files(root, None, DEFAULT.include, DEFAULT.exclude, 100)
  second = select_files(root, None, DEFAULT.include, DEFAULT.exclude, 100)

  assert first == second
  assert len(first) == len(set(first)) == 9


def test_max_files_caps_selection_deterministically(make_workspace) -> None:
  root = make_workspace({"b.ts": "", "a.ts": "", "sub/c.ts": ""})

  picks = {tuple(select_files(root, None, ["**/*.ts"], [], 1)) for _ in range(3)}

  assert len(picks) == 1
  (only,) = picks
  assert _names(root, list(only)) == ["a.ts"]


def test_explicit_file_is_returned_as_is(make_workspace) -> None:
  root = make_workspace({"notes.txt": "plain", "node_modules/x.js": ""})

  assert select_files(root, "notes.txt", ["**/*.py"], ["**/*.txt"], 5) == [root / "notes.txt"]
  assert select_files(root, "node_modules/x.js", DEFAULT.include, DEFAULT.exclude, 5) == [root / "node_modules" / "x.js"]


def test_target_subdirectory_patterns_are_relative_to_it(make_workspace) -> None:
  root = make_workspace({"app/main.rs": "", "app/nested/lib.rs": "", "other/x.rs": ""})

  files = select_files(root, "app", ["*.rs"], [], 10)

  assert _names(root, files) == ["app/main.rs"]


def test_missing_path_is_config_error(make_workspace) -> None:
  root = make_workspace({})

  with pytest.raises(ConfigError, match="Path not found"):
    select_files(root, "nope", [], [], 10)


@pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="needs named pipes")
def test_unsupported_path_type_is_config_error(make_workspace) -> None:
  root = make_workspace({})
  os.mkfifo(root / "pipe")

  with pytest.raises(ConfigError, match="Unsupported path type"):
    select_files(root, "pipe", [], [], 10)


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="needs symlinks")
def test_symlinks_are_not_followed(make_workspace, tmp_path: Path) -> None:
  outside = tmp_path / "outside"
  outside.mkdir()
  (outside / "secret.py").write_text("", encoding="utf-8")
  root = make_workspace({"real.py": ""})
  try:
    os.symlink(outside, root / "linked_dir")
    os.symlink(root / "real.py", root / "alias.py")
  except OSError:
    pytest.skip("symlinks not permitted here")

  files = select_files(root, None, ["**/*.py"], [], 10)

  assert _names(root, files) == ["real.py"]


def test_select_for_review_rejects_both_git_modes(make_workspace) -> None:
  root = make_workspace({})

  with pytest.raises(ConfigError, match="only one of --changed or --since"):
    select_for_review(root, DEFAULT, changed=True, since="HEAD~1")


def test_select_for_review_path_meta(make_workspace) -> None:
  root = make_workspace({"src/a.ts": ""})

  files, meta = select_for_review(root, DEFAULT, target="src")

  assert _names(root, files) == ["src/a.ts"]
  assert meta.mode == "path"
  assert meta.target_path == str(root / "src")
  assert meta.since_ref is None


@pytest.mark.parametrize(
  "data,expected",
  [
    (b"", False),
    (b"plain text\nwith lines\ttabs\r\n", False),
    (b"abc\x00def", True),
    (bytes(range(1, 9)) * 10, True),
    (b"ab\x01" + b"x" * 100, False),
    ("café ☃".encode("utf-8"), False),
  ],
)
def test_is_likely_binary(data: bytes, expected: bool) -> None:
  assert is_likely_binary(data) is expected


def test_nul_beyond_scan_window_is_ignored() -> None:
  assert not is_likely_binary(b"a" * 8000 + b"\x00")


def test_read_text_file_skips_large_and_binary(tmp_path: Path) -> None:
  big = tmp_path / "big.py"
  big.write_text("x" * 2048, encoding="utf-8")
  blob = tmp_path / "blob.py"
  blob.write_bytes(b"\x00\x01\x02")
  ok = tmp_path / "ok.py"
  ok.write_bytes(b"print('hi')\n\xff")

  assert read_text_file(big, 1024) is None
  assert read_text_file(blob, 1024) is None
  assert read_text_file(ok, 1024) == "print('hi')\n�"
