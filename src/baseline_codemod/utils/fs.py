"""
Filesystem helpers: target expansion, source reading, atomic writes.
"""

import glob
import os
import re
import shutil
import tempfile
from contextlib import suppress
from pathlib import Path
from typing import Iterable, List

from baseline_codemod.errors import TargetNotFoundError

_MAGIC_RE = re.compile(r"[*?[]")
_SKIP_DIRS = {"node_modules", ".git"}


def _has_magic(pattern: str) -> bool:
  return _MAGIC_RE.search(pattern) is not None


def _glob_base(pattern: str) -> Path:
  """Longest leading path of `pattern` without glob characters."""
  parts: List[str] = []
  for part in Path(pattern).parts:
    if _has_magic(part):
      break
    parts.append(part)
  return Path(*parts) if parts else Path(".")


def _is_skipped(path: Path, root: Path) -> bool:
  rel = path.relative_to(root)
  return any(part in _SKIP_DIRS for part in rel.parts[:-1])


def expand_targets(pattern: str, extensions: Iterable[str]) -> List[Path]:
  """
  Expands a CLI target into a sorted list of files.

  - A plain file path yields itself.
  - A directory yields its files with a supported extension, recursively
    (skipping `node_modules` and `.git`).
  - A glob (``**`` supported) yields every matching file.

  Args:
      pattern: Path, directory or glob.
      extensions: Lower-case extensions accepted when expanding a directory.

  Returns:
      List[Path]: Matching files (possibly empty for a glob).

  Raises:
      TargetNotFoundError: If the path, or the glob's base directory, does not exist.
  """
  exts = {e.lower() for e in extensions}

  if not _has_magic(pattern):
    path = Path(pattern)
    if not path.exists():
      raise TargetNotFoundError(f"Input not found: {pattern}")
    if path.is_dir():
      return sorted(
        p for p in path.rglob("*") if p.is_file() and p.suffix.lower() in exts and not _is_skipped(p, path)
      )
    return [path]

  base = _glob_base(pattern)
  if not base.exists():
    raise TargetNotFoundError(f"Base directory of pattern does not exist: {base}")
  return sorted(Path(p) for p in glob.glob(pattern, recursive=True) if Path(p).is_file())


def read_source(path: Path) -> str:
  """
  Reads a source file as UTF-8, preserving line endings.

  Raises:
      OSError: If the file cannot be read.
      UnicodeDecodeError: If the file is not valid UTF-8.
  """
  with open(path, "rt", encoding="utf-8", newline="") as f:
    return f.read()


def atomic_write_text(path: Path, text: str) -> None:
  """
  Replaces a file's content atomically.

  The text is written to a temporary file in the same directory, flushed to
  disk, given the original file's permissions, then renamed over the target.
  Readers observe either the old or the new content, never a partial write.

  Raises:
      OSError: If any step fails (the temporary file is removed).
  """
  fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
  try:
    with os.fdopen(fd, "wt", encoding="utf-8", newline="") as f:
      f.write(text)
      f.flush()
      os.fsync(f.fileno())
    if path.exists():
      shutil.copymode(path, tmp_name)
    os.replace(tmp_name, path)
  except BaseException:
    with suppress(FileNotFoundError):
      os.unlink(tmp_name)
    raise
