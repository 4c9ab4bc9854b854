"""
Exception Taxonomy.

All errors raised by baseline-codemod derive from `CodemodError`.

Fatal errors (abort the run before any file is processed):
- `CatalogueError`: Malformed catalogue data.
- `TargetNotFoundError`: The requested path cannot be opened at all.

Per-file errors (caught by the runner, recorded on the result):
- `ParseError`: The file is not valid for its source kind.
- `WriteError`: The rewritten file could not be persisted.

Degraded errors:
- `ClassifierUnavailable`: The classifier could not be reached. The gateway
  converts it into an `unknown` verdict; it never escapes `classify()`.
"""

from typing import Optional


class CodemodError(Exception):
  """Base class for all baseline-codemod errors."""


class CatalogueError(CodemodError):
  """Raised when catalogue data fails validation at load time."""


class TargetNotFoundError(CodemodError):
  """Raised when a batch target path or glob base does not exist."""


class ParseError(CodemodError):
  """
  Raised when a source document cannot be parsed for its declared kind.

  Attributes:
      line (int): 1-based line of the first syntax error (0 if unknown).
      column (int): 1-based column of the first syntax error (0 if unknown).
  """

  def __init__(self, message: str, line: int = 0, column: int = 0):
    super().__init__(message)
    self.line = line
    self.column = column

  def __str__(self) -> str:
    base = super().__str__()
    if self.line:
      return f"{base} (line {self.line}, column {self.column})"
    return base


class ClassifierUnavailable(CodemodError):
  """Raised by a verdict source when the external classifier fails or times out."""

  def __init__(self, feature_id: str, reason: Optional[str] = None):
    super().__init__(f"Classifier unavailable for '{feature_id}': {reason or 'unknown error'}")
    self.feature_id = feature_id
    self.reason = reason


class WriteError(CodemodError):
  """Raised when a rewritten file cannot be written back to disk."""


class LifecycleError(CodemodError):
  """Raised on an illegal file state transition."""
