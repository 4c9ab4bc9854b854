"""
Data structures flowing through the codemod pipeline.

This module defines the Pydantic models produced by each stage:

- `MatchRecord`: One located occurrence of a catalogued pattern (Matcher).
- `Transformation`: One applied rewrite (Rewrite Engine).
- `TransformResult`: Per-file aggregate in transform mode (Orchestrator).
- `UnsafeFeature` / `AnalysisResult`: Per-file aggregate in read-only mode.

Offsets are character offsets into the original source, never into a
partially rewritten intermediate.
"""

from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from baseline_codemod.enums import FileState, SafetyTier, SourceKind


class MatchRecord(BaseModel):
  """
  A concrete occurrence of a catalogued pattern. Immutable once created.
  """

  model_config = ConfigDict(frozen=True)

  feature_id: str
  order: int = Field(..., description="Catalogue declaration index of the feature.")
  start: int = Field(..., description="Start character offset (inclusive).")
  end: int = Field(..., description="End character offset (exclusive).")
  line: int = Field(..., description="1-based line of the start offset.")
  column: int = Field(..., description="1-based column of the start offset.")
  text: str = Field(..., description="The literal matched text.")
  captures: Tuple[Optional[str], ...] = Field(default=(), description="Positional captures; None when absent.")
  analysis_only: bool = False
  delimiter: Optional[str] = Field(
    None, description="Quote character of the enclosing script literal, for matches embedded in one."
  )

  @property
  def span(self) -> Tuple[int, int]:
    return (self.start, self.end)

  def overlaps(self, other: "MatchRecord") -> bool:
    """True if the half-open ranges [start, end) intersect."""
    return self.start < other.end and other.start < self.end


class Transformation(BaseModel):
  """
  The applied output of one rewrite rule against one match.
  """

  feature_id: str
  start: int
  end: int
  line: int
  column: int
  original: str
  replacement: str
  explanation: str
  tier: Optional[SafetyTier] = Field(None, description="Effective safety tier that triggered the rewrite.")


class TransformResult(BaseModel):
  """
  Per-file result of a transform pass.
  """

  path: Optional[Path] = None
  source_kind: Optional[SourceKind] = None
  has_changes: bool = False
  transformations: List[Transformation] = Field(default_factory=list)
  source: str = Field(default="", description="The final (possibly unchanged) source text.")
  history: List[FileState] = Field(
    default_factory=lambda: [FileState.UNPROCESSED], description="Lifecycle states visited, in order."
  )
  conflicts: List[MatchRecord] = Field(
    default_factory=list, description="Matches dropped because they overlap an earlier rewrite."
  )
  unrewritable: List[MatchRecord] = Field(
    default_factory=list, description="Matches whose rule references a capture the match lacks."
  )
  discarded: List[Transformation] = Field(
    default_factory=list, description="Rewrites dropped because the script no longer parsed with them applied."
  )
  errors: List[str] = Field(default_factory=list)
  parse_error: Optional[str] = None
  write_error: Optional[str] = None

  @property
  def state(self) -> FileState:
    return self.history[-1]

  @property
  def has_errors(self) -> bool:
    return len(self.errors) > 0


class UnsafeFeature(BaseModel):
  """
  A reported (not rewritten) occurrence of a non-safe feature.
  """

  feature_id: str
  name: str
  line: int
  column: int
  matched_text: str
  safety: SafetyTier
  reason: str


class AnalysisResult(BaseModel):
  """
  Per-file result of a read-only analysis pass.
  """

  path: Optional[Path] = None
  unsafe_features: List[UnsafeFeature] = Field(default_factory=list)
  errors: List[str] = Field(default_factory=list)
  parse_error: Optional[str] = None

  @property
  def has_issues(self) -> bool:
    return len(self.unsafe_features) > 0
