"""
Pydantic Schemas for the Feature Catalogue.

This module defines the data structure of catalogue files and of the built-in
catalogue. Every entry is validated once at load time:

- Match patterns are a tagged variant discriminated by ``kind``:
  ``StructuralPattern`` (a predicate over a parsed syntax node) or
  ``TextualPattern`` (a regular expression over literal or document text).
- Regular expressions are compiled during validation, so a malformed
  expression fails at startup rather than during a batch.
- Rewrite templates reference captures positionally (``$1`` .. ``$9``) and the
  full matched text (``$&``).
"""

import re
from functools import lru_cache
from typing import Annotated, List, Literal, Optional, Pattern, Sequence, Set, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from baseline_codemod.enums import SourceKind, StructuralNode

PLACEHOLDER_RE = re.compile(r"\$(&|[1-9])")

# Named captures available to structural patterns.
# arg:N is the Nth call argument (absent when missing or a spread element).
STRUCTURAL_CAPTURES = {"receiver", "object", "callee", "arguments"}
_ARG_CAPTURE_RE = re.compile(r"^arg:(\d+)$")


@lru_cache(maxsize=None)
def compile_regex(regex: str, ignore_case: bool = False) -> Pattern[str]:
  """
  Compiles (and memoizes) a catalogue regular expression.

  Args:
      regex: The expression source.
      ignore_case: Whether to compile with `re.IGNORECASE`.

  Returns:
      Pattern: The compiled expression.
  """
  return re.compile(regex, re.IGNORECASE if ignore_case else 0)


class StructuralPattern(BaseModel):
  """
  Matches a syntax node by shape.

  - ``node="call"``: ``callee`` names a bare identifier callee (``fetch(...)``),
    or ``property_name`` (optionally with ``object_name``) names a member callee
    (``x.replaceAll(...)``, ``Promise.allSettled(...)``).
  - ``node="new"``: ``constructor`` names the constructed class.
  - ``node="member"``: ``property_name`` (optionally ``object_name``) names the access.
  """

  model_config = ConfigDict(extra="forbid")

  kind: Literal["structural"] = "structural"
  node: StructuralNode
  callee: Optional[str] = Field(None, description="Identifier callee for call patterns.")
  object_name: Optional[str] = Field(None, description="Exact source text of the member object.")
  property_name: Optional[str] = Field(None, description="Member property name.")
  constructor: Optional[str] = Field(None, description="Constructor name for new-expression patterns.")
  captures: List[str] = Field(default_factory=list, description="Sub-expressions captured as $1, $2, ...")
  skip_feature_detected: bool = Field(
    False,
    description="Skip call sites guarded by a feature test on the same callee (e.g. typeof fetch).",
  )
  analysis_only: bool = Field(False, description="Report matches but never rewrite them.")

  @field_validator("captures")
  @classmethod
  def validate_captures(cls, v: List[str]) -> List[str]:
    """
    Ensures every capture name is supported.

    Raises:
        ValueError: If a capture name is not recognised.
    """
    for name in v:
      if name not in STRUCTURAL_CAPTURES and not _ARG_CAPTURE_RE.match(name):
        raise ValueError(f"Unknown capture '{name}'. Expected one of {sorted(STRUCTURAL_CAPTURES)} or 'arg:N'.")
    if len(v) > 9:
      raise ValueError("At most 9 captures are addressable ($1..$9).")
    return v

  @model_validator(mode="after")
  def validate_shape(self) -> "StructuralPattern":
    if self.node == StructuralNode.CALL:
      if not self.callee and not self.property_name:
        raise ValueError("Call patterns require 'callee' or 'property_name'.")
      if self.callee and (self.property_name or self.object_name):
        raise ValueError("Call patterns take either 'callee' or a member shape, not both.")
    elif self.node == StructuralNode.NEW:
      if not self.constructor:
        raise ValueError("New patterns require 'constructor'.")
    elif self.node == StructuralNode.MEMBER:
      if not self.property_name:
        raise ValueError("Member patterns require 'property_name'.")
    return self


class TextualPattern(BaseModel):
  """
  Matches text by regular expression.

  Applied to the whole document for stylesheet and markup sources, and to the
  literal content of string and template literals in scripts. Regex groups
  become the positional captures.
  """

  model_config = ConfigDict(extra="forbid")

  kind: Literal["textual"] = "textual"
  regex: str
  ignore_case: bool = False
  analysis_only: bool = Field(False, description="Report matches but never rewrite them.")

  @model_validator(mode="after")
  def validate_regex(self) -> "TextualPattern":
    try:
      compiled = compile_regex(self.regex, self.ignore_case)
    except re.error as e:
      raise ValueError(f"Invalid regex pattern '{self.regex}': {e}")
    if compiled.search("") is not None:
      raise ValueError(f"Regex pattern '{self.regex}' matches the empty string.")
    return self

  @property
  def compiled(self) -> Pattern[str]:
    """The compiled expression."""
    return compile_regex(self.regex, self.ignore_case)


MatchPattern = Annotated[Union[StructuralPattern, TextualPattern], Field(discriminator="kind")]


class RewriteRule(BaseModel):
  """
  Replacement template plus a human-readable explanation.
  """

  model_config = ConfigDict(extra="forbid")

  template: str
  explanation: str

  def referenced_captures(self) -> Set[int]:
    """
    Returns:
        Set[int]: The 1-based capture indices the template references.
    """
    return {int(m.group(1)) for m in PLACEHOLDER_RE.finditer(self.template) if m.group(1) != "&"}

  def can_render(self, captures: Sequence[Optional[str]]) -> bool:
    """
    Checks that every capture the template references is present.

    Args:
        captures: Positional captures of a match (None marks an absent capture).

    Returns:
        bool: True if the template would not lose a referenced sub-expression.
    """
    for index in self.referenced_captures():
      if index > len(captures) or captures[index - 1] is None:
        return False
    return True


class FeatureEntry(BaseModel):
  """
  A catalogued web feature: its patterns, where they apply, and its rewrite.
  """

  model_config = ConfigDict(extra="forbid")

  id: str = Field(..., description="Feature identifier, e.g. 'string-replaceall'.")
  title: str = Field("", description="Human readable feature name.")
  patterns: List[MatchPattern] = Field(..., min_length=1)
  source_kinds: List[SourceKind] = Field(default_factory=lambda: [SourceKind.SCRIPT])
  scan_embedded: bool = Field(
    False,
    description="Also apply textual patterns inside script string and template literals.",
  )
  classifier_key: Optional[str] = Field(None, description="Key sent to the classifier (defaults to id).")
  rewrite: Optional[RewriteRule] = None

  @field_validator("id")
  @classmethod
  def validate_id(cls, v: str) -> str:
    v_clean = v.strip()
    if not v_clean:
      raise ValueError("Feature id must not be empty.")
    return v_clean

  @model_validator(mode="after")
  def validate_kinds(self) -> "FeatureEntry":
    has_structural = any(isinstance(p, StructuralPattern) for p in self.patterns)
    if has_structural and SourceKind.SCRIPT not in self.source_kinds:
      raise ValueError(f"Feature '{self.id}' has structural patterns but does not apply to scripts.")
    return self

  @property
  def key(self) -> str:
    """Identifier sent to the classifier."""
    return self.classifier_key or self.id


class CatalogueFile(BaseModel):
  """
  On-disk catalogue format.
  """

  model_config = ConfigDict(extra="forbid")

  version: int = 1
  features: List[FeatureEntry]

  @model_validator(mode="after")
  def validate_unique(self) -> "CatalogueFile":
    seen: Set[str] = set()
    for entry in self.features:
      if entry.id in seen:
        raise ValueError(f"Duplicate feature id '{entry.id}'.")
      seen.add(entry.id)
    return self
