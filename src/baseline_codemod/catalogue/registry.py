"""
Feature Catalogue Registry.

Wraps the validated catalogue data and answers the lookups the pipeline needs:
which patterns apply to a source kind, which rewrite rule belongs to a feature,
and the declaration order used as the tie-break between features.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from baseline_codemod.catalogue.defaults import DEFAULT_FEATURES
from baseline_codemod.catalogue.schema import (
  CatalogueFile,
  FeatureEntry,
  MatchPattern,
  RewriteRule,
  StructuralPattern,
  TextualPattern,
)
from baseline_codemod.enums import SourceKind
from baseline_codemod.errors import CatalogueError

SCRIPT_EXTENSIONS = {".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx", ".mts", ".cts"}
STYLESHEET_EXTENSIONS = {".css"}
MARKUP_EXTENSIONS = {".html", ".htm"}

SUPPORTED_EXTENSIONS = SCRIPT_EXTENSIONS | STYLESHEET_EXTENSIONS | MARKUP_EXTENSIONS


def source_kind_for(path: Path) -> Optional[SourceKind]:
  """
  Determines the source kind of a file from its extension.

  Args:
      path: File path.

  Returns:
      Optional[SourceKind]: The kind, or None for unsupported files.
  """
  ext = path.suffix.lower()
  if ext in SCRIPT_EXTENSIONS:
    return SourceKind.SCRIPT
  if ext in STYLESHEET_EXTENSIONS:
    return SourceKind.STYLESHEET
  if ext in MARKUP_EXTENSIONS:
    return SourceKind.MARKUP
  return None


class Catalogue:
  """
  Ordered, read-only collection of `FeatureEntry` records.
  """

  def __init__(self, entries: List[FeatureEntry]):
    self._entries = list(entries)
    self._by_id: Dict[str, FeatureEntry] = {}
    self._order: Dict[str, int] = {}
    for idx, entry in enumerate(self._entries):
      if entry.id in self._by_id:
        raise CatalogueError(f"Duplicate feature id '{entry.id}'.")
      self._by_id[entry.id] = entry
      self._order[entry.id] = idx

  @classmethod
  def from_data(cls, data: Dict[str, Any]) -> "Catalogue":
    """
    Validates raw catalogue data.

    Args:
        data: Mapping in the `CatalogueFile` format.

    Returns:
        Catalogue: The validated catalogue.

    Raises:
        CatalogueError: If validation fails.
    """
    try:
      parsed = CatalogueFile.model_validate(data)
    except ValidationError as e:
      raise CatalogueError(f"Malformed catalogue: {e}")
    return cls(parsed.features)

  @classmethod
  def default(cls) -> "Catalogue":
    """Returns the built-in catalogue."""
    return cls.from_data({"version": 1, "features": DEFAULT_FEATURES})

  @property
  def entries(self) -> List[FeatureEntry]:
    return list(self._entries)

  def __len__(self) -> int:
    return len(self._entries)

  def __contains__(self, feature_id: str) -> bool:
    return feature_id in self._by_id

  def get(self, feature_id: str) -> FeatureEntry:
    """
    Raises:
        KeyError: If the feature is not catalogued.
    """
    return self._by_id[feature_id]

  def order_of(self, feature_id: str) -> int:
    """Declaration index of a feature (lower wins ties)."""
    return self._order[feature_id]

  def rule_for(self, feature_id: str) -> Optional[RewriteRule]:
    entry = self._by_id.get(feature_id)
    return entry.rewrite if entry else None

  def lookup_patterns(self, source_kind: SourceKind) -> List[Tuple[FeatureEntry, MatchPattern]]:
    """
    Lists the patterns applicable to a source kind, in declaration order.

    For scripts this includes structural patterns of script features plus the
    textual patterns of script features and of features flagged
    `scan_embedded` (applied to string and template literal content).
    For stylesheets and markup only textual patterns of features declaring
    that kind are returned.

    Args:
        source_kind: Kind of the document being scanned.

    Returns:
        List[Tuple[FeatureEntry, MatchPattern]]: Applicable (feature, pattern) pairs.
    """
    results: List[Tuple[FeatureEntry, MatchPattern]] = []
    for entry in self._entries:
      declared = source_kind in entry.source_kinds
      for pattern in entry.patterns:
        if isinstance(pattern, StructuralPattern):
          if source_kind == SourceKind.SCRIPT and declared:
            results.append((entry, pattern))
        elif isinstance(pattern, TextualPattern):
          if declared or (source_kind == SourceKind.SCRIPT and entry.scan_embedded):
            results.append((entry, pattern))
    return results

  def dump(self) -> Dict[str, Any]:
    """
    Serializes the catalogue to its JSON file format.
    """
    return CatalogueFile(features=self._entries).model_dump(mode="json", exclude_none=True)


def load_catalogue(path: Optional[Path] = None) -> Catalogue:
  """
  Loads the built-in catalogue, or a JSON catalogue file if `path` is given.

  Args:
      path: Optional path to a catalogue JSON file.

  Returns:
      Catalogue: The validated catalogue.

  Raises:
      CatalogueError: If the file cannot be read or fails validation.
  """
  if path is None:
    return Catalogue.default()

  try:
    with open(path, "rt", encoding="utf-8") as f:
      data = json.load(f)
  except (OSError, json.JSONDecodeError) as e:
    raise CatalogueError(f"Cannot read catalogue {path}: {e}")

  if not isinstance(data, dict):
    raise CatalogueError(f"Catalogue {path} must contain a JSON object.")
  return Catalogue.from_data(data)
