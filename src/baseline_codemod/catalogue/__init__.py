"""
Feature Catalogue: static mapping from feature ids to match patterns and rewrite rules.
"""

from baseline_codemod.catalogue.registry import (
  SUPPORTED_EXTENSIONS,
  Catalogue,
  load_catalogue,
  source_kind_for,
)
from baseline_codemod.catalogue.schema import (
  FeatureEntry,
  MatchPattern,
  RewriteRule,
  StructuralPattern,
  TextualPattern,
)

__all__ = [
  "Catalogue",
  "FeatureEntry",
  "MatchPattern",
  "RewriteRule",
  "StructuralPattern",
  "SUPPORTED_EXTENSIONS",
  "TextualPattern",
  "load_catalogue",
  "source_kind_for",
]
