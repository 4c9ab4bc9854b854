"""
Enumerations for baseline-codemod.

This module defines the standard enumerations used across the codebase for
source classification, safety tiers, and file lifecycle tracking.
"""

from enum import Enum


class SourceKind(str, Enum):
  """
  Category of a source document.

  Determines which catalogue patterns are applied, so that stylesheet-only
  patterns never run over script text (except through embedded literals).
  """

  SCRIPT = "script"
  STYLESHEET = "stylesheet"
  MARKUP = "markup"


class SafetyTier(str, Enum):
  """
  Cross-browser readiness of a web feature as reported by the classifier.
  """

  SAFE = "safe"
  CAUTION = "caution"
  UNSAFE = "unsafe"
  UNKNOWN = "unknown"


class StructuralNode(str, Enum):
  """
  Syntax shapes a structural pattern can target.
  """

  MEMBER = "member"  # obj.prop
  CALL = "call"  # callee(...)
  NEW = "new"  # new Ctor(...)


class FileState(str, Enum):
  """
  Lifecycle states of a single file passing through the pipeline.
  """

  UNPROCESSED = "unprocessed"
  PARSED = "parsed"
  MATCHED = "matched"
  CLASSIFIED = "classified"
  REWRITTEN = "rewritten"
  SERIALIZED = "serialized"
  PERSISTED = "persisted"
  REPORTED = "reported"
  PARSE_ERROR = "parse_error"
