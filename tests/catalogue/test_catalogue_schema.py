"""
Tests for Catalogue Schema validation.

Verifies:
1. Pattern variants are discriminated by `kind`.
2. Structural pattern shapes are enforced (call/new/member).
3. Malformed regular expressions fail at load time.
4. Rewrite templates report the captures they need.
"""

import pytest
from pydantic import ValidationError

from baseline_codemod.catalogue.schema import (
  CatalogueFile,
  FeatureEntry,
  RewriteRule,
  StructuralPattern,
  TextualPattern,
)
from baseline_codemod.enums import SourceKind, StructuralNode


def test_discriminated_patterns():
  entry = FeatureEntry.model_validate(
    {
      "id": "demo",
      "patterns": [
        {"kind": "structural", "node": "new", "constructor": "Foo"},
        {"kind": "textual", "regex": "foo"},
      ],
    }
  )
  assert isinstance(entry.patterns[0], StructuralPattern)
  assert entry.patterns[0].node == StructuralNode.NEW
  assert isinstance(entry.patterns[1], TextualPattern)
  assert entry.source_kinds == [SourceKind.SCRIPT]


def test_unknown_pattern_kind_rejected():
  with pytest.raises(ValidationError):
    FeatureEntry.model_validate({"id": "demo", "patterns": [{"kind": "semantic", "regex": "x"}]})


def test_call_requires_callee_or_property():
  with pytest.raises(ValidationError, match="callee"):
    StructuralPattern(node="call")


def test_call_rejects_callee_and_member_together():
  with pytest.raises(ValidationError, match="not both"):
    StructuralPattern(node="call", callee="fetch", property_name="then")


def test_new_requires_constructor():
  with pytest.raises(ValidationError, match="constructor"):
    StructuralPattern(node="new")


def test_member_requires_property():
  with pytest.raises(ValidationError, match="property_name"):
    StructuralPattern(node="member", object_name="navigator")


def test_unknown_capture_rejected():
  with pytest.raises(ValidationError, match="Unknown capture"):
    StructuralPattern(node="call", callee="f", captures=["body"])


def test_arg_captures_accepted():
  pattern = StructuralPattern(node="call", callee="f", captures=["arg:0", "arg:12", "arguments"])
  assert pattern.captures == ["arg:0", "arg:12", "arguments"]


def test_invalid_regex_rejected():
  with pytest.raises(ValidationError, match="Invalid regex"):
    TextualPattern(regex="display: (grid")


def test_empty_matching_regex_rejected():
  with pytest.raises(ValidationError, match="empty string"):
    TextualPattern(regex="a*")


def test_ignore_case_compilation():
  pattern = TextualPattern(regex="display:\\s*grid", ignore_case=True)
  assert pattern.compiled.search("DISPLAY: GRID")


def test_structural_pattern_requires_script_kind():
  with pytest.raises(ValidationError, match="structural patterns"):
    FeatureEntry.model_validate(
      {
        "id": "demo",
        "source_kinds": ["stylesheet"],
        "patterns": [{"kind": "structural", "node": "new", "constructor": "Foo"}],
      }
    )


def test_blank_id_rejected():
  with pytest.raises(ValidationError, match="empty"):
    FeatureEntry.model_validate({"id": "  ", "patterns": [{"kind": "textual", "regex": "x"}]})


def test_extra_fields_forbidden():
  with pytest.raises(ValidationError):
    FeatureEntry.model_validate({"id": "demo", "patterns": [{"kind": "textual", "regex": "x"}], "severity": 3})


def test_duplicate_ids_rejected():
  feature = {"id": "demo", "patterns": [{"kind": "textual", "regex": "x"}]}
  with pytest.raises(ValidationError, match="Duplicate"):
    CatalogueFile.model_validate({"features": [feature, feature]})


def test_classifier_key_defaults_to_id():
  entry = FeatureEntry.model_validate({"id": "grid", "patterns": [{"kind": "textual", "regex": "x"}]})
  assert entry.key == "grid"
  aliased = entry.model_copy(update={"classifier_key": "css-grid"})
  assert aliased.key == "css-grid"


def test_rewrite_rule_referenced_captures():
  rule = RewriteRule(template='$1replace(new RegExp($2, "g"), $3) $&', explanation="x")
  assert rule.referenced_captures() == {1, 2, 3}
  assert rule.can_render(("a.", '"x"', '"y"'))
  assert not rule.can_render(("a.", None, '"y"'))
  assert not rule.can_render(("a.",))


def test_rewrite_rule_without_captures_always_renders():
  rule = RewriteRule(template="wrap($&)", explanation="x")
  assert rule.can_render(())
