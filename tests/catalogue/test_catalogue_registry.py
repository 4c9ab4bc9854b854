"""
Tests for the Catalogue registry and loader.

Verifies:
1. The built-in catalogue validates and keeps declaration order.
2. `lookup_patterns` honours source kinds and the embedded-scan flag.
3. File loading reports malformed data as `CatalogueError`.
4. `dump()` output loads back to an equivalent catalogue.
"""

import json
from pathlib import Path

import pytest

from baseline_codemod.catalogue.registry import Catalogue, load_catalogue, source_kind_for
from baseline_codemod.catalogue.schema import StructuralPattern, TextualPattern
from baseline_codemod.enums import SourceKind
from baseline_codemod.errors import CatalogueError


def test_default_catalogue_order():
  catalogue = Catalogue.default()
  ids = [e.id for e in catalogue.entries]
  assert ids[:3] == ["fetch", "string-replaceall", "promise-allsettled"]
  assert "container-queries" in catalogue
  assert catalogue.order_of("fetch") < catalogue.order_of("grid")
  assert len(catalogue) == len(ids)


def test_rule_lookup():
  catalogue = Catalogue.default()
  assert catalogue.rule_for("string-replaceall").template.startswith("$1replace")
  assert catalogue.rule_for("resizeobserver") is None
  assert catalogue.rule_for("not-a-feature") is None


def test_lookup_script_patterns():
  pairs = Catalogue.default().lookup_patterns(SourceKind.SCRIPT)
  ids = {entry.id for entry, _ in pairs}
  # Structural script features plus embedded stylesheet/markup features.
  assert {"fetch", "string-replaceall", "grid", "has-selector", "dialog"} <= ids
  assert all(
    SourceKind.SCRIPT in entry.source_kinds for entry, p in pairs if isinstance(p, StructuralPattern)
  )


def test_lookup_stylesheet_patterns_are_textual_only():
  pairs = Catalogue.default().lookup_patterns(SourceKind.STYLESHEET)
  ids = {entry.id for entry, _ in pairs}
  assert "grid" in ids
  assert "fetch" not in ids
  assert "dialog" not in ids
  assert all(isinstance(p, TextualPattern) for _, p in pairs)


def test_lookup_markup_patterns():
  ids = {entry.id for entry, _ in Catalogue.default().lookup_patterns(SourceKind.MARKUP)}
  assert {"grid", "dialog", "lazy-loading"} <= ids
  assert "string-replaceall" not in ids


def test_embedded_scan_requires_flag():
  catalogue = Catalogue.from_data(
    {
      "features": [
        {"id": "css-only", "source_kinds": ["stylesheet"], "patterns": [{"kind": "textual", "regex": "x"}]},
      ]
    }
  )
  assert catalogue.lookup_patterns(SourceKind.SCRIPT) == []
  assert len(catalogue.lookup_patterns(SourceKind.STYLESHEET)) == 1


def test_from_data_wraps_validation_errors():
  with pytest.raises(CatalogueError, match="Malformed catalogue"):
    Catalogue.from_data({"features": [{"id": "x", "patterns": []}]})


def test_load_missing_file(tmp_path: Path):
  with pytest.raises(CatalogueError, match="Cannot read"):
    load_catalogue(tmp_path / "nope.json")


def test_load_invalid_json(tmp_path: Path):
  path = tmp_path / "rules.json"
  path.write_text("{not json", encoding="utf-8")
  with pytest.raises(CatalogueError):
    load_catalogue(path)


def test_load_non_object(tmp_path: Path):
  path = tmp_path / "rules.json"
  path.write_text("[]", encoding="utf-8")
  with pytest.raises(CatalogueError):
    load_catalogue(path)


def test_dump_reloads(tmp_path: Path):
  original = Catalogue.default()
  path = tmp_path / "rules.json"
  path.write_text(json.dumps(original.dump()), encoding="utf-8")

  reloaded = load_catalogue(path)
  assert [e.id for e in reloaded.entries] == [e.id for e in original.entries]
  assert reloaded.rule_for("promise-allsettled") == original.rule_for("promise-allsettled")


@pytest.mark.parametrize(
  "name, kind",
  [
    ("app.js", SourceKind.SCRIPT),
    ("App.TSX", SourceKind.SCRIPT),
    ("lib.mjs", SourceKind.SCRIPT),
    ("site.css", SourceKind.STYLESHEET),
    ("index.html", SourceKind.MARKUP),
    ("README.md", None),
  ],
)
def test_source_kind_for(name, kind):
  assert source_kind_for(Path(name)) == kind
