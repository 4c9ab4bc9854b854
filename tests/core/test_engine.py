"""
Tests for the per-document CodemodEngine.

Covers the reference scenarios (replaceAll rewrite, safe fetch, two
occurrences, classifier timeout) plus idempotence, determinism, safety gating
and the lifecycle recorded on each result.
"""

from pathlib import Path

import httpx
import pytest

from baseline_codemod.catalogue.registry import Catalogue
from baseline_codemod.classifier.gateway import SafetyClassifier, SafetyPolicy
from baseline_codemod.classifier.schema import SafetyVerdict
from baseline_codemod.classifier.sources import HttpVerdictSource
from baseline_codemod.core.engine import DEFAULT_REASON, CodemodEngine
from baseline_codemod.enums import FileState, SafetyTier, SourceKind

ALL_UNSAFE = {
  "fetch": "unsafe",
  "string-replaceall": "unsafe",
  "promise-allsettled": "unsafe",
  "grid": "unsafe",
  "container-queries": "unsafe",
  "lazy-loading": "unsafe",
  "resizeobserver": "unsafe",
}

SCRIPT = (
  'const data = fetch("/api");\n'
  'const s = name.replaceAll("a", "b");\n'
  "const all = Promise.allSettled([p1, p2]);\n"
  "const css = `.x { display: grid; }`;\n"
)

STYLESHEET = ".a { display: grid; }\n@container (min-width: 400px) { .b { color: red; } }\n"

MARKUP = '<img src="a.png" loading="lazy">\n<div style="display: grid">x</div>\n'


@pytest.mark.asyncio
async def test_replaceall_rewrite(make_engine):
  engine = make_engine({"string-replaceall": "unsafe"})
  result = await engine.transform_source('const clean = text.replaceAll("foo", "bar");', SourceKind.SCRIPT)

  assert result.source == 'const clean = text.replace(new RegExp("foo", "g"), "bar");'
  assert result.has_changes
  assert [t.feature_id for t in result.transformations] == ["string-replaceall"]
  assert result.transformations[0].tier == SafetyTier.UNSAFE


@pytest.mark.asyncio
async def test_safe_feature_is_untouched(make_engine):
  engine = make_engine({"fetch": "safe"})
  code = 'fetch("/api/data");'
  result = await engine.transform_source(code, SourceKind.SCRIPT)

  assert result.transformations == []
  assert result.source == code
  assert not result.has_changes


@pytest.mark.asyncio
async def test_two_occurrences_both_applied(make_engine):
  engine = make_engine(ALL_UNSAFE)
  code = 'const s = t.replaceAll("x", "y");\nconst r = Promise.allSettled([a, b]);\n'
  result = await engine.transform_source(code, SourceKind.SCRIPT)

  assert len(result.transformations) == 2
  assert result.has_changes
  assert "replaceAll" not in result.source
  assert ".call(Promise, [a, b])" in result.source


@pytest.mark.asyncio
async def test_classifier_timeout_fails_open():
  def handler(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)

  async with HttpVerdictSource(transport=httpx.MockTransport(handler)) as source:
    engine = CodemodEngine(SafetyClassifier(source))
    code = "@container (min-width: 400px) { .a { color: red; } }"
    result = await engine.transform_source(code, SourceKind.STYLESHEET)

  assert result.transformations == []
  assert result.source == code
  assert result.state == FileState.SERIALIZED


@pytest.mark.asyncio
async def test_fail_closed_rewrites_unknown(make_engine):
  engine = make_engine({}, policy=SafetyPolicy(fail_closed=True))
  code = "@container (min-width: 400px) { .a { color: red; } }"
  result = await engine.transform_source(code, SourceKind.STYLESHEET)

  assert result.source == "@supports (container-type: inline-size) { " + code + " }"
  assert result.transformations[0].tier == SafetyTier.UNSAFE


@pytest.mark.asyncio
async def test_severity_threshold_skips_caution(make_engine):
  code = 'x.replaceAll("a", "b");'
  lenient = make_engine({"string-replaceall": "caution"})
  strict = make_engine({"string-replaceall": "caution"}, policy=SafetyPolicy(min_severity=SafetyTier.UNSAFE))

  assert (await lenient.transform_source(code, SourceKind.SCRIPT)).has_changes
  assert not (await strict.transform_source(code, SourceKind.SCRIPT)).has_changes


@pytest.mark.asyncio
@pytest.mark.parametrize(
  "code, kind",
  [(SCRIPT, SourceKind.SCRIPT), (STYLESHEET, SourceKind.STYLESHEET), (MARKUP, SourceKind.MARKUP)],
)
async def test_idempotence(make_engine, code, kind):
  engine = make_engine(ALL_UNSAFE)
  first = await engine.transform_source(code, kind)
  assert first.has_changes

  second = await engine.transform_source(first.source, kind)
  assert not second.has_changes
  assert second.transformations == []
  assert second.source == first.source


@pytest.mark.asyncio
async def test_script_output_shapes(make_engine):
  result = await make_engine(ALL_UNSAFE).transform_source(SCRIPT, SourceKind.SCRIPT)
  out = result.source

  assert '(typeof fetch !== "undefined" ? fetch("/api") : Promise.reject(new Error("fetch not supported")))' in out
  assert 'name.replace(new RegExp("a", "g"), "b")' in out
  assert "(Promise.allSettled || " in out
  assert "`.x { display: flex; /* fallback */ display: grid; }`" in out
  assert [t.feature_id for t in result.transformations] == ["fetch", "string-replaceall", "promise-allsettled", "grid"]


@pytest.mark.asyncio
async def test_markup_output(make_engine):
  result = await make_engine(ALL_UNSAFE).transform_source(MARKUP, SourceKind.MARKUP)
  assert '<img src="a.png" data-lazy="true" loading="lazy">' in result.source
  assert 'style="display: flex; /* fallback */ display: grid"' in result.source


@pytest.mark.asyncio
async def test_determinism(make_engine):
  outputs = set()
  for _ in range(3):
    result = await make_engine(ALL_UNSAFE).transform_source(SCRIPT, SourceKind.SCRIPT)
    outputs.add(result.source)
  assert len(outputs) == 1


@pytest.mark.asyncio
async def test_safety_gating(make_engine):
  engine = make_engine({k: "safe" for k in ALL_UNSAFE})
  for code, kind in [(SCRIPT, SourceKind.SCRIPT), (STYLESHEET, SourceKind.STYLESHEET), (MARKUP, SourceKind.MARKUP)]:
    result = await engine.transform_source(code, kind)
    assert result.transformations == []
    assert result.source == code


@pytest.mark.asyncio
async def test_overlap_keeps_outer_match(make_engine):
  engine = make_engine(ALL_UNSAFE)
  code = 'fetch(url.replaceAll("a", "b"));'
  result = await engine.transform_source(code, SourceKind.SCRIPT)

  assert [t.feature_id for t in result.transformations] == ["fetch"]
  assert [m.feature_id for m in result.conflicts] == ["string-replaceall"]
  assert 'url.replaceAll("a", "b")' in result.source


@pytest.mark.asyncio
async def test_unrewritable_spread_call(make_engine):
  engine = make_engine({"string-replaceall": "unsafe"})
  result = await engine.transform_source("s.replaceAll(...args);", SourceKind.SCRIPT)

  assert result.transformations == []
  assert [m.feature_id for m in result.unrewritable] == ["string-replaceall"]
  assert not result.has_changes


@pytest.mark.asyncio
async def test_analysis_only_patterns_never_rewritten(make_engine):
  engine = make_engine({"container-queries": "unsafe"})
  code = ".card { container-type: inline-size; }"
  result = await engine.transform_source(code, SourceKind.STYLESHEET)
  assert not result.has_changes

  analysis = await engine.analyze_source(code, SourceKind.STYLESHEET)
  assert [f.feature_id for f in analysis.unsafe_features] == ["container-queries"]


@pytest.mark.asyncio
async def test_features_without_rewrite_are_left_alone(make_engine):
  engine = make_engine(ALL_UNSAFE)
  code = "const ro = new ResizeObserver(cb);"
  result = await engine.transform_source(code, SourceKind.SCRIPT)
  assert result.source == code


@pytest.mark.asyncio
async def test_parse_error_state(make_engine):
  result = await make_engine(ALL_UNSAFE).transform_source("const = ;", SourceKind.SCRIPT)

  assert result.state == FileState.PARSE_ERROR
  assert result.history == [FileState.UNPROCESSED, FileState.PARSE_ERROR]
  assert result.parse_error
  assert result.has_errors


@pytest.mark.asyncio
async def test_successful_history(make_engine):
  result = await make_engine(ALL_UNSAFE).transform_source(SCRIPT, SourceKind.SCRIPT)
  assert result.history == [
    FileState.UNPROCESSED,
    FileState.PARSED,
    FileState.MATCHED,
    FileState.CLASSIFIED,
    FileState.REWRITTEN,
    FileState.SERIALIZED,
  ]


@pytest.mark.asyncio
async def test_invalid_rewrite_is_discarded(make_engine):
  catalogue = Catalogue.from_data(
    {
      "features": [
        {
          "id": "broken",
          "patterns": [{"kind": "structural", "node": "call", "callee": "legacy"}],
          "rewrite": {"template": "$&)", "explanation": "Produces unbalanced output"},
        }
      ]
    }
  )
  engine = make_engine({"broken": "unsafe"}, catalogue=catalogue)
  code = "legacy(1);"
  result = await engine.transform_source(code, SourceKind.SCRIPT)

  assert result.source == code
  assert result.transformations == []
  assert any("discarded" in e for e in result.errors)
  assert result.state == FileState.SERIALIZED


@pytest.mark.asyncio
async def test_typescript_path_selects_grammar(make_engine):
  engine = make_engine({"string-replaceall": "unsafe"})
  code = 'const out: string = input.replaceAll("a", "b");'
  result = await engine.transform_source(code, SourceKind.SCRIPT, Path("mod.ts"))
  assert result.source == 'const out: string = input.replace(new RegExp("a", "g"), "b");'


@pytest.mark.asyncio
async def test_classifier_key_is_used():
  calls = []

  class RecordingSource:
    async def fetch(self, feature_id):
      calls.append(feature_id)
      return SafetyVerdict(feature_id=feature_id, found=True, tier=SafetyTier.UNSAFE)

  catalogue = Catalogue.from_data(
    {
      "features": [
        {
          "id": "legacy-call",
          "classifier_key": "legacy-api",
          "patterns": [{"kind": "structural", "node": "call", "callee": "legacy"}],
          "rewrite": {"template": "shim($&)", "explanation": "Shimmed"},
        }
      ]
    }
  )
  engine = CodemodEngine(SafetyClassifier(RecordingSource()), catalogue=catalogue)
  result = await engine.transform_source("legacy(); legacy();", SourceKind.SCRIPT)

  assert calls == ["legacy-api"]
  assert result.source == "shim(legacy()); shim(legacy());"


@pytest.mark.asyncio
async def test_analyze_reports_name_and_reason():
  class TableSource:
    async def fetch(self, feature_id):
      if feature_id == "string-replaceall":
        return SafetyVerdict(
          feature_id=feature_id,
          found=True,
          tier=SafetyTier.UNSAFE,
          name="String replaceAll()",
          recommendation="Use replace with a global regex",
        )
      return SafetyVerdict(feature_id=feature_id, found=True, tier=SafetyTier.CAUTION)

  engine = CodemodEngine(SafetyClassifier(TableSource()))
  code = 'a.replaceAll("x", "y");\nconst r = Promise.allSettled([]);'
  analysis = await engine.analyze_source(code, SourceKind.SCRIPT)

  first, second = analysis.unsafe_features
  assert (first.name, first.reason, first.safety, first.line) == (
    "String replaceAll()",
    "Use replace with a global regex",
    SafetyTier.UNSAFE,
    1,
  )
  assert (second.name, second.reason, second.safety, second.line) == (
    "promise-allsettled",
    DEFAULT_REASON,
    SafetyTier.CAUTION,
    2,
  )
  assert second.matched_text == "Promise.allSettled([])"


@pytest.mark.asyncio
async def test_analyze_parse_error(make_engine):
  analysis = await make_engine().analyze_source("function (", SourceKind.SCRIPT)
  assert analysis.parse_error
  assert not analysis.has_issues


@pytest.mark.asyncio
async def test_embedded_rewrite_is_escaped_for_string_quotes(make_engine):
  engine = make_engine(ALL_UNSAFE)
  code = "const html = \"<img loading='lazy' src='a.png'>\";\nconst s = t.replaceAll(\"a\", \"b\");\n"
  result = await engine.transform_source(code, SourceKind.SCRIPT)

  assert result.errors == []
  assert [t.feature_id for t in result.transformations] == ["lazy-loading", "string-replaceall"]
  assert "const html = \"<img data-lazy=\\\"true\\\" loading='lazy' src='a.png'>\";" in result.source
  assert 't.replace(new RegExp("a", "g"), "b")' in result.source

  second = await engine.transform_source(result.source, SourceKind.SCRIPT)
  assert not second.has_changes


@pytest.mark.asyncio
async def test_embedded_rewrite_in_single_quoted_string(make_engine):
  engine = make_engine({"lazy-loading": "unsafe"})
  result = await engine.transform_source("const html = '<img loading=\"lazy\">';", SourceKind.SCRIPT)
  assert result.source == "const html = '<img data-lazy=\"true\" loading=\"lazy\">';"


@pytest.mark.asyncio
async def test_invalid_rewrite_discards_only_itself(make_engine):
  catalogue = Catalogue.from_data(
    {
      "features": [
        {
          "id": "broken",
          "patterns": [{"kind": "structural", "node": "call", "callee": "legacy"}],
          "rewrite": {"template": "$&)", "explanation": "Produces unbalanced output"},
        },
        {
          "id": "shimmed",
          "patterns": [{"kind": "structural", "node": "call", "callee": "modern"}],
          "rewrite": {"template": "shim($&)", "explanation": "Shimmed"},
        },
      ]
    }
  )
  engine = make_engine({"broken": "unsafe", "shimmed": "unsafe"}, catalogue=catalogue)
  result = await engine.transform_source("legacy(1);\nmodern(2);\n", SourceKind.SCRIPT)

  assert result.source == "legacy(1);\nshim(modern(2));\n"
  assert [t.feature_id for t in result.transformations] == ["shimmed"]
  assert [t.feature_id for t in result.discarded] == ["broken"]
  assert len(result.errors) == 1 and "broken" in result.errors[0]


@pytest.mark.asyncio
async def test_global_qualified_fetch_rewrite_is_idempotent(make_engine):
  engine = make_engine({"fetch": "unsafe"})
  first = await engine.transform_source('window.fetch("/x");', SourceKind.SCRIPT)
  assert first.source.startswith('(typeof fetch !== "undefined" ? window.fetch("/x") : ')

  second = await engine.transform_source(first.source, SourceKind.SCRIPT)
  assert not second.has_changes


@pytest.mark.asyncio
async def test_stylesheet_comment_is_left_alone(make_engine):
  engine = make_engine(ALL_UNSAFE)
  code = "/* legacy: display: grid was here */\n.a { color: red; }\n"
  result = await engine.transform_source(code, SourceKind.STYLESHEET)
  assert result.transformations == []
  assert result.source == code
