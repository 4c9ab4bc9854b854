"""
Orchestration Engine for a single source document.

The `CodemodEngine` drives one document through the pipeline:

1.  **Parse**: Scripts are parsed with tree-sitter; invalid syntax raises
    `ParseError` and ends the pass. Stylesheets and markup are textual.
2.  **Match**: The `PatternMatcher` locates every catalogued occurrence.
3.  **Classify**: Each distinct feature is classified once (concurrently);
    the `SafetyPolicy` maps verdicts to an actionable tier or None.
4.  **Rewrite**: Actionable, non analysis-only matches with a rewrite rule
    are filtered for renderability, conflict-resolved, and rendered.
5.  **Serialize**: Transformations are spliced back-to-front. In scripts, a
    rewrite that breaks the syntax is discarded on its own; the others stay.

Read-only analysis (`analyze_source`) stops after classification and reports
every actionable match, including analysis-only patterns.

Persisting results is the caller's concern (see `CodemodRunner`).
"""

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from baseline_codemod.catalogue.registry import Catalogue
from baseline_codemod.classifier.gateway import SafetyClassifier, SafetyPolicy
from baseline_codemod.classifier.schema import SafetyVerdict
from baseline_codemod.core.lifecycle import FileLifecycle
from baseline_codemod.core.matcher import PatternMatcher
from baseline_codemod.core.parsing import ParsedUnit, dialect_for, parse_source
from baseline_codemod.core.records import AnalysisResult, MatchRecord, Transformation, TransformResult, UnsafeFeature
from baseline_codemod.core.rewriter import apply_transformations, resolve_conflicts, rewrite
from baseline_codemod.enums import FileState, SafetyTier, SourceKind
from baseline_codemod.errors import ParseError

DEFAULT_REASON = "Not baseline safe"


class CodemodEngine:
  """
  Runs match, classify and rewrite over one document at a time.

  The engine holds no per-document state; one instance can serve many
  concurrent documents. The only shared mutable state is the classifier cache.
  """

  def __init__(
    self,
    classifier: SafetyClassifier,
    catalogue: Optional[Catalogue] = None,
    policy: Optional[SafetyPolicy] = None,
  ):
    """
    Args:
        classifier: Gateway used to classify features.
        catalogue: Feature catalogue (built-in if None).
        policy: Verdict policy (fail-open, caution and unsafe actionable, if None).
    """
    self.classifier = classifier
    self.catalogue = catalogue or Catalogue.default()
    self.policy = policy or SafetyPolicy()
    self.matcher = PatternMatcher(self.catalogue)

  def parse(self, text: str, kind: SourceKind, path: Optional[Path] = None) -> ParsedUnit:
    """
    Parses a document.

    Raises:
        ParseError: If a script has syntax errors.
    """
    return parse_source(text, kind, dialect_for(path))

  async def _classify(
    self, matches: List[MatchRecord]
  ) -> Tuple[Dict[str, SafetyVerdict], Dict[str, Optional[SafetyTier]]]:
    """
    Returns:
        Tuple: (verdict per feature id, actionable tier per feature id).
    """
    keys = {m.feature_id: self.catalogue.get(m.feature_id).key for m in matches}
    by_key = await self.classifier.classify_many(keys.values())
    verdicts = {fid: by_key[key] for fid, key in keys.items()}
    tiers = {fid: self.policy.effective_tier(v) for fid, v in verdicts.items()}
    return verdicts, tiers

  async def transform_source(self, text: str, kind: SourceKind, path: Optional[Path] = None) -> TransformResult:
    """
    Computes the rewritten form of a document.

    Args:
        text: Original source.
        kind: Source kind.
        path: Optional path (selects the script grammar, labels the result).

    Returns:
        TransformResult: Result in the `Serialized` state, or `ParseError`.
    """
    result = TransformResult(path=path, source_kind=kind, source=text)
    lifecycle = FileLifecycle(result.history)

    try:
      unit = self.parse(text, kind, path)
    except ParseError as e:
      lifecycle.advance(FileState.PARSE_ERROR)
      result.parse_error = str(e)
      result.errors.append(f"Parse error: {e}")
      return result
    lifecycle.advance(FileState.PARSED)

    matches = self.matcher.match(unit)
    lifecycle.advance(FileState.MATCHED)

    _, tiers = await self._classify(matches)
    lifecycle.advance(FileState.CLASSIFIED)

    candidates: List[MatchRecord] = []
    for match in matches:
      rule = self.catalogue.rule_for(match.feature_id)
      if tiers.get(match.feature_id) is None or match.analysis_only or rule is None:
        continue
      if not rule.can_render(match.captures):
        result.unrewritable.append(match)
        continue
      candidates.append(match)

    kept, dropped = resolve_conflicts(candidates)
    result.conflicts = dropped
    transformations = [rewrite(m, self.catalogue.rule_for(m.feature_id), tiers[m.feature_id]) for m in kept]
    lifecycle.advance(FileState.REWRITTEN)

    if transformations and kind == SourceKind.SCRIPT:
      transformations, new_source = self._drop_invalid(result, text, transformations, path)
    else:
      new_source = apply_transformations(text, transformations)

    result.transformations = transformations
    result.source = new_source
    result.has_changes = new_source != text
    lifecycle.advance(FileState.SERIALIZED)
    return result

  def _reparse_error(self, text: str, path: Optional[Path]) -> Optional[ParseError]:
    try:
      self.parse(text, SourceKind.SCRIPT, path)
    except ParseError as e:
      return e
    return None

  def _drop_invalid(
    self, result: TransformResult, text: str, transformations: List[Transformation], path: Optional[Path]
  ) -> Tuple[List[Transformation], str]:
    """
    Removes rewrites that leave a script unparseable.

    Each rewrite is checked against the original on its own; those that break
    the syntax are moved to `result.discarded`. If the remaining set still fails
    to parse together, every rewrite is discarded and the original kept.

    Returns:
        Tuple: (surviving transformations, rewritten source).
    """
    new_source = apply_transformations(text, transformations)
    if self._reparse_error(new_source, path) is None:
      return transformations, new_source

    valid: List[Transformation] = []
    for t in transformations:
      error = self._reparse_error(apply_transformations(text, [t]), path)
      if error is None:
        valid.append(t)
        continue
      result.discarded.append(t)
      result.errors.append(f"Rewrite of {t.feature_id} at line {t.line} produced invalid syntax, discarded: {error}")

    new_source = apply_transformations(text, valid)
    if valid:
      error = self._reparse_error(new_source, path)
      if error is not None:
        result.discarded.extend(valid)
        result.errors.append(f"Rewrites produced invalid syntax together, changes discarded: {error}")
        return [], text
    return valid, new_source

  async def analyze_source(self, text: str, kind: SourceKind, path: Optional[Path] = None) -> AnalysisResult:
    """
    Reports actionable occurrences without rewriting.

    Args:
        text: Source text.
        kind: Source kind.
        path: Optional path.

    Returns:
        AnalysisResult: Unsafe features in source order.
    """
    result = AnalysisResult(path=path)
    try:
      unit = self.parse(text, kind, path)
    except ParseError as e:
      result.parse_error = str(e)
      result.errors.append(f"Parse error: {e}")
      return result

    matches = self.matcher.match(unit)
    verdicts, tiers = await self._classify(matches)

    for match in matches:
      tier = tiers.get(match.feature_id)
      if tier is None:
        continue
      verdict = verdicts[match.feature_id]
      result.unsafe_features.append(
        UnsafeFeature(
          feature_id=match.feature_id,
          name=verdict.name or match.feature_id,
          line=match.line,
          column=match.column,
          matched_text=match.text,
          safety=tier,
          reason=verdict.recommendation or DEFAULT_REASON,
        )
      )
    return result
