"""
Rewrite Rule Engine.

Turns match records into transformations and splices them into the source.

- Template substitution: ``$1``..``$9`` become the Nth capture (empty string
  when absent) and ``$&`` the full matched text. Everything else is copied
  verbatim, escaped for the enclosing literal when the match is embedded in a
  script string.
- Conflicts: overlapping candidates are resolved by start offset (then
  catalogue order); only the earliest-starting match of an overlapping group is
  rewritten. Dropped matches are returned so callers can report them. The
  engine does not iterate to a fixpoint.
- Splicing: transformations are applied back-to-front by descending start
  offset, so every offset stays valid against the original text.
"""

from typing import List, Optional, Sequence, Tuple

from baseline_codemod.catalogue.schema import PLACEHOLDER_RE, RewriteRule
from baseline_codemod.core.records import MatchRecord, Transformation
from baseline_codemod.enums import SafetyTier


def escape_for_literal(text: str, delimiter: str) -> str:
  """
  Escapes text for insertion into a script string or template literal.

  Args:
      text: Raw text.
      delimiter: The literal's quote character (`"`, `'` or a backtick).

  Returns:
      str: Text that keeps the literal closed and yields `text` at runtime.
  """
  text = text.replace("\\", "\\\\")
  if delimiter == "`":
    return text.replace("`", "\\`").replace("${", "\\${")
  return text.replace(delimiter, "\\" + delimiter).replace("\n", "\\n")


def render_template(template: str, match: MatchRecord) -> str:
  """
  Expands placeholders in a rewrite template.

  When the match sits inside a script literal, the template's own text is
  escaped for that literal. Captures and the matched text are copied from the
  literal's source, so they are already escaped.

  Args:
      template: Template text.
      match: The match providing captures and matched text.

  Returns:
      str: The replacement text.
  """

  def _literal(text: str) -> str:
    return escape_for_literal(text, match.delimiter) if match.delimiter else text

  def _placeholder(token: str) -> str:
    if token == "&":
      return match.text
    index = int(token) - 1
    if index < len(match.captures) and match.captures[index] is not None:
      return match.captures[index]
    return ""

  parts: List[str] = []
  cursor = 0
  for m in PLACEHOLDER_RE.finditer(template):
    parts.append(_literal(template[cursor : m.start()]))
    parts.append(_placeholder(m.group(1)))
    cursor = m.end()
  parts.append(_literal(template[cursor:]))
  return "".join(parts)


def rewrite(match: MatchRecord, rule: RewriteRule, tier: Optional[SafetyTier] = None) -> Transformation:
  """
  Applies a rule to a match. Pure and total.

  Args:
      match: The occurrence to rewrite.
      rule: The feature's rewrite rule.
      tier: Effective safety tier that triggered the rewrite (for reporting).

  Returns:
      Transformation: Replacement text bound to the original range.
  """
  return Transformation(
    feature_id=match.feature_id,
    start=match.start,
    end=match.end,
    line=match.line,
    column=match.column,
    original=match.text,
    replacement=render_template(rule.template, match),
    explanation=rule.explanation,
    tier=tier,
  )


def resolve_conflicts(matches: Sequence[MatchRecord]) -> Tuple[List[MatchRecord], List[MatchRecord]]:
  """
  Selects a pairwise-disjoint subset of matches.

  Candidates are ordered by (start, catalogue order). A candidate is kept when
  it starts at or after the end of the previously kept one; otherwise it is dropped.

  Args:
      matches: Candidate matches (any order).

  Returns:
      Tuple[List[MatchRecord], List[MatchRecord]]: (kept, dropped), each in source order.
  """
  kept: List[MatchRecord] = []
  dropped: List[MatchRecord] = []
  last_end = -1
  for match in sorted(matches, key=lambda m: (m.start, m.order, -m.end)):
    if match.start >= last_end:
      kept.append(match)
      last_end = match.end
    else:
      dropped.append(match)
  return kept, dropped


def apply_transformations(text: str, transformations: Sequence[Transformation]) -> str:
  """
  Splices transformations into the original text.

  Args:
      text: Original source.
      transformations: Disjoint transformations against `text`.

  Returns:
      str: The rewritten source.

  Raises:
      ValueError: If two transformations overlap.
  """
  ordered = sorted(transformations, key=lambda t: t.start, reverse=True)
  result = text
  next_start = len(text)
  for t in ordered:
    if t.end > next_start:
      raise ValueError(f"Overlapping transformations at offset {t.start}..{t.end}")
    result = result[: t.start] + t.replacement + result[t.end :]
    next_start = t.start
  return result
