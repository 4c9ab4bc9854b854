"""
Pattern Matcher.

Scans a `ParsedUnit` for occurrences of catalogued patterns and yields
`MatchRecord` objects with character offsets into the original source.

Dispatch is explicit on the pattern variant:

1.  **Structural** patterns are tested against every call, new and member
    node of a script's syntax tree, in catalogue order. Matching nodes
    contribute the sub-expressions the rewrite rule needs (receiver, arguments).
2.  **Textual** patterns run over literal content. In scripts that is the text
    of each string and template literal (template substitutions excluded);
    offsets are shifted by the literal segment's start. In stylesheets and
    markup it is the whole document.

Comments are never scanned: a textual match that starts inside a CSS or HTML
comment is ignored. Script comments are not literals and are skipped by
construction.

Deduplication is by exact span only. When two features produce the same
(start, end) span, the feature declared first in the catalogue keeps it and
the later record is discarded.
"""

import re
from typing import Dict, List, Optional, Sequence, Tuple

from tree_sitter import Node

from baseline_codemod.catalogue.registry import Catalogue
from baseline_codemod.catalogue.schema import FeatureEntry, StructuralPattern, TextualPattern
from baseline_codemod.core.parsing import ParsedUnit, SourceText, iter_nodes
from baseline_codemod.core.records import MatchRecord
from baseline_codemod.enums import SourceKind, StructuralNode

Captures = Tuple[Optional[str], ...]
Span = Tuple[int, int]

_NODE_TYPES = {
  StructuralNode.CALL: "call_expression",
  StructuralNode.NEW: "new_expression",
  StructuralNode.MEMBER: "member_expression",
}
_LITERAL_TYPES = {"string", "template_string"}
_GUARD_TYPES = {"ternary_expression", "if_statement"}

# Objects through which browser globals are commonly reached.
GLOBAL_OBJECTS = ("window", "globalThis", "self")

# Unterminated comments run to the end of the text.
_CSS_COMMENT_RE = re.compile(r"/\*.*?(?:\*/|\Z)", re.DOTALL)
_HTML_COMMENT_RE = re.compile(r"<!--.*?(?:-->|\Z)", re.DOTALL)
_STYLE_BLOCK_RE = re.compile(r"<style\b[^>]*>(.*?)(?:</style\s*>|\Z)", re.DOTALL | re.IGNORECASE)


def comment_spans(text: str, kind: SourceKind) -> List[Span]:
  """
  Locates comments in text that is scanned by textual patterns.

  - Stylesheets: ``/* ... */``.
  - Markup: ``<!-- ... -->``, plus ``/* ... */`` inside ``<style>`` elements.
  - Script literals (embedded CSS or HTML): both comment forms.

  Args:
      text: The scanned text.
      kind: What the text is.

  Returns:
      List[Span]: [start, end) spans relative to `text`, sorted by start.
  """
  if kind == SourceKind.STYLESHEET:
    return [m.span() for m in _CSS_COMMENT_RE.finditer(text)]

  spans = [m.span() for m in _HTML_COMMENT_RE.finditer(text)]
  if kind == SourceKind.MARKUP:
    for block in _STYLE_BLOCK_RE.finditer(text):
      spans.extend(m.span() for m in _CSS_COMMENT_RE.finditer(text, block.start(1), block.end(1)))
  else:
    spans.extend(m.span() for m in _CSS_COMMENT_RE.finditer(text))
  return sorted(spans)


def _enclosing(spans: Sequence[Span], offset: int) -> Optional[Span]:
  for start, end in spans:
    if start <= offset < end:
      return (start, end)
  return None


def is_global_reference(node: Node, name: str, source: SourceText) -> bool:
  """
  True if `node` is `name` itself or `name` reached through a global object.

  `fetch`, `window.fetch`, `globalThis.fetch` and `self.fetch` all refer to
  the `fetch` global.
  """
  text = source.node_text(node)
  return text == name or any(text == f"{obj}.{name}" for obj in GLOBAL_OBJECTS)


def literal_segments(node: Node, source: SourceText) -> List[Tuple[int, int]]:
  """
  Computes the character spans of a literal's own text.

  Quotes/backticks are stripped and template substitutions (`${...}`) are cut
  out, so only text that is literally part of the string is returned.

  Args:
      node: A `string` or `template_string` node.
      source: The document text.

  Returns:
      List[Tuple[int, int]]: Non-empty [start, end) spans in source order.
  """
  start, end = source.node_span(node)
  inner_start, inner_end = start + 1, end - 1
  segments: List[Tuple[int, int]] = []
  cursor = inner_start
  for child in node.children:
    if child.type == "template_substitution":
      c_start, c_end = source.node_span(child)
      if c_start > cursor:
        segments.append((cursor, c_start))
      cursor = c_end
  if inner_end > cursor:
    segments.append((cursor, inner_end))
  return segments


def _contains(outer: Node, inner: Node) -> bool:
  return outer.start_byte <= inner.start_byte and inner.end_byte <= outer.end_byte


def _references(condition: Node, name: str, source: SourceText) -> bool:
  for node in iter_nodes(condition):
    if node.type in ("identifier", "member_expression") and is_global_reference(node, name, source):
      return True
    # "fetch" in window
    if node.type == "string" and source.node_text(node)[1:-1] == name:
      return True
  return False


def is_feature_detected(node: Node, name: str, source: SourceText) -> bool:
  """
  Checks whether a node sits in the guarded branch of a feature test on `name`.

  Recognises `cond ? <node> : ...` and `if (cond) { <node> }` where `cond`
  mentions `name`, directly or through a global object (e.g.
  `typeof fetch !== "undefined"`, `window.fetch`, `"fetch" in window`).
  """
  child = node
  parent = node.parent
  while parent is not None:
    if parent.type in _GUARD_TYPES:
      condition = parent.child_by_field_name("condition")
      consequence = parent.child_by_field_name("consequence")
      if (
        condition is not None
        and consequence is not None
        and _contains(consequence, child)
        and _references(condition, name, source)
      ):
        return True
    child = parent
    parent = parent.parent
  return False


class PatternMatcher:
  """
  Applies catalogue patterns to parsed units.
  """

  def __init__(self, catalogue: Catalogue):
    """
    Args:
        catalogue: The loaded feature catalogue.
    """
    self.catalogue = catalogue

  def match(self, unit: ParsedUnit) -> List[MatchRecord]:
    """
    Finds all pattern occurrences in a unit.

    Args:
        unit: The parsed document.

    Returns:
        List[MatchRecord]: Records sorted by (start, catalogue order).
    """
    entries = self.catalogue.lookup_patterns(unit.kind)
    structural = [(e, p) for e, p in entries if isinstance(p, StructuralPattern)]
    textual = [(e, p) for e, p in entries if isinstance(p, TextualPattern)]
    claimed: Dict[Tuple[int, int], MatchRecord] = {}

    if unit.kind == SourceKind.SCRIPT and unit.root is not None:
      for node in iter_nodes(unit.root):
        if node.type in _LITERAL_TYPES:
          delimiter = unit.source.text[unit.source.node_span(node)[0]]
          for seg_start, seg_end in literal_segments(node, unit.source):
            self._scan_text(unit.source, seg_start, seg_end, unit.kind, textual, claimed, delimiter)
          continue
        for entry, pattern in structural:
          if node.type != _NODE_TYPES[pattern.node]:
            continue
          captures = self._match_structural(node, pattern, unit.source)
          if captures is None:
            continue
          start, end = unit.source.node_span(node)
          self._claim(claimed, self._record(entry, pattern.analysis_only, unit.source, start, end, captures))
    else:
      self._scan_text(unit.source, 0, len(unit.source), unit.kind, textual, claimed)

    return sorted(claimed.values(), key=lambda r: (r.start, r.order))

  def _record(
    self,
    entry: FeatureEntry,
    analysis_only: bool,
    source: SourceText,
    start: int,
    end: int,
    captures: Sequence[Optional[str]],
    delimiter: Optional[str] = None,
  ) -> MatchRecord:
    line, column = source.position(start)
    return MatchRecord(
      feature_id=entry.id,
      order=self.catalogue.order_of(entry.id),
      start=start,
      end=end,
      line=line,
      column=column,
      text=source.text[start:end],
      captures=tuple(captures),
      analysis_only=analysis_only,
      delimiter=delimiter,
    )

  @staticmethod
  def _claim(claimed: Dict[Tuple[int, int], MatchRecord], record: MatchRecord) -> None:
    existing = claimed.get(record.span)
    if existing is None or record.order < existing.order:
      claimed[record.span] = record

  def _scan_text(
    self,
    source: SourceText,
    seg_start: int,
    seg_end: int,
    kind: SourceKind,
    patterns: List[Tuple[FeatureEntry, TextualPattern]],
    claimed: Dict[Tuple[int, int], MatchRecord],
    delimiter: Optional[str] = None,
  ) -> None:
    """
    Runs textual patterns over one segment, skipping matches that start in a comment.

    Matching uses `search` from a moving position rather than slicing, so
    lookbehinds still see the text before a skipped comment.
    """
    if not patterns or seg_end <= seg_start:
      return
    segment = source.text[seg_start:seg_end]
    comments = comment_spans(segment, kind)
    for entry, pattern in patterns:
      pos = 0
      while pos <= len(segment):
        m = pattern.compiled.search(segment, pos)
        if m is None:
          break
        comment = _enclosing(comments, m.start())
        if comment is not None:
          pos = comment[1]
          continue
        record = self._record(
          entry,
          pattern.analysis_only,
          source,
          seg_start + m.start(),
          seg_start + m.end(),
          m.groups(),
          delimiter,
        )
        self._claim(claimed, record)
        pos = m.end() if m.end() > m.start() else m.end() + 1

  def _match_structural(self, node: Node, pattern: StructuralPattern, source: SourceText) -> Optional[Captures]:
    """
    Tests one node against a structural pattern.

    Returns:
        Optional[Captures]: The captures if the node matches, None otherwise.
    """
    callee: Optional[Node] = None
    member: Optional[Node] = None
    args: Optional[Node] = None

    if pattern.node == StructuralNode.CALL:
      callee = node.child_by_field_name("function")
      args = node.child_by_field_name("arguments")
      if callee is None or args is None or args.type != "arguments":
        return None
      if pattern.callee:
        if not is_global_reference(callee, pattern.callee, source):
          return None
      else:
        if callee.type != "member_expression" or not self._member_matches(callee, pattern, source):
          return None
        member = callee
      detected_name = pattern.callee or source.node_text(callee)
      if pattern.skip_feature_detected and is_feature_detected(node, detected_name, source):
        return None

    elif pattern.node == StructuralNode.NEW:
      callee = node.child_by_field_name("constructor")
      args = node.child_by_field_name("arguments")
      if callee is None or not is_global_reference(callee, pattern.constructor, source):
        return None

    elif pattern.node == StructuralNode.MEMBER:
      if not self._member_matches(node, pattern, source):
        return None
      member = node

    return tuple(self._capture(name, callee, member, args, source) for name in pattern.captures)

  @staticmethod
  def _member_matches(node: Node, pattern: StructuralPattern, source: SourceText) -> bool:
    prop = node.child_by_field_name("property")
    obj = node.child_by_field_name("object")
    if prop is None or obj is None or source.node_text(prop) != pattern.property_name:
      return False
    return pattern.object_name is None or is_global_reference(obj, pattern.object_name, source)

  @staticmethod
  def _capture(
    name: str,
    callee: Optional[Node],
    member: Optional[Node],
    args: Optional[Node],
    source: SourceText,
  ) -> Optional[str]:
    if name == "callee":
      return source.node_text(callee) if callee is not None else None

    if name in ("receiver", "object"):
      if member is None:
        return None
      obj = member.child_by_field_name("object")
      if name == "object":
        return source.node_text(obj)
      # Object text up to the property, including the `.` or `?.` operator.
      prop = member.child_by_field_name("property")
      return source.text[source.char_offset(obj.start_byte) : source.char_offset(prop.start_byte)]

    if args is None:
      return None
    if name == "arguments":
      start, end = source.node_span(args)
      return source.text[start + 1 : end - 1]

    # arg:N
    index = int(name.split(":", 1)[1])
    values = [child for child in args.named_children if child.type != "comment"]
    if index >= len(values) or values[index].type == "spread_element":
      return None
    return source.node_text(values[index])
