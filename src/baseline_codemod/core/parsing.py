"""
Source Parsing.

Scripts are parsed with tree-sitter (JavaScript, TypeScript or TSX grammar
depending on the file extension). Stylesheets and markup are not parsed into a
tree; their patterns are purely textual.

tree-sitter reports UTF-8 byte offsets. `SourceText` converts them to the
character offsets used by every record downstream.
"""

import re
from bisect import bisect_right
from functools import lru_cache
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import tree_sitter_javascript as ts_javascript
import tree_sitter_typescript as ts_typescript
from tree_sitter import Language, Node, Parser, Tree

from baseline_codemod.enums import SourceKind
from baseline_codemod.errors import ParseError

JAVASCRIPT = "javascript"
TYPESCRIPT = "typescript"
TSX = "tsx"

_TS_EXTENSIONS = {".ts", ".mts", ".cts"}


def dialect_for(path: Optional[Path]) -> str:
  """
  Selects the grammar for a script path. Unknown or missing paths use JavaScript (with JSX).
  """
  if path is None:
    return JAVASCRIPT
  ext = path.suffix.lower()
  if ext in _TS_EXTENSIONS:
    return TYPESCRIPT
  if ext == ".tsx":
    return TSX
  return JAVASCRIPT


@lru_cache(maxsize=None)
def _language(dialect: str) -> Language:
  if dialect == TYPESCRIPT:
    return Language(ts_typescript.language_typescript())
  if dialect == TSX:
    return Language(ts_typescript.language_tsx())
  return Language(ts_javascript.language())


class SourceText:
  """
  Source string with byte/character offset conversion and line lookup.
  """

  def __init__(self, text: str):
    self.text = text
    self.data = text.encode("utf-8")
    self._byte_to_char: Optional[List[int]] = None
    self._line_starts = [0] + [m.end() for m in re.finditer("\n", text)]

  def __len__(self) -> int:
    return len(self.text)

  def char_offset(self, byte_offset: int) -> int:
    """
    Converts a UTF-8 byte offset into a character offset.
    """
    if len(self.data) == len(self.text):
      return byte_offset
    if self._byte_to_char is None:
      mapping: List[int] = []
      for idx, ch in enumerate(self.text):
        mapping.extend([idx] * len(ch.encode("utf-8")))
      mapping.append(len(self.text))
      self._byte_to_char = mapping
    return self._byte_to_char[byte_offset]

  def node_span(self, node: Node) -> Tuple[int, int]:
    """Character span [start, end) of a tree-sitter node."""
    return self.char_offset(node.start_byte), self.char_offset(node.end_byte)

  def node_text(self, node: Node) -> str:
    start, end = self.node_span(node)
    return self.text[start:end]

  def position(self, offset: int) -> Tuple[int, int]:
    """
    Args:
        offset: Character offset.

    Returns:
        Tuple[int, int]: 1-based (line, column).
    """
    line_idx = bisect_right(self._line_starts, offset) - 1
    return line_idx + 1, offset - self._line_starts[line_idx] + 1


class ParsedUnit:
  """
  A parsed source document.

  Attributes:
      kind (SourceKind): Document category.
      source (SourceText): The original text.
      tree (Optional[Tree]): Syntax tree for scripts, None otherwise.
      dialect (Optional[str]): Grammar used for scripts.
  """

  def __init__(self, kind: SourceKind, source: SourceText, tree: Optional[Tree] = None, dialect: Optional[str] = None):
    self.kind = kind
    self.source = source
    self.tree = tree
    self.dialect = dialect

  @property
  def text(self) -> str:
    return self.source.text

  @property
  def root(self) -> Optional[Node]:
    return self.tree.root_node if self.tree is not None else None


def iter_nodes(root: Node) -> Iterator[Node]:
  """
  Pre-order traversal of a tree-sitter subtree (children in source order).
  """
  stack = [root]
  while stack:
    node = stack.pop()
    yield node
    stack.extend(reversed(node.children))


def _first_error(root: Node) -> Optional[Node]:
  for node in iter_nodes(root):
    if node.type == "ERROR" or node.is_missing:
      return node
  return None


def parse_source(text: str, kind: SourceKind, dialect: str = JAVASCRIPT) -> ParsedUnit:
  """
  Parses a document for its declared kind.

  Args:
      text: Source text.
      kind: Source kind.
      dialect: Script grammar (ignored for stylesheets and markup).

  Returns:
      ParsedUnit: The parsed unit.

  Raises:
      ParseError: If a script contains syntax errors.
  """
  source = SourceText(text)
  if kind != SourceKind.SCRIPT:
    return ParsedUnit(kind, source)

  parser = Parser(_language(dialect))
  tree = parser.parse(source.data)
  root = tree.root_node

  if root.has_error:
    bad = _first_error(root) or root
    line, column = source.position(source.char_offset(bad.start_byte))
    if bad.is_missing:
      message = f"Invalid {dialect} syntax: missing '{bad.type}'"
    else:
      message = f"Invalid {dialect} syntax"
    raise ParseError(message, line=line, column=column)

  return ParsedUnit(kind, source, tree=tree, dialect=dialect)
