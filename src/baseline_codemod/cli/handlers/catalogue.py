"""
Catalogue Command Handlers.

- ``catalogue``: prints the feature table.
- ``generate-rules``: writes the built-in catalogue as JSON, in the format
  accepted back by ``--catalogue``.
"""

import json
from pathlib import Path
from typing import Optional

from rich.markup import escape
from rich.table import Table

from baseline_codemod.catalogue.registry import load_catalogue
from baseline_codemod.catalogue.schema import StructuralPattern
from baseline_codemod.errors import CatalogueError
from baseline_codemod.utils.console import console, log_error, log_success

DEFAULT_RULES_PATH = Path("baseline-rules.json")


def handle_catalogue(catalogue_path: Optional[Path] = None) -> int:
  """
  Prints every catalogued feature with its source kinds and rewrite.

  Returns:
      int: Exit code.
  """
  try:
    catalogue = load_catalogue(catalogue_path)
  except CatalogueError as e:
    log_error(str(e))
    return 1

  table = Table(title="Feature Catalogue")
  table.add_column("#", justify="right", style="muted")
  table.add_column("Feature", style="code", no_wrap=True)
  table.add_column("Sources", no_wrap=True)
  table.add_column("Patterns")
  table.add_column("Rewrite", overflow="fold")

  for i, entry in enumerate(catalogue.entries):
    kinds = ", ".join(k.value for k in entry.source_kinds)
    if entry.scan_embedded:
      kinds += " (+embedded)"
    patterns = ", ".join(
      p.node.value if isinstance(p, StructuralPattern) else "textual" for p in entry.patterns
    )
    rewrite = escape(entry.rewrite.template) if entry.rewrite else "[muted]analysis only[/muted]"
    table.add_row(str(i), f"{entry.id}\n[muted]{entry.title}[/muted]", kinds, patterns, rewrite)

  console.print(table)
  return 0


def handle_generate_rules(output: Optional[Path] = None) -> int:
  """
  Writes the built-in catalogue to `output`.

  Returns:
      int: Exit code.
  """
  dest = output or DEFAULT_RULES_PATH
  data = load_catalogue().dump()
  try:
    dest.parent.mkdir(parents=True, exist_ok=True)
    with open(dest, "wt", encoding="utf-8") as f:
      json.dump(data, f, indent=2)
      f.write("\n")
  except OSError as e:
    log_error(f"Cannot write {dest}: {e}")
    return 1

  log_success(f"Wrote {len(data['features'])} rules to [path]{dest}[/path]")
  return 0
