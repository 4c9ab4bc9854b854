"""
CLI Command Handlers Facade.

Re-exports the handlers from `baseline_codemod.cli.handlers` so the dispatcher
(and tests patching it) have a single module to reference.
"""

from baseline_codemod.cli.handlers.analyze import handle_analyze
from baseline_codemod.cli.handlers.catalogue import handle_catalogue, handle_generate_rules
from baseline_codemod.cli.handlers.transform import handle_transform

__all__ = [
  "handle_analyze",
  "handle_catalogue",
  "handle_generate_rules",
  "handle_transform",
]
