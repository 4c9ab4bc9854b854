"""
Pytest Configuration and Fixtures.

Includes:
- Syspath patching for local imports.
- Engine fixtures backed by a fixed verdict table (no network).
- Console capture for asserting on log output.
"""

import io
import sys
from pathlib import Path
from typing import Callable, Dict, Optional

import pytest
from rich.console import Console

# Add src to path so we can import 'baseline_codemod' without installing it
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from baseline_codemod.catalogue.registry import Catalogue  # noqa: E402
from baseline_codemod.classifier.gateway import SafetyClassifier, SafetyPolicy  # noqa: E402
from baseline_codemod.classifier.sources import StaticVerdictSource  # noqa: E402
from baseline_codemod.core.engine import CodemodEngine  # noqa: E402
from baseline_codemod.utils.console import _THEME, reset_console, set_console, set_verbose  # noqa: E402

EngineFactory = Callable[..., CodemodEngine]


@pytest.fixture
def make_engine() -> EngineFactory:
  """
  Builds engines whose classifier answers from a fixed table.

  Usage::

      engine = make_engine({"string-replaceall": "unsafe"})
  """

  def _factory(
    verdicts: Optional[Dict[str, str]] = None,
    catalogue: Optional[Catalogue] = None,
    policy: Optional[SafetyPolicy] = None,
  ) -> CodemodEngine:
    classifier = SafetyClassifier(StaticVerdictSource(verdicts or {}))
    return CodemodEngine(classifier, catalogue=catalogue, policy=policy)

  return _factory


@pytest.fixture
def captured_console():
  """
  Routes printing and logging into a buffer for the duration of a test.

  Yields:
      io.StringIO: The buffer receiving all console output.
  """
  buf = io.StringIO()
  set_console(Console(file=buf, width=200, force_terminal=False, color_system=None, theme=_THEME))
  yield buf
  reset_console()
  set_verbose(False)
