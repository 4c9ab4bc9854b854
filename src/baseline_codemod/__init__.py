"""
baseline-codemod Package.

A source-to-source transformation engine that finds uses of web platform
features in JavaScript/TypeScript, CSS and HTML, asks a feature-safety service
whether each feature is "baseline safe", and rewrites unsafe uses into
fallback or polyfilled forms.

Usage
-----

Simple String Transformation
^^^^^^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    import baseline_codemod as bc
    code = 'const s = name.replaceAll("a", "b");'
    print(bc.transform(code, verdicts={"string-replaceall": "unsafe"}))
    # const s = name.replace(new RegExp("a", "g"), "b");

Batch Usage (Engine + Runner)
^^^^^^^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    from baseline_codemod import CodemodEngine, CodemodRunner, HttpVerdictSource, SafetyClassifier

    async with HttpVerdictSource("http://localhost:3000") as source:
        engine = CodemodEngine(SafetyClassifier(source))
        summary = await CodemodRunner(engine).transform_files(paths, dry_run=True)
"""

import asyncio
from typing import Mapping, Optional, Union

from baseline_codemod.catalogue.registry import Catalogue
from baseline_codemod.classifier.gateway import SafetyClassifier, SafetyPolicy
from baseline_codemod.classifier.sources import HttpVerdictSource, StaticVerdictSource
from baseline_codemod.config import RuntimeConfig
from baseline_codemod.core.engine import CodemodEngine
from baseline_codemod.core.runner import CodemodRunner
from baseline_codemod.enums import SafetyTier, SourceKind

__version__ = "0.1.0"


def transform(
  code: str,
  verdicts: Mapping[str, Union[SafetyTier, str]],
  kind: Union[SourceKind, str] = SourceKind.SCRIPT,
  policy: Optional[SafetyPolicy] = None,
  catalogue: Optional[Catalogue] = None,
) -> str:
  """
  Rewrites one document using a fixed verdict table instead of the service.

  Args:
      code: The source text.
      verdicts: Safety tier per feature id; missing features are unknown.
      kind: 'script', 'stylesheet' or 'markup'.
      policy: Verdict policy (fail-open, caution and unsafe actionable, if None).
      catalogue: Feature catalogue (built-in if None).

  Returns:
      str: The rewritten source (unchanged when nothing applies).

  Raises:
      ValueError: If the document cannot be parsed.
  """
  engine = CodemodEngine(SafetyClassifier(StaticVerdictSource(verdicts)), catalogue=catalogue, policy=policy)
  result = asyncio.run(engine.transform_source(code, SourceKind(kind)))
  if result.parse_error:
    raise ValueError(f"Transformation failed: {result.parse_error}")
  return result.source


__all__ = [
  "Catalogue",
  "CodemodEngine",
  "CodemodRunner",
  "HttpVerdictSource",
  "RuntimeConfig",
  "SafetyClassifier",
  "SafetyPolicy",
  "SafetyTier",
  "SourceKind",
  "StaticVerdictSource",
  "transform",
  "__version__",
]
