"""
Shared setup for the batch commands.

Resolves configuration, the catalogue and the target file list, then opens a
`CodemodRunner` bound to the HTTP classifier for the duration of a command.
Fatal startup problems are logged here and surface as `None` so handlers can
turn them into exit code 1.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Optional, Tuple

from pydantic import ValidationError

from baseline_codemod.catalogue.registry import SUPPORTED_EXTENSIONS, Catalogue, load_catalogue
from baseline_codemod.classifier.gateway import SafetyClassifier
from baseline_codemod.classifier.sources import HttpVerdictSource
from baseline_codemod.config import RuntimeConfig
from baseline_codemod.core.engine import CodemodEngine
from baseline_codemod.core.runner import CodemodRunner
from baseline_codemod.errors import CatalogueError, TargetNotFoundError
from baseline_codemod.utils.console import log_error
from baseline_codemod.utils.fs import expand_targets


def prepare(target: str, **overrides) -> Optional[Tuple[RuntimeConfig, Catalogue, List[Path]]]:
  """
  Loads everything a batch command needs before touching the network.

  Args:
      target: Path, directory or glob from the command line.
      **overrides: CLI values forwarded to `RuntimeConfig.load` (None = unset).

  Returns:
      Optional[Tuple]: (config, catalogue, files), or None on a fatal error.
  """
  try:
    config = RuntimeConfig.load(**overrides)
  except ValidationError as e:
    log_error(f"Invalid configuration: {e}")
    return None

  try:
    catalogue = load_catalogue(config.catalogue_path)
    files = expand_targets(target, SUPPORTED_EXTENSIONS)
  except (CatalogueError, TargetNotFoundError) as e:
    log_error(str(e))
    return None

  return config, catalogue, files


@asynccontextmanager
async def open_runner(config: RuntimeConfig, catalogue: Catalogue) -> AsyncIterator[CodemodRunner]:
  """
  Yields a runner whose classifier talks to ``config.api_endpoint``.

  The HTTP client is closed when the block exits.
  """
  async with HttpVerdictSource(config.api_endpoint, timeout=config.request_timeout) as source:
    classifier = SafetyClassifier(source, ttl_seconds=config.cache_ttl)
    engine = CodemodEngine(classifier, catalogue=catalogue, policy=config.policy())
    yield CodemodRunner(engine, jobs=config.jobs, batch_timeout=config.batch_timeout)
