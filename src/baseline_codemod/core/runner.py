"""
Batch Runner.

Drives the `CodemodEngine` over many files:

- Files run concurrently up to `jobs` at a time. Each file's pipeline runs to
  completion independently; files share only the classifier cache.
- Failures are local to their file. Parse errors, unreadable files and write
  errors are recorded on the file's result and the batch continues.
- Apply mode persists changed files atomically (temp file + rename). Dry-run
  mode never writes.
- An optional batch timeout stops *starting* new files once it expires; files
  already in progress finish, so no file is left half-written.
"""

import asyncio
import time
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar

from baseline_codemod.catalogue.registry import source_kind_for
from baseline_codemod.core.engine import CodemodEngine
from baseline_codemod.core.lifecycle import FileLifecycle
from baseline_codemod.core.records import AnalysisResult, TransformResult
from baseline_codemod.enums import FileState
from baseline_codemod.errors import WriteError
from baseline_codemod.reporting.report import AnalysisReport, TransformSummary
from baseline_codemod.utils.console import log_error, log_warning
from baseline_codemod.utils.fs import atomic_write_text, read_source

R = TypeVar("R")

DEFAULT_JOBS = 8


class CodemodRunner:
  """
  Processes files through the engine and aggregates the outcome.
  """

  def __init__(
    self,
    engine: CodemodEngine,
    jobs: int = DEFAULT_JOBS,
    batch_timeout: Optional[float] = None,
    clock: Optional[Callable[[], float]] = None,
  ):
    """
    Args:
        engine: The per-document engine.
        jobs: Maximum number of files processed concurrently.
        batch_timeout: Seconds after which no new file is started (None = unlimited).
        clock: Monotonic time source (injectable for tests).
    """
    self.engine = engine
    self.jobs = max(1, jobs)
    self.batch_timeout = batch_timeout
    self._clock = clock or time.monotonic

  async def process_file(self, path: Path, dry_run: bool = False) -> TransformResult:
    """
    Transforms one file and, in apply mode, persists it if it changed.

    Args:
        path: Source file (must have a supported extension).
        dry_run: Never write when True.

    Returns:
        TransformResult: Final result in a terminal state.
    """
    kind = source_kind_for(path)
    if kind is None:
      raise ValueError(f"Unsupported file type: {path}")

    try:
      text = read_source(path)
    except (OSError, UnicodeDecodeError) as e:
      result = TransformResult(path=path, source_kind=kind)
      FileLifecycle(result.history).advance(FileState.PARSE_ERROR)
      result.parse_error = f"Cannot read file: {e}"
      result.errors.append(result.parse_error)
      log_warning(f"Skipping [path]{path}[/path]: {result.parse_error}")
      return result

    result = await self.engine.transform_source(text, kind, path)
    if result.state == FileState.PARSE_ERROR:
      log_warning(f"Skipping [path]{path}[/path]: {result.parse_error}")
      return result

    lifecycle = FileLifecycle(result.history)
    if dry_run or not result.has_changes:
      lifecycle.advance(FileState.REPORTED)
      return result

    try:
      atomic_write_text(path, result.source)
    except OSError as e:
      err = WriteError(f"Cannot write {path}: {e}")
      result.write_error = str(err)
      result.errors.append(str(err))
      log_error(str(err))
      lifecycle.advance(FileState.REPORTED)
      return result

    lifecycle.advance(FileState.PERSISTED)
    return result

  async def analyze_file(self, path: Path) -> AnalysisResult:
    """
    Analyzes one file without modifying it.
    """
    kind = source_kind_for(path)
    if kind is None:
      raise ValueError(f"Unsupported file type: {path}")
    try:
      text = read_source(path)
    except (OSError, UnicodeDecodeError) as e:
      result = AnalysisResult(path=path, parse_error=f"Cannot read file: {e}")
      result.errors.append(result.parse_error)
      log_warning(f"Skipping [path]{path}[/path]: {result.parse_error}")
      return result

    result = await self.engine.analyze_source(text, kind, path)
    if result.parse_error:
      log_warning(f"Skipping [path]{path}[/path]: {result.parse_error}")
    return result

  async def transform_files(self, paths: Sequence[Path], dry_run: bool = False) -> TransformSummary:
    """
    Transforms a batch of files.

    Args:
        paths: Files to process (unsupported extensions are skipped with a warning).
        dry_run: Never write when True.

    Returns:
        TransformSummary: Aggregated counts plus per-file results in input order.
    """
    supported, unsupported = self._partition(paths)

    async def worker(path: Path) -> TransformResult:
      try:
        return await self.process_file(path, dry_run=dry_run)
      except Exception as e:
        log_error(f"Failed to transform {path}: {e}")
        return TransformResult(path=path, source_kind=source_kind_for(path), errors=[str(e)])

    results, skipped = await self._run_bounded(supported, worker)
    return TransformSummary.from_results(
      results, total_files=len(paths), dry_run=dry_run, unsupported=unsupported, skipped=skipped
    )

  async def analyze_files(self, paths: Sequence[Path]) -> Tuple[AnalysisReport, List[AnalysisResult]]:
    """
    Analyzes a batch of files.

    Returns:
        Tuple[AnalysisReport, List[AnalysisResult]]: The report and per-file results in input order.
    """
    supported, _ = self._partition(paths)

    async def worker(path: Path) -> AnalysisResult:
      try:
        return await self.analyze_file(path)
      except Exception as e:
        log_error(f"Failed to analyze {path}: {e}")
        return AnalysisResult(path=path, errors=[str(e)])

    results, _ = await self._run_bounded(supported, worker)
    return AnalysisReport.from_results(results, total_files=len(paths)), results

  @staticmethod
  def _partition(paths: Sequence[Path]) -> Tuple[List[Path], List[Path]]:
    supported: List[Path] = []
    unsupported: List[Path] = []
    for path in paths:
      if source_kind_for(path) is None:
        log_warning(f"Unsupported file type, skipping [path]{path}[/path]")
        unsupported.append(path)
      else:
        supported.append(path)
    return supported, unsupported

  async def _run_bounded(
    self, paths: Sequence[Path], worker: Callable[[Path], Awaitable[R]]
  ) -> Tuple[List[R], List[Path]]:
    semaphore = asyncio.Semaphore(self.jobs)
    deadline = None if self.batch_timeout is None else self._clock() + self.batch_timeout
    skipped: List[Path] = []

    async def run_one(path: Path) -> Optional[R]:
      async with semaphore:
        if deadline is not None and self._clock() >= deadline:
          skipped.append(path)
          return None
        return await worker(path)

    outcomes = await asyncio.gather(*(run_one(p) for p in paths))
    if skipped:
      log_warning(f"Batch timeout reached: {len(skipped)} file(s) not processed.")
    return [o for o in outcomes if o is not None], sorted(skipped)
