"""
Transform Command Handler.

Implements ``baseline-codemod transform``: rewrites every matched feature whose
verdict requires action, in place (or only reports, with ``--dry-run``).
"""

import asyncio
from pathlib import Path
from typing import List, Optional

from baseline_codemod.catalogue.registry import Catalogue
from baseline_codemod.cli.handlers.session import open_runner, prepare
from baseline_codemod.config import RuntimeConfig
from baseline_codemod.core.records import TransformResult
from baseline_codemod.reporting.report import TransformSummary, render_transform_summary
from baseline_codemod.utils.console import (
  log_debug,
  log_error,
  log_info,
  log_success,
  log_warning,
  set_verbose,
)


def handle_transform(
  target: str,
  dry_run: bool = False,
  verbose: bool = False,
  api: Optional[str] = None,
  strict: Optional[bool] = None,
  jobs: Optional[int] = None,
  catalogue_path: Optional[Path] = None,
  fail_closed: Optional[bool] = None,
  severity: Optional[str] = None,
) -> int:
  """
  Handles the 'transform' command execution.

  Args:
      target: File, directory or glob to process.
      dry_run: Report what would change without writing.
      verbose: Print per-file transformations and dropped conflicts.
      api: Override for the classifier URL.
      strict: Exit non-zero if any file fails to parse.
      jobs: Override for the concurrency bound.
      catalogue_path: Custom catalogue JSON.
      fail_closed: Treat classifier failures as unsafe.
      severity: Lowest tier to act on ('caution' or 'unsafe').

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  set_verbose(verbose)
  prepared = prepare(
    target,
    api_endpoint=api,
    strict=strict,
    jobs=jobs,
    catalogue_path=catalogue_path,
    fail_closed=fail_closed,
    min_severity=severity,
  )
  if prepared is None:
    return 1
  config, catalogue, files = prepared

  if not files:
    log_warning(f"No files match {target}")
    return 0

  mode = "Dry run" if dry_run else "Transforming"
  log_info(f"{mode}: {len(files)} file(s) with {len(catalogue)} catalogued features...")

  summary = asyncio.run(_run(config, catalogue, files, dry_run))

  for result in summary.results:
    _print_file_details(result)
  render_transform_summary(summary)

  if summary.write_errors:
    log_error(f"{len(summary.write_errors)} file(s) could not be written.")
  if summary.parse_errors and config.strict:
    log_error(f"{len(summary.parse_errors)} file(s) failed to parse (strict mode).")
    return 1

  if not dry_run and summary.files_modified:
    log_success(f"Modified {summary.files_modified} file(s).")
  return 0


async def _run(config: RuntimeConfig, catalogue: Catalogue, files: List[Path], dry_run: bool) -> TransformSummary:
  async with open_runner(config, catalogue) as runner:
    return await runner.transform_files(files, dry_run=dry_run)


def _print_file_details(result: TransformResult) -> None:
  """
  Logs one file's outcome. Details are DEBUG level (shown with ``--verbose``).
  """
  if result.parse_error:
    return
  for err in result.errors:
    if err != result.write_error:
      log_warning(f"[path]{result.path}[/path]: {err}")
  if not result.transformations and not result.conflicts and not result.unrewritable:
    return

  log_debug(f"[path]{result.path}[/path]: {len(result.transformations)} transformation(s)")
  for t in result.transformations:
    tier = t.tier.value if t.tier else "unknown"
    log_debug(f"  Line {t.line}: [code]{t.feature_id}[/code] ({tier}) {t.explanation}")
  for m in result.conflicts:
    log_debug(f"  Line {m.line}: [muted]{m.feature_id} overlaps an earlier rewrite, skipped[/muted]")
  for m in result.unrewritable:
    log_debug(f"  Line {m.line}: [muted]{m.feature_id} cannot be rewritten at this site[/muted]")
