"""
Analyze Command Handler.

Implements ``baseline-codemod analyze``: reports features that are not baseline
safe without modifying any file, optionally writing the JSON report.
"""

import asyncio
from pathlib import Path
from typing import List, Optional, Tuple

from baseline_codemod.catalogue.registry import Catalogue
from baseline_codemod.cli.handlers.session import open_runner, prepare
from baseline_codemod.config import RuntimeConfig
from baseline_codemod.core.records import AnalysisResult
from baseline_codemod.reporting.report import AnalysisReport, render_analysis, write_report
from baseline_codemod.utils.console import log_error, log_info, log_success, log_warning


def handle_analyze(
  target: str,
  report: bool = False,
  report_path: Optional[Path] = None,
  api: Optional[str] = None,
  catalogue_path: Optional[Path] = None,
  fail_closed: Optional[bool] = None,
  severity: Optional[str] = None,
) -> int:
  """
  Handles the 'analyze' command execution.

  Issues never change the exit code; only fatal startup errors do.

  Args:
      target: File, directory or glob to analyze.
      report: Write the JSON report.
      report_path: Report destination (default ``baseline-analysis-report.json``).
      api: Override for the classifier URL.
      catalogue_path: Custom catalogue JSON.
      fail_closed: Treat classifier failures as unsafe.
      severity: Lowest tier to report ('caution' or 'unsafe').

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  prepared = prepare(
    target,
    api_endpoint=api,
    catalogue_path=catalogue_path,
    fail_closed=fail_closed,
    min_severity=severity,
    report_path=report_path,
  )
  if prepared is None:
    return 1
  config, catalogue, files = prepared

  if not files:
    log_warning(f"No files match {target}")
    return 0

  log_info(f"Analyzing {len(files)} file(s)...")
  summary, results = asyncio.run(_run(config, catalogue, files))
  render_analysis(results, summary)

  if report:
    try:
      write_report(summary, config.report_path)
    except OSError as e:
      log_error(f"Cannot write report {config.report_path}: {e}")
      return 1
    log_success(f"Report saved to [path]{config.report_path}[/path]")

  return 0


async def _run(
  config: RuntimeConfig, catalogue: Catalogue, files: List[Path]
) -> Tuple[AnalysisReport, List[AnalysisResult]]:
  async with open_runner(config, catalogue) as runner:
    return await runner.analyze_files(files)
