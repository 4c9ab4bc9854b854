"""
Main Entry Point for baseline-codemod CLI.

This module handles argument parsing and dispatches to specific command
handlers defined in `baseline_codemod.cli.commands`.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from baseline_codemod import __version__
from baseline_codemod.cli import commands


def _add_safety_options(cmd: argparse.ArgumentParser) -> None:
  cmd.add_argument("--api", default=None, help="Feature-safety service URL (default: from toml or http://localhost:3000)")
  cmd.add_argument("--catalogue", type=Path, default=None, help="Custom catalogue JSON (see generate-rules)")
  cmd.add_argument(
    "--fail-closed",
    action="store_true",
    default=None,
    help="Treat features the service cannot classify as unsafe (Overrides config)",
  )
  cmd.add_argument(
    "--severity",
    choices=["caution", "unsafe"],
    default=None,
    help="Lowest safety tier to act on (default: caution)",
  )


def main(argv: Optional[List[str]] = None) -> int:
  """
  Main CLI entry point.

  Parses arguments via argparse and calls the appropriate handler function.

  Args:
      argv: Optional list of command line arguments (defaults to sys.argv).

  Returns:
      int: Exit code (0 for success, non-zero for failure).
  """
  parser = argparse.ArgumentParser(description="baseline-codemod: rewrite web features that are not baseline safe")
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

  subparsers = parser.add_subparsers(dest="command", required=True)

  # --- Command: TRANSFORM ---
  cmd_tr = subparsers.add_parser("transform", help="Rewrite unsafe features in place")
  cmd_tr.add_argument("target", help="File, directory or glob (e.g. 'src/**/*.js')")
  cmd_tr.add_argument("--dry-run", action="store_true", help="Show changes without writing files")
  cmd_tr.add_argument("--verbose", action="store_true", help="Print every transformation and skipped conflict")
  cmd_tr.add_argument(
    "--strict",
    action="store_true",
    default=None,
    help="Exit with status 1 if any file fails to parse (Overrides config)",
  )
  cmd_tr.add_argument("--jobs", type=int, default=None, help="Files processed concurrently (default: 8)")
  _add_safety_options(cmd_tr)

  # --- Command: ANALYZE ---
  cmd_an = subparsers.add_parser("analyze", help="Report unsafe features without modifying files")
  cmd_an.add_argument("target", help="File, directory or glob (e.g. 'src/**/*.js')")
  cmd_an.add_argument("--report", action="store_true", help="Write a JSON report")
  cmd_an.add_argument(
    "--report-path",
    type=Path,
    default=None,
    help="Report destination (default: baseline-analysis-report.json)",
  )
  _add_safety_options(cmd_an)

  # --- Command: CATALOGUE ---
  cmd_cat = subparsers.add_parser("catalogue", help="List catalogued features")
  cmd_cat.add_argument("--catalogue", type=Path, default=None, help="Custom catalogue JSON")

  # --- Command: GENERATE RULES ---
  cmd_gen = subparsers.add_parser("generate-rules", help="Write the built-in catalogue as JSON")
  cmd_gen.add_argument("-o", "--output", type=Path, default=None, help="Output file (default: baseline-rules.json)")

  args = parser.parse_args(argv)

  if args.command == "transform":
    return commands.handle_transform(
      args.target,
      dry_run=args.dry_run,
      verbose=args.verbose,
      api=args.api,
      strict=args.strict,
      jobs=args.jobs,
      catalogue_path=args.catalogue,
      fail_closed=args.fail_closed,
      severity=args.severity,
    )

  elif args.command == "analyze":
    return commands.handle_analyze(
      args.target,
      report=args.report,
      report_path=args.report_path,
      api=args.api,
      catalogue_path=args.catalogue,
      fail_closed=args.fail_closed,
      severity=args.severity,
    )

  elif args.command == "catalogue":
    return commands.handle_catalogue(args.catalogue)

  elif args.command == "generate-rules":
    return commands.handle_generate_rules(args.output)

  return 0


if __name__ == "__main__":
  sys.exit(main())
