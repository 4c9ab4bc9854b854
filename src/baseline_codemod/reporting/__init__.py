"""
Report Formatter: batch aggregates and their rendering.
"""

from baseline_codemod.reporting.report import (
  AnalysisReport,
  IssuesBySafety,
  TransformSummary,
  render_analysis,
  render_transform_summary,
  write_report,
)

__all__ = [
  "AnalysisReport",
  "IssuesBySafety",
  "TransformSummary",
  "render_analysis",
  "render_transform_summary",
  "write_report",
]
