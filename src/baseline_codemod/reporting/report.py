"""
Report Formatter.

Aggregates per-file results into batch reports and renders them.

- `AnalysisReport`: the JSON report of the ``analyze`` command. Keys are
  camelCase on disk (``totalFiles``, ``issuesBySafety`` ...).
- `TransformSummary`: counts for the ``transform`` command, broken down by
  feature and by safety tier.
"""

import json
from collections import Counter
from pathlib import Path
from typing import Dict, List, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from rich.table import Table

from baseline_codemod.core.records import AnalysisResult, TransformResult
from baseline_codemod.enums import SafetyTier
from baseline_codemod.utils.console import console


class IssuesBySafety(BaseModel):
  unsafe: int = 0
  caution: int = 0


class AnalysisReport(BaseModel):
  """
  Aggregate of an analysis run.
  """

  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

  total_files: int = 0
  files_with_issues: int = 0
  total_issues: int = 0
  issues_by_feature: Dict[str, int] = Field(default_factory=dict)
  issues_by_safety: IssuesBySafety = Field(default_factory=IssuesBySafety)

  @classmethod
  def from_results(cls, results: Sequence[AnalysisResult], total_files: int) -> "AnalysisReport":
    """
    Args:
        results: Per-file analysis results.
        total_files: Number of files in the run (including failed ones).

    Returns:
        AnalysisReport: The aggregate.
    """
    report = cls(total_files=total_files)
    by_feature: Counter = Counter()
    for res in results:
      if not res.has_issues:
        continue
      report.files_with_issues += 1
      report.total_issues += len(res.unsafe_features)
      for feature in res.unsafe_features:
        by_feature[feature.feature_id] += 1
        if feature.safety == SafetyTier.UNSAFE:
          report.issues_by_safety.unsafe += 1
        elif feature.safety == SafetyTier.CAUTION:
          report.issues_by_safety.caution += 1
    report.issues_by_feature = dict(sorted(by_feature.items()))
    return report

  def to_json(self) -> str:
    return json.dumps(self.model_dump(by_alias=True), indent=2)


class TransformSummary(BaseModel):
  """
  Aggregate of a transform run.
  """

  dry_run: bool = False
  total_files: int = 0
  files_modified: int = 0
  total_transformations: int = 0
  transformations_by_feature: Dict[str, int] = Field(default_factory=dict)
  transformations_by_tier: Dict[str, int] = Field(default_factory=dict)
  conflicts_dropped: int = 0
  unrewritable: int = 0
  parse_errors: Dict[str, str] = Field(default_factory=dict)
  write_errors: Dict[str, str] = Field(default_factory=dict)
  unsupported_files: List[str] = Field(default_factory=list)
  skipped_files: List[str] = Field(default_factory=list, description="Not started before the batch timeout.")
  results: List[TransformResult] = Field(default_factory=list, exclude=True)

  @classmethod
  def from_results(
    cls,
    results: Sequence[TransformResult],
    total_files: int,
    dry_run: bool = False,
    unsupported: Sequence[Path] = (),
    skipped: Sequence[Path] = (),
  ) -> "TransformSummary":
    summary = cls(
      dry_run=dry_run,
      total_files=total_files,
      unsupported_files=[str(p) for p in unsupported],
      skipped_files=[str(p) for p in skipped],
      results=list(results),
    )
    by_feature: Counter = Counter()
    by_tier: Counter = Counter()
    for res in results:
      label = str(res.path) if res.path else "<source>"
      if res.parse_error:
        summary.parse_errors[label] = res.parse_error
        continue
      if res.write_error:
        summary.write_errors[label] = res.write_error
      if res.has_changes:
        summary.files_modified += 1
      summary.total_transformations += len(res.transformations)
      summary.conflicts_dropped += len(res.conflicts)
      summary.unrewritable += len(res.unrewritable)
      for t in res.transformations:
        by_feature[t.feature_id] += 1
        by_tier[t.tier.value if t.tier else SafetyTier.UNKNOWN.value] += 1
    summary.transformations_by_feature = dict(sorted(by_feature.items()))
    summary.transformations_by_tier = dict(sorted(by_tier.items()))
    return summary


def write_report(report: AnalysisReport, path: Path) -> None:
  """
  Writes the JSON analysis report.

  Raises:
      OSError: If the file cannot be written.
  """
  path.parent.mkdir(parents=True, exist_ok=True)
  with open(path, "wt", encoding="utf-8") as f:
    f.write(report.to_json())
    f.write("\n")


def render_transform_summary(summary: TransformSummary) -> None:
  """
  Prints the transform summary table.
  """
  table = Table(title="📊 Transformation Summary")
  table.add_column("Metric", style="cyan")
  table.add_column("Value", justify="right")
  table.add_row("Files processed", str(summary.total_files))
  table.add_row("Files modified", str(summary.files_modified))
  table.add_row("Total transformations", str(summary.total_transformations))
  for feature, count in summary.transformations_by_feature.items():
    table.add_row(f"  {feature}", str(count))
  for tier, count in summary.transformations_by_tier.items():
    table.add_row(f"  tier: {tier}", str(count))
  if summary.conflicts_dropped:
    table.add_row("Conflicts dropped", str(summary.conflicts_dropped))
  if summary.unrewritable:
    table.add_row("Not rewritable", str(summary.unrewritable))
  if summary.parse_errors:
    table.add_row("Parse errors", str(len(summary.parse_errors)))
  if summary.write_errors:
    table.add_row("Write errors", str(len(summary.write_errors)))
  if summary.skipped_files:
    table.add_row("Skipped (timeout)", str(len(summary.skipped_files)))
  console.print(table)
  if summary.dry_run:
    console.print("[warning](Dry run - no files were actually modified)[/warning]")


def render_analysis(results: Sequence[AnalysisResult], report: AnalysisReport) -> None:
  """
  Prints per-file issues followed by the analysis summary.
  """
  for res in results:
    if not res.has_issues:
      continue
    console.print(f"[warning]⚠️  {res.path}:[/warning]")
    for feature in res.unsafe_features:
      icon = "❌" if feature.safety == SafetyTier.UNSAFE else "⚠️"
      tier = feature.safety.value
      console.print(f"   {icon} Line {feature.line}: {feature.name} ([{tier}]{tier}[/{tier}])")
      console.print(f"      [muted]{feature.reason}[/muted]")

  table = Table(title="📊 Analysis Summary")
  table.add_column("Metric", style="cyan")
  table.add_column("Value", justify="right")
  table.add_row("Files analyzed", str(report.total_files))
  table.add_row("Files with issues", str(report.files_with_issues))
  table.add_row("Total issues", str(report.total_issues))
  table.add_row("Unsafe features", str(report.issues_by_safety.unsafe))
  table.add_row("Features needing caution", str(report.issues_by_safety.caution))
  console.print(table)
