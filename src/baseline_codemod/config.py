"""
Runtime Configuration Store.

Settings come from the nearest ``pyproject.toml`` (``[tool.baseline_codemod]``)
and are overridden by CLI flags.

Example::

    [tool.baseline_codemod]
    api_endpoint = "http://localhost:3000"
    fail_closed = false
    min_severity = "caution"
    jobs = 8
    catalogue_path = "rules/baseline-rules.json"
"""

import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from baseline_codemod.classifier.gateway import DEFAULT_TTL_SECONDS, SafetyPolicy
from baseline_codemod.classifier.sources import HttpVerdictSource
from baseline_codemod.enums import SafetyTier

if sys.version_info >= (3, 11):
  import tomllib
else:
  import tomli as tomllib

DEFAULT_REPORT_PATH = Path("baseline-analysis-report.json")


class RuntimeConfig(BaseModel):
  """
  Global configuration container for the codemod.
  """

  api_endpoint: str = Field(HttpVerdictSource.DEFAULT_BASE_URL, description="Feature-safety service base URL.")
  request_timeout: float = Field(5.0, description="Classifier request timeout in seconds.")
  cache_ttl: float = Field(DEFAULT_TTL_SECONDS, description="Verdict cache lifetime in seconds.")
  fail_closed: bool = Field(False, description="Treat unknown verdicts (classifier failures) as unsafe.")
  min_severity: SafetyTier = Field(SafetyTier.CAUTION, description="Lowest tier that is reported/rewritten.")
  jobs: int = Field(8, description="Maximum number of files processed concurrently.")
  strict: bool = Field(False, description="Exit non-zero when any file fails to parse.")
  batch_timeout: Optional[float] = Field(None, description="Stop starting new files after this many seconds.")
  catalogue_path: Optional[Path] = Field(None, description="Custom catalogue JSON (built-in if unset).")
  report_path: Path = Field(DEFAULT_REPORT_PATH, description="Destination of the analysis JSON report.")

  @field_validator("api_endpoint")
  @classmethod
  def validate_endpoint(cls, v: str) -> str:
    """
    Ensures the endpoint is an absolute http(s) URL.

    Raises:
        ValueError: If the scheme is missing or unsupported.
    """
    v_clean = v.strip().rstrip("/")
    if not v_clean.startswith(("http://", "https://")):
      raise ValueError(f"API endpoint must be an http(s) URL, got '{v}'")
    return v_clean

  @field_validator("request_timeout", "cache_ttl")
  @classmethod
  def validate_positive(cls, v: float) -> float:
    if v <= 0:
      raise ValueError("Must be greater than zero.")
    return v

  @field_validator("jobs")
  @classmethod
  def validate_jobs(cls, v: int) -> int:
    if v < 1:
      raise ValueError("jobs must be at least 1.")
    return v

  @field_validator("min_severity")
  @classmethod
  def validate_severity(cls, v: SafetyTier) -> SafetyTier:
    if v not in (SafetyTier.CAUTION, SafetyTier.UNSAFE):
      raise ValueError("min_severity must be 'caution' or 'unsafe'.")
    return v

  def policy(self) -> SafetyPolicy:
    """The verdict policy implied by this configuration."""
    return SafetyPolicy(fail_closed=self.fail_closed, min_severity=self.min_severity)

  @classmethod
  def load(
    cls,
    api_endpoint: Optional[str] = None,
    fail_closed: Optional[bool] = None,
    min_severity: Optional[str] = None,
    jobs: Optional[int] = None,
    strict: Optional[bool] = None,
    catalogue_path: Optional[Path] = None,
    report_path: Optional[Path] = None,
    search_path: Optional[Path] = None,
  ) -> "RuntimeConfig":
    """
    Loads configuration from pyproject.toml and overrides with CLI arguments.

    Relative paths in the TOML table resolve against the directory holding the
    ``pyproject.toml``.

    Args:
        api_endpoint: Override for the classifier URL.
        fail_closed: Override for the failure policy.
        min_severity: Override for the severity threshold.
        jobs: Override for the concurrency bound.
        strict: Override for strict mode.
        catalogue_path: Override for the catalogue file.
        report_path: Override for the report destination.
        search_path: Directory to start searching for TOML config.

    Returns:
        RuntimeConfig: The fully resolved configuration object.
    """
    start_dir = search_path or Path.cwd()
    toml_config, toml_dir = _load_toml_settings(start_dir)

    def _resolve(raw: Any) -> Path:
      p = Path(raw)
      return (toml_dir / p).resolve() if toml_dir and not p.is_absolute() else p

    merged: Dict[str, Any] = {}
    for key in ("api_endpoint", "request_timeout", "cache_ttl", "fail_closed", "min_severity", "jobs", "strict"):
      if key in toml_config:
        merged[key] = toml_config[key]
    if "batch_timeout" in toml_config:
      merged["batch_timeout"] = toml_config["batch_timeout"]
    if "catalogue_path" in toml_config:
      merged["catalogue_path"] = _resolve(toml_config["catalogue_path"])
    if "report_path" in toml_config:
      merged["report_path"] = _resolve(toml_config["report_path"])

    overrides = {
      "api_endpoint": api_endpoint,
      "fail_closed": fail_closed,
      "min_severity": min_severity,
      "jobs": jobs,
      "strict": strict,
      "catalogue_path": catalogue_path,
      "report_path": report_path,
    }
    merged.update({k: v for k, v in overrides.items() if v is not None})
    return cls(**merged)


def _load_toml_settings(start_path: Path) -> Tuple[Dict[str, Any], Optional[Path]]:
  """
  Searches `start_path` and its parents for 'pyproject.toml' and extracts config.

  Args:
      start_path: Directory to start search from.

  Returns:
      Tuple[Dict, Optional[Path]]: The config dict and the directory it was found in.
  """
  current = start_path.resolve()

  for parent in [current, *current.parents]:
    toml_path = parent / "pyproject.toml"
    if toml_path.is_file():
      try:
        with open(toml_path, "rb") as f:
          data = tomllib.load(f)
      except (OSError, tomllib.TOMLDecodeError):
        return {}, None
      return data.get("tool", {}).get("baseline_codemod", {}), parent

  return {}, None
