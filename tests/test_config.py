"""
Tests for RuntimeConfig loading (pyproject.toml + CLI overrides).
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from baseline_codemod.config import DEFAULT_REPORT_PATH, RuntimeConfig
from baseline_codemod.enums import SafetyTier


def _write_toml(root: Path, body: str) -> None:
  (root / "pyproject.toml").write_text(body, encoding="utf-8")


def test_defaults_without_toml(tmp_path):
  config = RuntimeConfig.load(search_path=tmp_path)
  assert config.api_endpoint == "http://localhost:3000"
  assert config.cache_ttl == 300
  assert not config.fail_closed
  assert config.min_severity == SafetyTier.CAUTION
  assert config.jobs == 8
  assert config.report_path == DEFAULT_REPORT_PATH
  assert config.catalogue_path is None


def test_toml_values_loaded(tmp_path):
  _write_toml(
    tmp_path,
    """
[tool.baseline_codemod]
api_endpoint = "https://checker.example/"
fail_closed = true
min_severity = "unsafe"
jobs = 2
batch_timeout = 30.0
catalogue_path = "rules/custom.json"
""",
  )
  nested = tmp_path / "src" / "app"
  nested.mkdir(parents=True)

  config = RuntimeConfig.load(search_path=nested)

  assert config.api_endpoint == "https://checker.example"
  assert config.fail_closed
  assert config.min_severity == SafetyTier.UNSAFE
  assert config.jobs == 2
  assert config.batch_timeout == 30.0
  assert config.catalogue_path == (tmp_path / "rules" / "custom.json").resolve()


def test_cli_overrides_toml(tmp_path):
  _write_toml(tmp_path, '[tool.baseline_codemod]\napi_endpoint = "http://a.test"\nfail_closed = true\n')
  config = RuntimeConfig.load(api_endpoint="http://b.test", min_severity="unsafe", search_path=tmp_path)
  assert config.api_endpoint == "http://b.test"
  assert config.fail_closed
  assert config.min_severity == SafetyTier.UNSAFE


def test_other_tool_tables_ignored(tmp_path):
  _write_toml(tmp_path, '[tool.other]\njobs = 99\n')
  assert RuntimeConfig.load(search_path=tmp_path).jobs == 8


def test_invalid_toml_falls_back_to_defaults(tmp_path):
  _write_toml(tmp_path, "[tool.baseline_codemod\n")
  assert RuntimeConfig.load(search_path=tmp_path).jobs == 8


@pytest.mark.parametrize(
  "kwargs",
  [
    {"api_endpoint": "localhost:3000"},
    {"jobs": 0},
    {"min_severity": "safe"},
    {"request_timeout": 0},
  ],
)
def test_validation(kwargs):
  with pytest.raises(ValidationError):
    RuntimeConfig(**kwargs)


def test_policy_from_config():
  policy = RuntimeConfig(fail_closed=True, min_severity="unsafe").policy()
  assert policy.fail_closed
  assert policy.min_severity == SafetyTier.UNSAFE
