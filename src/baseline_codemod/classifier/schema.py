"""
Classifier data models: the wire response and the normalized verdict.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from baseline_codemod.enums import SafetyTier


class SafetyVerdict(BaseModel):
  """
  Normalized classification of one feature.
  """

  model_config = ConfigDict(frozen=True)

  feature_id: str
  found: bool = False
  tier: SafetyTier = SafetyTier.UNKNOWN
  recommendation: Optional[str] = None
  browser_support: Dict[str, str] = Field(default_factory=dict)
  name: Optional[str] = None

  @classmethod
  def unknown(cls, feature_id: str) -> "SafetyVerdict":
    """The neutral verdict used when the classifier cannot answer."""
    return cls(feature_id=feature_id, found=False, tier=SafetyTier.UNKNOWN)


class FeatureCheckResponse(BaseModel):
  """
  Body of a classifier `POST /isSafe` response.

  Unknown fields are ignored; unrecognised safety strings map to `unknown`.
  """

  model_config = ConfigDict(extra="ignore", populate_by_name=True)

  found: bool = False
  safety: SafetyTier = SafetyTier.UNKNOWN
  recommendation: Optional[str] = None
  browser_support: Dict[str, Any] = Field(default_factory=dict, alias="browserSupport")
  name: Optional[str] = None

  @field_validator("safety", mode="before")
  @classmethod
  def normalize_safety(cls, v: Any) -> Any:
    if isinstance(v, str):
      v_clean = v.lower().strip()
      if v_clean in {t.value for t in SafetyTier}:
        return v_clean
    return SafetyTier.UNKNOWN

  @field_validator("browser_support", mode="before")
  @classmethod
  def normalize_support(cls, v: Any) -> Any:
    return v if isinstance(v, dict) else {}

  def to_verdict(self, feature_id: str) -> SafetyVerdict:
    """
    Converts the wire response into a verdict. Features that were not found
    are always `unknown`, whatever tier the body claims.
    """
    return SafetyVerdict(
      feature_id=feature_id,
      found=self.found,
      tier=self.safety if self.found else SafetyTier.UNKNOWN,
      recommendation=self.recommendation,
      browser_support={str(k): str(v) for k, v in self.browser_support.items()},
      name=self.name,
    )
