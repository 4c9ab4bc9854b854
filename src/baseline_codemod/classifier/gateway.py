"""
Safety Classifier Gateway.

Front door for feature classification. Owns the verdict cache and converts
source failures into the neutral `unknown` verdict.

Failure policy is fail-open: `unknown` is not treated as unsafe unless the
`SafetyPolicy` is configured with `fail_closed=True`. Under a network
partition the default therefore rewrites nothing rather than everything.
"""

import asyncio
import time
from typing import Dict, Iterable, Optional

from pydantic import BaseModel, Field, field_validator

from baseline_codemod.classifier.cache import Clock, VerdictCache
from baseline_codemod.classifier.schema import SafetyVerdict
from baseline_codemod.classifier.sources import VerdictSource
from baseline_codemod.enums import SafetyTier
from baseline_codemod.errors import ClassifierUnavailable
from baseline_codemod.utils.console import log_warning

DEFAULT_TTL_SECONDS = 5 * 60


class SafetyPolicy(BaseModel):
  """
  Decides which verdicts require action.
  """

  fail_closed: bool = Field(False, description="Treat unknown verdicts as unsafe.")
  min_severity: SafetyTier = Field(SafetyTier.CAUTION, description="Lowest tier that requires action.")

  @field_validator("min_severity")
  @classmethod
  def validate_severity(cls, v: SafetyTier) -> SafetyTier:
    if v not in (SafetyTier.CAUTION, SafetyTier.UNSAFE):
      raise ValueError("min_severity must be 'caution' or 'unsafe'.")
    return v

  def effective_tier(self, verdict: SafetyVerdict) -> Optional[SafetyTier]:
    """
    Maps a verdict to the tier that requires action, if any.

    Args:
        verdict: Classifier verdict.

    Returns:
        Optional[SafetyTier]: `unsafe` or `caution`, or None when no action is needed.
    """
    tier = verdict.tier if verdict.found else SafetyTier.UNKNOWN
    if tier == SafetyTier.SAFE:
      return None
    if tier == SafetyTier.UNKNOWN:
      return SafetyTier.UNSAFE if self.fail_closed else None
    if tier == SafetyTier.CAUTION and self.min_severity == SafetyTier.UNSAFE:
      return None
    return tier


class SafetyClassifier:
  """
  Cached, single-flight classification of feature ids.
  """

  def __init__(
    self,
    source: VerdictSource,
    ttl_seconds: float = DEFAULT_TTL_SECONDS,
    clock: Optional[Clock] = None,
  ):
    """
    Args:
        source: Where verdicts come from.
        ttl_seconds: Cache lifetime and warning throttle window.
        clock: Monotonic time source (injectable for tests).
    """
    self.source = source
    self._clock = clock or time.monotonic
    self.cache = VerdictCache(ttl_seconds=ttl_seconds, clock=self._clock)
    self._warned_at: Dict[str, float] = {}

  async def classify(self, feature_id: str) -> SafetyVerdict:
    """
    Classifies one feature. Never raises for source failures.

    Args:
        feature_id: Classifier key of the feature.

    Returns:
        SafetyVerdict: The verdict (`unknown` if the source failed).
    """
    try:
      return await self.cache.get_or_load(feature_id, lambda: self.source.fetch(feature_id))
    except ClassifierUnavailable as e:
      self._warn_once(feature_id, e)
      return SafetyVerdict.unknown(feature_id)

  async def classify_many(self, feature_ids: Iterable[str]) -> Dict[str, SafetyVerdict]:
    """
    Classifies several features concurrently.

    Returns:
        Dict[str, SafetyVerdict]: Verdict per distinct feature id.
    """
    keys = list(dict.fromkeys(feature_ids))
    verdicts = await asyncio.gather(*(self.classify(k) for k in keys))
    return dict(zip(keys, verdicts))

  def _warn_once(self, feature_id: str, error: ClassifierUnavailable) -> None:
    now = self._clock()
    last = self._warned_at.get(feature_id)
    if last is not None and now - last < self.cache.ttl_seconds:
      return
    self._warned_at[feature_id] = now
    log_warning(f"Could not check feature [code]{feature_id}[/code]: {error.reason}")
