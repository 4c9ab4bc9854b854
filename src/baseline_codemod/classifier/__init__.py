"""
Safety Classifier Gateway: cached, single-flight feature classification.
"""

from baseline_codemod.classifier.cache import VerdictCache
from baseline_codemod.classifier.gateway import DEFAULT_TTL_SECONDS, SafetyClassifier, SafetyPolicy
from baseline_codemod.classifier.schema import FeatureCheckResponse, SafetyVerdict
from baseline_codemod.classifier.sources import HttpVerdictSource, StaticVerdictSource, VerdictSource

__all__ = [
  "DEFAULT_TTL_SECONDS",
  "FeatureCheckResponse",
  "HttpVerdictSource",
  "SafetyClassifier",
  "SafetyPolicy",
  "SafetyVerdict",
  "StaticVerdictSource",
  "VerdictCache",
  "VerdictSource",
]
