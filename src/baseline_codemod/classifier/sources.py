"""
Verdict Sources.

A verdict source answers one question: what is the safety tier of a feature?
Sources raise `ClassifierUnavailable` on any failure; the gateway decides what
that means.

- `HttpVerdictSource`: the feature-safety service (`POST /isSafe`).
- `StaticVerdictSource`: a fixed in-memory table (offline runs, tests).
"""

from typing import Any, Dict, Mapping, Optional, Protocol, Union

import httpx

from baseline_codemod.classifier.schema import FeatureCheckResponse, SafetyVerdict
from baseline_codemod.enums import SafetyTier
from baseline_codemod.errors import ClassifierUnavailable


class VerdictSource(Protocol):
  async def fetch(self, feature_id: str) -> SafetyVerdict: ...


class HttpVerdictSource:
  """Client for the feature-safety service.

  Example:
      async with HttpVerdictSource("http://localhost:3000") as source:
          verdict = await source.fetch("string-replaceall")
  """

  DEFAULT_BASE_URL = "http://localhost:3000"

  def __init__(
    self,
    base_url: Optional[str] = None,
    timeout: float = 5.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
  ) -> None:
    """Initialize client.

    Args:
        base_url: Service base URL. Defaults to a local server.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (used to mock the service).
    """
    self.base_url = base_url or self.DEFAULT_BASE_URL
    self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

  async def __aenter__(self) -> "HttpVerdictSource":
    return self

  async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
    await self.close()

  async def close(self) -> None:
    await self._client.aclose()

  async def fetch(self, feature_id: str) -> SafetyVerdict:
    """Ask the service about one feature.

    A 404 means the service does not know the feature; its body is still
    parsed (it carries `found: false`).

    Raises:
        ClassifierUnavailable: On transport errors, timeouts, error statuses
            or malformed bodies.
    """
    try:
      response = await self._client.post("/isSafe", json={"feature": feature_id})
      if response.status_code == 404:
        return self._parse_not_found(feature_id, response)
      response.raise_for_status()
      payload = FeatureCheckResponse.model_validate(response.json())
    except (httpx.HTTPError, ValueError) as e:
      raise ClassifierUnavailable(feature_id, str(e) or type(e).__name__) from e
    return payload.to_verdict(feature_id)

  @staticmethod
  def _parse_not_found(feature_id: str, response: httpx.Response) -> SafetyVerdict:
    try:
      payload = FeatureCheckResponse.model_validate(response.json())
    except ValueError:
      return SafetyVerdict.unknown(feature_id)
    return payload.model_copy(update={"found": False}).to_verdict(feature_id)


class StaticVerdictSource:
  """
  Table-backed source. Features missing from the table are reported as not found.
  """

  def __init__(self, table: Optional[Mapping[str, Union[SafetyTier, str, SafetyVerdict]]] = None):
    self._table: Dict[str, Any] = dict(table or {})

  async def fetch(self, feature_id: str) -> SafetyVerdict:
    value = self._table.get(feature_id)
    if value is None:
      return SafetyVerdict.unknown(feature_id)
    if isinstance(value, SafetyVerdict):
      return value
    return SafetyVerdict(feature_id=feature_id, found=True, tier=SafetyTier(value))
