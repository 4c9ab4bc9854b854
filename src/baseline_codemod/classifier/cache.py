"""
Verdict cache with TTL expiry and single-flight loading.

Entries expire after a fixed TTL (5 minutes by default) and are never
invalidated manually. Concurrent lookups of the same missing key share one
in-flight load: the first caller starts it, the others await the same task.
Failed loads are not cached; the exception reaches every waiter.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from baseline_codemod.classifier.schema import SafetyVerdict

Clock = Callable[[], float]


@dataclass
class CacheEntry:
  """
  Cached verdict with its insertion time.

  Attributes:
      verdict: The cached verdict.
      cached_at: Clock reading at insertion.
      ttl_seconds: Lifetime in seconds.
  """

  verdict: SafetyVerdict
  cached_at: float
  ttl_seconds: float = 300.0

  def is_expired(self, now: float) -> bool:
    return now >= self.cached_at + self.ttl_seconds


class VerdictCache:
  """
  In-memory verdict cache keyed by feature id.
  """

  def __init__(self, ttl_seconds: float = 300.0, clock: Optional[Clock] = None):
    """
    Args:
        ttl_seconds: Entry lifetime.
        clock: Monotonic time source (injectable for tests).
    """
    self.ttl_seconds = ttl_seconds
    self._clock = clock or time.monotonic
    self._entries: Dict[str, CacheEntry] = {}
    self._inflight: Dict[str, "asyncio.Task[SafetyVerdict]"] = {}

  def get(self, key: str) -> Optional[SafetyVerdict]:
    """
    Returns:
        Optional[SafetyVerdict]: The cached verdict, or None if missing or expired.
    """
    entry = self._entries.get(key)
    if entry is None:
      return None
    if entry.is_expired(self._clock()):
      del self._entries[key]
      return None
    return entry.verdict

  def set(self, key: str, verdict: SafetyVerdict) -> None:
    self._entries[key] = CacheEntry(verdict=verdict, cached_at=self._clock(), ttl_seconds=self.ttl_seconds)

  def in_flight(self, key: str) -> bool:
    return key in self._inflight

  def __len__(self) -> int:
    return len(self._entries)

  async def get_or_load(self, key: str, loader: Callable[[], Awaitable[SafetyVerdict]]) -> SafetyVerdict:
    """
    Returns the cached verdict or loads it, sharing concurrent loads.

    Args:
        key: Feature id.
        loader: Coroutine factory fetching the verdict from the source.

    Returns:
        SafetyVerdict: The verdict.

    Raises:
        Exception: Whatever the loader raised (shared by all waiters).
    """
    cached = self.get(key)
    if cached is not None:
      return cached

    task = self._inflight.get(key)
    if task is None:
      task = asyncio.ensure_future(self._load(key, loader))
      self._inflight[key] = task
    # Shield so one cancelled waiter does not cancel the shared load.
    return await asyncio.shield(task)

  async def _load(self, key: str, loader: Callable[[], Awaitable[SafetyVerdict]]) -> SafetyVerdict:
    try:
      verdict = await loader()
      self.set(key, verdict)
      return verdict
    finally:
      self._inflight.pop(key, None)
