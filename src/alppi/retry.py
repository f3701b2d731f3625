from __future__ import annotations

import time
from typing import Callable, TypeVar

from alppi.utils.logging import logger

T = TypeVar("T")


class RetryRunner:
  """Runs network-dependent actions (fetching keys, downloading packages) with a bounded number
  of attempts. Actions have to be safe to re-run; there is no compensation for partial effects."""
  max_attempts: int
  delay: float
  sleep: Callable[[float], None]

  def __init__(self, max_attempts: int = 3, delay: float = 5.0, sleep: Callable[[float], None] = time.sleep):
    if max_attempts < 1:
      raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
    self.max_attempts = max_attempts
    self.delay = delay
    self.sleep = sleep

  def run(
    self,
    action: Callable[[], T],
    max_attempts: int | None = None,
    delay: float | None = None,
    description: str = "action",
  ) -> T:
    attempts = max_attempts if max_attempts is not None else self.max_attempts
    if attempts < 1:
      raise ValueError(f"max_attempts must be at least 1, got {attempts}")
    pause = delay if delay is not None else self.delay
    for attempt in range(1, attempts + 1):
      try:
        return action()
      except Exception as e:
        if attempt == attempts:
          logger.error(f"{description}: giving up after {attempts} attempt(s)")
          raise
        logger.warn(f"{description}: attempt {attempt}/{attempts} failed ({e}), retrying in {pause:g}s")
        self.sleep(pause)
    raise AssertionError("unreachable")
