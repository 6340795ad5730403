"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BackoffConfig:
    """Exponential backoff used by the supervisor and the channel provisioner.

    ``attempt`` counts consecutive failures since the last success, so the
    first retry waits ``base ** 0``. The exponent stops growing at
    ``max_exponent``. ``max_attempts`` of ``None`` retries forever.
    """

    base: float = 2.0
    max_exponent: int = 7
    max_attempts: Optional[int] = None

    def delay(self, attempt: int) -> float:
        return self.base ** min(max(attempt, 0), self.max_exponent)

    def exhausted(self, failures: int) -> bool:
        return self.max_attempts is not None and failures >= self.max_attempts


@dataclass(frozen=True)
class PipelineConfig:
    """Recognition and forwarding settings for the pipeline."""

    language: str = "eng"
    min_confidence: float = 10.0
    max_media_bytes: Optional[int] = None


@dataclass(frozen=True)
class ChannelConfig:
    """Output channel identity passed to the provisioner."""

    name: str
    about: str = ""
