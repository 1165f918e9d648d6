"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Anchor:
    """A known message timestamp and the label its sender is anonymized to."""

    timestamp: str
    label: str


@dataclass(frozen=True)
class PipelineConfig:
    """Upload pipeline settings."""

    anchors: Tuple[Anchor, ...]
    batch_size: int = 50
    tolerance_seconds: float = 2.0


@dataclass(frozen=True)
class EnrichmentConfig:
    """Bounds for outbound metadata lookups."""

    concurrency: int = 6
    timeout_seconds: float = 4.0


@dataclass(frozen=True)
class TokenCosts:
    """USD prices used to report the cost of an upload session."""

    input_per_million: float = 0.25
    output_per_million: float = 2.0

    def cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        return (
            prompt_tokens / 1_000_000 * self.input_per_million
            + completion_tokens / 1_000_000 * self.output_per_million
        )
