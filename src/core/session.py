"""Upload session state.

A session is an immutable record; every pipeline stage returns a new one via
``dataclasses.replace`` so no state is shared between stages or sessions.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Optional, Tuple

from core.config import TokenCosts
from core.errors import ErrorKind, UploadError
from core.models import Message


class SessionState(str, Enum):
    IDLE = "idle"
    VERIFYING = "verifying"
    RESOLVING = "resolving"
    DISPATCHING = "dispatching"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({SessionState.COMPLETE, SessionState.FAILED, SessionState.CANCELLED})


@dataclass(frozen=True)
class UploadSession:
    """Progress and outcome of one upload."""

    state: SessionState = SessionState.IDLE
    messages: Tuple[Message, ...] = ()
    next_index: int = 0
    total_messages: int = 0
    total_batches: int = 0
    processed_messages: int = 0
    processed_batches: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    checkpoint: str = ""
    sender_map: Dict[str, str] = field(default_factory=dict)
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None
    can_retry: bool = False
    up_to_date: bool = False

    @property
    def is_finished(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def remaining_messages(self) -> int:
        return max(len(self.messages) - self.next_index, 0)

    def cost(self, costs: TokenCosts) -> float:
        """USD spent on extraction so far."""

        return costs.cost(self.prompt_tokens, self.completion_tokens)

    def advance(self, state: SessionState) -> "UploadSession":
        return replace(self, state=state)

    def fail(self, error: UploadError) -> "UploadSession":
        return replace(
            self,
            state=SessionState.FAILED,
            error_kind=error.kind,
            error=str(error),
            can_retry=error.retryable,
        )
