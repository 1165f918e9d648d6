"""Upload pipeline: verify, resolve the resume point, dispatch batches.

This module is integration-agnostic. It only relies on ports for the
verification and extraction collaborators, enabling different transports or
backends without changes here.

Batches are strictly sequential: the extraction collaborator advances the
checkpoint to each batch's last message, so a later batch must never finish
before an earlier one.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Callable, Optional

from core.config import PipelineConfig
from core.errors import TransientError, UploadError
from core.models import ExtractionResult
from core.ports import ExtractionPort, VerificationPort
from core.progress import anonymize, eligible_messages, resolve_resume_index
from core.session import SessionState, UploadSession
from core.timestamps import normalize_timestamp_string
from core.verifier import verify_transcript

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[UploadSession], None]


class BatchDispatcher:
    """Drives one upload session through its state machine."""

    def __init__(
        self,
        config: PipelineConfig,
        verifier: VerificationPort,
        extractor: ExtractionPort,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        if config.batch_size < 1:
            raise ValueError("batch_size must be positive")
        self._config = config
        self._verifier = verifier
        self._extractor = extractor
        self._on_progress = on_progress
        self._cancelled = False

    def cancel(self) -> None:
        """Stop after the in-flight batch; no hard cancel of a running call."""

        self._cancelled = True

    async def start(self, text: str) -> UploadSession:
        """Run a full session over a raw transcript."""

        self._cancelled = False
        session = UploadSession().advance(SessionState.VERIFYING)
        try:
            verified = await verify_transcript(
                text,
                self._config.anchors,
                self._config.tolerance_seconds,
                self._verifier,
            )
        except UploadError as exc:
            LOGGER.warning("Verification failed: %s", exc)
            return session.fail(exc)

        session = replace(
            session,
            state=SessionState.RESOLVING,
            sender_map=verified.sender_map,
            checkpoint=verified.progress_timestamp,
        )
        messages = anonymize(verified.messages, verified.sender_map)
        try:
            resume_index = resolve_resume_index(
                messages, verified.progress_timestamp, self._config.tolerance_seconds
            )
        except UploadError as exc:
            LOGGER.error("Checkpoint %r not found in transcript", verified.progress_timestamp)
            return session.fail(exc)

        eligible = eligible_messages(messages, resume_index)
        if not eligible:
            LOGGER.info("Already up to date (checkpoint %s)", verified.progress_timestamp)
            return replace(session, state=SessionState.COMPLETE, up_to_date=True)

        total = len(eligible)
        session = replace(
            session,
            state=SessionState.DISPATCHING,
            messages=tuple(eligible),
            total_messages=total,
            total_batches=math.ceil(total / self._config.batch_size),
        )
        LOGGER.info(
            "Dispatching %s messages in %s batches from index %s",
            total,
            session.total_batches,
            resume_index,
        )
        return await self.dispatch(session)

    async def retry(self, session: UploadSession) -> UploadSession:
        """Re-enter dispatching from the last confirmed batch."""

        if session.state not in (SessionState.FAILED, SessionState.CANCELLED):
            raise ValueError(f"Cannot retry a session in state {session.state.value}")
        if session.state is SessionState.FAILED and not session.can_retry:
            raise ValueError("Session failure is not retryable")
        if not session.messages:
            raise ValueError("Session has no dispatch progress; start a new upload")

        self._cancelled = False
        resumed = replace(
            session,
            state=SessionState.DISPATCHING,
            error_kind=None,
            error=None,
            can_retry=False,
        )
        return await self.dispatch(resumed)

    async def dispatch(self, session: UploadSession) -> UploadSession:
        """Send the remaining batches one at a time."""

        batch_size = self._config.batch_size
        while session.next_index < len(session.messages):
            if self._cancelled:
                LOGGER.info("Upload cancelled after %s batches", session.processed_batches)
                return session.advance(SessionState.CANCELLED)

            start = session.next_index
            batch = session.messages[start : start + batch_size]
            try:
                result = await self._extractor.extract(batch)
            except Exception:
                LOGGER.exception("Extraction call failed for batch starting at %s", start)
                return session.fail(TransientError("Sorry there was a server error. Please try again."))

            if not result.ok:
                LOGGER.warning("Extraction rejected batch starting at %s", start)
                return session.fail(TransientError("Failed to extract recommendations."))

            session = self._record_batch(session, result, len(batch))
            if self._on_progress:
                self._on_progress(session)

        return session.advance(SessionState.COMPLETE)

    def _record_batch(
        self, session: UploadSession, result: ExtractionResult, batch_len: int
    ) -> UploadSession:
        start = session.next_index
        checkpoint = result.progress_timestamp or session.messages[start + batch_len - 1].timestamp

        # Follow the collaborator's checkpoint when it names a message in the
        # batch that was sent, otherwise step past the whole batch.
        next_index = start + batch_len
        wanted = normalize_timestamp_string(checkpoint)
        for index in reversed(range(start, start + batch_len)):
            if normalize_timestamp_string(session.messages[index].timestamp) == wanted:
                next_index = index + 1
                break

        usage = result.usage
        return replace(
            session,
            next_index=next_index,
            checkpoint=checkpoint,
            processed_messages=session.processed_messages + (next_index - start),
            processed_batches=session.processed_batches + 1,
            prompt_tokens=session.prompt_tokens + (usage.prompt_tokens if usage else 0),
            completion_tokens=session.completion_tokens + (usage.completion_tokens if usage else 0),
        )
