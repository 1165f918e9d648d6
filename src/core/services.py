"""Server-side collaborators for identity verification and batch extraction.

Both services hold everything the uploading side must never see: the
reference digest, the extraction model, and write access to the checkpoint.
"""

from __future__ import annotations

import binascii
import hmac
import logging
from typing import Sequence

from core.enrichment import Enricher
from core.errors import ConfigurationError
from core.merger import RecommendationMerger
from core.models import ExtractionResult, Message, VerificationResult
from core.ports import CheckpointPort, RecommendationExtractorPort
from core.timestamps import normalize_timestamp_string, parse_to_instant

LOGGER = logging.getLogger(__name__)


def _decode_hex(value: str) -> bytes:
    try:
        return binascii.unhexlify(value.strip())
    except (binascii.Error, ValueError):
        return b""


class VerificationService:
    """Constant-time comparison against the one reference digest."""

    def __init__(self, reference_hash: str, checkpoints: CheckpointPort) -> None:
        self._expected = _decode_hex(reference_hash or "")
        if not self._expected:
            raise ConfigurationError("Server hash not configured (CHAT_HASH)")
        self._checkpoints = checkpoints

    async def verify(self, digest: str) -> VerificationResult:
        provided = _decode_hex(digest or "")
        # Lengths are public; only the content comparison must be constant-time.
        if len(provided) != len(self._expected):
            return VerificationResult(ok=False)
        if not hmac.compare_digest(provided, self._expected):
            return VerificationResult(ok=False)
        return VerificationResult(ok=True, progress_timestamp=self._checkpoints.get_checkpoint() or "")


class ExtractionService:
    """Extracts, enriches, and stores recommendations for one batch."""

    def __init__(
        self,
        extractor: RecommendationExtractorPort,
        enricher: Enricher,
        merger: RecommendationMerger,
        checkpoints: CheckpointPort,
    ) -> None:
        self._extractor = extractor
        self._enricher = enricher
        self._merger = merger
        self._checkpoints = checkpoints

    async def extract(self, batch: Sequence[Message]) -> ExtractionResult:
        if not batch:
            return ExtractionResult(ok=False)

        try:
            candidates, usage = await self._extractor.extract(batch)
            enriched = await self._enricher.enrich_all(candidates)
        except Exception:
            LOGGER.exception("Extract recommendations error")
            return ExtractionResult(ok=False)

        saved = self._merger.merge(enriched)
        LOGGER.info(
            "Batch of %s messages: %s candidates, %s enriched, %s written",
            len(batch),
            len(candidates),
            len(enriched),
            len(saved),
        )

        progress_timestamp = batch[-1].timestamp
        self.advance_checkpoint(progress_timestamp)
        return ExtractionResult(
            ok=True,
            progress_timestamp=progress_timestamp,
            usage=usage,
            items=tuple(saved),
        )

    def advance_checkpoint(self, timestamp: str) -> bool:
        """Move the checkpoint forward; never rewinds past a later one."""

        try:
            current = self._checkpoints.get_checkpoint()
            if current:
                current_instant = parse_to_instant(current)
                new_instant = parse_to_instant(timestamp)
                if current_instant and new_instant and new_instant < current_instant:
                    LOGGER.warning("Refusing to rewind checkpoint %s to %s", current, timestamp)
                    return False
            self._checkpoints.set_checkpoint(normalize_timestamp_string(timestamp))
        except Exception:
            LOGGER.exception("Failed updating progress timestamp")
            return False
        return True
