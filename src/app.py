"""Application entry point for chatrecs."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from typing import Optional

import httpx
from art import tprint
from rich.console import Console

import settings
from adapters.console import UploadProgressView, render_outcome, render_records
from adapters.link_metadata import OpenGraphMetadata
from adapters.openai_extractor import OpenAIRecommendationExtractor
from adapters.sqlite_store import SQLiteStore
from adapters.tmdb_search import TMDBTitleSearch
from adapters.zip_upload import read_chat_export
from core.catalog import SORT_KEYS, filter_records, sort_records
from core.dispatcher import BatchDispatcher
from core.enrichment import Enricher
from core.errors import ConfigurationError, InputError
from core.merger import RecommendationMerger
from core.services import ExtractionService, VerificationService
from core.session import SessionState, UploadSession
from core.verifier import digest_transcript
from logging_setup import configure_logging

NAME = "CHATRECS"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


def _open_store() -> SQLiteStore:
    store = SQLiteStore(settings.DB_PATH)
    store.init_db()
    return store


def _install_cancel_handler(dispatcher: BatchDispatcher) -> None:
    # Ctrl-C lets the in-flight batch finish and advance the checkpoint.
    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGINT, dispatcher.cancel)
    except (NotImplementedError, RuntimeError):
        LOGGER.debug("Cooperative cancel is unavailable on this platform")


async def _run_upload(text: str, retries: int, console: Console) -> UploadSession:
    store = _open_store()
    verifier = VerificationService(settings.CHAT_HASH, store)

    async with httpx.AsyncClient(follow_redirects=True) as http:
        enricher = Enricher(
            OpenGraphMetadata(settings.ENRICHMENT.timeout_seconds, client=http),
            TMDBTitleSearch(settings.TMDB_API_KEY, settings.ENRICHMENT.timeout_seconds, client=http),
            settings.ENRICHMENT,
        )
        extraction = ExtractionService(
            OpenAIRecommendationExtractor(settings.OPENAI_API_KEY, settings.OPENAI_MODEL),
            enricher,
            RecommendationMerger(store),
            store,
        )

        with UploadProgressView(console, settings.TOKEN_COSTS) as view:
            dispatcher = BatchDispatcher(settings.PIPELINE, verifier, extraction, on_progress=view.update)
            _install_cancel_handler(dispatcher)

            session = await dispatcher.start(text)
            attempts = 0
            while session.state is SessionState.FAILED and session.can_retry and attempts < retries:
                attempts += 1
                LOGGER.info("Retrying upload (attempt %s of %s)", attempts, retries)
                if session.messages:
                    session = await dispatcher.retry(session)
                else:
                    session = await dispatcher.start(text)
    return session


def _upload(path: str, retries: int) -> int:
    console = Console()
    try:
        text = read_chat_export(path, settings.MAX_UPLOAD_BYTES)
        session = asyncio.run(_run_upload(text, retries, console))
    except InputError as exc:
        console.print(f"[red]{exc}[/red]")
        return 2
    except ConfigurationError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        return 2

    render_outcome(console, session)
    LOGGER.info(
        "Upload finished: state=%s, messages=%s, batches=%s, checkpoint=%s",
        session.state.value,
        session.processed_messages,
        session.processed_batches,
        session.checkpoint,
    )
    return 0 if session.state is SessionState.COMPLETE else 1


def _list(kind: Optional[str], query: Optional[str], sort_key: str) -> int:
    records = _open_store().list_records()
    render_records(Console(), sort_records(filter_records(records, kind, query), sort_key))
    return 0


def _status() -> int:
    checkpoint = _open_store().get_checkpoint()
    Console().print(f"Checkpoint: {checkpoint or '(none, next upload processes everything)'}")
    return 0


def _hash(path: str) -> int:
    """Print the anchor digest of a genuine export to provision CHAT_HASH."""

    console = Console()
    try:
        text = read_chat_export(path, settings.MAX_UPLOAD_BYTES)
        _, _, digest = digest_transcript(text, settings.ANCHORS, settings.TIMESTAMP_TOLERANCE_SECONDS)
    except InputError as exc:
        console.print(f"[red]{exc}[/red]")
        return 2
    console.print(digest)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="chatrecs")
    subparsers = parser.add_subparsers(dest="command", required=True)

    upload = subparsers.add_parser("upload", help="Process a chat export ZIP")
    upload.add_argument("archive", help="Path to the exported chat ZIP")
    upload.add_argument("--retries", type=int, default=0, help="Automatic retries on server errors")

    listing = subparsers.add_parser("list", help="Show stored recommendations")
    listing.add_argument("--type", dest="kind", help="movie, tv_show, song, book or youtube")
    listing.add_argument("--query", help="Match title or sender")
    listing.add_argument("--sort", choices=SORT_KEYS, default="mentions")

    subparsers.add_parser("status", help="Show the stored progress checkpoint")

    hash_cmd = subparsers.add_parser("hash", help="Print the anchor digest of an export")
    hash_cmd.add_argument("archive", help="Path to the exported chat ZIP")

    args = parser.parse_args(argv)
    _print_banner()
    configure_logging(settings.LOGGING, settings.PROJECT_ROOT)

    if args.command == "upload":
        return _upload(args.archive, args.retries)
    if args.command == "list":
        return _list(args.kind, args.query, args.sort)
    if args.command == "status":
        return _status()
    return _hash(args.archive)


if __name__ == "__main__":
    raise SystemExit(main())
