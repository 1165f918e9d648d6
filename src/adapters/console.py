"""Rich console rendering for upload progress and stored recommendations."""

from __future__ import annotations

from typing import Iterable, Optional

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TaskID, TextColumn
from rich.table import Table
from rich.text import Text

from core.catalog import latest_mention, mention_count
from core.config import TokenCosts
from core.models import StoredRecord
from core.session import SessionState, UploadSession

TYPE_LABELS = {
    "movie": "Movies",
    "tv_show": "Shows",
    "song": "Songs",
    "book": "Books",
    "youtube": "Youtube",
}

TYPE_STYLES = {
    "movie": "red",
    "tv_show": "magenta",
    "song": "green",
    "youtube": "bright_red",
    "book": "yellow",
}


class UploadProgressView:
    """Progress bar updated after every confirmed batch."""

    def __init__(self, console: Console, costs: TokenCosts) -> None:
        self._console = console
        self._costs = costs
        self._progress = Progress(
            TextColumn("[bold]Processing"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("batches {task.fields[batches]}"),
            TextColumn("tokens {task.fields[tokens]}"),
            TextColumn("${task.fields[cost]}"),
            console=console,
        )
        self._task: Optional[TaskID] = None

    def __enter__(self) -> "UploadProgressView":
        self._progress.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self._progress.stop()

    def update(self, session: UploadSession) -> None:
        fields = {
            "batches": f"{session.processed_batches}/{session.total_batches}",
            "tokens": session.prompt_tokens + session.completion_tokens,
            "cost": f"{session.cost(self._costs):.4f}",
        }
        if self._task is None:
            self._task = self._progress.add_task("upload", total=session.total_messages, **fields)
        self._progress.update(self._task, completed=session.processed_messages, **fields)


def render_outcome(console: Console, session: UploadSession) -> None:
    if session.state is SessionState.COMPLETE and session.up_to_date:
        console.print("[green]Already up to date![/green]")
    elif session.state is SessionState.COMPLETE:
        console.print(
            f"[green]Done.[/green] {session.processed_messages} messages in "
            f"{session.processed_batches} batches; checkpoint {session.checkpoint}"
        )
    elif session.state is SessionState.CANCELLED:
        console.print(f"[yellow]Cancelled[/yellow] at checkpoint {session.checkpoint or '-'}")
    else:
        hint = " (retry available)" if session.can_retry else ""
        console.print(f"[red]{session.error}[/red]{hint}")


def render_records(console: Console, records: Iterable[StoredRecord]) -> None:
    table = Table(title="Mentions")
    table.add_column("Title", overflow="fold")
    table.add_column("Type")
    table.add_column("Mentions", justify="right")
    table.add_column("Latest")
    table.add_column("By")
    table.add_column("Link", overflow="fold")
    for record in records:
        latest = latest_mention(record)
        senders = ", ".join(dict.fromkeys(mention.sender for mention in record.mentioned_by if mention.sender))
        table.add_row(
            record.title,
            Text(TYPE_LABELS.get(record.type, record.type), style=TYPE_STYLES.get(record.type, "")),
            str(mention_count(record)),
            latest.timestamp if latest else "",
            senders,
            record.link or "",
        )
    console.print(table)
