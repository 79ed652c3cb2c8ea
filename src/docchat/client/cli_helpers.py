"""Helper functions for CLI commands."""

from pathlib import Path

import click

from docchat.config import RagConfig
from docchat.constants import CONTENT_PREVIEW_LENGTH
from docchat.errors import SinkClosedError
from docchat.service.index.models import RetrievalMatch
from docchat.service.ingestion import IngestionReport
from docchat.service.pipeline import RagPipeline
from docchat.service.references import strip_generated_prefix

REPORT_MARKS = {
    "indexed": "✓",
    "partial": "~",
    "skipped": "-",
    "empty": "-",
    "failed": "✗",
}


def format_search_result(
    index: int, match: RetrievalMatch, max_length: int = CONTENT_PREVIEW_LENGTH
) -> str:
    """Format a search result for display.

    Args:
        index: Result number (1-based)
        match: Retrieved chunk with its score
        max_length: Maximum content length before truncation

    Returns:
        Formatted string for display
    """
    chunk = match.chunk
    content = chunk.text.strip()
    display_content = content[:max_length] + "..." if len(content) > max_length else content

    lines = [
        f"{index}. [{strip_generated_prefix(chunk.source_id)} - chunk #{chunk.sequence_index}] "
        f"(score: {match.score:.4f})",
        f"   {display_content}",
        "",
    ]
    return "\n".join(lines)


def format_report(report: IngestionReport) -> str:
    """Format one ingestion report as a single line."""
    mark = REPORT_MARKS.get(report.status, "?")
    line = f"  {mark} {report.source_id}: {report.status}"
    if report.chunks_total:
        line += f" ({report.chunks_indexed}/{report.chunks_total} chunks)"
    if report.errors:
        line += f" - {report.errors[0]}"
    return line


def index_documents(pipeline: RagPipeline, directory: Path) -> list[IngestionReport]:
    """Ingest a directory into the pipeline's index and echo a summary.

    Raises:
        click.Abort: If nothing could be indexed
    """
    click.echo(f"📂 Indexing documents from '{directory}'...")
    reports = pipeline.ingestor.ingest_directory(
        directory, max_workers=RagConfig.get_ingest_workers()
    )
    for report in reports:
        if report.status != "skipped":
            click.echo(format_report(report))

    if len(pipeline.index) == 0:
        click.echo(f"✗ No documents could be indexed from '{directory}'", err=True)
        raise click.Abort()

    click.echo(f"✓ Indexed {len(pipeline.index)} chunks\n")
    return reports


class ConsoleOutputSink:
    """Output sink printing streamed tokens to the terminal."""

    def __init__(self) -> None:
        self.closed = False
        self.error: BaseException | None = None

    def send(self, event: str, data: str) -> None:
        if self.closed:
            raise SinkClosedError("Console sink closed")
        if event == "done":
            click.echo()
        else:
            click.echo(data, nl=False)

    def fail(self, cause: BaseException) -> None:
        self.error = cause
        click.echo(f"\n✗ Generation failed: {cause}", err=True)

    def close(self) -> None:
        self.closed = True
