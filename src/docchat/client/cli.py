"""Command-line interface for DocChat using Click."""

import asyncio
import logging
import os
from pathlib import Path

import click
from dotenv import load_dotenv

from docchat.client.cli_helpers import (
    ConsoleOutputSink,
    format_report,
    format_search_result,
    index_documents,
)
from docchat.config import RagConfig
from docchat.errors import DocChatError
from docchat.service.generation import StreamState
from docchat.service.pipeline import build_pipeline

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

docs_option = click.option(
    "--docs",
    "docs",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    required=True,
    help="Directory of documents to index before answering",
)


@click.command()
@click.argument(
    "directory",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
)
@click.option(
    "--workers",
    type=int,
    default=None,
    help="Files ingested concurrently (default: from INGEST_WORKERS env or 4)",
)
def ingest(directory: Path, workers: int | None) -> None:
    """Ingest every supported file under DIRECTORY and report the outcome.

    Example:
        docchat-ingest documents/
        docchat-ingest documents/ --workers 8
    """
    pipeline = build_pipeline()
    reports = pipeline.ingestor.ingest_directory(
        directory, max_workers=workers or RagConfig.get_ingest_workers()
    )

    if not reports:
        click.echo(f"No files found in '{directory}'")
        return

    click.echo(f"Processed {len(reports)} file(s):")
    for report in reports:
        click.echo(format_report(report))

    failed = sum(1 for r in reports if r.status == "failed")
    click.echo(
        f"\n✓ Ingestion complete! {len(pipeline.ingestor.documents)} document(s), "
        f"{len(pipeline.index)} chunk(s), {failed} failure(s)."
    )


@click.command()
@click.argument("query", type=str)
@docs_option
@click.option(
    "--top-k",
    type=click.IntRange(min=1),
    default=None,
    help="Number of results to return (default: 4)",
)
def search(query: str, docs: Path, top_k: int | None) -> None:
    """Search indexed documents for passages similar to QUERY.

    Example:
        docchat-search "quarterly revenue" --docs documents/
        docchat-search "risk factors" --docs documents/ --top-k 3
    """
    pipeline = build_pipeline()
    index_documents(pipeline, docs)

    click.echo(f"🔍 Searching for: '{query}'")
    try:
        results = pipeline.search(query, top_k)
    except DocChatError as e:
        click.echo(f"✗ Error: {e}", err=True)
        raise click.Abort()

    if not results:
        click.echo("No results found.")
        return

    click.echo(f"✅ Found {len(results)} result(s):\n")
    for i, match in enumerate(results, 1):
        click.echo(format_search_result(i, match))


@click.command()
@click.argument("question", type=str)
@docs_option
@click.option("--stream", "stream_flag", is_flag=True, default=False, help="Print tokens as they arrive")
@click.option("--chat-id", type=str, default="cli", help="Chat whose history is used (default: 'cli')")
def ask(question: str, docs: Path, stream_flag: bool, chat_id: str) -> None:
    """Answer QUESTION from the documents in --docs.

    Example:
        docchat-ask "What does the report conclude?" --docs documents/
        docchat-ask "Summarize section 2" --docs documents/ --stream
    """
    pipeline = build_pipeline()
    index_documents(pipeline, docs)

    try:
        if not stream_flag:
            click.echo(asyncio.run(pipeline.answer(chat_id, question)))
            return

        prepared = pipeline.prepare(chat_id, question)
        session = pipeline.stream(prepared, ConsoleOutputSink())
    except DocChatError as e:
        click.echo(f"✗ Error: {e}", err=True)
        raise click.Abort()

    if session.state is StreamState.FAILED:
        raise click.Abort()
    if session.timed_out:
        click.echo("\n⏱️ Stream timed out waiting for the model", err=True)
        return

    # Tokens carry the raw answer; the reference block is only in the saved one.
    streamed = "".join(session.fragments)
    if session.answer and len(session.answer) > len(streamed):
        click.echo(session.answer[len(streamed) :].strip("\n"))


@click.command()
def serve() -> None:
    """Start the DocChat web server.

    Example:
        docchat-serve
    """
    from docchat.client.app import main

    main()


if __name__ == "__main__":
    ingest()
