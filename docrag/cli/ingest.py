# =============================================================================
# docrag/cli/ingest.py -- operator CLI for the ingestion pipeline
# =============================================================================
#
# Subcommands:
#
#   register  -- copy a local file into object storage and add a pending record
#   process   -- run the pipeline for one file
#   estimate  -- extract and chunk one file, print the embedding cost estimate
#   reprocess -- delete a file's chunks and run the pipeline again
#   batch     -- process pending files sequentially
#   reset     -- move a stuck ``processing`` file back to ``pending``
#   stats     -- per-project processing statistics
#
# register, reset and stats only need the stores; the other commands build
# the full pipeline and need an embedding API key.
# =============================================================================

"""Standalone CLI for the docrag ingestion pipeline.

Usage::

    python -m docrag.cli.ingest register --project p1 --file ./floorplan.pdf
    python -m docrag.cli.ingest process <file_id>
    python -m docrag.cli.ingest batch --project p1 --limit 20
    python -m docrag.cli.ingest stats --project p1
"""

from __future__ import annotations

import argparse
import asyncio
import mimetypes
import sys
import uuid
from pathlib import Path
from typing import Any

from docrag.config.loader import load_config
from docrag.config.settings import Settings
from docrag.main import build_pipeline, build_stores, initialize_stores
from docrag.models.files import FileRecord
from docrag.models.ingestion import ProcessFileRequest, ProcessingResult
from docrag.utils.errors import DocragError
from docrag.utils.logging import configure_logging


def _print_result(result: ProcessingResult) -> None:
    status = "OK" if result.success else "FAILED"
    print(f"[{status}] {result.file_id}")
    print(f"  Chunks:   {result.chunk_count}")
    print(f"  Tokens:   {result.total_tokens}")
    print(f"  Time:     {result.elapsed_s:.2f}s")
    for warning in result.warnings:
        print(f"  Warning:  {warning}")
    if result.error:
        print(f"  Error:    {result.error}")


def _print_progress(step: str, fraction: float) -> None:
    print(f"  {fraction * 100:5.1f}%  {step}")


async def _request_for(components: dict[str, Any], file_id: str) -> ProcessFileRequest | None:
    record = await components["repository"].get_file(file_id)
    if record is None:
        print(f"Error: unknown file {file_id}", file=sys.stderr)
        return None
    return ProcessFileRequest(
        file_id=record.file_id,
        storage_path=record.storage_path,
        filename=record.filename,
        mime_type=record.mime_type,
        project_id=record.project_id,
    )


async def _finish(components: dict[str, Any]) -> None:
    background = components.get("background")
    if background is not None and background.pending_count:
        print("Waiting for document summaries...")
        await background.drain()


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_register(args: argparse.Namespace, app_settings: Settings) -> int:
    components = build_stores(app_settings)
    await initialize_stores(components)

    path = Path(args.file)
    if not path.is_file():
        print(f"Error: {path} is not a file", file=sys.stderr)
        return 1

    file_id = args.file_id or str(uuid.uuid4())
    mime_type = args.mime or mimetypes.guess_type(path.name)[0] or ""
    storage_path = f"{args.project}/{file_id}/{path.name}"

    await components["storage"].put_bytes(storage_path, path.read_bytes(), mime_type or None)
    await components["repository"].add_file(
        FileRecord(
            file_id=file_id,
            project_id=args.project,
            storage_path=storage_path,
            filename=path.name,
            mime_type=mime_type,
        )
    )
    print(f"Registered {path.name} as {file_id} ({mime_type or 'unknown type'})")
    return 0


async def _handle_process(args: argparse.Namespace, components: dict[str, Any]) -> int:
    request = await _request_for(components, args.file_id)
    if request is None:
        return 1
    print(f"Processing {request.filename}")
    result = await components["pipeline"].process_file(request, on_progress=_print_progress)
    _print_result(result)
    await _finish(components)
    return 0 if result.success else 1


async def _handle_estimate(args: argparse.Namespace, components: dict[str, Any]) -> int:
    request = await _request_for(components, args.file_id)
    if request is None:
        return 1
    estimate = await components["pipeline"].estimate(request)
    print(f"Estimate for {request.filename}")
    print(f"  Chunks:   {estimate.estimated_chunks}")
    print(f"  Tokens:   {estimate.estimated_tokens}")
    print(f"  Cost:     ${estimate.estimated_cost_usd:.6f}")
    for warning in estimate.warnings:
        print(f"  Warning:  {warning}")
    return 0


async def _handle_reprocess(args: argparse.Namespace, components: dict[str, Any]) -> int:
    result = await components["reprocessor"].reprocess(args.file_id, on_progress=_print_progress)
    _print_result(result)
    await _finish(components)
    return 0 if result.success else 1


async def _handle_batch(args: argparse.Namespace, components: dict[str, Any]) -> int:
    def _on_file(result: ProcessingResult, index: int, total: int) -> None:
        status = "ok" if result.success else f"failed: {result.error}"
        print(f"  [{index}/{total}] {result.file_id} {status}")

    batch = await components["batch_runner"].process_pending(
        project_id=args.project, limit=args.limit, on_file_complete=_on_file
    )
    print(f"\nBatch complete: {batch.succeeded}/{batch.total} succeeded, {batch.failed} failed")
    await _finish(components)
    return 0 if batch.failed == 0 else 1


async def _handle_reset(args: argparse.Namespace, app_settings: Settings) -> int:
    components = build_stores(app_settings)
    await initialize_stores(components)
    record = await components["status_tracker"].reset(args.file_id)
    print(f"{record.file_id} is now {record.embedding_status.value}")
    return 0


async def _handle_stats(args: argparse.Namespace, app_settings: Settings) -> int:
    components = build_stores(app_settings)
    await initialize_stores(components)
    stats = await components["stats"].get_processing_stats(args.project)

    print(f"Processing statistics for {args.project}")
    print("=" * 40)
    print(f"  Total files:      {stats.total_files}")
    print(f"  Processed:        {stats.processed_files}")
    print(f"  Pending:          {stats.pending_files}")
    print(f"  Processing:       {stats.processing_files}")
    print(f"  Failed:           {stats.failed_files}")
    print(f"  Total chunks:     {stats.total_chunks}")
    print(f"  Total tokens:     {stats.total_tokens}")
    return 0


async def _run_pipeline_command(args: argparse.Namespace, app_settings: Settings) -> int:
    components = build_pipeline(app_settings)
    await initialize_stores(components)
    handlers = {
        "process": _handle_process,
        "estimate": _handle_estimate,
        "reprocess": _handle_reprocess,
        "batch": _handle_batch,
    }
    return await handlers[args.command](args, components)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ingestion CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m docrag.cli.ingest",
        description="Run the docrag document ingestion pipeline.",
    )
    parser.add_argument(
        "--config", default="config/config.yaml", help="YAML config file (optional)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Ingestion commands")

    register_parser = subparsers.add_parser("register", help="Register a local file")
    register_parser.add_argument("--project", required=True, help="Project id")
    register_parser.add_argument("--file", required=True, help="Path to the file")
    register_parser.add_argument("--file-id", dest="file_id", help="File id (default: uuid4)")
    register_parser.add_argument("--mime", help="MIME type (default: guessed from extension)")

    for name, help_text in (
        ("process", "Process one registered file"),
        ("estimate", "Estimate chunks, tokens and cost for one file"),
        ("reprocess", "Delete a file's chunks and process it again"),
        ("reset", "Reset a stuck processing file to pending"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("file_id", help="File id")

    batch_parser = subparsers.add_parser("batch", help="Process pending files")
    batch_parser.add_argument("--project", help="Restrict to one project")
    batch_parser.add_argument("--limit", type=int, default=50, help="Maximum files (default 50)")

    stats_parser = subparsers.add_parser("stats", help="Show processing statistics")
    stats_parser.add_argument("--project", required=True, help="Project id")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point; exits with 0 on success and 1 on any failure."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        app_settings = load_config(args.config)
        configure_logging(app_settings.log_level)

        if args.command == "register":
            exit_code = asyncio.run(_handle_register(args, app_settings))
        elif args.command == "reset":
            exit_code = asyncio.run(_handle_reset(args, app_settings))
        elif args.command == "stats":
            exit_code = asyncio.run(_handle_stats(args, app_settings))
        else:
            exit_code = asyncio.run(_run_pipeline_command(args, app_settings))
    except DocragError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
