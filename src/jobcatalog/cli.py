"""CLI command handlers for the job catalog.

Each public function corresponds to a CLI subcommand and encapsulates
the wiring, orchestration, and output for that command.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jobcatalog.config import DEFAULT_SETTINGS_PATH
from jobcatalog.errors import ActionableError
from jobcatalog.sources import MappedBatch, RawPosting, SourceMapperRegistry, map_payloads

if TYPE_CHECKING:
    from jobcatalog.catalog.posting import PostingRecord
    from jobcatalog.pipeline.results import BatchIngestResult

logger = logging.getLogger(__name__)


def load_json_array(path: str | Path) -> list[dict[str, Any]]:
    """Read a JSON file that must contain an array of objects.

    Raises PARSE for unreadable JSON or a non-array document.
    """
    filepath = Path(path)
    if not filepath.exists():
        raise ActionableError.validation(
            field_name="file",
            reason=f"{filepath} does not exist",
        )
    try:
        data = json.loads(filepath.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ActionableError.parse(
            source=filepath.name,
            location=f"line {exc.lineno}, column {exc.colno}",
            raw_error=exc.msg,
        ) from None
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ActionableError.parse(
            source=filepath.name,
            location="top level",
            raw_error="expected a JSON array of objects",
        )
    return data


def load_raw_postings(path: str | Path, source: str | None = None) -> MappedBatch:
    """Load postings as :class:`RawPosting`, through a source mapper when *source* is given.

    An item that cannot be mapped is skipped and reported in the returned
    batch's ``errors``; only an unreadable file or an unknown source raises.
    """
    items = load_json_array(path)
    origin = Path(path).name
    if source is None:
        return map_payloads(items, RawPosting.from_dict, origin=origin)
    try:
        mapper = SourceMapperRegistry.get(source)
    except ValueError as exc:
        raise ActionableError.validation(
            field_name="--source",
            reason=str(exc),
            suggestion="Run 'python -m jobcatalog sources' to list the known sources",
        ) from None
    return mapper.map_each(items, origin=f"{source} {origin}")


def parse_source_input(spec: str) -> tuple[str, str]:
    """Split a ``NAME=FILE`` argument into the mapper name and the file path."""
    name, sep, path = spec.partition("=")
    if not sep or not name.strip() or not path.strip():
        raise ActionableError.validation(
            field_name="--source",
            reason=f"expected NAME=FILE, got {spec!r}",
            suggestion="Pass e.g. --source adzuna=adzuna.json (repeat for each source)",
        )
    return name.strip(), path.strip()


def ingest_inputs(args: argparse.Namespace) -> list[tuple[str | None, str]]:
    """Every input of one ingest run as ``(source mapper or None, file)`` pairs."""
    inputs: list[tuple[str | None, str]] = [(None, path) for path in args.files]
    inputs.extend(parse_source_input(spec) for spec in args.source)
    if not inputs:
        raise ActionableError.validation(
            field_name="ingest",
            reason="no input files given",
            suggestion="Pass FILE arguments and/or --source NAME=FILE",
        )
    return inputs


def handle_sources() -> None:
    """List all registered source mapper names."""
    sources = SourceMapperRegistry.list_registered()
    if not sources:
        print("No source mappers registered.")
        return
    print("Registered source mappers:")
    for name in sorted(sources):
        print(f"  - {name}")


def handle_ingest(args: argparse.Namespace) -> None:
    """Map every input file and ingest them together, so postings merge across sources."""
    from jobcatalog.config import load_settings
    from jobcatalog.logging import configure_file_logging, quiet_dependencies
    from jobcatalog.pipeline.ingestion import IngestionPipeline
    from jobcatalog.storage.embedder import Embedder
    from jobcatalog.storage.postings import ChromaPostingStore
    from jobcatalog.storage.store import VectorStore
    from jobcatalog.storage.technologies import ChromaTechnologyCatalog

    if args.batch_size is not None and args.batch_size < 1:
        raise ActionableError.validation(
            field_name="--batch-size",
            reason=f"must be at least 1, got {args.batch_size}",
        )
    inputs = ingest_inputs(args)

    quiet_dependencies()
    if args.log_dir:
        configure_file_logging(args.log_dir)

    settings = load_settings(args.config)
    loaded = MappedBatch()
    for source, path in inputs:
        batch = load_raw_postings(path, source)
        logger.info(
            "Loaded %d posting(s) from %s, skipped %d",
            len(batch.postings),
            path,
            len(batch.errors),
        )
        loaded.extend(batch)

    if not loaded.postings:
        print(f"No postings found in {', '.join(path for _, path in inputs)}")
        print_errors(loaded.errors)
        return

    embedder = Embedder(
        base_url=settings.ollama.base_url,
        embed_model=settings.ollama.embed_model,
        max_retries=settings.ingestion.max_retries,
        base_delay=settings.ingestion.retry_delay,
    )
    store = VectorStore(persist_dir=settings.chroma.persist_dir)
    pipeline = IngestionPipeline.from_settings(
        settings,
        technology_catalog=ChromaTechnologyCatalog(store, embedder),
        posting_store=ChromaPostingStore(store, embedder),
    )

    async def _run() -> BatchIngestResult:
        await embedder.health_check()
        await pipeline.reload_technologies()
        return await pipeline.ingest_in_batches(loaded.postings, args.batch_size)

    result = asyncio.run(_run())
    print_batch_summary(
        result,
        per_source=Counter(raw.source for raw in loaded.postings),
        skipped=loaded.errors,
    )


def print_batch_summary(
    result: BatchIngestResult,
    *,
    per_source: Counter[str] | None = None,
    skipped: list[str] | None = None,
) -> None:
    skipped = skipped or []
    print(f"\n{'=' * 60}")
    print(" Ingestion Summary")
    print(f"{'=' * 60}")
    print(f" Batches:     {len(result.batches)}")
    print(f" Processed:   {result.total_processed}")
    print(f" Inserted:    {result.total_inserted}")
    print(f" Updated:     {result.total_updated}")
    print(f" Failed:      {result.total_failed}")
    print(f" Skipped:     {len(skipped)}")
    print(f" Duration:    {result.total_duration_ms:.0f} ms")
    if per_source:
        print(" Per source:")
        for source, count in sorted(per_source.items()):
            print(f"   {source:<16} {count}")
    print(f"{'=' * 60}")

    print_errors(skipped + result.errors)


def print_errors(errors: list[str]) -> None:
    if errors:
        print(f"\n{len(errors)} error(s):")
        for error in errors:
            print(f"  - {error}")


def handle_compare(args: argparse.Namespace) -> None:
    """Explain the duplicate decision for exactly two postings."""
    from jobcatalog.catalog.dedup import DuplicateEngine

    loaded = load_raw_postings(args.file)
    if loaded.errors:
        raise ActionableError.validation(field_name="file", reason=loaded.errors[0])
    raw = loaded.postings
    if len(raw) != 2:
        raise ActionableError.validation(
            field_name="file",
            reason=f"expected exactly 2 postings, found {len(raw)}",
        )

    try:
        first, second = asyncio.run(_detect_pair(raw[0], raw[1]))
    except ValueError as exc:
        raise ActionableError.validation(
            field_name="posted_date",
            reason=str(exc),
            suggestion="Use an ISO-8601 date such as 2026-10-01",
        ) from None
    analysis = DuplicateEngine().analyze_similarity(first, second)
    print(json.dumps(analysis.to_dict(), indent=2))


async def _detect_pair(first: RawPosting, second: RawPosting) -> tuple[PostingRecord, PostingRecord]:
    """Build both records with the default detectors; no store involved."""
    from jobcatalog.detectors import (
        CityRegionResolver,
        PatternExperienceClassifier,
        RegexTechnologyTagger,
    )
    from jobcatalog.pipeline.ingestion import build_record

    tagger = RegexTechnologyTagger()
    classifier = PatternExperienceClassifier()
    resolver = CityRegionResolver()

    records = []
    for raw in (first, second):
        tags = raw.technologies or await tagger.tag(raw.description)
        category = await classifier.classify(raw.title, raw.experience_level, raw.description)
        record = build_record(raw, tags, category)
        records.append(record.with_region(await resolver.resolve(record.location)))
    return records[0], records[1]


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="jobcatalog",
        description="Aggregate job postings from several sources into one deduplicated catalog",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # -- ingest --------------------------------------------------------------
    ingest_p = sub.add_parser(
        "ingest",
        help="Ingest JSON arrays of postings from one or more sources in a single run",
    )
    ingest_p.add_argument(
        "files",
        nargs="*",
        metavar="FILE",
        help="JSON file with an array of postings in RawPosting field names",
    )
    ingest_p.add_argument(
        "--source",
        action="append",
        default=[],
        metavar="NAME=FILE",
        help="Source-native JSON file mapped through NAME (see 'sources'); repeatable",
    )
    ingest_p.add_argument(
        "--batch-size",
        type=int,
        default=None,
        metavar="N",
        help="Postings per pipeline run (default: [ingestion].batch_size)",
    )
    ingest_p.add_argument(
        "--log-dir",
        type=str,
        default=None,
        metavar="DIR",
        help="Also write a timestamped log file into DIR",
    )
    ingest_p.add_argument(
        "--config",
        type=str,
        default=str(DEFAULT_SETTINGS_PATH),
        metavar="PATH",
        help=f"Settings file (default: {DEFAULT_SETTINGS_PATH})",
    )

    # -- compare -------------------------------------------------------------
    compare_p = sub.add_parser("compare", help="Explain whether two postings are duplicates")
    compare_p.add_argument("file", type=str, help="Path to a JSON file with exactly two postings")

    # -- sources -------------------------------------------------------------
    sub.add_parser("sources", help="List registered source mappers")

    return parser
