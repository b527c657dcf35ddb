# src/main.py — v2
"""CLI entry point: generate, bulk, prompt, evict, stats commands.

Usage:
    profilegen generate <entity_id> [--kind location] [--attr key=value ...]
    profilegen bulk <file_or_directory> [--count N] [--force]
    profilegen prompt <entity_id>
    profilegen evict
    profilegen stats
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from profilegen.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    from pydantic import ValidationError

    from profilegen.config.settings import load_settings
    from profilegen.core.errors import ConfigurationError

    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = load_settings()
    except (ConfigurationError, ValidationError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="profilegen",
        description=f"profilegen v{__version__}: cached AI profile image generation",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- generate ---
    p_generate = subparsers.add_parser(
        "generate", help="Generate (or fetch cached) image for one entity",
    )
    p_generate.add_argument("entity_id", help="Entity identifier")
    _add_kind_argument(p_generate)
    p_generate.add_argument(
        "-a", "--attr", action="append", default=[], metavar="KEY=VALUE",
        help="Entity attribute, repeatable (e.g. --attr gender=female)",
    )
    p_generate.add_argument(
        "--from-json", type=Path, default=None,
        help="Read entity attributes from a JSON object file",
    )
    p_generate.add_argument(
        "-p", "--prompt", default=None,
        help="Use this prompt verbatim instead of building one",
    )
    p_generate.add_argument(
        "-f", "--force", action="store_true",
        help="Regenerate even if a fresh cached image exists",
    )
    p_generate.set_defaults(func=_cmd_generate)

    # --- bulk ---
    p_bulk = subparsers.add_parser(
        "bulk", help="Generate images for every entity in a JSON file or directory",
    )
    p_bulk.add_argument("source", type=Path, help="JSON file or directory of JSON files")
    _add_kind_argument(p_bulk)
    p_bulk.add_argument(
        "-c", "--count", type=int, default=None,
        help="Number of entities to process (default: all)",
    )
    p_bulk.add_argument(
        "-f", "--force", action="store_true",
        help="Regenerate images even if they are cached",
    )
    p_bulk.add_argument(
        "--concurrency", type=int, default=None,
        help="Parallel generations (default: BULK_CONCURRENCY)",
    )
    p_bulk.set_defaults(func=_cmd_bulk)

    # --- prompt ---
    p_prompt = subparsers.add_parser(
        "prompt", help="Show the prompt stored with an entity's cached image",
    )
    p_prompt.add_argument("entity_id", help="Entity identifier")
    _add_kind_argument(p_prompt)
    p_prompt.set_defaults(func=_cmd_prompt)

    # --- evict ---
    p_evict = subparsers.add_parser(
        "evict", help="Delete cache entries older than CACHE_MAX_AGE_DAYS",
    )
    p_evict.set_defaults(func=_cmd_evict)

    # --- stats ---
    p_stats = subparsers.add_parser(
        "stats", help="Show cache statistics",
    )
    p_stats.set_defaults(func=_cmd_stats)

    return parser


def _add_kind_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-k", "--kind", choices=("appraiser", "location"), default="appraiser",
        help="Entity kind (default: appraiser)",
    )


async def _cmd_generate(args: argparse.Namespace, settings: Any) -> int:
    """Generate one image and print the result as JSON."""
    from profilegen.api.facade import parse_request, to_response
    from profilegen.core.errors import InvalidRequestError
    from profilegen.generation.clients import Clients
    from profilegen.generation.orchestrator import Orchestrator

    payload: dict[str, Any] = {}
    if args.from_json is not None:
        loaded = json.loads(args.from_json.read_text(encoding="utf-8"))
        if not isinstance(loaded, dict):
            logger.error("%s must hold a JSON object", args.from_json)
            return 1
        payload.update(loaded)
    try:
        payload.update(_parse_attrs(args.attr))
    except ValueError as exc:
        logger.error("%s", exc)
        return 1
    payload["id"] = args.entity_id
    if args.prompt:
        payload["customPrompt"] = args.prompt

    try:
        request = parse_request(payload, args.kind)
    except InvalidRequestError as exc:
        logger.error("%s", exc)
        return 1

    clients = Clients.from_settings(settings)
    try:
        result = await Orchestrator(clients, settings).generate_for_entity(request, force=args.force)
    finally:
        await clients.aclose()

    status, body = to_response(result)
    print(json.dumps(body, indent=2))
    return 0 if status == 200 else 1


async def _cmd_bulk(args: argparse.Namespace, settings: Any) -> int:
    """Run a bulk generation and print the summary."""
    from profilegen.batch.bulk_runner import BulkGenerator, load_requests
    from profilegen.generation.clients import Clients
    from profilegen.generation.orchestrator import Orchestrator

    source: Path = args.source
    if not source.exists():
        logger.error("Not found: %s", source)
        return 1

    requests, rejected = load_requests(source, args.kind, limit=args.count)
    if not requests and not rejected:
        logger.error("No %s entries found in %s", args.kind, source)
        return 1

    clients = Clients.from_settings(settings)
    try:
        runner = BulkGenerator(
            Orchestrator(clients, settings),
            results_dir=settings.results_dir,
            concurrency=args.concurrency or settings.bulk_concurrency,
        )
        report = await runner.run(requests, force=args.force, rejected=rejected)
    finally:
        await clients.aclose()

    print(f"\nBulk generation complete ({report.job_id}):")
    print(f"  Entities:   {report.total}")
    print(f"  Succeeded:  {report.succeeded} ({report.cached} cached)")
    print(f"  Failed:     {report.failed}")
    print(f"  Duration:   {report.duration_seconds:.1f}s")
    if report.results_file:
        print(f"  Results:    {report.results_file}")
    return 0 if report.failed == 0 else 1


async def _cmd_prompt(args: argparse.Namespace, settings: Any) -> int:
    """Print the prompt stored for an entity."""
    from profilegen.cache.cache_factory import create_cache_store
    from profilegen.generation.orchestrator import cache_key

    cache = create_cache_store(settings)
    entry = await cache.lookup(cache_key(args.entity_id, args.kind))
    if entry is None or not entry.prompt:
        logger.error("No prompt found for %s %s", args.kind, args.entity_id)
        return 1
    print(entry.prompt)
    return 0


async def _cmd_evict(args: argparse.Namespace, settings: Any) -> int:
    """Evict expired cache entries."""
    from profilegen.cache.cache_factory import create_cache_store

    cache = create_cache_store(settings)
    evicted = await cache.evict_expired()
    print(f"Evicted {len(evicted)} entries older than {settings.cache_max_age_days} days")
    for entity_id in evicted:
        print(f"  {entity_id}")
    return 0


async def _cmd_stats(args: argparse.Namespace, settings: Any) -> int:
    """Display cache statistics."""
    from profilegen.cache.cache_factory import create_cache_store

    cache = create_cache_store(settings)
    entries = await cache.list_entries()
    now = datetime.now(timezone.utc)
    stale = [e for e in entries if now - _as_utc(e.created_at) > cache.max_age]
    locations = [e for e in entries if e.entity_id.startswith("location:")]
    total_bytes = sum(e.size_bytes or 0 for e in entries)

    print(f"\nCache statistics ({settings.cache_backend}, {settings.cache_root}):")
    print(f"  Entries:    {len(entries)}")
    print(f"  Appraisers: {len(entries) - len(locations)}")
    print(f"  Locations:  {len(locations)}")
    print(f"  Expired:    {len(stale)}")
    print(f"  Size:       {total_bytes / 1024 / 1024:.1f} MB")
    if entries:
        oldest = min(_as_utc(e.created_at) for e in entries)
        newest = max(_as_utc(e.created_at) for e in entries)
        print(f"  Oldest:     {oldest.isoformat()}")
        print(f"  Newest:     {newest.isoformat()}")
    return 0


def _parse_attrs(pairs: list[str]) -> dict[str, Any]:
    """Parse KEY=VALUE pairs; comma-separated values become lists."""
    attrs: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Invalid attribute {pair!r}, expected KEY=VALUE")
        value = value.strip()
        attrs[key.strip()] = [v.strip() for v in value.split(",")] if "," in value else value
    return attrs


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _setup_logging(settings: Any, verbose: bool) -> None:
    """Configure logging for CLI usage (stderr, so stdout stays parseable)."""
    from profilegen.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
        stream=sys.stderr,
    )


if __name__ == "__main__":
    sys.exit(main())
