# src/batch/bulk_runner.py — v2
"""Bulk generation: many entities through one orchestrator, bounded concurrency.

A run can be awaited directly or started detached; detached runs return a
job id at once and write their report to
``results_dir/bulk-generation-<timestamp>-<job id>.json`` when finished.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from collections import OrderedDict
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable

from profilegen.batch.models import BulkItemResult, BulkReport
from profilegen.core.models import EntityKind, GenerationFailure, GenerationRequest

if TYPE_CHECKING:
    from profilegen.generation.orchestrator import Orchestrator

logger = logging.getLogger(__name__)


class BulkGenerator:
    """Run generation for a list of requests.

    Workflow:
        1. Fan out requests under a semaphore (``concurrency`` at a time)
        2. Collect one BulkItemResult per entity, failures included
        3. Write the report JSON to ``results_dir``
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        results_dir: Path | str = Path("logs"),
        concurrency: int = 3,
        keep_finished: int = 50,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._orchestrator = orchestrator
        self._results_dir = Path(results_dir)
        self._concurrency = concurrency
        self._jobs: dict[str, asyncio.Task[BulkReport]] = {}
        # Reports of the most recent finished detached jobs, oldest first.
        self._finished: OrderedDict[str, BulkReport] = OrderedDict()
        self._keep_finished = keep_finished

    @property
    def active_jobs(self) -> list[str]:
        return [job_id for job_id, task in self._jobs.items() if not task.done()]

    async def run(
        self,
        requests: Iterable[GenerationRequest],
        force: bool = False,
        rejected: Iterable[GenerationFailure] = (),
        job_id: str | None = None,
    ) -> BulkReport:
        """Generate every request and return the report.

        Args:
            requests: Valid generation requests.
            force: Bypass the cache for every entity in this run.
            rejected: Items that failed validation, reported as failures.
            job_id: Identifier for the run. Generated if None.
        """
        job_id = job_id or _new_job_id()
        started_at = datetime.now(timezone.utc)
        t0 = time.perf_counter()
        requests = list(requests)
        semaphore = asyncio.Semaphore(self._concurrency)

        logger.info(
            "Bulk job %s: %d entities (concurrency=%d, force=%s)",
            job_id, len(requests), self._concurrency, force,
        )

        async def _one(request: GenerationRequest) -> BulkItemResult:
            async with semaphore:
                result = await self._orchestrator.generate_for_entity(request, force=force)
            return BulkItemResult.from_result(result)

        results = [BulkItemResult.from_result(r) for r in rejected]
        results.extend(await asyncio.gather(*(_one(r) for r in requests)))

        report = BulkReport(
            job_id=job_id,
            started_at=started_at,
            total=len(results),
            succeeded=sum(1 for r in results if r.ok),
            cached=sum(1 for r in results if r.ok and r.cached),
            failed=sum(1 for r in results if not r.ok),
            duration_seconds=round(time.perf_counter() - t0, 2),
            results=results,
        )
        report.results_file = self._write_report(report)

        logger.info(
            "Bulk job %s done: %d ok (%d cached), %d failed in %.1fs",
            job_id, report.succeeded, report.cached, report.failed, report.duration_seconds,
        )
        return report

    def start_detached(
        self,
        requests: Iterable[GenerationRequest],
        force: bool = False,
        rejected: Iterable[GenerationFailure] = (),
    ) -> str:
        """Schedule a run in the background and return its job id at once."""
        job_id = _new_job_id()
        task = asyncio.create_task(
            self.run(list(requests), force=force, rejected=list(rejected), job_id=job_id),
            name=f"bulk-{job_id}",
        )
        self._jobs[job_id] = task
        task.add_done_callback(lambda t: self._on_job_done(job_id, t))
        logger.info("Bulk job %s started in background", job_id)
        return job_id

    async def wait(self, job_id: str) -> BulkReport:
        """Await a detached job, or return its report if it already finished.

        Raises:
            KeyError: Unknown job id, or a finished job no longer retained.
        """
        task = self._jobs.get(job_id)
        if task is not None:
            return await task
        return self._finished[job_id]

    def _on_job_done(self, job_id: str, task: asyncio.Task[BulkReport]) -> None:
        self._jobs.pop(job_id, None)
        if task.cancelled():
            logger.warning("Bulk job %s was cancelled", job_id)
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Bulk job %s failed: %s", job_id, exc, exc_info=exc)
            return
        self._finished[job_id] = task.result()
        while len(self._finished) > self._keep_finished:
            self._finished.popitem(last=False)

    def _write_report(self, report: BulkReport) -> str | None:
        stamp = report.started_at.strftime("%Y-%m-%dT%H-%M-%S")
        path = self._results_dir / f"bulk-generation-{stamp}-{report.job_id}.json"
        try:
            self._results_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(report.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            logger.error("Could not write bulk results file %s: %s", path, e)
            return None
        logger.info("Bulk results written to %s", path)
        return str(path)


def load_requests(
    path: Path | str,
    entity_kind: EntityKind = "appraiser",
    limit: int | None = None,
) -> tuple[list[GenerationRequest], list[GenerationFailure]]:
    """Read entities from a JSON file or a directory of JSON files.

    Each file holds one entity object, a list of them, or an object with an
    ``items`` (or ``<kind>s``) list. Items that fail validation come back as
    GenerationFailure so a bulk run can report them instead of aborting.

    Raises:
        ValueError: A file is not valid JSON or holds no entity objects.
    """
    from profilegen.api.facade import parse_many

    path = Path(path)
    files = sorted(path.glob("*.json")) if path.is_dir() else [path]
    items: list[Any] = []
    for file in files:
        items.extend(_read_items(file, entity_kind))
    if limit is not None:
        items = items[:limit]

    requests, rejected = parse_many(items, entity_kind)
    logger.info(
        "Loaded %d %s requests from %s (%d rejected)",
        len(requests), entity_kind, path, len(rejected),
    )
    return requests, rejected


def _read_items(file: Path, entity_kind: EntityKind) -> list[Any]:
    try:
        raw = json.loads(file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"{file}: invalid JSON ({e})") from e
    if isinstance(raw, list):
        return raw
    if isinstance(raw, dict):
        for key in ("items", f"{entity_kind}s"):
            if isinstance(raw.get(key), list):
                return raw[key]
        return [raw]
    raise ValueError(f"{file}: expected a JSON object or list of {entity_kind} objects")


def _new_job_id() -> str:
    return uuid.uuid4().hex[:12]
