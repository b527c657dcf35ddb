# src/batch/models.py — v2
"""Bulk generation models: BulkItemResult, BulkReport."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from profilegen.core.models import GenerationResult


class BulkItemResult(BaseModel):
    """Outcome of one entity in a bulk run."""

    entity_id: str
    ok: bool
    image_url: str | None = None
    cached: bool = False
    source: str | None = None
    degraded: bool = False
    error_kind: str | None = None
    message: str | None = None

    @classmethod
    def from_result(cls, result: GenerationResult) -> BulkItemResult:
        if result.ok:
            return cls(
                entity_id=result.entity_id,
                ok=True,
                image_url=result.image_url,
                cached=result.cached,
                source=result.source,
                degraded=result.degraded,
            )
        return cls(
            entity_id=result.entity_id,
            ok=False,
            error_kind=result.error_kind,
            message=result.message,
        )


class BulkReport(BaseModel):
    """Summary of a bulk generation run, also written as the results file."""

    job_id: str
    started_at: datetime
    total: int
    succeeded: int
    cached: int
    failed: int
    duration_seconds: float
    results: list[BulkItemResult] = Field(default_factory=list)
    results_file: str | None = None
