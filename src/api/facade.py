# src/api/facade.py — v2
"""Public API facade: request parsing, result mapping and one-shot generation.

Usage:
    from profilegen.api.facade import generate_for_entity
    result = await generate_for_entity({"id": "a1", "gender": "female"})

An HTTP front end only needs ``parse_request`` on the way in and
``to_response`` on the way out.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from profilegen.api.models import PROMPT_OVERRIDE_KEYS, EntityPayload, GenerateResponse
from profilegen.config.settings import Settings
from profilegen.core.errors import ERROR_HTTP_STATUS, InvalidRequestError
from profilegen.core.models import (
    EntityKind,
    GenerationFailure,
    GenerationRequest,
    GenerationResult,
)

if TYPE_CHECKING:
    from profilegen.batch.bulk_runner import BulkGenerator

logger = logging.getLogger(__name__)

BULK_ACCEPTED_STATUS = 202


def parse_request(payload: Any, entity_kind: EntityKind = "appraiser") -> GenerationRequest:
    """Validate a JSON-like payload into a GenerationRequest.

    Accepts either a bare entity object (``{"id": ..., "gender": ...}``) or
    an envelope keyed by kind (``{"appraiser": {...}, "customPrompt": ...}``).

    Raises:
        InvalidRequestError: Payload is not an object or has no usable id.
    """
    if not isinstance(payload, dict):
        raise InvalidRequestError(f"Invalid {entity_kind} data: expected a JSON object")

    entity = payload.get(entity_kind)
    if isinstance(entity, dict):
        override = _prompt_override(payload) or _prompt_override(entity)
    else:
        entity = payload
        override = _prompt_override(entity)

    try:
        parsed = EntityPayload.model_validate(entity)
    except ValidationError as e:
        raise InvalidRequestError(
            f"Invalid {entity_kind} data. ID is required. ({e.errors()[0]['msg']})"
        ) from e

    return GenerationRequest(
        entity_id=parsed.id,
        entity_kind=entity_kind,
        attributes=parsed.attributes(),
        prompt_override=override,
    )


def parse_many(
    payloads: list[Any],
    entity_kind: EntityKind = "appraiser",
) -> tuple[list[GenerationRequest], list[GenerationFailure]]:
    """Parse a batch of payloads; invalid ones become ValidationError failures."""
    requests: list[GenerationRequest] = []
    rejected: list[GenerationFailure] = []
    for index, payload in enumerate(payloads):
        try:
            requests.append(parse_request(payload, entity_kind))
        except InvalidRequestError as e:
            raw_id = payload.get("id") if isinstance(payload, dict) else None
            rejected.append(GenerationFailure(
                entity_id=str(raw_id) if raw_id else f"item-{index}",
                error_kind="ValidationError",
                message=str(e),
            ))
    return requests, rejected


def http_status_for(result: GenerationResult) -> int:
    """HTTP status a front end should answer with for ``result``."""
    if result.ok:
        return 200
    return ERROR_HTTP_STATUS.get(result.error_kind, 500)


def to_response(result: GenerationResult) -> tuple[int, dict[str, Any]]:
    """Map a result to ``(status, body)`` for a JSON front end."""
    if result.ok:
        body = GenerateResponse(
            success=True,
            data={
                "imageUrl": result.image_url,
                "cached": result.cached,
                "prompt": result.prompt,
                "source": result.source,
                "degraded": result.degraded,
            },
        )
    else:
        body = GenerateResponse(
            success=False, error=result.message, error_kind=result.error_kind,
        )
    return http_status_for(result), body.model_dump(by_alias=True, exclude_none=True)


async def generate_for_entity(
    payload: Any,
    entity_kind: EntityKind = "appraiser",
    settings: Settings | None = None,
    force: bool = False,
) -> GenerationResult:
    """Parse ``payload`` and run one generation with a throwaway client context.

    Long-running callers should build one Orchestrator and reuse it.

    Raises:
        ClientInitError: A required client could not be constructed.
    """
    from profilegen.generation.clients import Clients
    from profilegen.generation.orchestrator import Orchestrator

    try:
        request = parse_request(payload, entity_kind)
    except InvalidRequestError as e:
        raw_id = payload.get("id") if isinstance(payload, dict) else None
        return GenerationFailure(
            entity_id=str(raw_id or "unknown"), error_kind="ValidationError", message=str(e),
        )

    settings = settings or Settings()
    clients = Clients.from_settings(settings)
    try:
        return await Orchestrator(clients, settings).generate_for_entity(request, force=force)
    finally:
        await clients.aclose()


async def accept_bulk(
    runner: BulkGenerator,
    payloads: list[Any],
    entity_kind: EntityKind = "appraiser",
    force: bool = False,
) -> tuple[int, dict[str, Any]]:
    """Start a detached bulk job and answer at once with its job id.

    Invalid items do not block the job; they are reported in its results.
    Must be awaited inside the event loop that will run the job.
    """
    requests, rejected = parse_many(payloads, entity_kind)
    job_id = runner.start_detached(requests, force=force, rejected=rejected)
    body = GenerateResponse(
        success=True,
        data={
            "jobId": job_id,
            "accepted": len(requests),
            "rejected": len(rejected),
            "message": f"Bulk generation started for {len(requests)} {entity_kind}s",
        },
    )
    return BULK_ACCEPTED_STATUS, body.model_dump(by_alias=True, exclude_none=True)


def _prompt_override(data: dict[str, Any]) -> str | None:
    for key in PROMPT_OVERRIDE_KEYS:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None
