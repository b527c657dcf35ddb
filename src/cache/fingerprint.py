# src/cache/fingerprint.py — v3
"""Content fingerprint of the attributes that affect a generated image.

Only allow-listed fields take part in the hash, so display names and other
free-form metadata never force a regeneration, and new schema fields are
ignored until someone opts them in.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Iterable

from profilegen.core.models import GenerationRequest

DEFAULT_FIELDS: dict[str, tuple[str, ...]] = {
    "appraiser": ("gender", "age", "specialization"),
    "location": ("type", "city", "state", "description", "features"),
}

_MISSING = "unknown"


def compute_fingerprint(
    request: GenerationRequest,
    fields: Iterable[str] | None = None,
) -> str:
    """Compute the 128-bit content fingerprint of a request.

    Args:
        request: Generation request.
        fields: Allow-listed attribute names. Defaults to the built-in list
            for the request's entity kind.

    Returns:
        32-char lowercase hex digest.
    """
    allowed = tuple(fields) if fields is not None else DEFAULT_FIELDS[request.entity_kind]
    relevant: dict[str, Any] = {"kind": request.entity_kind}
    for name in sorted(set(allowed)):
        relevant[name] = _normalize(request.attributes.get(name))
    canonical = json.dumps(relevant, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.md5(canonical.encode("utf-8")).hexdigest()  # noqa: S324


def _normalize(value: Any) -> Any:
    """Normalize an attribute value so cosmetic differences hash equally."""
    if value is None:
        return _MISSING
    if isinstance(value, str):
        stripped = value.strip().lower()
        return stripped or _MISSING
    if isinstance(value, (list, tuple, set)):
        return sorted(str(_normalize(v)) for v in value)
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in sorted(value.items(), key=lambda kv: str(kv[0]))}
    return value
