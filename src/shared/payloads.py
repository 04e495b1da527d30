"""Tool call payload normalization.

Voice platform callers are inconsistent about where they put tool
arguments. A field may sit at the top level of the body, under an
``args`` object, or (correlation key only) under ``call.metadata``.
Each field is resolved by walking an ordered list of candidate
extractors and taking the first present value. Nulls and blank strings
fall through to the next location.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

logger = logging.getLogger(__name__)

Extractor = Callable[[Mapping[str, Any], str], Any]

_TRUE_STRINGS = {"true", "yes", "y", "1"}
_FALSE_STRINGS = {"false", "no", "n", "0", ""}


def from_top_level(body: Mapping[str, Any], name: str) -> Any:
    """Read ``body[name]``."""
    return body.get(name)


def from_args(body: Mapping[str, Any], name: str) -> Any:
    """Read ``body["args"][name]`` when ``args`` is an object."""
    args = body.get("args")
    if isinstance(args, Mapping):
        return args.get(name)
    return None


def from_call_metadata(body: Mapping[str, Any], name: str) -> Any:
    """Read ``body["call"]["metadata"][name]`` when both levels are objects."""
    call = body.get("call")
    if not isinstance(call, Mapping):
        return None
    metadata = call.get("metadata")
    if isinstance(metadata, Mapping):
        return metadata.get(name)
    return None


FIELD_EXTRACTORS: tuple[Extractor, ...] = (from_top_level, from_args)
CORRELATION_EXTRACTORS: tuple[Extractor, ...] = (
    from_top_level,
    from_args,
    from_call_metadata,
)


def resolve_field(
    body: Mapping[str, Any],
    name: str,
    extractors: Sequence[Extractor] = FIELD_EXTRACTORS,
    default: Any = None,
) -> Any:
    """Resolve a field by trying each extractor in priority order.

    Args:
        body: Raw JSON body from the voice platform.
        name: Field name to resolve.
        extractors: Candidate locations, highest priority first.
        default: Value returned when no location holds a usable value.

    Returns:
        First value that is neither null nor a blank string, else default.
    """
    for extract in extractors:
        value = extract(body, name)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        return value
    return default


def resolve_workflow_id(body: Mapping[str, Any]) -> str | None:
    """Resolve the workflow correlation key.

    Blank strings count as missing. Numeric ids are coerced to str.

    Args:
        body: Raw JSON body from the voice platform.

    Returns:
        Workflow id, or None when it cannot be resolved.
    """
    for extract in CORRELATION_EXTRACTORS:
        value = extract(body, "workflow_id")
        if value is None or isinstance(value, (Mapping, list, bool)):
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def resolve_text(body: Mapping[str, Any], name: str) -> str | None:
    """Resolve an optional free-text field, blank strings become None."""
    value = resolve_field(body, name)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_bool(value: Any, default: bool) -> bool:
    """Coerce a tool argument to bool.

    Voice platforms send booleans as JSON booleans or as strings
    such as "true"/"false".

    Args:
        value: Raw argument value.
        default: Result when the value is None or unrecognized.

    Returns:
        Parsed boolean.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    lowered = str(value).strip().lower()
    if lowered in _TRUE_STRINGS:
        return True
    if lowered in _FALSE_STRINGS:
        return False
    logger.warning("unrecognized_bool_argument", extra={"value": str(value)})
    return default


def resolve_bool(body: Mapping[str, Any], name: str, default: bool) -> bool:
    """Resolve a boolean field, falling back to default when absent."""
    return parse_bool(resolve_field(body, name), default)


def _coerce_time_entry(entry: Any) -> dict[str, Any] | None:
    """Turn one offered slot into a ``{datetime, ...}`` dict."""
    if isinstance(entry, Mapping):
        if not entry.get("datetime"):
            return None
        return dict(entry)
    if isinstance(entry, str) and entry.strip():
        return {"datetime": entry.strip()}
    return None


def normalize_available_times(raw: Any) -> list[dict[str, Any]]:
    """Normalize the clinic's offered slots into a list of dicts.

    Accepts a list, a JSON-encoded list, or a comma separated string.
    Plain string entries become ``{"datetime": entry}``. Entries with
    no datetime are dropped.

    Args:
        raw: Raw ``available_times`` argument.

    Returns:
        List of slot dicts, possibly empty.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        stripped = raw.strip()
        if stripped.startswith("["):
            try:
                raw = json.loads(stripped)
            except ValueError:
                logger.warning("available_times_not_json")
                return []
        else:
            raw = [part for part in stripped.split(",") if part.strip()]
    if isinstance(raw, Mapping):
        raw = [raw]
    if not isinstance(raw, list):
        return []
    times: list[dict[str, Any]] = []
    for entry in raw:
        coerced = _coerce_time_entry(entry)
        if coerced is not None:
            times.append(coerced)
    return times
