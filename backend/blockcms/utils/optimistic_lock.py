from datetime import timezone
from typing import Any, Optional

from dateutil.parser import parse
from flask import request
from werkzeug.exceptions import BadRequest

from blockcms.domain.invariants.exceptions import Conflict


def normalize_ts(ts):
    """
    Ensure datetime is timezone-aware.
    Defaults to UTC if naive.
    """
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def enforce_optimistic_lock(entity):
    """
    Enforces optimistic locking using the If-Unmodified-Since header.
    Raises Conflict if the entity has been modified since.
    """
    client_ts = request.headers.get("If-Unmodified-Since")
    if not client_ts:
        return  # No optimistic lock requested

    try:
        client_ts = normalize_ts(parse(client_ts))
    except (ValueError, OverflowError) as exc:
        raise BadRequest("Invalid If-Unmodified-Since header") from exc

    server_ts = normalize_ts(entity.updated_at)

    # HTTP dates carry whole seconds only
    if server_ts.replace(microsecond=0) > client_ts:
        raise Conflict("Conflict detected. Resource has been modified.")


def expected_version_from_request(data: Optional[dict] = None) -> Optional[int]:
    """
    Expected content version from the `expected_version` body field or the
    `If-Match` header (body wins). None when the client sent neither.
    """
    raw: Any = (data or {}).get("expected_version")
    if raw is None:
        raw = request.headers.get("If-Match")
        if raw is not None:
            raw = raw.strip().strip('"')
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise BadRequest("expected_version must be an integer")
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise BadRequest("expected_version must be an integer") from exc


def assert_expected_version(content, expected_version: Optional[int]) -> None:
    if expected_version is None:
        return
    if content.current_version != expected_version:
        raise Conflict(
            f"Content is at version {content.current_version}, expected {expected_version}"
        )
