from typing import Optional

from blockcms.models.collection import Collection
from blockcms.models.content import Content
from blockcms.domain.invariants.exceptions import ValidationError
from blockcms.utils.audit import log_action
from blockcms.utils.transaction import transactional
from .loaders import get_collection, lock_content

MAX_REASON_LENGTH = 255


def _check_reason(reason) -> Optional[str]:
    if reason is None:
        return None
    if not isinstance(reason, str):
        raise ValidationError({"reason": ["Reason must be a string."]})
    if len(reason) > MAX_REASON_LENGTH:
        raise ValidationError({"reason": [f"Reason may not exceed {MAX_REASON_LENGTH} characters."]})
    return reason.strip() or None


def _apply_lock(resource, *, entity_type: str, actor_id: str, locked: bool, reason) -> None:
    with transactional():
        if locked:
            resource.lock(actor_id, reason)
        else:
            resource.unlock()

        log_action(
            actor_id=actor_id,
            action=f"{entity_type}.{'lock' if locked else 'unlock'}",
            entity_type=entity_type,
            entity_id=resource.id,
            payload={"reason": reason} if locked else None,
        )


def set_collection_lock(
    *,
    collection_id: str,
    actor_id: str,
    locked: bool,
    reason: Optional[str] = None,
) -> Collection:
    """
    Locks or unlocks a collection.

    A locked collection refuses its own updates and deletion, and every
    change to its existing contents. New contents may still be created.
    Locking again replaces the holder and reason.
    """
    reason = _check_reason(reason) if locked else None
    collection = get_collection(collection_id)
    _apply_lock(collection, entity_type="collection", actor_id=actor_id, locked=locked, reason=reason)
    return collection


def set_content_lock(
    *,
    content_id: str,
    actor_id: str,
    locked: bool,
    reason: Optional[str] = None,
) -> Content:
    """
    Locks or unlocks a single content.

    Locking is not a versioned change; `current_version` stays put.
    """
    reason = _check_reason(reason) if locked else None
    content = lock_content(content_id)
    _apply_lock(content, entity_type="content", actor_id=actor_id, locked=locked, reason=reason)
    return content
