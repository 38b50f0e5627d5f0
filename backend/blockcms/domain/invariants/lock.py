from typing import Any, Dict, Optional

from blockcms.domain.invariants.exceptions import ResourceLocked

LOCKED_MESSAGES = {
    ("collection", "self"): "Collection is locked and cannot be modified.",
    ("content", "self"): "Content is locked and cannot be modified.",
    ("content", "collection"): "Content cannot be modified because its collection is locked.",
}


def assert_unlocked(resource: str, lock_info: Optional[Dict[str, Any]]) -> None:
    """
    Guards every change to a lockable resource.

    `lock_info` is the effective lock of the resource; its `source` names
    where the lock sits (`self` or a parent).
    """
    if not lock_info:
        return

    source = lock_info.get("source", "self")
    message = LOCKED_MESSAGES.get((resource, source), f"{resource.capitalize()} is locked.")
    raise ResourceLocked(message, lock_info)
