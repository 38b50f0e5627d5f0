from typing import Dict, Set

from blockcms.domain.invariants.exceptions import InvalidTransition

# Explicit allowed state transitions
ALLOWED_CONTENT_TRANSITIONS: Dict[str, Set[str]] = {
    "draft": {"published", "archived"},
    "published": {"draft", "archived"},
    "archived": set(),  # terminal for editing; deletion is still allowed
}


def assert_content_transition(*, from_status: str, to_status: str) -> None:
    """
    Guards content lifecycle transitions.
    Single source of truth for status changes.
    """
    allowed = ALLOWED_CONTENT_TRANSITIONS.get(from_status, set())

    if to_status not in allowed:
        raise InvalidTransition(
            f"Illegal content transition: {from_status} -> {to_status}"
        )


def assert_editable(status: str) -> None:
    if status == "archived":
        raise InvalidTransition("Archived content cannot be modified")
