from typing import Dict, List, Optional


class InvariantViolation(Exception):
    """Base class for every domain rule the core refuses to break."""

    kind = "InvariantViolation"


class ValidationError(InvariantViolation):
    """
    Element, schema or metadata shape violation.

    `errors` maps a field path (e.g. "elements.0.children.1.data.content")
    to the list of messages for that path.
    """

    kind = "ValidationError"

    def __init__(self, errors: Dict[str, List[str]], message: Optional[str] = None):
        self.errors = errors
        super().__init__(message or self._summarize(errors))

    @staticmethod
    def _summarize(errors: Dict[str, List[str]]) -> str:
        if not errors:
            return "Validation failed."
        path, messages = next(iter(errors.items()))
        more = len(errors) - 1
        summary = f"{path}: {messages[0]}"
        if more:
            summary += f" (and {more} more)"
        return summary


class InvalidMove(InvariantViolation):
    kind = "InvalidMove"


class InvalidTransition(InvariantViolation):
    kind = "InvalidTransition"


class VersionNotFound(InvariantViolation):
    kind = "VersionNotFound"


class NotFound(InvariantViolation):
    kind = "NotFound"


class DuplicateType(InvariantViolation):
    kind = "DuplicateType"


class SystemElementProtected(InvariantViolation):
    kind = "SystemElementProtected"


class InvalidFilterCondition(InvariantViolation):
    kind = "InvalidFilterCondition"


class Conflict(InvariantViolation):
    kind = "Conflict"


class ResourceLocked(InvariantViolation):
    """Refused change to a locked collection or content; `lock_info` says who and why."""

    kind = "ResourceLocked"

    def __init__(self, message: str, lock_info: Optional[Dict[str, object]] = None):
        self.lock_info = lock_info
        super().__init__(message)
