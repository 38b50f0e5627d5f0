from typing import Optional

from .change_status import change_status


def archive_content(
    *,
    content_id: str,
    actor_id: str,
    change_note: Optional[str] = None,
    expected_version: Optional[int] = None,
):
    return change_status(
        content_id=content_id,
        actor_id=actor_id,
        to_status="archived",
        action="content.archive",
        change_note=change_note or "Archived",
        expected_version=expected_version,
    )
