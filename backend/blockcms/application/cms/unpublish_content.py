from typing import Optional

from .change_status import change_status


def unpublish_content(
    *,
    content_id: str,
    actor_id: str,
    change_note: Optional[str] = None,
    expected_version: Optional[int] = None,
):
    """Back to draft; `published_version_id` keeps pointing at the last publish."""
    return change_status(
        content_id=content_id,
        actor_id=actor_id,
        to_status="draft",
        action="content.unpublish",
        change_note=change_note or "Unpublished",
        expected_version=expected_version,
    )
