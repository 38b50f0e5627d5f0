from typing import Optional

from blockcms.extensions import custom_elements
from blockcms.domain.invariants.content import assert_content
from .change_status import change_status


def _assert_publishable(content):
    assert_content(
        content.to_state(),
        content.collection.get_schema(),
        custom_elements(),
        publish=True,
    )


def publish_content(
    *,
    content_id: str,
    actor_id: str,
    change_note: Optional[str] = None,
    expected_version: Optional[int] = None,
):
    """
    Publishes a draft after validating the whole document against the
    collection's current schema, including required content metadata.
    """
    return change_status(
        content_id=content_id,
        actor_id=actor_id,
        to_status="published",
        action="content.publish",
        change_note=change_note or "Published",
        expected_version=expected_version,
        before_commit=_assert_publishable,
    )
