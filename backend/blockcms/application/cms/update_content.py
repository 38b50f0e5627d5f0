from typing import Any, Dict, Optional, Tuple

from blockcms.extensions import custom_elements
from blockcms.models.content import Content
from blockcms.models.content_version import ContentVersion
from blockcms.domain.element_types import ContentStatus
from blockcms.domain.invariants.content import assert_content
from blockcms.domain.invariants.exceptions import ValidationError
from blockcms.domain.invariants.lock import assert_unlocked
from blockcms.domain.lifecycle.content import assert_editable
from blockcms.domain.tree import prepare_for_save
from blockcms.utils.audit import log_action
from blockcms.utils.optimistic_lock import assert_expected_version
from blockcms.utils.transaction import transactional
from .create_version import create_version
from .loaders import assert_slug_available, lock_content

ALLOWED_UPDATE_FIELDS = ("title", "slug", "metadata", "editions", "elements")


def update_content(
    *,
    content_id: str,
    actor_id: str,
    data: Dict[str, Any],
    expected_version: Optional[int] = None,
) -> Tuple[Content, ContentVersion]:
    """
    Save new field values and element tree as the next version.

    Design rules:
    - Only whitelisted fields are mutable
    - No silent no-op updates
    - The full document is revalidated; published contents keep their
      publish-time requirements
    """
    content = lock_content(content_id)

    assert_unlocked("content", content.effective_lock_info())
    assert_editable(content.status)
    assert_expected_version(content, expected_version)

    provided = [field for field in ALLOWED_UPDATE_FIELDS if field in data]
    if not provided:
        raise ValidationError({"data": ["No updatable fields provided."]})

    state = content.to_state()
    state.update({field: data[field] for field in provided})

    assert_content(
        state,
        content.collection.get_schema(),
        custom_elements(),
        publish=content.status == ContentStatus.PUBLISHED.value,
    )
    if state["slug"] != content.slug:
        assert_slug_available(content.collection_id, state["slug"], exclude_id=content.id)

    with transactional():
        content.title = state["title"]
        content.slug = state["slug"]
        content.meta = state["metadata"] or {}
        content.editions = state["editions"] or []
        content.elements = prepare_for_save(state["elements"] or [])

        version = create_version(
            content=content,
            actor_id=actor_id,
            change_note=data.get("change_note"),
        )

        log_action(
            actor_id=actor_id,
            action="content.update",
            entity_type="content",
            entity_id=content.id,
            payload={"fields": provided, "version": version.version_number},
        )

    return content, version
