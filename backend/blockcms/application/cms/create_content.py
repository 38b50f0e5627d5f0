from typing import Any, Dict

from blockcms.extensions import custom_elements, db
from blockcms.models.content import Content
from blockcms.domain.element_types import ContentStatus
from blockcms.domain.invariants.content import assert_content
from blockcms.domain.tree import prepare_for_save
from blockcms.utils.audit import log_action
from blockcms.utils.transaction import transactional
from .create_version import create_version
from .loaders import assert_slug_available, get_collection


def create_content(
    *,
    collection_id: str,
    actor_id: str,
    data: Dict[str, Any],
) -> Content:
    """
    Create a content in DRAFT state together with its version 1.

    Edge cases handled:
    - Invalid element tree or fields (ValidationError, nothing stored)
    - Duplicate slug within the collection
    """
    collection = get_collection(collection_id)

    state = {
        "title": data.get("title"),
        "slug": data.get("slug"),
        "elements": data.get("elements") or [],
        "metadata": data.get("metadata") or {},
        "editions": data.get("editions") or [],
    }

    # 🔒 Domain invariants (single source of truth)
    assert_content(state, collection.get_schema(), custom_elements())
    assert_slug_available(collection.id, state["slug"])

    content = Content()
    content.collection_id = collection.id
    content.title = state["title"]
    content.slug = state["slug"]
    content.status = ContentStatus.DRAFT.value
    content.elements = prepare_for_save(state["elements"])
    content.meta = state["metadata"]
    content.editions = state["editions"]
    content.current_version = 0
    content.created_by = actor_id

    with transactional():
        db.session.add(content)
        db.session.flush()  # ensures content.id is available

        version = create_version(
            content=content,
            actor_id=actor_id,
            change_note=data.get("change_note") or "Initial version",
        )

        log_action(
            actor_id=actor_id,
            action="content.create",
            entity_type="content",
            entity_id=content.id,
            payload={
                "collection_id": collection.id,
                "slug": content.slug,
                "version": version.version_number,
            },
        )

    return content
