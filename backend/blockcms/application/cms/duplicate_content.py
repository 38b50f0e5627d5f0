from typing import Any, Dict, List

from sqlalchemy import select

from blockcms.extensions import db
from blockcms.models.content import Content
from blockcms.domain.element_types import ContentStatus
from blockcms.domain.tree import prepare_for_save
from blockcms.utils.audit import log_action
from blockcms.utils.transaction import transactional
from .create_version import create_version
from .loaders import get_content


def _strip_ids(tree: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    stripped = []
    for node in tree:
        node = {key: value for key, value in node.items() if key not in ("id", "_id")}
        if node.get("children"):
            node["children"] = _strip_ids(node["children"])
        stripped.append(node)
    return stripped


def _free_slug(collection_id: str, slug: str) -> str:
    taken = set(
        db.session.execute(
            select(Content.slug).where(
                Content.collection_id == collection_id,
                Content.slug.like(f"{slug}-copy%"),
            )
        ).scalars()
    )
    candidate = f"{slug}-copy"
    counter = 2
    while candidate in taken:
        candidate = f"{slug}-copy-{counter}"
        counter += 1
    return candidate


def duplicate_content(*, content_id: str, actor_id: str) -> Content:
    """
    Copies a content into a new DRAFT with a fresh history.

    Element identities are regenerated so the copy shares no ids with
    its source.
    """
    source = get_content(content_id)

    duplicate = Content()
    duplicate.collection_id = source.collection_id
    duplicate.title = f"{source.title} (Copy)"
    duplicate.slug = _free_slug(source.collection_id, source.slug)
    duplicate.status = ContentStatus.DRAFT.value
    duplicate.elements = prepare_for_save(_strip_ids(source.elements or []))
    duplicate.meta = dict(source.meta or {})
    duplicate.editions = list(source.editions or [])
    duplicate.current_version = 0
    duplicate.created_by = actor_id

    with transactional():
        db.session.add(duplicate)
        db.session.flush()

        create_version(
            content=duplicate,
            actor_id=actor_id,
            change_note=f"Duplicated from {source.slug}",
        )

        log_action(
            actor_id=actor_id,
            action="content.duplicate",
            entity_type="content",
            entity_id=duplicate.id,
            payload={"source_id": source.id},
        )

    return duplicate
