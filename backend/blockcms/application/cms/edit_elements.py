from typing import Any, Dict, Optional, Tuple

from blockcms.extensions import custom_elements
from blockcms.models.content import Content
from blockcms.models.content_version import ContentVersion
from blockcms.domain import tree as element_tree
from blockcms.domain.element_types import ContentStatus, is_custom_type
from blockcms.domain.invariants.content import assert_content
from blockcms.domain.invariants.exceptions import ValidationError
from blockcms.domain.invariants.lock import assert_unlocked
from blockcms.domain.lifecycle.content import assert_editable
from blockcms.utils.audit import log_action
from blockcms.utils.optimistic_lock import assert_expected_version
from blockcms.utils.transaction import transactional
from .create_version import create_version
from .loaders import lock_content


def _load_editable(content_id: str, expected_version: Optional[int]) -> Content:
    content = lock_content(content_id)
    assert_unlocked("content", content.effective_lock_info())
    assert_editable(content.status)
    assert_expected_version(content, expected_version)
    return content


def _save_tree(
    content: Content,
    tree,
    *,
    actor_id: str,
    action: str,
    change_note: str,
    payload: Dict[str, Any],
) -> ContentVersion:
    state = content.to_state()
    state["elements"] = tree
    assert_content(
        state,
        content.collection.get_schema(),
        custom_elements(),
        publish=content.status == ContentStatus.PUBLISHED.value,
    )

    with transactional():
        content.elements = element_tree.prepare_for_save(tree)
        version = create_version(content=content, actor_id=actor_id, change_note=change_note)
        log_action(
            actor_id=actor_id,
            action=action,
            entity_type="content",
            entity_id=content.id,
            payload={**payload, "version": version.version_number},
        )
    return version


def add_element(
    *,
    content_id: str,
    actor_id: str,
    element: Dict[str, Any],
    parent_id: Optional[str] = None,
    order: Optional[int] = None,
    expected_version: Optional[int] = None,
) -> Tuple[Content, ContentVersion, Dict[str, Any]]:
    """
    Inserts one element (with its subtree) under `parent_id`, or at the
    root when no parent is given. Custom elements submitted without data
    start from their definition's default data.
    """
    if not isinstance(element, dict):
        raise ValidationError({"element": ["Element must be an object."]})

    content = _load_editable(content_id, expected_version)
    registry = custom_elements()

    element = dict(element)
    if "data" not in element and is_custom_type(element.get("type")):
        element["data"] = registry.default_data(element["type"])
    element = element_tree.assign_stable_ids([element])[0]

    element_tree.validate_element(element, content.collection.get_schema(), registry)
    tree = element_tree.insert_element(content.elements, element, parent_id, order, registry)

    version = _save_tree(
        content,
        tree,
        actor_id=actor_id,
        action="element.add",
        change_note=f"Added {element.get('type')} element",
        payload={"element_id": element["id"], "parent_id": parent_id},
    )
    return content, version, element_tree.find_node(content.elements, element["id"])


def update_element(
    *,
    content_id: str,
    element_id: str,
    actor_id: str,
    changes: Dict[str, Any],
    expected_version: Optional[int] = None,
) -> Tuple[Content, ContentVersion, Dict[str, Any]]:
    if not any(key in changes for key in element_tree.UPDATABLE_ELEMENT_FIELDS):
        raise ValidationError({"data": ["No updatable element fields provided."]})

    content = _load_editable(content_id, expected_version)
    tree = element_tree.update_element(content.elements, element_id, changes)

    version = _save_tree(
        content,
        tree,
        actor_id=actor_id,
        action="element.update",
        change_note=f"Updated element {element_id}",
        payload={
            "element_id": element_id,
            "fields": [key for key in element_tree.UPDATABLE_ELEMENT_FIELDS if key in changes],
        },
    )
    return content, version, element_tree.find_node(content.elements, element_id)


def delete_element(
    *,
    content_id: str,
    element_id: str,
    actor_id: str,
    expected_version: Optional[int] = None,
) -> Tuple[Content, ContentVersion]:
    content = _load_editable(content_id, expected_version)
    tree = element_tree.remove_element(content.elements, element_id)

    version = _save_tree(
        content,
        tree,
        actor_id=actor_id,
        action="element.delete",
        change_note=f"Removed element {element_id}",
        payload={"element_id": element_id},
    )
    return content, version


def move_element(
    *,
    content_id: str,
    element_id: str,
    actor_id: str,
    parent_id: Optional[str],
    order: Optional[int],
    expected_version: Optional[int] = None,
) -> Tuple[Content, ContentVersion]:
    content = _load_editable(content_id, expected_version)
    tree = element_tree.move_element(
        content.elements, element_id, parent_id, order, custom_elements()
    )

    version = _save_tree(
        content,
        tree,
        actor_id=actor_id,
        action="element.move",
        change_note=f"Moved element {element_id}",
        payload={"element_id": element_id, "parent_id": parent_id, "order": order},
    )
    return content, version
