from blockcms.domain.element_types import is_custom_type
from blockcms.domain.tree import filter_by_edition, sorted_siblings

UNKNOWN_ELEMENT_TYPE = "unknown"


def normalize_content(content, include_elements=True):
    """Editable representation: the stored tree, untouched."""
    data = {
        "id": content.id,
        "collection_id": content.collection_id,
        "title": content.title,
        "slug": content.slug,
        "status": content.status,
        "current_version": content.current_version,
        "published_version_id": content.published_version_id,
        "is_locked": bool(content.is_locked),
        "lock": content.effective_lock_info(),
        "metadata": content.meta or {},
        "editions": content.editions or [],
        "created_by": content.created_by,
        "updated_by": content.updated_by,
        **content.timestamps(),
    }
    if include_elements:
        data["elements"] = content.elements or []
    return data


def render_element(element, registry=None):
    """
    Read-only form of an element.

    Custom types without a registered definition are rendered as
    `unknown`, keeping the original type name for display.
    """
    node = {key: value for key, value in element.items() if key != "children"}
    type_name = node.get("type")
    if is_custom_type(type_name) and (registry is None or not registry.exists(type_name)):
        node["type"] = UNKNOWN_ELEMENT_TYPE
        node["original_type"] = type_name

    children = element.get("children")
    if children:
        node["children"] = [render_element(child, registry) for child in sorted_siblings(children)]
    return node


def render_content(content, edition=None, registry=None):
    data = normalize_content(content, include_elements=False)
    tree = filter_by_edition(content.elements or [], edition)
    data["elements"] = [render_element(node, registry) for node in tree]
    data["edition"] = edition
    return data
