"""
Element tree operations.

A content body is a list of element dicts. Container elements carry an
ordered `children` list. Every function here is pure: it returns a new
tree and leaves its input untouched.
"""
from __future__ import annotations

import copy
import uuid
from typing import Any, Callable, Dict, Iterator, List, NamedTuple, Optional

from blockcms.domain.element_types import (
    REFERENCE_TYPES,
    ElementType,
    is_custom_type,
    matches_semantic_type,
)
from blockcms.domain.invariants.exceptions import InvalidMove, NotFound, ValidationError
from blockcms.domain.schema import CollectionSchema

Element = Dict[str, Any]
Tree = List[Element]

UPDATABLE_ELEMENT_FIELDS = ("type", "data", "editions")


def node_key(node: Element) -> Optional[str]:
    """Stable identity of a node: persisted `_id` first, client `id` second."""
    key = node.get("_id")
    if key is None:
        key = node.get("id")
    return str(key) if key is not None else None


def _new_id() -> str:
    return uuid.uuid4().hex


def _sort_key(node: Element):
    order = node.get("order")
    if not isinstance(order, (int, float)) or isinstance(order, bool):
        order = 0
    return (order, node_key(node) or "")


def sorted_siblings(siblings: Tree) -> Tree:
    """Siblings by `order`, ties broken by stable id."""
    return sorted(siblings or [], key=_sort_key)


def can_have_children(type_name: str, registry=None) -> bool:
    built_in = ElementType.from_type(type_name)
    if built_in is not None:
        return built_in.can_have_children()
    return registry is not None and registry.can_have_children(type_name)


# -------------------------------------------------
# Identity
# -------------------------------------------------

def assign_stable_ids(tree: Tree, id_factory: Callable[[], str] = _new_id) -> Tree:
    """
    Give every node a client-stable `id`.

    Existing ids are never replaced. A node that only has a persisted
    `_id` reuses it as its `id`.
    """
    result = copy.deepcopy(tree or [])
    _assign_ids(result, id_factory)
    return result


def _assign_ids(nodes: Tree, id_factory: Callable[[], str]) -> None:
    for node in nodes:
        if node.get("id") is None:
            node["id"] = str(node["_id"]) if node.get("_id") is not None else id_factory()
        if node.get("children"):
            _assign_ids(node["children"], id_factory)


def assign_persisted_ids(tree: Tree) -> Tree:
    """Stamp `_id` on nodes saved for the first time."""
    result = assign_stable_ids(tree)
    _stamp_persisted(result)
    return result


def _stamp_persisted(nodes: Tree) -> None:
    for node in nodes:
        if node.get("_id") is None:
            node["_id"] = node["id"]
        if node.get("children"):
            _stamp_persisted(node["children"])


# -------------------------------------------------
# Traversal
# -------------------------------------------------

def count_nodes(tree: Tree) -> int:
    return sum(1 + count_nodes(node.get("children") or []) for node in tree or [])


class FlatNode(NamedTuple):
    node: Element
    depth: int
    parent_id: Optional[str]


class FlattenedTree:
    """
    Depth-first, pre-order view of a tree.

    Iteration is lazy and can be restarted: each `iter()` walks the tree
    again from the root.
    """

    def __init__(self, tree: Tree):
        self._tree = tree or []

    def __iter__(self) -> Iterator[FlatNode]:
        return self._walk(self._tree, 0, None)

    def _walk(self, nodes: Tree, depth: int, parent_id: Optional[str]) -> Iterator[FlatNode]:
        for node in sorted_siblings(nodes):
            yield FlatNode(node, depth, parent_id)
            children = node.get("children")
            if children:
                yield from self._walk(children, depth + 1, node_key(node))


def flatten_by_order(tree: Tree) -> FlattenedTree:
    return FlattenedTree(tree)


def find_node(tree: Tree, node_id: str) -> Optional[Element]:
    for item in flatten_by_order(tree):
        if _matches(item.node, node_id):
            return item.node
    return None


def _matches(node: Element, node_id: str) -> bool:
    node_id = str(node_id)
    return node_id in (str(node.get("_id")), str(node.get("id")))


def _locate(nodes: Tree, node_id: str, parent: Optional[Element] = None):
    """Return (siblings list, index, parent) for the node, or None."""
    for index, node in enumerate(nodes):
        if _matches(node, node_id):
            return nodes, index, parent
        children = node.get("children")
        if children:
            found = _locate(children, node_id, node)
            if found:
                return found
    return None


def _contains(node: Element, node_id: str) -> bool:
    return any(_matches(item.node, node_id) for item in flatten_by_order(node.get("children") or []))


# -------------------------------------------------
# Ordering
# -------------------------------------------------

def _resequence(siblings: Tree) -> Tree:
    ordered = sorted_siblings(siblings)
    for index, node in enumerate(ordered):
        node["order"] = index
    return ordered


def normalize_order(tree: Tree) -> Tree:
    """Sort every sibling list and rewrite `order` as 0..n-1."""
    result = copy.deepcopy(tree or [])
    return _normalize(result)


def _normalize(nodes: Tree) -> Tree:
    ordered = _resequence(nodes)
    for node in ordered:
        if node.get("children"):
            node["children"] = _normalize(node["children"])
    return ordered


# -------------------------------------------------
# Mutation
# -------------------------------------------------

def _insert_at(siblings: Tree, node: Element, position: Optional[int]) -> Tree:
    ordered = sorted_siblings(siblings)
    if position is None or position > len(ordered):
        position = len(ordered)
    ordered.insert(max(position, 0), node)
    for index, sibling in enumerate(ordered):
        sibling["order"] = index
    return ordered


def _children_of(tree: Tree, parent_id: Optional[str], registry=None, error=InvalidMove):
    """Sibling list under `parent_id` (None = root) and the parent node."""
    if parent_id is None:
        return tree, None
    located = _locate(tree, parent_id)
    if not located:
        raise error(f"Target parent '{parent_id}' does not exist")
    siblings, index, _ = located
    parent = siblings[index]
    if not can_have_children(parent.get("type"), registry):
        raise error(f"Element type '{parent.get('type')}' cannot have children")
    parent.setdefault("children", [])
    return parent["children"], parent


def move_element(
    tree: Tree,
    node_id: str,
    new_parent_id: Optional[str],
    new_order: Optional[int],
    registry=None,
) -> Tree:
    """
    Detach a node (with its subtree) and reinsert it under a new parent.

    Raises InvalidMove when the node is unknown, when the target is the
    node itself or one of its descendants, or when the target cannot hold
    children.
    """
    result = copy.deepcopy(tree or [])

    located = _locate(result, node_id)
    if not located:
        raise InvalidMove(f"Element '{node_id}' does not exist")
    siblings, index, old_parent = located
    node = siblings[index]

    if new_parent_id is not None:
        if _matches(node, new_parent_id) or _contains(node, new_parent_id):
            raise InvalidMove("An element cannot be moved into itself or one of its descendants")

    # validate the target before detaching so a failed move leaves no trace
    _children_of(result, new_parent_id, registry)

    del siblings[index]
    resequenced = _resequence(siblings)
    if old_parent is None:
        result = resequenced
    else:
        old_parent["children"] = resequenced

    target, new_parent = _children_of(result, new_parent_id, registry)
    inserted = _insert_at(target, node, new_order)
    if new_parent is None:
        return inserted
    new_parent["children"] = inserted
    return result


def insert_element(
    tree: Tree,
    element: Element,
    parent_id: Optional[str] = None,
    order: Optional[int] = None,
    registry=None,
) -> Tree:
    result = copy.deepcopy(tree or [])
    node = assign_stable_ids([element])[0]
    target, parent = _children_of(result, parent_id, registry)
    inserted = _insert_at(target, node, order)
    if parent is None:
        return inserted
    parent["children"] = inserted
    return result


def remove_element(tree: Tree, node_id: str) -> Tree:
    result = copy.deepcopy(tree or [])
    located = _locate(result, node_id)
    if not located:
        raise NotFound(f"Element '{node_id}' does not exist")
    siblings, index, parent = located
    del siblings[index]
    resequenced = _resequence(siblings)
    if parent is None:
        return resequenced
    parent["children"] = resequenced
    return result


def update_element(tree: Tree, node_id: str, changes: Dict[str, Any]) -> Tree:
    result = copy.deepcopy(tree or [])
    located = _locate(result, node_id)
    if not located:
        raise NotFound(f"Element '{node_id}' does not exist")
    siblings, index, _ = located
    node = siblings[index]
    for key in UPDATABLE_ELEMENT_FIELDS:
        if key in changes:
            node[key] = copy.deepcopy(changes[key])
    return result


def filter_by_edition(tree: Tree, edition: Optional[str]) -> Tree:
    """Elements without editions are visible in every edition."""
    if edition is None:
        return copy.deepcopy(tree or [])

    visible = []
    for node in sorted_siblings(tree):
        editions = node.get("editions") or []
        if editions and edition not in editions:
            continue
        node = copy.deepcopy(node)
        if node.get("children"):
            node["children"] = filter_by_edition(node["children"], edition)
        visible.append(node)
    return visible


def prepare_for_save(tree: Tree) -> Tree:
    """Identify every node and resequence sibling order before persisting."""
    return normalize_order(assign_persisted_ids(tree))


# -------------------------------------------------
# Validation
# -------------------------------------------------

def _type_errors(data: Dict[str, Any], fields: Dict[str, str], required: bool) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for name, expected in fields.items():
        if name not in data or data[name] is None:
            if required:
                errors[f"data.{name}"] = [f"Field '{name}' is required."]
            continue
        if not matches_semantic_type(data[name], expected):
            errors[f"data.{name}"] = [f"Field '{name}' must be of type {expected}."]
    return errors


def _is_type_allowed(type_name: str, schema: CollectionSchema, registry) -> bool:
    if is_custom_type(type_name):
        if schema.is_element_allowed(type_name):
            return registry is not None and registry.exists(type_name)
        return (
            registry is not None
            and registry.exists(type_name)
            and schema.is_element_enabled(type_name)
        )
    return ElementType.from_type(type_name) is not None and schema.is_element_allowed(type_name)


def _data_errors(element: Element, schema: CollectionSchema, registry) -> Dict[str, List[str]]:
    type_name = element.get("type")
    data = element.get("data")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return {"data": ["Element data must be an object."]}

    built_in = ElementType.from_type(type_name)
    if built_in is None:
        return {
            f"data.{name}": messages
            for name, messages in registry.validate_data(type_name, data).items()
        }

    errors = _type_errors(data, built_in.required_fields(), required=True)
    errors.update(_type_errors(data, built_in.optional_fields(), required=False))

    if built_in is ElementType.TEXT and isinstance(data.get("format"), str):
        formats = schema.get_text_formats()
        if data["format"] not in formats:
            errors["data.format"] = [f"Text format must be one of: {', '.join(formats)}."]
    if built_in is ElementType.MEDIA and isinstance(data.get("media_type"), str):
        media_types = schema.get_media_types()
        if data["media_type"] not in media_types:
            errors["data.media_type"] = [f"Media type must be one of: {', '.join(media_types)}."]
    if built_in is ElementType.REFERENCE and isinstance(data.get("reference_type"), str):
        if data["reference_type"] not in REFERENCE_TYPES:
            errors["data.reference_type"] = [
                f"Reference type must be one of: {', '.join(REFERENCE_TYPES)}."
            ]
    return errors


def _meta_errors(element: Element, schema: CollectionSchema) -> Dict[str, List[str]]:
    fields = schema.get_element_meta_fields(element.get("type"))
    if not fields:
        return {}
    data = element.get("data") if isinstance(element.get("data"), dict) else {}
    meta = data.get("meta") if isinstance(data.get("meta"), dict) else {}
    return missing_meta_fields(fields, meta, prefix="data.meta")


def missing_meta_fields(fields, values: Dict[str, Any], prefix: str) -> Dict[str, List[str]]:
    """Required meta fields absent or empty in `values`."""
    errors: Dict[str, List[str]] = {}
    for meta_field in fields:
        name = meta_field.get("name")
        if not name or not meta_field.get("required"):
            continue
        value = values.get(name)
        if value is None or value == "" or value == []:
            label = meta_field.get("label") or name
            errors[f"{prefix}.{name}"] = [f"{label} is required."]
    return errors


def _edition_errors(editions: Any, schema: CollectionSchema, path: str) -> Dict[str, List[str]]:
    if editions is None:
        return {}
    if not isinstance(editions, list) or not all(isinstance(e, str) for e in editions):
        return {path: ["Editions must be a list of strings."]}
    denied = [e for e in editions if not schema.is_edition_allowed(e)]
    if denied:
        return {path: [f"Edition(s) not allowed: {', '.join(denied)}."]}
    return {}


def _collect_element_errors(
    element: Any,
    schema: CollectionSchema,
    registry,
    path: str,
) -> Dict[str, List[str]]:
    if not isinstance(element, dict):
        return {path: ["Element must be an object."]}

    type_name = element.get("type")
    if not isinstance(type_name, str) or not _is_type_allowed(type_name, schema, registry):
        return {f"{path}.type": [f"Element type '{type_name}' is not allowed."]}

    errors: Dict[str, List[str]] = {}
    for key, messages in _data_errors(element, schema, registry).items():
        errors[f"{path}.{key}"] = messages
    for key, messages in _meta_errors(element, schema).items():
        errors[f"{path}.{key}"] = messages
    errors.update(_edition_errors(element.get("editions"), schema, f"{path}.editions"))

    children = element.get("children")
    if children is None:
        return errors
    if not isinstance(children, list):
        errors[f"{path}.children"] = ["Children must be a list."]
        return errors
    if children and not can_have_children(type_name, registry):
        errors[f"{path}.children"] = [f"Element type '{type_name}' cannot have children."]
        return errors
    for index, child in enumerate(children):
        errors.update(_collect_element_errors(child, schema, registry, f"{path}.children.{index}"))
    return errors


def validate_element(element: Element, schema: CollectionSchema, registry=None, path: str = "element") -> None:
    """Validate one element and its subtree; raises ValidationError."""
    errors = _collect_element_errors(element, schema, registry, path)
    if errors:
        raise ValidationError(errors)


def validate_tree(tree: Any, schema: CollectionSchema, registry=None) -> None:
    """
    Validate a whole content body and raise once with every error found.

    Duplicate stable ids are rejected, and so is any element at all when
    the collection is metadata-only.
    """
    if tree is None:
        tree = []
    if not isinstance(tree, list):
        raise ValidationError({"elements": ["Elements must be a list."]})
    if schema.meta_only_content and tree:
        raise ValidationError({"elements": ["This collection only allows metadata; elements must be empty."]})

    errors: Dict[str, List[str]] = {}
    for index, element in enumerate(tree):
        errors.update(_collect_element_errors(element, schema, registry, f"elements.{index}"))

    if not errors:
        seen = set()
        for item in flatten_by_order(tree):
            key = node_key(item.node)
            if key is None:
                continue
            if key in seen:
                errors.setdefault("elements", []).append(f"Duplicate element id '{key}'.")
            seen.add(key)

    if errors:
        raise ValidationError(errors)
