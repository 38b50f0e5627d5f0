"""
Node-level comparison of two element trees.

Nodes are matched by stable id across the flattened trees. A node present
in both is modified when its `type`, `data` or `order` differ; moving a
node to another parent without changing those fields is not a change.
"""
from typing import Any, Dict, List, Optional

from blockcms.domain.tree import Tree, flatten_by_order, node_key

COMPARED_FIELDS = ("type", "data", "order")


def _index(tree: Optional[Tree]) -> Dict[str, Dict[str, Any]]:
    indexed = {}
    for item in flatten_by_order(tree or []):
        key = node_key(item.node)
        if key is not None:
            indexed[key] = item.node
    return indexed


def _changed_fields(before: Dict[str, Any], after: Dict[str, Any]) -> List[str]:
    return [name for name in COMPARED_FIELDS if before.get(name) != after.get(name)]


def diff_summary(old_tree: Optional[Tree], new_tree: Optional[Tree]) -> Dict[str, int]:
    old, new = _index(old_tree), _index(new_tree)
    modified = sum(1 for key in old.keys() & new.keys() if _changed_fields(old[key], new[key]))
    return {
        "added": len(new.keys() - old.keys()),
        "removed": len(old.keys() - new.keys()),
        "modified": modified,
    }


def _strip_children(node: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in node.items() if key != "children"}


def diff_trees(old_tree: Optional[Tree], new_tree: Optional[Tree]) -> Dict[str, List[Dict[str, Any]]]:
    """Per-node changes with before/after payloads (children excluded)."""
    old, new = _index(old_tree), _index(new_tree)

    added = [
        {"id": key, "type": node.get("type"), "after": _strip_children(node)}
        for key, node in new.items()
        if key not in old
    ]
    removed = [
        {"id": key, "type": node.get("type"), "before": _strip_children(node)}
        for key, node in old.items()
        if key not in new
    ]
    modified = []
    for key, node in new.items():
        if key not in old:
            continue
        fields = _changed_fields(old[key], node)
        if fields:
            modified.append(
                {
                    "id": key,
                    "type": node.get("type"),
                    "fields": fields,
                    "before": _strip_children(old[key]),
                    "after": _strip_children(node),
                }
            )
    return {"added": added, "removed": removed, "modified": modified}


def compare_versions(older: Dict[str, Any], newer: Dict[str, Any]) -> Dict[str, Any]:
    """
    Compare two serialized versions.

    Each side is a dict with `version_number`, `elements` and `snapshot`.
    """
    older_snapshot = older.get("snapshot") or {}
    newer_snapshot = newer.get("snapshot") or {}
    changes = diff_trees(older.get("elements"), newer.get("elements"))

    return {
        "from_version": older.get("version_number"),
        "to_version": newer.get("version_number"),
        "title_changed": older_snapshot.get("title") != newer_snapshot.get("title"),
        "slug_changed": older_snapshot.get("slug") != newer_snapshot.get("slug"),
        "status_changed": older_snapshot.get("status") != newer_snapshot.get("status"),
        "metadata_changed": (older_snapshot.get("metadata") or {}) != (newer_snapshot.get("metadata") or {}),
        "summary": {name: len(items) for name, items in changes.items()},
        "changes": changes,
    }
