from typing import Any, Dict, List, Optional

from sqlalchemy import select

from blockcms.extensions import db
from blockcms.models.content import Content
from blockcms.domain.filters import (
    apply_sort,
    available_fields,
    compile_group,
    normalize_conditions,
    normalize_sort,
)
from blockcms.domain.invariants.exceptions import InvalidFilterCondition
from blockcms.normalizers.content import normalize_content
from .loaders import get_collection
from .manage_filter_views import get_filter_view


FALLBACK_SORT = {"field": "updated_at", "direction": "desc"}


def _default_sort(settings: Dict[str, Any], known) -> List[Dict[str, str]]:
    """The list-view default, or `updated_at desc` when it names no sortable field."""
    column = settings.get("default_sort_column")
    if not isinstance(column, str) or column not in known:
        return [dict(FALLBACK_SORT)]
    direction = settings.get("default_sort_direction")
    return [{"field": column, "direction": direction if direction in ("asc", "desc") else "desc"}]


def filter_contents(
    *,
    collection_id: str,
    conditions: Any = None,
    sort: Any = None,
    edition: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Contents of a collection matching a condition group, sorted.

    Documents are the normalized contents without their element trees;
    without sort rules the collection's list-view default applies.
    """
    collection = get_collection(collection_id)
    schema = collection.get_schema()
    fields = available_fields(schema)

    predicate = compile_group(normalize_conditions(conditions), fields)

    known = {f["field"] for f in fields}
    rules = normalize_sort(sort) or _default_sort(schema.list_view_settings, known)
    for rule in rules:
        if rule["field"] not in known:
            raise InvalidFilterCondition(f"Unknown sort field '{rule['field']}'")

    contents = db.session.execute(
        select(Content)
        .where(Content.collection_id == collection.id)
        .order_by(Content.created_at.asc(), Content.id.asc())
    ).scalars().all()

    documents = [
        normalize_content(content, include_elements=False)
        for content in contents
        if edition is None or content.is_visible_for_edition(edition)
    ]
    return apply_sort([doc for doc in documents if predicate(doc)], rules)


def apply_filter_view(*, collection_id: str, view_id: str, edition: Optional[str] = None):
    view = get_filter_view(collection_id, view_id)
    return filter_contents(
        collection_id=collection_id,
        conditions=view.conditions,
        sort=view.sort,
        edition=edition,
    )
