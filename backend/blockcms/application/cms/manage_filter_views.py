import re
from typing import Any, Dict

from sqlalchemy import select

from blockcms.extensions import db
from blockcms.models.filter_view import FilterView
from blockcms.domain.filters import available_fields, compile_group, normalize_conditions, normalize_sort
from blockcms.domain.invariants.exceptions import (
    Conflict,
    InvalidFilterCondition,
    NotFound,
    SystemElementProtected,
    ValidationError,
)
from blockcms.utils.audit import log_action
from blockcms.utils.transaction import transactional
from .loaders import get_collection


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def check_filter(collection, conditions, sort):
    """Compile once so a stored view is known to be valid."""
    fields = available_fields(collection.get_schema())
    compile_group(conditions, fields)
    known = {f["field"] for f in fields}
    for rule in sort:
        if rule["field"] not in known:
            raise InvalidFilterCondition(f"Unknown sort field '{rule['field']}'")


def get_filter_view(collection_id: str, view_id: str) -> FilterView:
    view = db.session.get(FilterView, view_id)
    if not view or view.collection_id != collection_id:
        raise NotFound("Filter view not found")
    return view


def _assert_slug_free(collection_id: str, slug: str, exclude_id=None) -> None:
    query = select(FilterView.id).where(
        FilterView.collection_id == collection_id, FilterView.slug == slug
    )
    if exclude_id is not None:
        query = query.where(FilterView.id != exclude_id)
    if db.session.execute(query).first():
        raise Conflict(f"A filter view with slug '{slug}' already exists")


def create_filter_view(*, collection_id: str, actor_id: str, data: Dict[str, Any]) -> FilterView:
    collection = get_collection(collection_id)

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError({"name": ["Name is required."]})
    slug = data.get("slug") or slugify(name)
    if not slug:
        raise ValidationError({"slug": ["Slug is required."]})

    conditions = normalize_conditions(data.get("conditions"))
    sort = normalize_sort(data.get("sort"))
    check_filter(collection, conditions, sort)
    _assert_slug_free(collection.id, slug)

    view = FilterView()
    view.collection_id = collection.id
    view.name = name
    view.slug = slug
    view.description = data.get("description")
    view.conditions = conditions
    view.sort = sort
    view.is_system = bool(data.get("is_system", False))
    view.created_by = actor_id

    with transactional():
        db.session.add(view)
        db.session.flush()

        log_action(
            actor_id=actor_id,
            action="filter_view.create",
            entity_type="filter_view",
            entity_id=view.id,
            payload={"collection_id": collection.id, "slug": slug},
        )

    return view


def update_filter_view(
    *,
    collection_id: str,
    view_id: str,
    actor_id: str,
    data: Dict[str, Any],
) -> FilterView:
    collection = get_collection(collection_id)
    view = get_filter_view(collection.id, view_id)

    name = data.get("name", view.name)
    if not isinstance(name, str) or not name.strip():
        raise ValidationError({"name": ["Name is required."]})
    slug = data.get("slug", view.slug)
    conditions = normalize_conditions(data["conditions"]) if "conditions" in data else view.conditions
    sort = normalize_sort(data["sort"]) if "sort" in data else view.sort

    check_filter(collection, conditions, sort)
    if slug != view.slug:
        _assert_slug_free(collection.id, slug, exclude_id=view.id)

    with transactional():
        view.name = name
        view.slug = slug
        if "description" in data:
            view.description = data["description"]
        view.conditions = conditions
        view.sort = sort

        log_action(
            actor_id=actor_id,
            action="filter_view.update",
            entity_type="filter_view",
            entity_id=view.id,
            payload={"fields": sorted(data)},
        )

    return view


def delete_filter_view(*, collection_id: str, view_id: str, actor_id: str) -> None:
    view = get_filter_view(collection_id, view_id)
    if view.is_system:
        raise SystemElementProtected("System filter views cannot be deleted")

    with transactional():
        log_action(
            actor_id=actor_id,
            action="filter_view.delete",
            entity_type="filter_view",
            entity_id=view.id,
        )
        db.session.delete(view)
