from typing import Any, Dict

from sqlalchemy import delete, select

from blockcms.extensions import db
from blockcms.models.collection import Collection
from blockcms.models.content import Content
from blockcms.models.content_version import ContentVersion
from blockcms.models.filter_view import FilterView
from blockcms.domain.invariants.exceptions import Conflict, ValidationError
from blockcms.domain.invariants.lock import assert_unlocked
from blockcms.domain.schema import resolve
from blockcms.domain.tree import missing_meta_fields
from blockcms.utils.audit import log_action
from blockcms.utils.transaction import transactional
from .loaders import get_collection

ALLOWED_UPDATE_FIELDS = ("name", "slug", "description", "schema", "settings", "collection_meta")


def _check_fields(values: Dict[str, Any]) -> None:
    errors = {}
    if not isinstance(values.get("name"), str) or not values["name"].strip():
        errors["name"] = ["Name is required."]
    if not isinstance(values.get("slug"), str) or not values["slug"].strip():
        errors["slug"] = ["Slug is required."]
    for key in ("schema", "settings", "collection_meta"):
        if values.get(key) is not None and not isinstance(values[key], dict):
            errors[key] = [f"{key} must be an object."]
    if not errors:
        schema = resolve(values.get("schema"))
        errors.update(
            missing_meta_fields(
                schema.get_collection_meta_fields(),
                values.get("collection_meta") or {},
                prefix="collection_meta",
            )
        )
    if errors:
        raise ValidationError(errors)


def _assert_slug_free(slug: str, exclude_id=None) -> None:
    query = select(Collection.id).where(Collection.slug == slug)
    if exclude_id is not None:
        query = query.where(Collection.id != exclude_id)
    if db.session.execute(query).first():
        raise Conflict(f"A collection with slug '{slug}' already exists")


def create_collection(*, actor_id: str, data: Dict[str, Any]) -> Collection:
    """The stored schema is the resolved form of the submitted one."""
    _check_fields(data)
    _assert_slug_free(data["slug"])

    collection = Collection()
    collection.name = data["name"]
    collection.slug = data["slug"]
    collection.description = data.get("description")
    collection.schema = resolve(data.get("schema")).to_dict()
    collection.settings = data.get("settings") or {}
    collection.collection_meta = data.get("collection_meta") or {}

    with transactional():
        db.session.add(collection)
        db.session.flush()

        log_action(
            actor_id=actor_id,
            action="collection.create",
            entity_type="collection",
            entity_id=collection.id,
            payload={"slug": collection.slug},
        )

    return collection


def update_collection(*, collection_id: str, actor_id: str, data: Dict[str, Any]) -> Collection:
    """
    Edge cases handled:
    - Slug is immutable once any content references the collection
    - Schema changes never rewrite existing contents; they apply on the
      next save or publish
    """
    collection = get_collection(collection_id)
    assert_unlocked("collection", collection.effective_lock_info())

    provided = [field for field in ALLOWED_UPDATE_FIELDS if field in data]
    if not provided:
        raise ValidationError({"data": ["No updatable fields provided."]})

    values = {
        "name": collection.name,
        "slug": collection.slug,
        "schema": collection.schema,
        "collection_meta": collection.collection_meta,
        "settings": collection.settings,
    }
    values.update({field: data[field] for field in provided})
    _check_fields(values)

    if values["slug"] != collection.slug:
        if collection.has_contents():
            raise Conflict("Collection slug cannot change once contents reference it")
        _assert_slug_free(values["slug"], exclude_id=collection.id)

    with transactional():
        collection.name = values["name"]
        collection.slug = values["slug"]
        if "description" in data:
            collection.description = data["description"]
        collection.schema = resolve(values["schema"]).to_dict()
        collection.settings = values["settings"] or {}
        collection.collection_meta = values["collection_meta"] or {}

        log_action(
            actor_id=actor_id,
            action="collection.update",
            entity_type="collection",
            entity_id=collection.id,
            payload={"fields": provided},
        )

    return collection


def delete_collection(*, collection_id: str, actor_id: str, force: bool = False) -> None:
    """
    Deleting a collection that still holds contents needs `force`; the
    contents, their versions and the collection's filter views go with it.
    """
    collection = get_collection(collection_id)
    assert_unlocked("collection", collection.effective_lock_info())

    content_ids = db.session.execute(
        select(Content.id).where(Content.collection_id == collection.id)
    ).scalars().all()

    if content_ids and not force:
        raise Conflict(
            f"Collection still has {len(content_ids)} content(s); confirm with force to delete them"
        )

    with transactional():
        if content_ids:
            db.session.execute(
                delete(ContentVersion).where(ContentVersion.content_id.in_(content_ids))
            )
            db.session.execute(delete(Content).where(Content.id.in_(content_ids)))
        db.session.execute(delete(FilterView).where(FilterView.collection_id == collection.id))

        log_action(
            actor_id=actor_id,
            action="collection.delete",
            entity_type="collection",
            entity_id=collection.id,
            payload={"slug": collection.slug, "contents_removed": len(content_ids)},
        )

        db.session.delete(collection)
