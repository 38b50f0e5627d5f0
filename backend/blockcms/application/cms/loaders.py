from typing import Optional

from sqlalchemy import select

from blockcms.extensions import db
from blockcms.models.collection import Collection
from blockcms.models.content import Content
from blockcms.domain.invariants.exceptions import Conflict, NotFound


def get_collection(collection_id: str) -> Collection:
    collection = db.session.get(Collection, collection_id)
    if not collection:
        raise NotFound("Collection not found")
    return collection


def get_content(content_id: str) -> Content:
    content = db.session.get(Content, content_id)
    if not content:
        raise NotFound("Content not found")
    return content


def lock_content(content_id: str) -> Content:
    """Fetch content with a row-level lock for the rest of the transaction."""
    content = (
        db.session.execute(
            select(Content)
            .where(Content.id == content_id)
            .with_for_update()
        )
        .scalar_one_or_none()
    )

    if not content:
        raise NotFound("Content not found")
    return content


def assert_slug_available(collection_id: str, slug: str, exclude_id: Optional[str] = None) -> None:
    query = select(Content.id).where(Content.collection_id == collection_id, Content.slug == slug)
    if exclude_id is not None:
        query = query.where(Content.id != exclude_id)
    if db.session.execute(query).first():
        raise Conflict(f"A content with slug '{slug}' already exists in this collection")
