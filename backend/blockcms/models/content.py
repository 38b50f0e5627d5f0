import copy

from blockcms.extensions import db
from blockcms.domain.element_types import ContentStatus
from .base import BaseModel
from .lockable_mixin import LockableMixin


class Content(BaseModel, LockableMixin):
    __tablename__ = "contents"

    collection_id = db.Column(
        db.String(36),
        db.ForeignKey("collections.id"),
        nullable=False,
        index=True,
    )

    title = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default=ContentStatus.DRAFT.value, index=True)

    current_version = db.Column(db.Integer, nullable=False, default=0)
    published_version_id = db.Column(db.String(36), nullable=True)

    elements = db.Column(db.JSON, nullable=False, default=list)
    # `metadata` is reserved on declarative models
    meta = db.Column("metadata", db.JSON, nullable=False, default=dict)
    editions = db.Column(db.JSON, nullable=False, default=list)

    created_by = db.Column(db.String(64), nullable=True)
    updated_by = db.Column(db.String(64), nullable=True)

    collection = db.relationship("Collection", back_populates="contents")

    __table_args__ = (
        db.UniqueConstraint("collection_id", "slug", name="uq_content_slug_per_collection"),
    )

    def to_state(self):
        """Plain dict of the versioned fields."""
        return {
            "title": self.title,
            "slug": self.slug,
            "status": self.status,
            "elements": copy.deepcopy(self.elements or []),
            "metadata": copy.deepcopy(self.meta or {}),
            "editions": list(self.editions or []),
        }

    def is_visible_for_edition(self, edition) -> bool:
        """Contents without editions are visible in every edition."""
        if not self.editions:
            return True
        return edition in self.editions

    def effective_lock_info(self):
        """Own lock first, then the collection's."""
        info = super().effective_lock_info()
        if info is None and self.collection is not None:
            collection_info = self.collection.lock_info()
            if collection_info:
                info = dict(collection_info, source="collection")
        return info
