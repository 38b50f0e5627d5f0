from blockcms.extensions import db
from .base import BaseModel


class FilterView(BaseModel):
    __tablename__ = "filter_views"

    collection_id = db.Column(
        db.String(36),
        db.ForeignKey("collections.id"),
        nullable=False,
        index=True,
    )

    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)

    conditions = db.Column(db.JSON, nullable=False, default=dict)
    sort = db.Column(db.JSON, nullable=False, default=list)

    is_system = db.Column(db.Boolean, nullable=False, default=False)
    created_by = db.Column(db.String(64), nullable=True)

    __table_args__ = (
        db.UniqueConstraint("collection_id", "slug", name="uq_filter_view_slug_per_collection"),
    )
