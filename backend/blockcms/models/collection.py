from blockcms.extensions import db
from blockcms.domain.schema import CollectionSchema, resolve
from .base import BaseModel
from .lockable_mixin import LockableMixin


class Collection(BaseModel, LockableMixin):
    __tablename__ = "collections"

    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), nullable=False, unique=True, index=True)
    description = db.Column(db.Text, nullable=True)

    # Raw schema map; always read through get_schema()
    schema = db.Column(db.JSON, nullable=False, default=dict)
    settings = db.Column(db.JSON, nullable=False, default=dict)
    collection_meta = db.Column(db.JSON, nullable=False, default=dict)

    contents = db.relationship("Content", back_populates="collection", lazy="dynamic")

    def get_schema(self) -> CollectionSchema:
        return resolve(self.schema)

    def has_contents(self) -> bool:
        return self.contents.count() > 0
