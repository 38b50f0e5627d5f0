from blockcms.extensions import db
from .base import BaseModel
from sqlalchemy import event


class ContentVersion(BaseModel):
    __tablename__ = "content_versions"

    content_id = db.Column(
        db.String(36),
        db.ForeignKey("contents.id"),
        nullable=False
    )

    version_number = db.Column(db.Integer, nullable=False)

    # Full element tree at save time
    elements = db.Column(db.JSON, nullable=False, default=list)
    # title | slug | status | metadata at save time
    snapshot = db.Column(db.JSON, nullable=False, default=dict)

    change_note = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(64), nullable=True)

    __table_args__ = (
        db.UniqueConstraint("content_id", "version_number", name="uq_content_version"),
        db.Index("idx_content_version_content", "content_id"),
    )


# Versions are removed only by bulk delete together with their content,
# which bypasses these ORM events.
@event.listens_for(ContentVersion, "before_update")
@event.listens_for(ContentVersion, "before_delete")
def prevent_version_mutation(mapper, connection, target):
    raise RuntimeError("Content versions are immutable")
