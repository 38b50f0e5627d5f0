from datetime import datetime, timezone
import uuid
from blockcms.extensions import db


def utc_now():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class BaseModel(db.Model):
    __abstract__ = True

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    created_at = db.Column(db.DateTime, default=utc_now, index=True)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, index=True)

    def timestamps(self):
        """ISO-8601 `created_at` / `updated_at` for API payloads."""
        return {
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
