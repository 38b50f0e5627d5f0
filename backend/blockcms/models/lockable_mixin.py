from blockcms.extensions import db
from .base import _iso, utc_now


class LockableMixin:
    is_locked = db.Column(db.Boolean, nullable=False, default=False)
    locked_by = db.Column(db.String(64), nullable=True)
    locked_at = db.Column(db.DateTime, nullable=True)
    lock_reason = db.Column(db.String(255), nullable=True)

    def lock(self, actor_id, reason=None):
        self.is_locked = True
        self.locked_by = actor_id
        self.locked_at = utc_now()
        self.lock_reason = reason

    def unlock(self):
        self.is_locked = False
        self.locked_by = None
        self.locked_at = None
        self.lock_reason = None

    def lock_info(self):
        """Own lock state, or None when not locked."""
        if not self.is_locked:
            return None
        return {
            "is_locked": True,
            "locked_by": self.locked_by,
            "locked_at": _iso(self.locked_at),
            "lock_reason": self.lock_reason,
        }

    def effective_lock_info(self):
        info = self.lock_info()
        return dict(info, source="self") if info else None
