from typing import Optional

from blockcms.extensions import db
from blockcms.models.audit_log import AuditLog


def log_action(
    *,
    actor_id: Optional[str],
    action: str,
    entity_type: str,
    entity_id: str,
    payload: Optional[dict] = None,
):
    """Adds an AuditLog row to the current transaction."""
    log = AuditLog()

    log.actor_id = actor_id
    log.action = action
    log.entity_type = entity_type
    log.entity_id = entity_id
    log.payload = payload or {}

    db.session.add(log)
