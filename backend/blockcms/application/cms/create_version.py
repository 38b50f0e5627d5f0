import copy
from typing import Optional

from sqlalchemy.exc import IntegrityError

from blockcms.extensions import db
from blockcms.models.content_version import ContentVersion
from blockcms.domain.invariants.exceptions import Conflict
from blockcms.utils.versioning import next_version_number, snapshot_content


def create_version(
    *,
    content,
    actor_id: Optional[str],
    change_note: Optional[str] = None,
) -> ContentVersion:
    """
    Appends an immutable version for the content's current state and
    advances `current_version` to it.

    Must run inside the caller's transactional() block: the version row
    and the content pointer commit together or not at all.
    """
    number = next_version_number(content.id)

    version = ContentVersion()
    version.content_id = content.id
    version.version_number = number
    version.elements = copy.deepcopy(content.elements or [])
    version.snapshot = snapshot_content(content)
    version.change_note = change_note
    version.created_by = actor_id

    content.current_version = number
    content.updated_by = actor_id

    db.session.add(version)
    try:
        db.session.flush()
    except IntegrityError as exc:
        # uq_content_version: another writer took this number first
        raise Conflict("Content was modified concurrently, please retry") from exc

    return version
