import copy
from typing import Optional, Tuple

from sqlalchemy import select

from blockcms.extensions import db
from blockcms.models.content import Content
from blockcms.models.content_version import ContentVersion
from blockcms.domain.invariants.exceptions import VersionNotFound
from blockcms.domain.invariants.lock import assert_unlocked
from blockcms.domain.lifecycle.content import assert_editable
from blockcms.utils.audit import log_action
from blockcms.utils.optimistic_lock import assert_expected_version
from blockcms.utils.transaction import transactional
from .create_version import create_version
from .loaders import assert_slug_available, lock_content


def find_version(content_id: str, version_number: int) -> ContentVersion:
    version = db.session.execute(
        select(ContentVersion).where(
            ContentVersion.content_id == content_id,
            ContentVersion.version_number == version_number,
        )
    ).scalar_one_or_none()

    if not version:
        raise VersionNotFound(f"Version {version_number} not found")
    return version


def restore_version(
    *,
    content_id: str,
    version_number: int,
    actor_id: str,
    expected_version: Optional[int] = None,
) -> Tuple[Content, ContentVersion]:
    """
    Restores an earlier version by appending a new one.

    Responsibilities:
    - copy the target tree verbatim (no id reassignment, no reordering)
    - restore title, slug and metadata from the target snapshot
    - keep the current status
    - never touch existing versions
    """

    # 1️⃣ Lock live content and check it may change
    content = lock_content(content_id)
    assert_unlocked("content", content.effective_lock_info())
    assert_editable(content.status)
    assert_expected_version(content, expected_version)

    # 2️⃣ Fetch the version to restore
    target = find_version(content.id, version_number)
    snapshot = target.snapshot or {}

    slug = snapshot.get("slug") or content.slug
    if slug != content.slug:
        assert_slug_available(content.collection_id, slug, exclude_id=content.id)

    with transactional():
        # 3️⃣ Apply the snapshot
        content.elements = copy.deepcopy(target.elements or [])
        content.title = snapshot.get("title") or content.title
        content.slug = slug
        if "metadata" in snapshot:
            content.meta = copy.deepcopy(snapshot["metadata"] or {})

        # 4️⃣ Append the restore version
        version = create_version(
            content=content,
            actor_id=actor_id,
            change_note=f"Restored to version {version_number}",
        )

        # 5️⃣ Audit logging
        log_action(
            actor_id=actor_id,
            action="content.restore",
            entity_type="content",
            entity_id=content.id,
            payload={
                "from_version": version_number,
                "to_version": version.version_number,
            },
        )

    return content, version
