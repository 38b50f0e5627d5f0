from typing import Optional, Tuple

from blockcms.models.content import Content
from blockcms.models.content_version import ContentVersion
from blockcms.domain.invariants.lock import assert_unlocked
from blockcms.domain.lifecycle.content import assert_content_transition
from blockcms.utils.audit import log_action
from blockcms.utils.optimistic_lock import assert_expected_version
from blockcms.utils.transaction import transactional
from .create_version import create_version
from .loaders import lock_content


def change_status(
    *,
    content_id: str,
    actor_id: str,
    to_status: str,
    action: str,
    change_note: str,
    expected_version: Optional[int] = None,
    before_commit=None,
) -> Tuple[Content, ContentVersion]:
    """
    Moves a content along its lifecycle and records the move as a version.

    Responsibilities:
    - row-level lock, resource lock and optimistic version check
    - lifecycle transition enforcement
    - version creation
    - audit logging

    `before_commit(content)` runs after the transition check and before
    any state is changed; it is where publish validation hooks in.
    """

    # 1️⃣ Fetch content with row-level lock
    content = lock_content(content_id)
    assert_unlocked("content", content.effective_lock_info())
    assert_expected_version(content, expected_version)

    # 2️⃣ Lifecycle transition enforcement
    from_status = content.status
    assert_content_transition(from_status=from_status, to_status=to_status)

    if before_commit is not None:
        before_commit(content)

    with transactional():
        # 3️⃣ Apply state change
        content.status = to_status

        # 4️⃣ Create immutable ContentVersion
        version = create_version(
            content=content,
            actor_id=actor_id,
            change_note=change_note,
        )

        if to_status == "published":
            content.published_version_id = version.id

        # 5️⃣ Audit logging
        log_action(
            actor_id=actor_id,
            action=action,
            entity_type="content",
            entity_id=content.id,
            payload={
                "from_status": from_status,
                "to_status": to_status,
                "version": version.version_number,
            },
        )

    return content, version
