from sqlalchemy import delete

from blockcms.extensions import db
from blockcms.domain.invariants.lock import assert_unlocked
from blockcms.models.content_version import ContentVersion
from blockcms.utils.audit import log_action
from blockcms.utils.transaction import transactional
from .loaders import lock_content


def delete_content(*, content_id: str, actor_id: str) -> None:
    """
    Deletes a content and its whole version history.

    Allowed in every status, archived included, unless the content or its
    collection is locked.
    """
    content = lock_content(content_id)
    assert_unlocked("content", content.effective_lock_info())

    with transactional():
        removed = db.session.execute(
            delete(ContentVersion).where(ContentVersion.content_id == content.id)
        ).rowcount

        log_action(
            actor_id=actor_id,
            action="content.delete",
            entity_type="content",
            entity_id=content.id,
            payload={
                "collection_id": content.collection_id,
                "slug": content.slug,
                "versions_removed": removed,
            },
        )

        db.session.delete(content)
