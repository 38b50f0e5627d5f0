from sqlalchemy import func, select

from blockcms.extensions import db


def snapshot_content(content):
    """Scalar fields stored alongside each version's element tree."""
    return {
        "title": content.title,
        "slug": content.slug,
        "status": content.status,
        "metadata": dict(content.meta or {}),
    }


def next_version_number(content_id):
    from blockcms.models.content_version import ContentVersion

    last = db.session.execute(
        select(func.max(ContentVersion.version_number))
        .where(ContentVersion.content_id == content_id)
    ).scalar()
    return (last or 0) + 1
