from typing import Any, Dict, List, Tuple

from sqlalchemy import select

from blockcms.extensions import db
from blockcms.models.content_version import ContentVersion
from blockcms.domain.diff import compare_versions, diff_summary
from blockcms.normalizers.version import normalize_version
from .loaders import get_content
from .restore_version import find_version


def version_history(content_id: str) -> List[Tuple[ContentVersion, Dict[str, int]]]:
    """
    Versions newest first, each paired with its diff summary against the
    version before it (version 1 counts every node as added).
    """
    get_content(content_id)

    versions = db.session.execute(
        select(ContentVersion)
        .where(ContentVersion.content_id == content_id)
        .order_by(ContentVersion.version_number.asc())
    ).scalars().all()

    history = []
    previous = []
    for version in versions:
        history.append((version, diff_summary(previous, version.elements)))
        previous = version.elements
    history.reverse()
    return history


def compare(content_id: str, from_number: int, to_number: int) -> Dict[str, Any]:
    get_content(content_id)
    older = find_version(content_id, from_number)
    newer = find_version(content_id, to_number)
    return compare_versions(
        normalize_version(older, include_elements=True),
        normalize_version(newer, include_elements=True),
    )
