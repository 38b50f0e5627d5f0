def normalize_version(version, include_elements=False, diff=None):
    data = {
        "id": version.id,
        "content_id": version.content_id,
        "version_number": version.version_number,
        "snapshot": version.snapshot or {},
        "change_note": version.change_note,
        "created_by": version.created_by,
        "created_at": version.timestamps()["created_at"],
    }
    if include_elements:
        data["elements"] = version.elements or []
    if diff is not None:
        data["diff_summary"] = diff
    return data
