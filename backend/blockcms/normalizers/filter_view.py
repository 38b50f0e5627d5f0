def normalize_filter_view(view):
    return {
        "id": view.id,
        "collection_id": view.collection_id,
        "name": view.name,
        "slug": view.slug,
        "description": view.description,
        "conditions": view.conditions or {},
        "sort": view.sort or [],
        "is_system": bool(view.is_system),
        "created_by": view.created_by,
        **view.timestamps(),
    }
