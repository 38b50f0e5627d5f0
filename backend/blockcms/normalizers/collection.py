def normalize_collection(collection, include_schema=True):
    data = {
        "id": collection.id,
        "name": collection.name,
        "slug": collection.slug,
        "description": collection.description,
        "settings": collection.settings or {},
        "collection_meta": collection.collection_meta or {},
        "is_locked": bool(collection.is_locked),
        "lock": collection.lock_info(),
        **collection.timestamps(),
    }
    if include_schema:
        data["schema"] = collection.get_schema().to_frontend()
    return data
