from blockcms.domain.invariants.exceptions import ValidationError
from blockcms.domain.tree import missing_meta_fields, validate_tree

RESERVED_SLUG_CHARS = set(" /?#")


def assert_content(content, schema, registry=None, publish=False):
    """
    Full validation of a content document against its collection schema.

    `content` is a dict with `title`, `slug`, `elements`, `metadata` and
    `editions`. Publishing also requires every required content meta field.
    """
    errors = {}

    title = content.get("title")
    if not isinstance(title, str) or not title.strip():
        errors["title"] = ["Title is required."]

    slug = content.get("slug")
    if not isinstance(slug, str) or not slug or RESERVED_SLUG_CHARS & set(slug):
        errors["slug"] = ["Slug is required and may not contain spaces, '/', '?' or '#'."]

    metadata = content.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        errors["metadata"] = ["Metadata must be an object."]
        metadata = {}

    editions = content.get("editions")
    if editions is not None:
        if not isinstance(editions, list) or not all(isinstance(e, str) for e in editions):
            errors["editions"] = ["Editions must be a list of strings."]
        else:
            denied = [e for e in editions if not schema.is_edition_allowed(e)]
            if denied:
                errors["editions"] = [f"Edition(s) not allowed: {', '.join(denied)}."]

    if publish:
        errors.update(
            missing_meta_fields(schema.get_content_meta_fields(), metadata or {}, prefix="metadata")
        )

    try:
        validate_tree(content.get("elements"), schema, registry)
    except ValidationError as exc:
        errors.update(exc.errors)

    if errors:
        raise ValidationError(errors)
