from flask import request, jsonify
from flask_jwt_extended import jwt_required

from blockcms.extensions import custom_elements
from blockcms.application.cms.archive_content import archive_content
from blockcms.application.cms.create_content import create_content
from blockcms.application.cms.delete_content import delete_content
from blockcms.application.cms.duplicate_content import duplicate_content
from blockcms.application.cms.filter_contents import apply_filter_view, filter_contents
from blockcms.application.cms.loaders import get_collection, get_content
from blockcms.application.cms.lock_resources import set_content_lock
from blockcms.application.cms.publish_content import publish_content
from blockcms.application.cms.unpublish_content import unpublish_content
from blockcms.application.cms.update_content import update_content
from blockcms.normalizers.content import normalize_content, render_content
from blockcms.normalizers.pagination import normalize_pagination
from blockcms.normalizers.version import normalize_version
from blockcms.utils.decorators import current_actor, permission_required
from blockcms.utils.optimistic_lock import enforce_optimistic_lock, expected_version_from_request
from blockcms.utils.pagination import parse_page_args, slice_page
from . import v1_bp


def _list_view_paging(settings):
    default = settings.get("default_per_page")
    if not isinstance(default, int) or isinstance(default, bool) or default < 1:
        default = 20
    options = settings.get("per_page_options")
    if not isinstance(options, list):
        options = None
    return default, options


def _paginated(collection, documents, source):
    default_per_page, per_page_options = _list_view_paging(collection.get_schema().list_view_settings)
    page, per_page = parse_page_args(
        source,
        default_per_page=default_per_page,
        per_page_options=per_page_options,
    )
    return normalize_pagination(
        slice_page(documents, page, per_page),
        lambda document: document,
        page=page,
        per_page=per_page,
        total=len(documents),
    )


# ------------------------
# Listing & filtering
# ------------------------

@v1_bp.route("/collections/<collection_id>/contents", methods=["GET"])
@jwt_required()
def list_contents(collection_id):
    collection = get_collection(collection_id)
    edition = request.args.get("edition")

    if view_id := request.args.get("filter_view"):
        documents = apply_filter_view(collection_id=collection.id, view_id=view_id, edition=edition)
    else:
        documents = filter_contents(collection_id=collection.id, edition=edition)

    return jsonify(_paginated(collection, documents, request.args))


@v1_bp.route("/collections/<collection_id>/contents/filter", methods=["POST"])
@jwt_required()
def filter_contents_route(collection_id):
    collection = get_collection(collection_id)
    data = request.get_json(silent=True) or {}

    documents = filter_contents(
        collection_id=collection.id,
        conditions=data.get("conditions"),
        sort=data.get("sort"),
        edition=data.get("edition"),
    )
    return jsonify(_paginated(collection, documents, data))


# ------------------------
# Contents
# ------------------------

@v1_bp.route("/collections/<collection_id>/contents", methods=["POST"])
@jwt_required()
@permission_required("contents.edit")
def create_content_route(collection_id):
    data = request.get_json(silent=True) or {}
    content = create_content(collection_id=collection_id, actor_id=current_actor(), data=data)
    return jsonify(normalize_content(content)), 201


@v1_bp.route("/contents/<content_id>", methods=["GET"])
@jwt_required()
def get_content_route(content_id):
    return jsonify(normalize_content(get_content(content_id)))


@v1_bp.route("/contents/<content_id>/render", methods=["GET"])
@jwt_required()
def render_content_route(content_id):
    content = get_content(content_id)
    return jsonify(
        render_content(content, edition=request.args.get("edition"), registry=custom_elements())
    )


@v1_bp.route("/contents/<content_id>", methods=["PUT"])
@jwt_required()
@permission_required("contents.edit")
def update_content_route(content_id):
    enforce_optimistic_lock(get_content(content_id))
    data = request.get_json(silent=True) or {}

    content, version = update_content(
        content_id=content_id,
        actor_id=current_actor(),
        data=data,
        expected_version=expected_version_from_request(data),
    )
    return jsonify({
        "content": normalize_content(content),
        "version": normalize_version(version),
    })


@v1_bp.route("/contents/<content_id>", methods=["DELETE"])
@jwt_required()
@permission_required("contents.delete")
def delete_content_route(content_id):
    delete_content(content_id=content_id, actor_id=current_actor())
    return jsonify({"message": "Content deleted"}), 200


@v1_bp.route("/contents/<content_id>/duplicate", methods=["POST"])
@jwt_required()
@permission_required("contents.edit")
def duplicate_content_route(content_id):
    content = duplicate_content(content_id=content_id, actor_id=current_actor())
    return jsonify(normalize_content(content)), 201


# ------------------------
# Lifecycle
# ------------------------

def _transition(use_case, content_id):
    data = request.get_json(silent=True) or {}
    content, version = use_case(
        content_id=content_id,
        actor_id=current_actor(),
        change_note=data.get("change_note"),
        expected_version=expected_version_from_request(data),
    )
    return jsonify({
        "content": normalize_content(content, include_elements=False),
        "version": normalize_version(version),
    })


@v1_bp.route("/contents/<content_id>/publish", methods=["POST"])
@jwt_required()
@permission_required("contents.publish")
def publish(content_id):
    return _transition(publish_content, content_id)


@v1_bp.route("/contents/<content_id>/unpublish", methods=["POST"])
@jwt_required()
@permission_required("contents.publish")
def unpublish(content_id):
    return _transition(unpublish_content, content_id)


@v1_bp.route("/contents/<content_id>/archive", methods=["POST"])
@jwt_required()
@permission_required("contents.publish")
def archive(content_id):
    return _transition(archive_content, content_id)


# ------------------------
# Locking
# ------------------------

@v1_bp.route("/contents/<content_id>/lock", methods=["POST"])
@jwt_required()
@permission_required("contents.lock")
def lock_content_route(content_id):
    data = request.get_json(silent=True) or {}
    content = set_content_lock(
        content_id=content_id,
        actor_id=current_actor(),
        locked=True,
        reason=data.get("reason"),
    )
    return jsonify({
        "message": "Content locked successfully",
        "content": normalize_content(content, include_elements=False),
    })


@v1_bp.route("/contents/<content_id>/lock", methods=["DELETE"])
@jwt_required()
@permission_required("contents.lock")
def unlock_content_route(content_id):
    content = set_content_lock(content_id=content_id, actor_id=current_actor(), locked=False)
    return jsonify({
        "message": "Content unlocked successfully",
        "content": normalize_content(content, include_elements=False),
    })
