from flask import request, jsonify
from flask_jwt_extended import jwt_required
from werkzeug.exceptions import BadRequest

from blockcms.application.cms.loaders import get_content
from blockcms.application.cms.restore_version import find_version, restore_version
from blockcms.application.cms.version_history import compare, version_history
from blockcms.normalizers.content import normalize_content
from blockcms.normalizers.version import normalize_version
from blockcms.utils.decorators import current_actor, permission_required
from blockcms.utils.optimistic_lock import expected_version_from_request
from . import v1_bp


@v1_bp.route("/contents/<content_id>/versions", methods=["GET"])
@jwt_required()
def list_versions(content_id):
    return jsonify({
        "items": [
            normalize_version(version, diff=summary)
            for version, summary in version_history(content_id)
        ]
    })


@v1_bp.route("/contents/<content_id>/versions/<int:version_number>", methods=["GET"])
@jwt_required()
def get_version(content_id, version_number):
    get_content(content_id)
    return jsonify(normalize_version(find_version(content_id, version_number), include_elements=True))


@v1_bp.route("/contents/<content_id>/versions/compare", methods=["GET"])
@jwt_required()
def compare_versions_route(content_id):
    try:
        from_number = int(request.args["from"])
        to_number = int(request.args["to"])
    except (KeyError, ValueError) as exc:
        raise BadRequest("Query parameters 'from' and 'to' must be version numbers") from exc

    return jsonify(compare(content_id, from_number, to_number))


@v1_bp.route("/contents/<content_id>/versions/<int:version_number>/restore", methods=["POST"])
@jwt_required()
@permission_required("contents.edit")
def restore(content_id, version_number):
    data = request.get_json(silent=True) or {}
    content, version = restore_version(
        content_id=content_id,
        version_number=version_number,
        actor_id=current_actor(),
        expected_version=expected_version_from_request(data),
    )
    return jsonify({
        "content": normalize_content(content),
        "version": normalize_version(version),
    })
