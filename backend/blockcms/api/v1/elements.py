from flask import request, jsonify
from flask_jwt_extended import jwt_required
from werkzeug.exceptions import BadRequest

from blockcms.application.cms import edit_elements
from blockcms.normalizers.content import normalize_content
from blockcms.normalizers.version import normalize_version
from blockcms.utils.decorators import current_actor, permission_required
from blockcms.utils.optimistic_lock import expected_version_from_request
from . import v1_bp


def _order_arg(data):
    order = data.get("order")
    if order is not None and (isinstance(order, bool) or not isinstance(order, int)):
        raise BadRequest("order must be an integer")
    return order


@v1_bp.route("/contents/<content_id>/elements", methods=["POST"])
@jwt_required()
@permission_required("contents.edit")
def add_element(content_id):
    data = request.get_json(silent=True) or {}
    order = _order_arg(data)
    content, version, element = edit_elements.add_element(
        content_id=content_id,
        actor_id=current_actor(),
        element=data.get("element"),
        parent_id=data.get("parent_id"),
        order=order,
        expected_version=expected_version_from_request(data),
    )
    return jsonify({
        "element": element,
        "content": normalize_content(content),
        "version": normalize_version(version),
    }), 201


@v1_bp.route("/contents/<content_id>/elements/<element_id>", methods=["PATCH"])
@jwt_required()
@permission_required("contents.edit")
def update_element(content_id, element_id):
    data = request.get_json(silent=True) or {}
    content, version, element = edit_elements.update_element(
        content_id=content_id,
        element_id=element_id,
        actor_id=current_actor(),
        changes=data,
        expected_version=expected_version_from_request(data),
    )
    return jsonify({
        "element": element,
        "content": normalize_content(content),
        "version": normalize_version(version),
    })


@v1_bp.route("/contents/<content_id>/elements/<element_id>", methods=["DELETE"])
@jwt_required()
@permission_required("contents.edit")
def delete_element(content_id, element_id):
    content, version = edit_elements.delete_element(
        content_id=content_id,
        element_id=element_id,
        actor_id=current_actor(),
        expected_version=expected_version_from_request(),
    )
    return jsonify({
        "content": normalize_content(content),
        "version": normalize_version(version),
    })


@v1_bp.route("/contents/<content_id>/elements/<element_id>/move", methods=["POST"])
@jwt_required()
@permission_required("contents.edit")
def move_element(content_id, element_id):
    data = request.get_json(silent=True) or {}
    order = _order_arg(data)
    content, version = edit_elements.move_element(
        content_id=content_id,
        element_id=element_id,
        actor_id=current_actor(),
        parent_id=data.get("parent_id"),
        order=order,
        expected_version=expected_version_from_request(data),
    )
    return jsonify({
        "content": normalize_content(content),
        "version": normalize_version(version),
    })
