from flask import request, jsonify
from flask_jwt_extended import jwt_required
from werkzeug.exceptions import BadRequest

from blockcms.extensions import custom_elements as registry
from blockcms.application.cms.manage_custom_elements import (
    create_custom_element,
    delete_custom_element,
    duplicate_custom_element,
    reorder_custom_elements,
    update_custom_element,
)
from blockcms.domain.custom_elements import CATEGORIES
from blockcms.domain.invariants.exceptions import NotFound
from blockcms.normalizers.custom_element import normalize_custom_element
from blockcms.utils.decorators import current_actor, permission_required
from . import v1_bp


@v1_bp.route("/custom-elements", methods=["GET"])
@jwt_required()
def list_custom_elements():
    locale = request.args.get("locale", "en")
    category = request.args.get("category")

    if category:
        definitions = registry().list_by_category(category)
    else:
        definitions = list(registry().all().values())

    return jsonify({
        "items": [normalize_custom_element(d, locale) for d in definitions],
        "categories": list(CATEGORIES),
    })


@v1_bp.route("/custom-elements/grouped", methods=["GET"])
@jwt_required()
def grouped_custom_elements():
    locale = request.args.get("locale", "en")
    return jsonify({
        category: [normalize_custom_element(d, locale) for d in definitions]
        for category, definitions in registry().grouped_by_category().items()
    })


@v1_bp.route("/custom-elements/<type_name>", methods=["GET"])
@jwt_required()
def get_custom_element(type_name):
    definition = registry().get_definition(type_name)
    if definition is None:
        raise NotFound(f"Custom element '{type_name}' not found")
    return jsonify(normalize_custom_element(definition, request.args.get("locale", "en")))


@v1_bp.route("/custom-elements", methods=["POST"])
@jwt_required()
@permission_required("custom_elements.manage")
def create_custom_element_route():
    data = request.get_json(silent=True) or {}
    definition = create_custom_element(actor_id=current_actor(), data=data)
    return jsonify(normalize_custom_element(definition)), 201


@v1_bp.route("/custom-elements/<type_name>", methods=["PUT"])
@jwt_required()
@permission_required("custom_elements.manage")
def update_custom_element_route(type_name):
    data = request.get_json(silent=True) or {}
    definition = update_custom_element(type_name=type_name, actor_id=current_actor(), data=data)
    return jsonify(normalize_custom_element(definition))


@v1_bp.route("/custom-elements/<type_name>", methods=["DELETE"])
@jwt_required()
@permission_required("custom_elements.manage")
def delete_custom_element_route(type_name):
    delete_custom_element(type_name=type_name, actor_id=current_actor())
    return jsonify({"message": "Custom element deleted"}), 200


@v1_bp.route("/custom-elements/<type_name>/duplicate", methods=["POST"])
@jwt_required()
@permission_required("custom_elements.manage")
def duplicate_custom_element_route(type_name):
    definition = duplicate_custom_element(type_name=type_name, actor_id=current_actor())
    return jsonify(normalize_custom_element(definition)), 201


@v1_bp.route("/custom-elements/reorder", methods=["POST"])
@jwt_required()
@permission_required("custom_elements.manage")
def reorder_custom_elements_route():
    data = request.get_json(silent=True) or {}
    types = data.get("types")
    if not isinstance(types, list) or not all(isinstance(t, str) for t in types):
        raise BadRequest("types must be a list of custom element types")

    definitions = reorder_custom_elements(actor_id=current_actor(), types=types)
    return jsonify({"items": [normalize_custom_element(d) for d in definitions]})


@v1_bp.route("/custom-elements/refresh", methods=["POST"])
@jwt_required()
@permission_required("custom_elements.manage")
def refresh_custom_elements():
    definitions = registry().refresh()
    return jsonify({"count": len(definitions)})
