from flask import request, jsonify
from flask_jwt_extended import jwt_required
from sqlalchemy import select

from blockcms.extensions import db
from blockcms.models.collection import Collection
from blockcms.application.cms.loaders import get_collection
from blockcms.application.cms.lock_resources import set_collection_lock
from blockcms.application.cms.manage_collections import (
    create_collection,
    delete_collection,
    update_collection,
)
from blockcms.domain.filters import available_fields
from blockcms.normalizers.collection import normalize_collection
from blockcms.utils.decorators import current_actor, permission_required
from . import v1_bp


@v1_bp.route("/collections", methods=["GET"])
@jwt_required()
def list_collections():
    collections = db.session.execute(
        select(Collection).order_by(Collection.name.asc())
    ).scalars().all()

    return jsonify({
        "items": [normalize_collection(c, include_schema=False) for c in collections]
    })


@v1_bp.route("/collections", methods=["POST"])
@jwt_required()
@permission_required("collections.manage")
def create_collection_route():
    data = request.get_json(silent=True) or {}
    collection = create_collection(actor_id=current_actor(), data=data)
    return jsonify(normalize_collection(collection)), 201


@v1_bp.route("/collections/<collection_id>", methods=["GET"])
@jwt_required()
def get_collection_route(collection_id):
    return jsonify(normalize_collection(get_collection(collection_id)))


@v1_bp.route("/collections/<collection_id>", methods=["PUT"])
@jwt_required()
@permission_required("collections.manage")
def update_collection_route(collection_id):
    data = request.get_json(silent=True) or {}
    collection = update_collection(
        collection_id=collection_id,
        actor_id=current_actor(),
        data=data,
    )
    return jsonify(normalize_collection(collection))


@v1_bp.route("/collections/<collection_id>", methods=["DELETE"])
@jwt_required()
@permission_required("collections.manage")
def delete_collection_route(collection_id):
    force = request.args.get("force", "").lower() in ("1", "true", "yes")
    delete_collection(collection_id=collection_id, actor_id=current_actor(), force=force)
    return jsonify({"message": "Collection deleted"}), 200


@v1_bp.route("/collections/<collection_id>/lock", methods=["POST"])
@jwt_required()
@permission_required("collections.manage")
def lock_collection_route(collection_id):
    data = request.get_json(silent=True) or {}
    collection = set_collection_lock(
        collection_id=collection_id,
        actor_id=current_actor(),
        locked=True,
        reason=data.get("reason"),
    )
    return jsonify({
        "message": "Collection locked successfully",
        "collection": normalize_collection(collection, include_schema=False),
    })


@v1_bp.route("/collections/<collection_id>/lock", methods=["DELETE"])
@jwt_required()
@permission_required("collections.manage")
def unlock_collection_route(collection_id):
    collection = set_collection_lock(collection_id=collection_id, actor_id=current_actor(), locked=False)
    return jsonify({
        "message": "Collection unlocked successfully",
        "collection": normalize_collection(collection, include_schema=False),
    })


@v1_bp.route("/collections/<collection_id>/schema", methods=["GET"])
@jwt_required()
def get_collection_schema(collection_id):
    schema = get_collection(collection_id).get_schema()
    return jsonify({
        "schema": schema.to_frontend(),
        "filter_fields": available_fields(schema),
    })
