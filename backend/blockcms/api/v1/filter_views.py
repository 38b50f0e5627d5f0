from flask import request, jsonify
from flask_jwt_extended import jwt_required
from sqlalchemy import select

from blockcms.extensions import db
from blockcms.models.filter_view import FilterView
from blockcms.application.cms.loaders import get_collection
from blockcms.application.cms.manage_filter_views import (
    create_filter_view,
    delete_filter_view,
    get_filter_view,
    update_filter_view,
)
from blockcms.domain.filters import available_fields, operators_for
from blockcms.normalizers.filter_view import normalize_filter_view
from blockcms.utils.decorators import current_actor, permission_required
from . import v1_bp


@v1_bp.route("/collections/<collection_id>/filter-views", methods=["GET"])
@jwt_required()
def list_filter_views(collection_id):
    collection = get_collection(collection_id)
    views = db.session.execute(
        select(FilterView)
        .where(FilterView.collection_id == collection.id)
        .order_by(FilterView.is_system.desc(), FilterView.name.asc())
    ).scalars().all()

    return jsonify({"items": [normalize_filter_view(v) for v in views]})


@v1_bp.route("/collections/<collection_id>/filter-fields", methods=["GET"])
@jwt_required()
def list_filter_fields(collection_id):
    fields = available_fields(get_collection(collection_id).get_schema())
    return jsonify({
        "items": [
            {
                **field,
                "operators": [
                    {"value": op.value, "label": op.label()}
                    for op in operators_for(field["type"])
                ],
            }
            for field in fields
        ]
    })


@v1_bp.route("/collections/<collection_id>/filter-views", methods=["POST"])
@jwt_required()
@permission_required("collections.manage")
def create_filter_view_route(collection_id):
    data = request.get_json(silent=True) or {}
    view = create_filter_view(collection_id=collection_id, actor_id=current_actor(), data=data)
    return jsonify(normalize_filter_view(view)), 201


@v1_bp.route("/collections/<collection_id>/filter-views/<view_id>", methods=["GET"])
@jwt_required()
def get_filter_view_route(collection_id, view_id):
    return jsonify(normalize_filter_view(get_filter_view(collection_id, view_id)))


@v1_bp.route("/collections/<collection_id>/filter-views/<view_id>", methods=["PUT"])
@jwt_required()
@permission_required("collections.manage")
def update_filter_view_route(collection_id, view_id):
    data = request.get_json(silent=True) or {}
    view = update_filter_view(
        collection_id=collection_id,
        view_id=view_id,
        actor_id=current_actor(),
        data=data,
    )
    return jsonify(normalize_filter_view(view))


@v1_bp.route("/collections/<collection_id>/filter-views/<view_id>", methods=["DELETE"])
@jwt_required()
@permission_required("collections.manage")
def delete_filter_view_route(collection_id, view_id):
    delete_filter_view(collection_id=collection_id, view_id=view_id, actor_id=current_actor())
    return jsonify({"message": "Filter view deleted"}), 200
