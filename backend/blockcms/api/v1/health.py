from flask import jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from blockcms.extensions import db
from . import v1_bp


@v1_bp.route('/health', methods=['GET'])
def health_check():
    try:
        db.session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as exc:
        db.session.rollback()
        database = f"unavailable ({exc.__class__.__name__})"

    status = "ok" if database == "ok" else "degraded"
    return jsonify({
        "status": status,
        "service": "blockcms",
        "database": database,
    }), 200 if status == "ok" else 503
