# Overview: Flask API routes for directors and areas; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..decorators import require_actor
from ..services import director_service
from ..services.concurrency import commit_with_retry
from ..validation import ValidationError, NotFoundError, require_payload, optional_text

directors_bp = Blueprint("directors", __name__, url_prefix="/api/directors")
areas_bp = Blueprint("areas", __name__, url_prefix="/api/areas")


@directors_bp.get("")
def list_directors_route():
    return jsonify({"items": [p.to_dict() for p in director_service.list_directors()]}), 200


@directors_bp.get("/resolve")
def resolve_director_route():
    """
    Resolve a custodian name to a director with position and areas.

    Always 200; the "status" field says RESOLVED, INCOMPLETE or NOT_FOUND.
    """
    resolution = director_service.resolve_director(request.args.get("name"))
    return jsonify(resolution.to_dict()), 200


@directors_bp.get("/suggest")
def suggest_director_route():
    profile = director_service.suggest_director(request.args.get("q"))
    return jsonify({"director": profile.to_dict() if profile else None}), 200


@directors_bp.post("/<int:director_id>/complete")
@require_actor
def complete_director_route(director_id: int):
    """
    Give an incomplete director one area and a position.

    Request body:
    {
        "area": str,       # created when it does not exist yet
        "position": str
    }

    Replaces all existing area links of the director.
    """
    try:
        payload = require_payload(request.get_json(silent=True))
        profile = director_service.complete_director(
            director_id,
            optional_text(payload, "area"),
            optional_text(payload, "position"),
            actor=g.actor,
        )
        commit_with_retry()
        return jsonify(profile.to_dict()), 200
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Director completion failed")
        return jsonify({"error": "Internal server error"}), 500


@areas_bp.get("")
def list_areas_route():
    return jsonify({"items": [a.to_dict() for a in director_service.list_areas()]}), 200
