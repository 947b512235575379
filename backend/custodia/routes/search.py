# Overview: Flask API routes for ranked search; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..services import search_service

search_bp = Blueprint("search", __name__, url_prefix="/api/search")


@search_bp.get("/classify")
def classify_route():
    """
    Best field for a free-text query.

    Returns {"field": str | null, "match": {...} | null}.
    """
    corpus = search_service.get_corpus()
    match = search_service.classify_match(request.args.get("q"), corpus)
    return jsonify({
        "field": match.field if match else None,
        "match": match.to_dict() if match else None,
    }), 200


@search_bp.get("/suggest")
def suggest_route():
    corpus = search_service.get_corpus()
    suggestions = search_service.suggest(request.args.get("q"), corpus)
    return jsonify({"items": [s.to_dict() for s in suggestions]}), 200
