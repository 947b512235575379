# Overview: Flask API routes for the change feed; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..services import change_event_service
from custodia.time_utils import parse_iso_datetime

"""
Time semantics:
- API accepts ISO-8601 datetimes with Z/offsets; backend normalizes to UTC-naive internally.
- since filtering is inclusive: occurred_at >= since.
"""

events_bp = Blueprint("events", __name__, url_prefix="/api/events")


@events_bp.get("")
def list_events_route():
    limit = request.args.get("limit", default=100, type=int)
    limit = max(1, min(limit, 500))

    try:
        since = parse_iso_datetime(request.args.get("since"))
    except ValueError:
        return jsonify({"error": "since must be an ISO-8601 datetime"}), 400

    events = change_event_service.list_change_events(
        event_type=request.args.get("event_type") or None,
        since=since,
        limit=limit,
    )
    return jsonify({"items": [e.to_dict() for e in events], "limit": limit}), 200
