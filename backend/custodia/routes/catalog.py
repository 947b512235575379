# Overview: Flask API routes for the asset catalog; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..decorators import require_actor
from ..services import catalog_service, custody_service, search_service
from ..services.concurrency import commit_with_retry
from ..time_utils import parse_iso_date
from ..validation import ValidationError, NotFoundError, StoreError, require_payload, optional_text

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


def _truthy(raw: str | None) -> bool:
    return (raw or "").strip().lower() in ("1", "true", "yes", "on")


@catalog_bp.get("/assets")
def list_assets_route():
    """
    Catalog rows across the asset pools.

    Query params:
    - origin: INEA | ITEA | NO_LISTADO (optional)
    - available: true to hide unavailable and already-assigned assets
    - q: free-text term matched against every searchable field
    - filter: repeated, "field:term" (custodian filters also match holder)
    - sort / desc: sort field and direction
    - limit: max rows (default 500)
    """
    try:
        rows = catalog_service.list_assets(
            origin=request.args.get("origin") or None,
            available_only=_truthy(request.args.get("available")),
            sort=request.args.get("sort") or None,
            descending=_truthy(request.args.get("desc")),
        )
        filters = [search_service.ActiveFilter.parse(raw) for raw in request.args.getlist("filter")]
        rows = search_service.filter_assets(rows, filters, request.args.get("q"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    limit = request.args.get("limit", default=500, type=int)
    limit = max(1, min(limit, 5000))
    return jsonify({
        "items": [a.to_dict() for a in rows[:limit]],
        "total": len(rows),
        "limit": limit,
    }), 200


@catalog_bp.get("/stats")
def catalog_stats_route():
    return jsonify(catalog_service.catalog_stats()), 200


@catalog_bp.get("/<origin>/<int:asset_id>")
def get_asset_route(origin: str, asset_id: int):
    try:
        asset = catalog_service.get_asset(origin, asset_id)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(asset.to_dict()), 200


@catalog_bp.post("/<origin>/<int:asset_id>/write-off")
@require_actor
def write_off_route(origin: str, asset_id: int):
    """
    Write an asset off (status BAJA).

    Request body:
    {
        "cause": str,
        "decommissioned_on": "YYYY-MM-DD" (optional, defaults to today)
    }
    """
    try:
        payload = require_payload(request.get_json(silent=True))
        raw_date = optional_text(payload, "decommissioned_on")
        try:
            decommissioned_on = parse_iso_date(raw_date)
        except ValueError:
            raise ValidationError("decommissioned_on must be an ISO-8601 date")

        asset = custody_service.write_off_asset(
            origin,
            asset_id,
            cause=optional_text(payload, "cause"),
            decommissioned_on=decommissioned_on,
            actor=g.actor,
        )
        commit_with_retry()
        return jsonify(asset.to_dict()), 200
    except ValidationError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 404
    except StoreError as e:
        db.session.rollback()
        return jsonify({"error": str(e), "step": e.step}), 503
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Asset write-off failed")
        return jsonify({"error": "Internal server error"}), 500
