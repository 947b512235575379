# Overview: Flask API routes for custody documents and decommissions; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..decorators import require_actor
from ..services import assignment_service, catalog_service, custody_service
from ..services.concurrency import commit_with_retry
from ..validation import (
    ValidationError,
    NotFoundError,
    StoreError,
    CustodyStoreError,
    PartialCommitError,
    AssignmentConflictError,
    IncompleteDirectorError,
    require_payload,
    optional_text,
    optional_string_list,
    require_int,
)

custody_bp = Blueprint("custody", __name__, url_prefix="/api/custody")
decommissions_bp = Blueprint("decommissions", __name__, url_prefix="/api/decommissions")


def _load_assets(items, key: str) -> list:
    """Resolve [{"origin", "id"}, ...] into fresh catalog assets."""
    if items is None:
        return []
    if not isinstance(items, list):
        raise ValidationError(f"{key} must be a list")
    assets = []
    seen = set()
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError(f"{key} entries must be objects")
        asset = catalog_service.get_catalog_asset(
            item.get("origin"), require_int(item.get("id"), f"{key}.id")
        )
        if asset.key in seen:
            continue
        seen.add(asset.key)
        assets.append(asset)
    return assets


def _load_selection(items) -> assignment_service.SelectionSession:
    session = assignment_service.SelectionSession(assets=tuple(_load_assets(items, "assets")))
    for item in items or []:
        holder = item.get("holder")
        if holder is not None and not isinstance(holder, str):
            raise ValidationError("assets.holder must be a string")
        if holder and holder.strip():
            key = f"{catalog_service.normalize_origin(item.get('origin'))}:{require_int(item.get('id'), 'assets.id')}"
            session = session.with_holder(key, holder)
    return session


def _error_response(e: Exception):
    """Map custody errors to (body, status); rolls back the session first."""
    db.session.rollback()
    if isinstance(e, AssignmentConflictError):
        return jsonify({"error": str(e), "conflict": e.outcome.to_dict()}), 400
    if isinstance(e, IncompleteDirectorError):
        return jsonify({"error": str(e), "missing_fields": e.missing_fields}), 400
    if isinstance(e, ValidationError):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, NotFoundError):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, CustodyStoreError):
        return jsonify({"error": str(e), "step": e.step, "asset": e.asset}), 503
    if isinstance(e, StoreError):
        return jsonify({"error": str(e), "step": e.step}), 503
    current_app.logger.exception("Custody request failed")
    return jsonify({"error": "Internal server error"}), 500


@custody_bp.post("/selection/validate")
def validate_selection_route():
    """
    Check whether candidates may join a selection.

    Request body:
    {
        "selection": [{"origin": str, "id": int}, ...],
        "candidates": [{"origin": str, "id": int}, ...]
    }

    One candidate runs the single-asset check; several run the batch check.
    """
    try:
        payload = require_payload(request.get_json(silent=True))
        selection = _load_assets(payload.get("selection"), "selection")
        candidates = _load_assets(payload.get("candidates"), "candidates")
        if not candidates:
            raise ValidationError("candidates cannot be empty")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    if len(candidates) == 1:
        outcome = assignment_service.can_join(candidates[0], selection)
    else:
        outcome = assignment_service.can_join_all(candidates, selection)
    return jsonify(outcome.to_dict()), 200


@custody_bp.post("")
@require_actor
def commit_custody_route():
    """
    Commit a custody document.

    Request body:
    {
        "assets": [{"origin": str, "id": int, "holder": str (optional)}, ...],
        "custodian": str,
        "area": str,
        "position": str,
        "holder": str (optional default holder),
        "atomic": bool (optional, defaults to CUSTODY_ATOMIC_COMMIT)
    }

    Returns:
        201: Document committed
        207: Best-effort commit, some assets failed (successful part kept)
        400: Invalid selection, conflict, or incomplete director
        404: Director or asset not found
        503: Store failure (nothing applied)
    """
    try:
        payload = require_payload(request.get_json(silent=True))
        atomic = payload.get("atomic")
        if atomic is None:
            atomic = bool(current_app.config.get("CUSTODY_ATOMIC_COMMIT", True))
        elif not isinstance(atomic, bool):
            raise ValidationError("atomic must be a boolean")

        document = custody_service.commit_custody(
            _load_selection(payload.get("assets")),
            custodian=optional_text(payload, "custodian"),
            area=optional_text(payload, "area"),
            position=optional_text(payload, "position"),
            holder=optional_text(payload, "holder") or None,
            actor=g.actor,
            atomic=atomic,
        )
        commit_with_retry()
        return jsonify(document.to_dict()), 201
    except PartialCommitError as e:
        try:
            commit_with_retry()
        except SQLAlchemyError as exc:
            current_app.logger.exception("Commit of partial custody document %s failed", e.document.folio)
            return _error_response(StoreError(f"Store failure during partial commit: {exc}", step="partial commit"))
        return jsonify({
            "error": str(e),
            "document": e.document.to_dict(),
            "failed": e.failed,
        }), 207
    except Exception as e:
        return _error_response(e)


@custody_bp.get("")
def list_custody_route():
    limit = request.args.get("limit", default=50, type=int)
    limit = max(1, min(limit, 500))
    groups = custody_service.list_custody_records(request.args.get("search"), limit=limit)
    return jsonify({"items": groups, "limit": limit}), 200


@custody_bp.get("/<folio>")
def get_custody_route(folio: str):
    """Document payload plus lifecycle state; document is null once fully decommissioned."""
    try:
        state = custody_service.custody_state(folio)
        document = None
        if state != custody_service.FULLY_DECOMMISSIONED:
            document = custody_service.get_custody_document(folio).to_dict()
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({
        "folio": folio,
        "state": state,
        "document": document,
        "decommissions": custody_service.list_decommission_records(folio),
    }), 200


@custody_bp.post("/<folio>/decommission")
@require_actor
def decommission_route(folio: str):
    """
    Decommission all or some assets of a custody document.

    Request body (optional):
    {
        "inventory_codes": [str, ...]   # omit for all
    }
    """
    try:
        payload = require_payload(request.get_json(silent=True))
        document = custody_service.decommission_custody(
            folio,
            optional_string_list(payload, "inventory_codes"),
            actor=g.actor,
        )
        commit_with_retry()
        body = document.to_dict()
        if document.unmatched_assets:
            body["warning"] = "Some assets could not be located and still show their custodian"
        return jsonify(body), 200
    except Exception as e:
        return _error_response(e)


@custody_bp.patch("/records/<int:record_id>/holder")
@require_actor
def update_holder_route(record_id: int):
    """
    Request body:
    {
        "holder": str | null
    }
    """
    try:
        payload = require_payload(request.get_json(silent=True))
        if "holder" not in payload:
            raise ValidationError("Missing required field: holder")
        record = custody_service.update_holder(record_id, optional_text(payload, "holder"), actor=g.actor)
        commit_with_retry()
        return jsonify(record.to_dict()), 200
    except Exception as e:
        return _error_response(e)


@decommissions_bp.get("")
def list_decommissions_route():
    limit = request.args.get("limit", default=50, type=int)
    limit = max(1, min(limit, 500))
    groups = custody_service.list_decommission_records(request.args.get("custody_folio"), limit=limit)
    return jsonify({"items": groups, "limit": limit}), 200


@decommissions_bp.get("/<folio>")
def get_decommission_route(folio: str):
    try:
        document = custody_service.get_decommission_document(folio)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(document.to_dict()), 200
