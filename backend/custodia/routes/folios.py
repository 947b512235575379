# Overview: Flask API routes for folio previews; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..services import folio_service

folios_bp = Blueprint("folios", __name__, url_prefix="/api/folios")


@folios_bp.get("/preview")
def preview_folio_route():
    """
    Next folio for a document type, without claiming it.

    Query params:
    - type: RESGUARDO (default) | BAJA

    The response carries "warning" when the store was unreachable and a
    fallback folio was computed.
    """
    try:
        preview = folio_service.preview_folio(request.args.get("type") or folio_service.FOLIO_TYPE_CUSTODY)
    except folio_service.FolioError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(preview.to_dict()), 200
