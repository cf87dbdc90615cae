# Overview: Flask API routes for the disbursement round; batch set-date, confirm and mark-paid.

"""
Disbursement routes.

- GET  /api/disbursements/round        documents awaiting confirm / payment
- POST /api/disbursements/set-date     {"document_ids": [...], "disbursement_date": "YYYY-MM-DD"}
- POST /api/disbursements/confirm      {"document_ids": [...]}
- POST /api/disbursements/mark-paid    {"document_ids": [...]}

Batch requests are all-or-nothing: either every listed document changes or
none does, and a failure names every offending document id.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, error_response
from ..errors import ValidationError
from ..services import document_service
from ..validation import coerce_date, parse_document_ids


disbursements_bp = Blueprint("disbursements", __name__, url_prefix="/api/disbursements")


def _batch_response(result):
    if not result.ok:
        return error_response(result.error)
    payload = {
        "documents": [d.to_dict() for d in result.value],
        "count": len(result.value),
    }
    if result.warnings:
        payload["warnings"] = result.warnings
    return jsonify(payload)


@disbursements_bp.get("/round")
@require_auth
def disbursement_round_route():
    result = document_service.list_disbursement_round(g.current_user.id)
    if not result.ok:
        return error_response(result.error)
    return jsonify({"documents": [d.to_dict() for d in result.value], "count": len(result.value)})


@disbursements_bp.post("/set-date")
@require_auth
def set_date_route():
    data = request.get_json(silent=True) or {}
    try:
        document_ids = parse_document_ids(data)
        if not data.get("disbursement_date"):
            raise ValidationError("disbursement_date is required")
        disbursement_date = coerce_date(data["disbursement_date"], "disbursement_date")

        result = document_service.set_disbursement_date(
            document_ids,
            disbursement_date,
            g.current_user.id,
            meta=g.request_meta,
        )
    except ValidationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to set disbursement date")
        return jsonify({"error": "Internal server error"}), 500

    return _batch_response(result)


@disbursements_bp.post("/confirm")
@require_auth
def confirm_route():
    data = request.get_json(silent=True) or {}
    try:
        document_ids = parse_document_ids(data)
        result = document_service.confirm_disbursement(document_ids, g.current_user.id, meta=g.request_meta)
    except ValidationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to confirm disbursement")
        return jsonify({"error": "Internal server error"}), 500

    return _batch_response(result)


@disbursements_bp.post("/mark-paid")
@require_auth
def mark_paid_route():
    data = request.get_json(silent=True) or {}
    try:
        document_ids = parse_document_ids(data)
        result = document_service.mark_paid(document_ids, g.current_user.id, meta=g.request_meta)
    except ValidationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to mark disbursement paid")
        return jsonify({"error": "Internal server error"}), 500

    return _batch_response(result)
