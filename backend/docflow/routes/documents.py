# Overview: Flask API routes for documents; parses input and returns JSON responses.

"""
Document routes.

- GET    /api/documents                         list visible documents
- POST   /api/documents                         upload a draft (multipart)
- GET    /api/documents/:id                     one document with attachments
- GET    /api/documents/:id/file                download the main PDF
- GET    /api/documents/:id/history             status history
- POST   /api/documents/:id/actions/:action     lifecycle action
- POST   /api/documents/:id/receive-paper       stamp original paper receipt
- DELETE /api/documents/:id                     delete a draft
- GET    /api/documents/:id/comments            list comments
- POST   /api/documents/:id/comments            add a comment
- POST   /api/documents/:id/emendations         attach an emendation (multipart)
- POST   /api/documents/:id/additional-files    attach/replace an item (multipart)
- POST   /api/documents/:id/additional-files/:item/verify

SECURITY:
- All routes require a bearer session
- The acting user is always g.current_user, never a request field
- Authorization is decided by the services (access gate), per call
"""

from flask import Blueprint, request, jsonify, g, current_app, send_file
from io import BytesIO

from ..decorators import require_auth, error_response
from ..errors import ValidationError
from ..services import document_service
from ..validation import coerce_date, coerce_int, parse_new_document


documents_bp = Blueprint("documents", __name__, url_prefix="/api/documents")


def _document_detail(document) -> dict:
    data = document.to_dict()
    data["emendation_files"] = [f.to_dict() for f in document.emendation_files]
    data["additional_files"] = [f.to_dict() for f in document.additional_files]
    return data


def _with_warnings(payload: dict, result) -> dict:
    if result.warnings:
        payload["warnings"] = result.warnings
    return payload


def _uploaded_file():
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise ValidationError("file is required")
    return upload.read(), upload.filename


@documents_bp.get("")
@require_auth
def list_documents_route():
    """
    Query params:
    - branch_code: int
    - status: str
    - mt_number: substring match
    - limit / offset
    """
    try:
        branch_code = request.args.get("branch_code")
        result = document_service.list_documents(
            g.current_user.id,
            branch_code=coerce_int(branch_code, "branch_code") if branch_code else None,
            status=request.args.get("status") or None,
            mt_number=request.args.get("mt_number") or None,
            limit=request.args.get("limit", document_service.DEFAULT_PAGE_SIZE, type=int),
            offset=request.args.get("offset", 0, type=int),
        )
    except ValidationError as e:
        return error_response(e)

    if not result.ok:
        return error_response(result.error)

    rows, total = result.value
    return jsonify({"documents": [d.to_dict() for d in rows], "count": len(rows), "total": total})


@documents_bp.post("")
@require_auth
def create_document_route():
    """Multipart form: file + branch_ba_code, mt_number, mt_date, subject, month_year."""
    try:
        metadata = parse_new_document(request.form.to_dict())
        file_data, filename = _uploaded_file()

        result = document_service.create_draft(
            user_id=g.current_user.id,
            metadata=metadata,
            file_data=file_data,
            original_filename=filename,
            meta=g.request_meta,
        )
    except ValidationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create document")
        return jsonify({"error": "Internal server error"}), 500

    if not result.ok:
        return error_response(result.error)
    return jsonify(_with_warnings({"document": result.value.to_dict()}, result)), 201


@documents_bp.get("/<int:document_id>")
@require_auth
def get_document_route(document_id: int):
    result = document_service.get_document(document_id, g.current_user.id)
    if not result.ok:
        return error_response(result.error)
    return jsonify({"document": _document_detail(result.value)})


@documents_bp.get("/<int:document_id>/file")
@require_auth
def download_document_route(document_id: int):
    result = document_service.read_document_file(document_id, g.current_user.id)
    if not result.ok:
        return error_response(result.error)

    data, filename = result.value
    return send_file(
        BytesIO(data),
        mimetype="application/pdf",
        as_attachment=False,
        download_name=filename,
    )


@documents_bp.get("/<int:document_id>/history")
@require_auth
def status_history_route(document_id: int):
    result = document_service.get_status_history(document_id, g.current_user.id)
    if not result.ok:
        return error_response(result.error)
    return jsonify({"history": [h.to_dict() for h in result.value]})


@documents_bp.post("/<int:document_id>/actions/<action>")
@require_auth
def document_action_route(document_id: int, action: str):
    """
    Run a lifecycle action on one document.

    Request body (optional):
    {
        "comment": "note stored in status history",
        "disbursement_date": "YYYY-MM-DD"   // set_disbursement_date only
    }

    Error responses:
        400: Validation error or unmet precondition
        403: Branch or permission denied
        404: Document not found
        409: Action not legal from the current state
    """
    data = request.get_json(silent=True) or {}
    try:
        disbursement_date = None
        if data.get("disbursement_date"):
            disbursement_date = coerce_date(data["disbursement_date"], "disbursement_date")

        result = document_service.apply_action(
            document_id,
            action,
            g.current_user.id,
            disbursement_date=disbursement_date,
            comment=(data.get("comment") or None),
            meta=g.request_meta,
        )
    except ValidationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to apply %s to document %s", action, document_id)
        return jsonify({"error": "Internal server error"}), 500

    if not result.ok:
        return error_response(result.error)
    if result.value is None:
        return jsonify(_with_warnings({"deleted": True, "document_id": document_id}, result))
    return jsonify(_with_warnings({"document": result.value.to_dict()}, result))


@documents_bp.post("/<int:document_id>/receive-paper")
@require_auth
def receive_paper_route(document_id: int):
    """Stamp today's local date as the original-paper receipt date."""
    try:
        result = document_service.receive_paper(document_id, g.current_user.id, meta=g.request_meta)
    except Exception:
        current_app.logger.exception("Failed to receive paper for document %s", document_id)
        return jsonify({"error": "Internal server error"}), 500

    if not result.ok:
        return error_response(result.error)
    return jsonify(_with_warnings({"document": result.value.to_dict()}, result))


@documents_bp.delete("/<int:document_id>")
@require_auth
def delete_draft_route(document_id: int):
    result = document_service.delete_draft(document_id, g.current_user.id, meta=g.request_meta)
    if not result.ok:
        return error_response(result.error)
    return jsonify(_with_warnings({"deleted": True, "document_id": document_id}, result))


# =============================================================================
# COMMENTS
# =============================================================================

@documents_bp.get("/<int:document_id>/comments")
@require_auth
def list_comments_route(document_id: int):
    result = document_service.list_comments(document_id, g.current_user.id)
    if not result.ok:
        return error_response(result.error)
    return jsonify({"comments": [c.to_dict() for c in result.value]})


@documents_bp.post("/<int:document_id>/comments")
@require_auth
def add_comment_route(document_id: int):
    data = request.get_json(silent=True) or {}
    result = document_service.add_comment(
        document_id,
        g.current_user.id,
        data.get("content") or "",
        meta=g.request_meta,
    )
    if not result.ok:
        return error_response(result.error)
    return jsonify({"comment": result.value.to_dict()}), 201


# =============================================================================
# ATTACHMENTS
# =============================================================================

@documents_bp.post("/<int:document_id>/emendations")
@require_auth
def attach_emendation_route(document_id: int):
    try:
        file_data, filename = _uploaded_file()
        result = document_service.attach_emendation(
            document_id,
            g.current_user.id,
            file_data=file_data,
            original_filename=filename,
            meta=g.request_meta,
        )
    except ValidationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to attach emendation to document %s", document_id)
        return jsonify({"error": "Internal server error"}), 500

    if not result.ok:
        return error_response(result.error)
    return jsonify({"emendation_file": result.value.to_dict()}), 201


@documents_bp.post("/<int:document_id>/additional-files")
@require_auth
def attach_additional_file_route(document_id: int):
    """Multipart form: file + item_index, item_name, optional due_date."""
    form = request.form
    try:
        if form.get("item_index") is None:
            raise ValidationError("item_index is required")
        item_index = coerce_int(form.get("item_index"), "item_index")
        due_date = coerce_date(form["due_date"], "due_date") if form.get("due_date") else None
        file_data, filename = _uploaded_file()

        result = document_service.attach_additional_file(
            document_id,
            g.current_user.id,
            item_index=item_index,
            item_name=form.get("item_name") or "",
            file_data=file_data,
            original_filename=filename,
            due_date=due_date,
            meta=g.request_meta,
        )
    except ValidationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to attach additional file to document %s", document_id)
        return jsonify({"error": "Internal server error"}), 500

    if not result.ok:
        return error_response(result.error)
    return jsonify({"additional_file": result.value.to_dict()}), 201


@documents_bp.post("/<int:document_id>/additional-files/<int:item_index>/verify")
@require_auth
def verify_additional_file_route(document_id: int, item_index: int):
    """Request body: {"is_verified": true|false}"""
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get("is_verified"), bool):
        return error_response(ValidationError("is_verified must be true or false"))

    result = document_service.verify_additional_file(
        document_id,
        item_index,
        g.current_user.id,
        is_verified=data["is_verified"],
        meta=g.request_meta,
    )
    if not result.ok:
        return error_response(result.error)
    return jsonify({"additional_file": result.value.to_dict()})
