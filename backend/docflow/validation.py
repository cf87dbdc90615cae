from __future__ import annotations

from datetime import date
from typing import Any

from docflow.errors import ValidationError
from docflow.time_utils import parse_iso_date


# Cap on ids accepted by one batch request
MAX_BATCH_SIZE = 500

MAX_SUBJECT_LENGTH = 2000
MAX_COMMENT_LENGTH = 5000


def coerce_int(value: Any, field_name: str) -> int:
    """
    Strict integer coercion for JSON / form input.

    Rejects bools, floats, decimals and scientific notation.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field_name} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field_name} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field_name} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field_name} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field_name} must be an integer, not a decimal")
    raise ValidationError(f"{field_name} must be an integer")


def coerce_date(value: Any, field_name: str) -> date:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_date(value)
        except ValueError:
            raise ValidationError(f"{field_name} must be an ISO-8601 date (YYYY-MM-DD)")
        if parsed is not None:
            return parsed
    raise ValidationError(f"{field_name} must be an ISO-8601 date (YYYY-MM-DD)")


def require_text(payload: dict, field_name: str, *, max_length: int) -> str:
    value = payload.get(field_name)
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    text = str(value).strip()
    if len(text) > max_length:
        raise ValidationError(f"{field_name} must be at most {max_length} characters")
    return text


def parse_document_ids(payload: dict) -> list[int]:
    """
    Validate the "document_ids" list of a batch request.

    Order is preserved and duplicates are dropped.
    """
    raw = payload.get("document_ids")
    if not isinstance(raw, list) or not raw:
        raise ValidationError("document_ids must be a non-empty list")
    if len(raw) > MAX_BATCH_SIZE:
        raise ValidationError(f"document_ids accepts at most {MAX_BATCH_SIZE} ids")

    ids: list[int] = []
    for item in raw:
        doc_id = coerce_int(item, "document_ids[]")
        if doc_id < 1:
            raise ValidationError("document_ids[] must be positive")
        if doc_id not in ids:
            ids.append(doc_id)
    return ids


def parse_new_document(payload: dict) -> dict:
    """Validate the metadata part of a draft upload."""
    branch_ba_code = payload.get("branch_ba_code")
    if branch_ba_code is None:
        raise ValidationError("branch_ba_code is required")

    mt_date = payload.get("mt_date")
    if not mt_date:
        raise ValidationError("mt_date is required")

    month_year = payload.get("month_year")
    return {
        "branch_ba_code": coerce_int(branch_ba_code, "branch_ba_code"),
        "mt_number": require_text(payload, "mt_number", max_length=64),
        "mt_date": coerce_date(mt_date, "mt_date"),
        "subject": require_text(payload, "subject", max_length=MAX_SUBJECT_LENGTH),
        "month_year": str(month_year).strip() if month_year else None,
    }
