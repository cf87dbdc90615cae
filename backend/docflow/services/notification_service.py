# Overview: Outbound notifications for lifecycle events; delivery is pluggable and best-effort.

from __future__ import annotations

from enum import Enum
from typing import Protocol

from flask import current_app

from .access_gate import DocumentAction


class EventKind(str, Enum):
    DOCUMENT_SUBMITTED = "document_submitted"
    DOCUMENT_ACKNOWLEDGED = "document_acknowledged"
    ADDITIONAL_DOCS_COMPLETED = "additional_docs_completed"
    VERIFICATION_COMPLETED = "verification_completed"
    SENT_BACK_TO_DISTRICT = "sent_back_to_district"
    DUE_DATE_REMINDER = "due_date_reminder"


EVENT_BY_ACTION = {
    DocumentAction.SUBMIT: EventKind.DOCUMENT_SUBMITTED,
    DocumentAction.ACKNOWLEDGE: EventKind.DOCUMENT_ACKNOWLEDGED,
    DocumentAction.COMPLETE_ADDITIONAL_DOCS: EventKind.ADDITIONAL_DOCS_COMPLETED,
    DocumentAction.COMPLETE_VERIFICATION: EventKind.VERIFICATION_COMPLETED,
    DocumentAction.SEND_BACK_TO_DISTRICT: EventKind.SENT_BACK_TO_DISTRICT,
}

EXTENSION_KEY = "docflow_notifier"


class Notifier(Protocol):
    def notify(self, event_kind: EventKind, document, actor) -> None:
        ...


class LoggingNotifier:
    """Default notifier: records the event in the application log."""

    def notify(self, event_kind: EventKind, document, actor) -> None:
        current_app.logger.info(
            "notification %s: document=%s branch=%s actor=%s",
            event_kind.value,
            getattr(document, "id", None),
            getattr(document, "branch_ba_code", None),
            getattr(actor, "username", None),
        )


def get_notifier() -> Notifier:
    notifier = current_app.extensions.get(EXTENSION_KEY)
    if notifier is None:
        notifier = LoggingNotifier()
        current_app.extensions[EXTENSION_KEY] = notifier
    return notifier


def set_notifier(app, notifier: Notifier) -> None:
    app.extensions[EXTENSION_KEY] = notifier


def dispatch(event_kind: EventKind, document, actor) -> bool:
    """
    Send one notification. Never raises.

    Returns False when the notifier failed; the failure is logged.
    """
    try:
        get_notifier().notify(event_kind, document, actor)
    except Exception:
        current_app.logger.exception(
            "Notification %s failed for document %s",
            event_kind.value,
            getattr(document, "id", None),
        )
        return False
    return True


def dispatch_for_action(action: DocumentAction, document, actor) -> bool:
    event_kind = EVENT_BY_ACTION.get(DocumentAction(action))
    if event_kind is None:
        return True
    return dispatch(event_kind, document, actor)
