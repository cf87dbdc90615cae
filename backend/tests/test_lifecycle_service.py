"""
Document state machine rules, exercised on plain objects (no database).

Verifies:
- The primary lifecycle walks forward one step at a time
- Disbursement sub-state guards (date -> confirm -> pay)
- receive_paper stamps the given date once
- delete_draft ownership
- paid => confirmed => dated after every successful transition
"""

from datetime import date
from types import SimpleNamespace

import pytest

from docflow.errors import ErrorKind, InvalidTransition, PermissionDenied, PreconditionFailed, ValidationError
from docflow.permissions import DEFAULT_ROLE_PERMISSIONS
from docflow.services import lifecycle_service
from docflow.services.access_gate import DocumentAction
from docflow.services.permission_service import AccessProfile


TODAY = date(2024, 3, 1)  # Friday


def actor(role, user_id=10, home=None):
    return AccessProfile(
        user_id=user_id,
        username=role,
        roles=frozenset({role}),
        permissions=frozenset(DEFAULT_ROLE_PERMISSIONS[role]),
        home_branch_code=home,
    )


UPLOADER = actor("uploader")
DISTRICT = actor("district_manager", user_id=20)
ADMIN = actor("admin", user_id=30)


def make_doc(status="draft", disbursement_state="unset", **fields):
    values = dict(
        id=1,
        branch_ba_code=1061,
        status=status,
        disbursement_state=disbursement_state,
        disbursement_date=None,
        send_back_date=None,
        deadline_date=None,
        received_paper_doc_date=None,
        uploader_id=UPLOADER.user_id,
    )
    values.update(fields)
    return SimpleNamespace(**values)


def run(document, action, profile, **kwargs):
    plan = lifecycle_service.plan_transition(document, action, profile, today=TODAY, **kwargs)
    lifecycle_service.apply_plan(document, plan)
    assert lifecycle_service.disbursement_invariants_hold(document)
    return plan


class TestPrimaryLifecycle:

    def test_full_walk(self):
        document = make_doc()
        steps = [
            (DocumentAction.SUBMIT, "sent"),
            (DocumentAction.ACKNOWLEDGE, "acknowledged"),
            (DocumentAction.COMPLETE_ADDITIONAL_DOCS, "additional_docs_completed"),
            (DocumentAction.COMPLETE_VERIFICATION, "verification_completed"),
            (DocumentAction.MARK_ALL_CHECKED, "all_checked"),
            (DocumentAction.SEND_BACK_TO_DISTRICT, "sent_back_to_district"),
        ]
        for action, expected in steps:
            plan = run(document, action, UPLOADER)
            assert plan.status_changed
            assert document.status == expected

        run(document, DocumentAction.RECEIVE_PAPER, DISTRICT)
        assert document.status == "received"

    def test_cannot_skip_states(self):
        with pytest.raises(InvalidTransition) as exc:
            lifecycle_service.plan_transition(make_doc("sent"), DocumentAction.MARK_ALL_CHECKED, UPLOADER, today=TODAY)
        assert exc.value.current_state == "sent"
        assert exc.value.requested == "mark_all_checked"

    def test_cannot_go_backwards(self):
        with pytest.raises(InvalidTransition):
            lifecycle_service.plan_transition(make_doc("acknowledged"), DocumentAction.SUBMIT, UPLOADER, today=TODAY)

    def test_send_back_stamps_return_window(self):
        document = make_doc("all_checked")
        run(document, DocumentAction.SEND_BACK_TO_DISTRICT, UPLOADER)
        assert document.send_back_date == TODAY
        assert document.deadline_date == date(2024, 3, 8)

    def test_access_checked_before_state(self):
        with pytest.raises(PermissionDenied):
            lifecycle_service.plan_transition(
                make_doc("sent"), DocumentAction.SUBMIT, actor("branch_user", home=1061), today=TODAY
            )

    def test_notify_flags(self):
        plan = lifecycle_service.plan_transition(make_doc(), DocumentAction.SUBMIT, UPLOADER, today=TODAY)
        assert plan.notify
        plan = lifecycle_service.plan_transition(
            make_doc("verification_completed"), DocumentAction.MARK_ALL_CHECKED, UPLOADER, today=TODAY
        )
        assert not plan.notify

    def test_unknown_action(self):
        with pytest.raises(ValidationError):
            lifecycle_service.plan_transition(make_doc(), "teleport", UPLOADER, today=TODAY)

    def test_view_is_not_a_lifecycle_action(self):
        with pytest.raises(ValidationError):
            lifecycle_service.validate_action("view")


class TestReceivePaper:

    def test_stamps_today_once(self):
        document = make_doc("sent_back_to_district")
        run(document, DocumentAction.RECEIVE_PAPER, DISTRICT)
        assert document.received_paper_doc_date == TODAY

        with pytest.raises(PreconditionFailed):
            lifecycle_service.plan_transition(document, DocumentAction.RECEIVE_PAPER, DISTRICT, today=TODAY)

    @pytest.mark.parametrize("status", ["draft", "sent", "all_checked", "verification_completed"])
    def test_wrong_status(self, status):
        with pytest.raises(InvalidTransition):
            lifecycle_service.plan_transition(
                make_doc(status, branch_ba_code=1061), DocumentAction.RECEIVE_PAPER, ADMIN, today=TODAY
            )

    def test_uploader_cannot_receive(self):
        with pytest.raises(PermissionDenied):
            lifecycle_service.plan_transition(
                make_doc("sent_back_to_district"), DocumentAction.RECEIVE_PAPER, UPLOADER, today=TODAY
            )


class TestDisbursement:

    def test_date_confirm_pay(self):
        document = make_doc("all_checked")
        run(document, DocumentAction.SET_DISBURSEMENT_DATE, DISTRICT, disbursement_date=date(2024, 3, 15))
        assert document.disbursement_state == "date_set"

        run(document, DocumentAction.SET_DISBURSEMENT_DATE, DISTRICT, disbursement_date=date(2024, 3, 20))
        assert document.disbursement_date == date(2024, 3, 20)

        run(document, DocumentAction.CONFIRM_DISBURSEMENT, DISTRICT)
        assert document.disbursement_state == "confirmed"

        run(document, DocumentAction.MARK_PAID, DISTRICT)
        assert document.disbursement_state == "paid"

    def test_set_date_requires_all_checked(self):
        with pytest.raises(InvalidTransition):
            lifecycle_service.plan_transition(
                make_doc("sent_back_to_district"),
                DocumentAction.SET_DISBURSEMENT_DATE,
                DISTRICT,
                today=TODAY,
                disbursement_date=TODAY,
            )

    def test_set_date_requires_a_date(self):
        with pytest.raises(PreconditionFailed):
            lifecycle_service.plan_transition(
                make_doc("all_checked"), DocumentAction.SET_DISBURSEMENT_DATE, DISTRICT, today=TODAY
            )

    def test_date_frozen_after_confirm(self):
        document = make_doc("all_checked", "confirmed", disbursement_date=TODAY)
        with pytest.raises(InvalidTransition):
            lifecycle_service.plan_transition(
                document, DocumentAction.SET_DISBURSEMENT_DATE, DISTRICT, today=TODAY, disbursement_date=TODAY
            )

    def test_confirm_without_date(self):
        with pytest.raises(PreconditionFailed):
            lifecycle_service.plan_transition(
                make_doc("all_checked"), DocumentAction.CONFIRM_DISBURSEMENT, DISTRICT, today=TODAY
            )

    @pytest.mark.parametrize("state", ["confirmed", "paid"])
    def test_confirm_twice(self, state):
        document = make_doc("all_checked", state, disbursement_date=TODAY)
        with pytest.raises(InvalidTransition):
            lifecycle_service.plan_transition(document, DocumentAction.CONFIRM_DISBURSEMENT, DISTRICT, today=TODAY)

    @pytest.mark.parametrize("state", ["unset", "date_set"])
    def test_pay_before_confirm(self, state):
        document = make_doc("all_checked", state, disbursement_date=TODAY if state == "date_set" else None)
        with pytest.raises(PreconditionFailed):
            lifecycle_service.plan_transition(document, DocumentAction.MARK_PAID, DISTRICT, today=TODAY)

    def test_pay_twice(self):
        document = make_doc("all_checked", "paid", disbursement_date=TODAY)
        with pytest.raises(InvalidTransition):
            lifecycle_service.plan_transition(document, DocumentAction.MARK_PAID, DISTRICT, today=TODAY)

    def test_confirm_allowed_after_send_back(self):
        document = make_doc("sent_back_to_district", "date_set", disbursement_date=TODAY)
        run(document, DocumentAction.CONFIRM_DISBURSEMENT, DISTRICT)
        assert document.disbursement_state == "confirmed"

    def test_confirm_before_all_checked(self):
        document = make_doc("verification_completed", "date_set", disbursement_date=TODAY)
        with pytest.raises(InvalidTransition):
            lifecycle_service.plan_transition(document, DocumentAction.CONFIRM_DISBURSEMENT, DISTRICT, today=TODAY)

    def test_confirm_and_pay_after_paper_received(self):
        document = make_doc("sent_back_to_district", "date_set", disbursement_date=TODAY)
        run(document, DocumentAction.RECEIVE_PAPER, DISTRICT)

        run(document, DocumentAction.CONFIRM_DISBURSEMENT, DISTRICT)
        run(document, DocumentAction.MARK_PAID, DISTRICT)
        assert document.status == "received"
        assert document.disbursement_state == "paid"

    def test_transition_returns_result(self):
        result = lifecycle_service.transition(
            make_doc("all_checked"), DocumentAction.MARK_PAID, DISTRICT, today=TODAY
        )
        assert not result.ok
        assert result.kind == ErrorKind.PRECONDITION_FAILED

    def test_transition_reports_unknown_action(self):
        result = lifecycle_service.transition(make_doc(), "bogus", UPLOADER, today=TODAY)
        assert not result.ok
        assert result.kind == ErrorKind.VALIDATION_ERROR


class TestDeleteDraft:

    def test_owner_can_delete(self):
        plan = lifecycle_service.plan_transition(make_doc(), DocumentAction.DELETE_DRAFT, UPLOADER, today=TODAY)
        assert plan.delete

    def test_admin_can_delete_any_draft(self):
        plan = lifecycle_service.plan_transition(make_doc(uploader_id=999), DocumentAction.DELETE_DRAFT, ADMIN, today=TODAY)
        assert plan.delete

    def test_other_uploader_cannot_delete(self):
        with pytest.raises(PermissionDenied):
            lifecycle_service.plan_transition(
                make_doc(uploader_id=999), DocumentAction.DELETE_DRAFT, UPLOADER, today=TODAY
            )

    def test_submitted_document_cannot_be_deleted(self):
        with pytest.raises(InvalidTransition):
            lifecycle_service.plan_transition(make_doc("sent"), DocumentAction.DELETE_DRAFT, UPLOADER, today=TODAY)
