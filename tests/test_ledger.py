import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from placement.errors import (
    ApplicationLimitExceededError,
    CapacityExceededError,
    DuplicateApplicationError,
    InvalidStateTransitionError,
    NotEligibleError,
    NotFoundError,
    PlacementError,
)
from placement.ledger import ApplicationLedger
from placement.models import Application, ApplicationStatus, Inbox, PostingStatus
from placement.slots import SlotAllocator
from placement.stores import InMemoryApplicationStore
from placement.waitlist import WaitlistNotifier


def _offer(ledger, student_id, posting_id):
    app = ledger.submit(student_id, posting_id)
    ledger.approve(app.id)
    return app


class TestSubmit:
    def test_creates_pending_application_with_sequential_ids(self, ledger):
        first = ledger.submit("S1", "INT-0001")
        second = ledger.submit("S2", "INT-0001")
        assert first.status == ApplicationStatus.PENDING
        assert not first.withdrawal_requested
        assert (first.id, second.id) == ("APP-00001", "APP-00002")

    def test_duplicate_pair_rejected_whatever_the_status(self, ledger):
        """A second submit for the same pair fails even after the first is closed."""
        app = ledger.submit("S1", "INT-0001")
        with pytest.raises(DuplicateApplicationError):
            ledger.submit("S1", "INT-0001")
        ledger.reject(app.id)
        with pytest.raises(DuplicateApplicationError):
            ledger.submit("S1", "INT-0001")
        assert len(ledger.for_student("S1")) == 1

    def test_major_mismatch_not_eligible(self, ledger):
        with pytest.raises(NotEligibleError):
            ledger.submit("S1", "INT-0003")
        assert ledger.submit("S3", "INT-0003").status == ApplicationStatus.PENDING

    def test_active_cap(self, ledger):
        for pid in ("INT-0001", "INT-0002", "INT-0004"):
            ledger.submit("S1", pid)
        with pytest.raises(ApplicationLimitExceededError):
            ledger.submit("S1", "INT-0005")
        assert ledger.active_count("S1") == 3

    def test_terminal_applications_free_the_cap(self, ledger):
        apps = [ledger.submit("S1", pid) for pid in ("INT-0001", "INT-0002", "INT-0004")]
        ledger.reject(apps[0].id)
        assert ledger.submit("S1", "INT-0005").status == ApplicationStatus.PENDING

    def test_eligibility_checked_before_cap(self, ledger):
        for pid in ("INT-0001", "INT-0002", "INT-0004"):
            ledger.submit("S1", pid)
        with pytest.raises(NotEligibleError):
            ledger.submit("S1", "INT-0003")

    def test_cap_checked_before_capacity(self, ledger, store):
        for pid in ("INT-0001", "INT-0002", "INT-0004"):
            ledger.submit("S1", pid)
        store.get_by_id("INT-0005").confirmed_count = 1
        with pytest.raises(ApplicationLimitExceededError):
            ledger.submit("S1", "INT-0005")

    def test_unknown_student_or_posting(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.submit("nobody", "INT-0001")
        with pytest.raises(NotFoundError):
            ledger.submit("S1", "INT-9999")

    def test_failed_submit_leaves_ledger_untouched(self, ledger):
        ledger.submit("S1", "INT-0001")
        before = [(a.id, a.status) for a in ledger.all()]
        with pytest.raises(PlacementError):
            ledger.submit("S1", "INT-0001")
        assert [(a.id, a.status) for a in ledger.all()] == before

    def test_concurrent_submits_respect_cap(self, ledger):
        postings = ["INT-0001", "INT-0002", "INT-0004", "INT-0005"]

        def attempt(pid):
            try:
                ledger.submit("S1", pid)
                return True
            except ApplicationLimitExceededError:
                return False

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(attempt, postings))
        assert results.count(True) == 3
        assert ledger.active_count("S1") == 3


class TestFillingAPosting:
    def test_two_confirms_fill_a_two_slot_posting(self, ledger, store):
        posting = store.get_by_id("INT-0001")
        for sid in ("S1", "S2"):
            app = _offer(ledger, sid, "INT-0001")
            ledger.confirm(app.id)
        assert posting.status == PostingStatus.FILLED
        assert ledger.slots.remaining(posting) == 0
        assert posting.confirmed_count == posting.capacity

    def test_submit_after_filled_is_capacity_error(self, ledger, store):
        for sid in ("S1", "S2"):
            ledger.confirm(_offer(ledger, sid, "INT-0001").id)
        with pytest.raises(CapacityExceededError):
            ledger.submit("S4", "INT-0001")
        assert ledger.for_student("S4") == []


class TestApproveReject:
    def test_approve_and_reject_only_from_pending(self, ledger):
        a = ledger.submit("S1", "INT-0001")
        b = ledger.submit("S2", "INT-0001")
        assert ledger.approve(a.id).status == ApplicationStatus.SUCCESSFUL
        assert ledger.reject(b.id).status == ApplicationStatus.UNSUCCESSFUL
        with pytest.raises(InvalidStateTransitionError):
            ledger.approve(a.id)
        with pytest.raises(InvalidStateTransitionError):
            ledger.reject(b.id)

    def test_approve_needs_a_free_slot(self, ledger, store):
        app = ledger.submit("S1", "INT-0005")
        store.get_by_id("INT-0005").confirmed_count = 1
        with pytest.raises(CapacityExceededError):
            ledger.approve(app.id)
        assert app.status == ApplicationStatus.PENDING

    def test_approve_does_not_take_a_slot(self, ledger, store):
        _offer(ledger, "S1", "INT-0005")
        assert store.get_by_id("INT-0005").confirmed_count == 0

    def test_unknown_application(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.approve("APP-00042")


class TestConfirm:
    def test_requires_successful(self, ledger):
        app = ledger.submit("S1", "INT-0001")
        with pytest.raises(InvalidStateTransitionError):
            ledger.confirm(app.id)

    def test_withdraws_the_students_other_active_applications(self, ledger):
        keep = _offer(ledger, "S1", "INT-0001")
        other_offer = _offer(ledger, "S1", "INT-0002")
        pending = ledger.submit("S1", "INT-0005")

        cascaded = ledger.confirm(keep.id)

        assert keep.status == ApplicationStatus.CONFIRMED
        assert {a.id for a in cascaded} == {other_offer.id, pending.id}
        assert other_offer.status == ApplicationStatus.WITHDRAWN
        assert pending.status == ApplicationStatus.WITHDRAWN
        assert ledger.active_count("S1") == 0

    def test_leaves_terminal_applications_alone(self, ledger):
        rejected = ledger.submit("S1", "INT-0002")
        ledger.reject(rejected.id)
        keep = _offer(ledger, "S1", "INT-0001")
        assert ledger.confirm(keep.id) == []
        assert rejected.status == ApplicationStatus.UNSUCCESSFUL

    def test_filling_the_posting_withdraws_its_other_applicants(self, ledger, store):
        winner = _offer(ledger, "S1", "INT-0005")
        runner_up = _offer(ledger, "S2", "INT-0005")
        waiting = ledger.submit("S4", "INT-0005")

        cascaded = ledger.confirm(winner.id)

        assert store.get_by_id("INT-0005").status == PostingStatus.FILLED
        assert runner_up in cascaded and waiting in cascaded
        assert runner_up.status == ApplicationStatus.WITHDRAWN
        assert waiting.status == ApplicationStatus.WITHDRAWN

    def test_posting_with_slots_left_keeps_other_applicants(self, ledger):
        first = _offer(ledger, "S1", "INT-0002")
        second = _offer(ledger, "S2", "INT-0002")
        ledger.confirm(first.id)
        assert second.status == ApplicationStatus.SUCCESSFUL

    def test_at_most_one_confirmed_per_student(self, ledger):
        ledger.confirm(_offer(ledger, "S1", "INT-0001").id)
        later = _offer(ledger, "S1", "INT-0002")
        with pytest.raises(InvalidStateTransitionError):
            ledger.confirm(later.id)
        confirmed = [a for a in ledger.for_student("S1") if a.status == ApplicationStatus.CONFIRMED]
        assert len(confirmed) == 1

    def test_no_slot_left_is_capacity_error_and_changes_nothing(self, ledger, store):
        posting = store.get_by_id("INT-0005")
        posting.confirmed_count = 1
        ledger.load([Application(id="APP-00007", student_id="S2", posting_id="INT-0005",
                                 status=ApplicationStatus.SUCCESSFUL)])
        with pytest.raises(CapacityExceededError):
            ledger.confirm("APP-00007")
        assert ledger.get("APP-00007").status == ApplicationStatus.SUCCESSFUL
        assert posting.confirmed_count == 1


class TestWithdrawal:
    def test_request_then_approve(self, ledger):
        app = ledger.submit("S1", "INT-0001")
        ledger.request_withdrawal(app.id)
        assert app.withdrawal_requested
        assert ledger.pending_withdrawals() == [app]

        ledger.resolve_withdrawal(app.id, approve=True)
        assert app.status == ApplicationStatus.WITHDRAWN
        assert not app.withdrawal_requested
        assert ledger.pending_withdrawals() == []

    def test_deny_keeps_status(self, ledger):
        app = _offer(ledger, "S1", "INT-0001")
        ledger.request_withdrawal(app.id)
        ledger.resolve_withdrawal(app.id, approve=False)
        assert app.status == ApplicationStatus.SUCCESSFUL
        assert not app.withdrawal_requested

    def test_request_on_terminal_is_invalid(self, ledger):
        app = ledger.submit("S1", "INT-0001")
        ledger.reject(app.id)
        with pytest.raises(InvalidStateTransitionError):
            ledger.request_withdrawal(app.id)

    def test_resolve_without_request_is_invalid(self, ledger):
        app = ledger.submit("S1", "INT-0001")
        with pytest.raises(InvalidStateTransitionError):
            ledger.resolve_withdrawal(app.id, approve=True)
        assert app.status == ApplicationStatus.PENDING

    def test_withdrawing_a_confirmed_placement_frees_the_slot(self, ledger, store):
        posting = store.get_by_id("INT-0005")
        app = _offer(ledger, "S1", "INT-0005")
        ledger.confirm(app.id)
        ledger.waitlist.join("S2", "INT-0005")

        ledger.request_withdrawal(app.id)
        ledger.resolve_withdrawal(app.id, approve=True)

        assert ledger.slots.remaining(posting) == 1
        assert posting.status == PostingStatus.FILLED
        messages = [n.message for n in ledger.waitlist.inbox.for_user("S2")]
        assert messages[-1] == "A slot just opened for QA Intern @ Acme"

    def test_withdrawing_an_unconfirmed_application_notifies_nobody(self, ledger):
        app = ledger.submit("S1", "INT-0005")
        ledger.waitlist.join("S2", "INT-0005")
        ledger.request_withdrawal(app.id)
        ledger.resolve_withdrawal(app.id, approve=True)
        assert len(ledger.waitlist.inbox.for_user("S2")) == 1


def test_load_continues_the_id_sequence(ledger):
    ledger.load([Application(id="APP-00041", student_id="S3", posting_id="INT-0003")])
    assert ledger.get("APP-00041").student_id == "S3"
    assert ledger.submit("S1", "INT-0001").id == "APP-00042"


class TestLocking:
    def test_confirm_cascade_waits_for_an_approve_in_progress(self, ledger, monkeypatch):
        accepted = _offer(ledger, "S1", "INT-0001")
        pending = ledger.submit("S1", "INT-0002")
        real_remaining = ledger.slots.remaining
        seen = {}

        def remaining_with_concurrent_confirm(posting):
            # first call happens inside approve(pending), after its PENDING check
            if "thread" not in seen:
                t = threading.Thread(target=ledger.confirm, args=(accepted.id,))
                seen["thread"] = t
                t.start()
                t.join(timeout=0.3)
                seen["finished_during_approve"] = not t.is_alive()
            return real_remaining(posting)

        monkeypatch.setattr(ledger.slots, "remaining", remaining_with_concurrent_confirm)
        ledger.approve(pending.id)
        seen["thread"].join(timeout=5)

        assert seen["finished_during_approve"] is False
        assert accepted.status == ApplicationStatus.CONFIRMED
        assert pending.status == ApplicationStatus.WITHDRAWN

    def test_withdrawn_application_stays_withdrawn(self, ledger):
        keep = _offer(ledger, "S1", "INT-0001")
        other = ledger.submit("S1", "INT-0002")
        ledger.confirm(keep.id)
        with pytest.raises(InvalidStateTransitionError):
            ledger.approve(other.id)
        with pytest.raises(InvalidStateTransitionError):
            ledger.reject(other.id)
        assert other.status == ApplicationStatus.WITHDRAWN


def test_every_transition_is_saved(store, accounts):
    saved = InMemoryApplicationStore()
    slots = SlotAllocator(store)
    ledger = ApplicationLedger(
        store, accounts, slots, WaitlistNotifier(store, Inbox()), store=saved,
    )
    app = ledger.submit("S1", "INT-0005")
    assert [(a.id, a.status) for a in saved.get_all()] == [(app.id, ApplicationStatus.PENDING)]
    ledger.approve(app.id)
    ledger.confirm(app.id)
    ledger.request_withdrawal(app.id)
    assert saved.get_all()[0].withdrawal_requested
    ledger.resolve_withdrawal(app.id, approve=True)
    assert [(a.status, a.withdrawal_requested) for a in saved.get_all()] == [
        (ApplicationStatus.WITHDRAWN, False)
    ]
