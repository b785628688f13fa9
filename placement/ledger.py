"""Application ledger: owns every application and all of its status transitions.

Transitions::

    PENDING    -> SUCCESSFUL | UNSUCCESSFUL | WITHDRAWN
    SUCCESSFUL -> CONFIRMED | WITHDRAWN
    CONFIRMED  -> WITHDRAWN

UNSUCCESSFUL and WITHDRAWN are terminal. Every operation validates completely
before it touches any field, so a raised error leaves applications and
postings unchanged.

Each transition holds the student lock and then the posting lock of the
application it changes. The two confirm cascades hold one of those, so they
never interleave with a transition on the same application.
"""
from __future__ import annotations

import re
import threading

from placement.config import Limits
from placement.eligibility import EligibilityPolicy, MajorEligibilityPolicy
from placement.errors import (
    ApplicationLimitExceededError,
    CapacityExceededError,
    DuplicateApplicationError,
    InvalidStateTransitionError,
    NotEligibleError,
    NotFoundError,
)
from placement.locks import KeyedLocks, posting_key, student_key
from placement.log import get_logger
from placement.models import Application, ApplicationStatus, Posting
from placement.slots import SlotAllocator
from placement.stores import AccountStore, ApplicationStore, PostingStore
from placement.waitlist import WaitlistNotifier

log = get_logger(__name__)

_ID_RE = re.compile(r"^APP-(\d+)$")


class ApplicationLedger:
    def __init__(
        self,
        postings: PostingStore,
        accounts: AccountStore,
        slots: SlotAllocator,
        waitlist: WaitlistNotifier,
        *,
        policy: EligibilityPolicy | None = None,
        limits: Limits | None = None,
        locks: KeyedLocks | None = None,
        store: ApplicationStore | None = None,
    ) -> None:
        self.postings = postings
        self.accounts = accounts
        self.slots = slots
        self.waitlist = waitlist
        self.policy = policy or MajorEligibilityPolicy()
        self.limits = limits or Limits()
        self.locks = locks or KeyedLocks()
        self._apps: dict[str, Application] = {}
        self.store = store
        self._registry = threading.Lock()
        self._io = threading.Lock()
        self._seq = 0

    # --- Queries ---

    def get(self, app_id: str) -> Application:
        app = self._apps.get(app_id)
        if app is None:
            raise NotFoundError(f"application {app_id} does not exist")
        return app

    def all(self) -> list[Application]:
        with self._registry:
            return list(self._apps.values())

    def for_student(self, student_id: str) -> list[Application]:
        return [a for a in self.all() if a.student_id == student_id]

    def for_posting(self, posting_id: str) -> list[Application]:
        return [a for a in self.all() if a.posting_id == posting_id]

    def active_count(self, student_id: str) -> int:
        return sum(1 for a in self.for_student(student_id) if a.is_active)

    def pending_withdrawals(self) -> list[Application]:
        return [a for a in self.all() if a.withdrawal_requested and not a.is_terminal]

    def load(self, applications: list[Application]) -> None:
        """Bootstrap from storage; new ids continue after the highest loaded one."""
        with self._registry:
            for app in applications:
                self._apps[app.id] = app
                m = _ID_RE.match(app.id)
                if m:
                    self._seq = max(self._seq, int(m.group(1)))
        log.info("Loaded %d applications", len(applications))

    def _save(self) -> None:
        if self.store is None:
            return
        with self._io:
            self.store.save_all(self.all())

    def _next_id(self) -> str:
        self._seq += 1
        return f"APP-{self._seq:05d}"

    def _posting_for(self, app: Application) -> Posting:
        return self.postings.require(app.posting_id)

    # --- Transitions ---

    def submit(self, student_id: str, posting_id: str) -> Application:
        student = self.accounts.get_student(student_id)
        posting = self.postings.require(posting_id)

        with self.locks.hold(student_key(student_id), posting_key(posting_id)):
            mine = self.for_student(student_id)
            if any(a.posting_id == posting_id for a in mine):
                raise DuplicateApplicationError(
                    f"{student_id} has already applied to {posting_id}"
                )
            if not self.policy.is_eligible(student, posting):
                raise NotEligibleError(
                    f"{posting_id} prefers major {posting.preferred_major!r}, student majors in {student.major!r}"
                )
            active = sum(1 for a in mine if a.is_active)
            if active >= self.limits.max_active_applications:
                raise ApplicationLimitExceededError(
                    f"{student_id} already has {active} active applications "
                    f"(limit {self.limits.max_active_applications})"
                )
            if self.slots.remaining(posting) == 0:
                raise CapacityExceededError(f"{posting_id} has no slots remaining; consider the waitlist")

            with self._registry:
                app = Application(id=self._next_id(), student_id=student_id, posting_id=posting_id)
                self._apps[app.id] = app

        self._save()
        log.info("Application %s submitted: %s → %s", app.id, student_id, posting_id)
        return app

    def approve(self, app_id: str) -> Application:
        app = self.get(app_id)
        posting = self._posting_for(app)
        with self.locks.hold(student_key(app.student_id), posting_key(posting.id)):
            if app.status != ApplicationStatus.PENDING:
                raise InvalidStateTransitionError(
                    f"cannot approve {app_id} from {app.status.value}"
                )
            if self.slots.remaining(posting) == 0:
                raise CapacityExceededError(f"{posting.id} has no slots remaining")
            app.status = ApplicationStatus.SUCCESSFUL
        self._save()
        log.info("Application %s approved", app_id)
        return app

    def reject(self, app_id: str) -> Application:
        app = self.get(app_id)
        with self.locks.hold(student_key(app.student_id), posting_key(app.posting_id)):
            if app.status != ApplicationStatus.PENDING:
                raise InvalidStateTransitionError(
                    f"cannot reject {app_id} from {app.status.value}"
                )
            app.status = ApplicationStatus.UNSUCCESSFUL
        self._save()
        log.info("Application %s rejected", app_id)
        return app

    def confirm(self, app_id: str) -> list[Application]:
        """Accept a successful offer; returns the applications withdrawn as a result.

        The student's other active applications are withdrawn first. If the
        posting has no slots left afterwards, every remaining active
        application to that posting is withdrawn as well.
        """
        app = self.get(app_id)
        posting = self._posting_for(app)

        with self.locks.hold(student_key(app.student_id), posting_key(posting.id)):
            if app.status != ApplicationStatus.SUCCESSFUL:
                raise InvalidStateTransitionError(
                    f"cannot confirm {app_id} from {app.status.value}"
                )
            mine = self.for_student(app.student_id)
            if any(a.status == ApplicationStatus.CONFIRMED for a in mine):
                raise InvalidStateTransitionError(
                    f"{app.student_id} already holds a confirmed placement"
                )
            if self.slots.remaining(posting) == 0:
                raise CapacityExceededError(f"{posting.id} has no slots left to confirm")

            self.slots.decrement(posting)
            app.status = ApplicationStatus.CONFIRMED
            app.withdrawal_requested = False

            cascaded = [a for a in mine if a.id != app.id and a.is_active]
            for other in cascaded:
                self._withdraw(other)

            if self.slots.remaining(posting) == 0:
                closed = [a for a in self.for_posting(posting.id) if a.id != app.id and a.is_active]
                for other in closed:
                    self._withdraw(other)
                cascaded.extend(closed)

        self._save()
        log.info(
            "Application %s confirmed (%d other application(s) withdrawn)", app_id, len(cascaded)
        )
        return cascaded

    def request_withdrawal(self, app_id: str) -> Application:
        app = self.get(app_id)
        with self.locks.hold(student_key(app.student_id), posting_key(app.posting_id)):
            if app.is_terminal:
                raise InvalidStateTransitionError(
                    f"{app_id} is already closed ({app.status.value})"
                )
            app.withdrawal_requested = True
        self._save()
        log.info("Withdrawal requested for %s (%s)", app_id, app.status.value)
        return app

    def resolve_withdrawal(self, app_id: str, approve: bool) -> Application:
        app = self.get(app_id)
        posting = self._posting_for(app)
        freed = False

        with self.locks.hold(student_key(app.student_id), posting_key(posting.id)):
            if not app.withdrawal_requested or app.is_terminal:
                raise InvalidStateTransitionError(f"{app_id} has no pending withdrawal request")
            if approve:
                prior = app.status
                if prior == ApplicationStatus.CONFIRMED:
                    self.slots.increment(posting)
                    freed = True
                self._withdraw(app)
            else:
                app.withdrawal_requested = False

        self._save()
        if freed:
            self.waitlist.on_slot_freed(posting.id)
        log.info("Withdrawal for %s %s", app_id, "approved" if approve else "denied")
        return app

    @staticmethod
    def _withdraw(app: Application) -> None:
        app.status = ApplicationStatus.WITHDRAWN
        app.withdrawal_requested = False
