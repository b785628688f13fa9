"""
Placement session.

One ``PlacementContext`` per process or session wires the stores, clock and
settings into every component by reference:

    listing: catalog → open/visible + non-negotiables → filters → ranking
    apply:   year/level rule → ledger.submit (major policy, caps, capacity)
    decide:  ledger transitions → slot allocator → waitlist on a freed slot

Applications already in the application store are loaded into the ledger
on construction, and every transition writes them back.
"""
from __future__ import annotations

import functools
from typing import Any, Callable

from placement.catalog import PostingCatalog, ensure_rep_owns
from placement.config import Settings, load_settings
from placement.eligibility import (
    EligibilityPolicy,
    LevelRule,
    MajorEligibilityPolicy,
    YearLevelRule,
)
from placement.errors import NotEligibleError, PlacementError
from placement.filters import apply_filters
from placement.ledger import ApplicationLedger
from placement.locks import KeyedLocks
from placement.log import get_logger
from placement.models import (
    Application,
    FilterConfig,
    Inbox,
    NonNegotiables,
    Posting,
    PostingStatus,
    RankingWeights,
    ScoredPosting,
    StudentProfile,
)
from placement.scorer import rank_postings
from placement.slots import SlotAllocator
from placement.stores import (
    AccountStore,
    ApplicationStore,
    Clock,
    PostingStore,
    SystemClock,
)
from placement.waitlist import WaitlistNotifier

log = get_logger(__name__)


def _logged(fn: Callable) -> Callable:
    """Log a refused operation at WARNING and re-raise it to the caller."""

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except PlacementError as exc:
            log.warning("%s refused: %s", fn.__name__, exc)
            raise

    return wrapper


class PlacementContext:
    def __init__(
        self,
        postings: PostingStore,
        accounts: AccountStore,
        *,
        clock: Clock | None = None,
        settings: Settings | None = None,
        policy: EligibilityPolicy | None = None,
        level_rule: LevelRule | None = None,
        applications: ApplicationStore | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.postings = postings
        self.accounts = accounts
        self.clock = clock or SystemClock()
        self.locks = KeyedLocks()
        self.inbox = Inbox()
        self.policy = policy or MajorEligibilityPolicy()
        self.level_rule = level_rule or YearLevelRule(self.settings.limits.junior_year_cutoff)

        self.slots = SlotAllocator(postings)
        self.waitlist = WaitlistNotifier(postings, self.inbox)
        self.ledger = ApplicationLedger(
            postings,
            accounts,
            self.slots,
            self.waitlist,
            policy=self.policy,
            limits=self.settings.limits,
            locks=self.locks,
            store=applications,
        )
        if applications is not None:
            self.ledger.load(applications.get_all())
        self.catalog = PostingCatalog(
            postings, accounts, limits=self.settings.limits, locks=self.locks
        )

    # --- Listing ---

    def _listable(self, posting: Posting) -> bool:
        """Open now; a FILLED posting is listed again once a slot frees up."""
        if not posting.takes_applications(self.clock.today()):
            return False
        return posting.status == PostingStatus.APPROVED or self.slots.remaining(posting) > 0

    def _visible_to(
        self, student: StudentProfile, posting: Posting, nn: NonNegotiables
    ) -> bool:
        if nn.only_open_now and not self._listable(posting):
            return False
        if not self.level_rule.allows(student, posting):
            return False
        if nn.must_match_major and not self.policy.is_eligible(student, posting):
            return False
        title = (posting.title or "").casefold()
        for kw in nn.title_keywords:
            if kw.strip() and kw.strip().casefold() not in title:
                return False
        return True

    def list_ranked(
        self,
        student_id: str,
        filter_config: FilterConfig | None = None,
        weights: RankingWeights | None = None,
        recommendations_enabled: bool = False,
        non_negotiables: NonNegotiables | None = None,
    ) -> list[ScoredPosting]:
        student = self.accounts.get_student(student_id)
        nn = non_negotiables or NonNegotiables()
        catalog = self.postings.get_all()
        eligible = [p for p in catalog if self._visible_to(student, p, nn)]
        filtered = apply_filters(eligible, filter_config)
        ranked = rank_postings(
            filtered,
            student,
            weights or self.settings.default_weights,
            self.clock.today(),
            enabled=recommendations_enabled,
            window=self.settings.closing_window_days,
        )
        log.info(
            "Listing for %s: %d in catalog → %d eligible → %d after filters",
            student_id, len(catalog), len(eligible), len(filtered),
        )
        return ranked

    # --- Student actions ---

    @_logged
    def apply(self, student_id: str, posting_id: str) -> Application:
        student = self.accounts.get_student(student_id)
        posting = self.postings.require(posting_id)
        if not self.level_rule.allows(student, posting):
            raise NotEligibleError(
                f"year {student.year} students may only apply to BASIC postings ({posting_id} is {posting.level.value})"
            )
        self._ensure_accepting(posting)
        return self.ledger.submit(student_id, posting_id)

    def _ensure_accepting(self, posting: Posting) -> None:
        # a full FILLED posting reaches the ledger, which reports it as a capacity problem
        if not posting.takes_applications(self.clock.today()):
            raise NotEligibleError(f"{posting.id} is not open for applications")

    @_logged
    def confirm(self, app_id: str) -> list[Application]:
        return self.ledger.confirm(app_id)

    @_logged
    def request_withdrawal(self, app_id: str) -> Application:
        return self.ledger.request_withdrawal(app_id)

    @_logged
    def join_waitlist(self, student_id: str, posting_id: str) -> None:
        self.accounts.get_student(student_id)
        self.postings.require(posting_id)
        self.waitlist.join(student_id, posting_id)

    # --- Representative / staff actions ---

    @_logged
    def approve(self, app_id: str, rep_id: str | None = None) -> Application:
        if rep_id is not None:
            ensure_rep_owns(rep_id, self.postings.require(self.ledger.get(app_id).posting_id))
        return self.ledger.approve(app_id)

    @_logged
    def reject(self, app_id: str, rep_id: str | None = None) -> Application:
        if rep_id is not None:
            ensure_rep_owns(rep_id, self.postings.require(self.ledger.get(app_id).posting_id))
        return self.ledger.reject(app_id)

    @_logged
    def resolve_withdrawal(self, app_id: str, approve: bool) -> Application:
        return self.ledger.resolve_withdrawal(app_id, approve)

    @_logged
    def toggle_visibility(self, posting_id: str, rep_id: str | None = None) -> Posting:
        return self.catalog.toggle_visibility(posting_id, rep_id)

    @_logged
    def create_posting(self, rep_id: str, **fields: Any) -> Posting:
        return self.catalog.create_posting(rep_id, **fields)

    @_logged
    def review_posting(self, posting_id: str, approve: bool) -> Posting:
        return self.catalog.review_posting(posting_id, approve)

    def bulk_approve(self, except_: Callable[[Posting], bool] | None = None) -> int:
        return self.catalog.bulk_approve(except_)

    def undo_last(self) -> bool:
        return self.catalog.undo_last()
