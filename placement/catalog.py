"""Representative and staff actions on postings: create, review, visibility, bulk approval."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Callable

from placement.config import Limits
from placement.errors import InvalidStateTransitionError, UnauthorizedError, ValidationError
from placement.locks import KeyedLocks, posting_key
from placement.log import get_logger
from placement.models import Posting, PostingLevel, PostingStatus
from placement.stores import AccountStore, PostingStore

log = get_logger(__name__)

_ID_RE = re.compile(r"^INT-(\d+)$")


def ensure_rep_owns(rep_id: str, posting: Posting) -> None:
    if not rep_id or posting.owner_rep_id.casefold() != rep_id.casefold():
        raise UnauthorizedError(f"{rep_id} does not own posting {posting.id}")


@dataclass
class BulkApproveCommand:
    """Approve and show every PENDING posting not matched by ``except_``; undoable."""

    targets: list[Posting]
    except_: Callable[[Posting], bool] = lambda p: False
    store: PostingStore | None = None
    _previous: list[tuple[Posting, PostingStatus, bool]] = field(default_factory=list)

    name = "BulkApprovePostings"

    def execute(self) -> int:
        self._previous = [(p, p.status, p.visible) for p in self.targets]
        approved = 0
        for p in self.targets:
            if p.status != PostingStatus.PENDING or self.except_(p):
                continue
            p.status = PostingStatus.APPROVED
            p.visible = True
            approved += 1
            if self.store is not None:
                self.store.persist(p)
        return approved

    def undo(self) -> None:
        for p, status, visible in self._previous:
            if p.status == status and p.visible == visible:
                continue
            p.status = status
            p.visible = visible
            if self.store is not None:
                self.store.persist(p)


class CommandHistory:
    def __init__(self) -> None:
        self._stack: list[BulkApproveCommand] = []

    def run(self, command: BulkApproveCommand) -> int:
        result = command.execute()
        self._stack.append(command)
        log.info("%s executed (%d posting(s))", command.name, result)
        return result

    def undo(self) -> bool:
        if not self._stack:
            return False
        command = self._stack.pop()
        command.undo()
        log.info("%s undone", command.name)
        return True


class PostingCatalog:
    def __init__(
        self,
        store: PostingStore,
        accounts: AccountStore,
        *,
        limits: Limits | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self.store = store
        self.accounts = accounts
        self.limits = limits or Limits()
        self.locks = locks or KeyedLocks()
        self.history = CommandHistory()
        self._seq = 0
        for p in store.get_all():
            m = _ID_RE.match(p.id)
            if m:
                self._seq = max(self._seq, int(m.group(1)))

    def postings_for_rep(self, rep_id: str) -> list[Posting]:
        return [p for p in self.store.get_all() if p.owner_rep_id.casefold() == rep_id.casefold()]

    def live_count(self, rep_id: str) -> int:
        return sum(1 for p in self.postings_for_rep(rep_id) if p.status != PostingStatus.REJECTED)

    def create_posting(
        self,
        rep_id: str,
        *,
        title: str,
        capacity: int,
        level: PostingLevel = PostingLevel.BASIC,
        description: str = "",
        preferred_major: str | None = None,
        open_date: date | None = None,
        close_date: date | None = None,
    ) -> Posting:
        rep = self.accounts.get_rep(rep_id)
        if not rep.approved:
            raise ValidationError(f"representative {rep_id} is not approved yet")
        if not title.strip():
            raise ValidationError("title must not be blank")
        if not 1 <= capacity <= self.limits.max_capacity:
            raise ValidationError(
                f"capacity must be between 1 and {self.limits.max_capacity}, got {capacity}"
            )
        if open_date and close_date and close_date < open_date:
            raise ValidationError("close date is before open date")

        with self.locks.hold(f"rep:{rep_id}"):
            live = self.live_count(rep_id)
            if live >= self.limits.max_postings_per_rep:
                raise ValidationError(
                    f"{rep_id} already has {live} live postings (limit {self.limits.max_postings_per_rep})"
                )
            self._seq += 1
            posting = Posting(
                id=f"INT-{self._seq:04d}",
                title=title.strip(),
                description=description.strip(),
                level=level,
                preferred_major=(preferred_major or "").strip() or None,
                company_name=rep.company_name,
                owner_rep_id=rep.id,
                capacity=capacity,
                open_date=open_date,
                close_date=close_date,
            )
            self.store.add(posting)

        log.info("Posting %s created by %s: %s (%d slots)", posting.id, rep_id, posting.title, capacity)
        return posting

    def review_posting(self, posting_id: str, approve: bool) -> Posting:
        posting = self.store.require(posting_id)
        with self.locks.hold(posting_key(posting_id)):
            if posting.status != PostingStatus.PENDING:
                raise InvalidStateTransitionError(
                    f"cannot review {posting_id} from {posting.status.value}"
                )
            posting.status = PostingStatus.APPROVED if approve else PostingStatus.REJECTED
            self.store.persist(posting)
        log.info("Posting %s %s", posting_id, posting.status.value)
        return posting

    def toggle_visibility(self, posting_id: str, rep_id: str | None = None) -> Posting:
        posting = self.store.require(posting_id)
        if rep_id is not None:
            ensure_rep_owns(rep_id, posting)
        with self.locks.hold(posting_key(posting_id)):
            posting.visible = not posting.visible
            self.store.persist(posting)
        log.info("Posting %s visibility → %s", posting_id, "on" if posting.visible else "off")
        return posting

    def bulk_approve(self, except_: Callable[[Posting], bool] | None = None) -> int:
        pending = [p for p in self.store.get_all() if p.status == PostingStatus.PENDING]
        command = BulkApproveCommand(
            targets=pending, except_=except_ or (lambda p: False), store=self.store
        )
        return self.history.run(command)

    def undo_last(self) -> bool:
        return self.history.undo()
