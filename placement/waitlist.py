"""Waitlists for full postings and slot-freed notifications."""
from __future__ import annotations

from placement.log import get_logger
from placement.models import Inbox, Notice
from placement.stores import PostingStore

log = get_logger(__name__)


class WaitlistNotifier:
    def __init__(self, store: PostingStore, inbox: Inbox) -> None:
        self.store = store
        self.inbox = inbox
        # dict keys keep join order and drop duplicates
        self._waiting: dict[str, dict[str, None]] = {}

    def join(self, student_id: str, posting_id: str) -> None:
        waiting = self._waiting.setdefault(posting_id, {})
        if student_id in waiting:
            return
        waiting[student_id] = None
        posting = self.store.get_by_id(posting_id)
        title = posting.title if posting else posting_id
        self.inbox.push(
            Notice(user_id=student_id, message=f"You joined the waitlist for {title}", posting_id=posting_id)
        )
        log.info("%s joined waitlist for %s (%d waiting)", student_id, posting_id, len(waiting))

    def waitlisted(self, posting_id: str) -> list[str]:
        return list(self._waiting.get(posting_id, {}))

    def on_slot_freed(self, posting_id: str) -> int:
        """Notify every waitlisted student; the waitlist itself is left intact."""
        students = self.waitlisted(posting_id)
        if not students:
            return 0
        posting = self.store.get_by_id(posting_id)
        label = f"{posting.title} @ {posting.company_name}" if posting else posting_id
        for sid in students:
            self.inbox.push(
                Notice(user_id=sid, message=f"A slot just opened for {label}", posting_id=posting_id)
            )
        log.info("Slot freed on %s → notified %d waitlisted student(s)", posting_id, len(students))
        return len(students)

    def drain(self, posting_id: str) -> list[str]:
        """Remove and return the waitlist, for one-shot notification callers."""
        return list(self._waiting.pop(posting_id, {}))
