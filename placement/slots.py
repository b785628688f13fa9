"""Capacity bookkeeping for a single posting."""
from __future__ import annotations

from placement.errors import CapacityExceededError
from placement.log import get_logger
from placement.models import Posting, PostingStatus
from placement.stores import PostingStore

log = get_logger(__name__)


class SlotAllocator:
    """Sole writer of ``confirmed_count`` and of the FILLED transition."""

    def __init__(self, store: PostingStore) -> None:
        self.store = store

    @staticmethod
    def remaining(posting: Posting) -> int:
        return max(0, posting.capacity - posting.confirmed_count)

    def decrement(self, posting: Posting) -> None:
        """Take one slot; the posting becomes FILLED when the last slot goes."""
        if posting.confirmed_count >= posting.capacity:
            raise CapacityExceededError(
                f"posting {posting.id} has no slots left ({posting.confirmed_count}/{posting.capacity})"
            )
        posting.confirmed_count += 1
        if posting.confirmed_count == posting.capacity:
            posting.status = PostingStatus.FILLED
            log.info("Posting %s is now FILLED", posting.id)
        self.store.persist(posting)
        log.debug("Slot taken on %s → %d/%d", posting.id, posting.confirmed_count, posting.capacity)

    def increment(self, posting: Posting) -> None:
        """Give back one slot. FILLED stays FILLED."""
        posting.confirmed_count = max(0, posting.confirmed_count - 1)
        self.store.persist(posting)
        log.debug("Slot freed on %s → %d/%d", posting.id, posting.confirmed_count, posting.capacity)
