"""Data models for postings, applications and student preferences."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from placement.errors import ValidationError


class PostingLevel(Enum):
    BASIC = "BASIC"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"


class PostingStatus(Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    FILLED = "FILLED"


class ApplicationStatus(Enum):
    PENDING = "PENDING"
    SUCCESSFUL = "SUCCESSFUL"
    UNSUCCESSFUL = "UNSUCCESSFUL"
    CONFIRMED = "CONFIRMED"
    WITHDRAWN = "WITHDRAWN"


# Counted against the per-student application cap.
ACTIVE_STATUSES: frozenset[ApplicationStatus] = frozenset(
    {ApplicationStatus.PENDING, ApplicationStatus.SUCCESSFUL}
)
TERMINAL_STATUSES: frozenset[ApplicationStatus] = frozenset(
    {ApplicationStatus.UNSUCCESSFUL, ApplicationStatus.WITHDRAWN}
)


@dataclass
class Posting:
    id: str
    title: str
    company_name: str
    owner_rep_id: str
    capacity: int
    level: PostingLevel = PostingLevel.BASIC
    description: str = ""
    preferred_major: str | None = None
    confirmed_count: int = 0
    visible: bool = True
    open_date: date | None = None
    close_date: date | None = None
    status: PostingStatus = PostingStatus.PENDING

    @property
    def slots_remaining(self) -> int:
        return max(0, self.capacity - self.confirmed_count)

    def in_window(self, today: date) -> bool:
        if self.open_date and today < self.open_date:
            return False
        if self.close_date and today > self.close_date:
            return False
        return True

    def is_open_for(self, today: date) -> bool:
        """Visible, approved and inside its application window."""
        return self.visible and self.status == PostingStatus.APPROVED and self.in_window(today)

    def takes_applications(self, today: date) -> bool:
        """Like ``is_open_for`` but FILLED also passes; capacity is checked elsewhere."""
        if self.status not in (PostingStatus.APPROVED, PostingStatus.FILLED):
            return False
        return self.visible and self.in_window(today)


@dataclass
class Application:
    id: str
    student_id: str
    posting_id: str
    status: ApplicationStatus = ApplicationStatus.PENDING
    withdrawal_requested: bool = False

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class StudentProfile:
    id: str
    year: int
    major: str
    name: str = ""


@dataclass(frozen=True)
class RepProfile:
    id: str
    company_name: str
    name: str = ""
    approved: bool = True


@dataclass(frozen=True)
class FilterConfig:
    status: PostingStatus | None = None
    level: PostingLevel | None = None
    major: str | None = None
    company: str | None = None
    keyword: str | None = None
    level_set: frozenset[PostingLevel] = frozenset()

    def is_empty(self) -> bool:
        return (
            self.status is None
            and self.level is None
            and not (self.major or "").strip()
            and not (self.company or "").strip()
            and not (self.keyword or "").strip()
            and not self.level_set
        )


@dataclass(frozen=True)
class RankingWeights:
    major: int = 30
    closing_soon: int = 30
    level_fit: int = 20
    keyword: int = 20
    keyword_text: str | None = None
    level_set: frozenset[PostingLevel] = frozenset()

    def __post_init__(self) -> None:
        for name in ("major", "closing_soon", "level_fit", "keyword"):
            if getattr(self, name) < 0:
                raise ValidationError(f"ranking weight {name} must be >= 0")


@dataclass(frozen=True)
class NonNegotiables:
    must_match_major: bool = False
    only_open_now: bool = True
    title_keywords: tuple[str, ...] = ()


@dataclass(frozen=True)
class ScoredPosting:
    posting: Posting
    score: int


@dataclass(frozen=True)
class Notice:
    user_id: str
    message: str
    posting_id: str | None = None


@dataclass
class Inbox:
    """Per-user notice lists; the notification sink for the waitlist."""

    messages: dict[str, list[Notice]] = field(default_factory=dict)

    def push(self, notice: Notice) -> None:
        self.messages.setdefault(notice.user_id, []).append(notice)

    def for_user(self, user_id: str) -> list[Notice]:
        return list(self.messages.get(user_id, []))
