"""Collaborator stores: postings, applications, accounts and the clock."""
from __future__ import annotations

import csv
import fcntl
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Iterator

from placement.errors import NotFoundError
from placement.log import get_logger
from placement.models import (
    Application,
    ApplicationStatus,
    Posting,
    PostingLevel,
    PostingStatus,
    RepProfile,
    StudentProfile,
)

log = get_logger(__name__)


# --- Clock ---


class Clock(ABC):
    @abstractmethod
    def today(self) -> date:
        pass


class SystemClock(Clock):
    def today(self) -> date:
        return date.today()


class FixedClock(Clock):
    """Clock pinned to one date; used by tests and demo sessions."""

    def __init__(self, day: date) -> None:
        self.day = day

    def today(self) -> date:
        return self.day


# --- Postings ---


class PostingStore(ABC):
    @abstractmethod
    def get_all(self) -> list[Posting]:
        pass

    @abstractmethod
    def get_by_id(self, posting_id: str) -> Posting | None:
        pass

    @abstractmethod
    def add(self, posting: Posting) -> None:
        pass

    @abstractmethod
    def persist(self, posting: Posting) -> None:
        pass

    def require(self, posting_id: str) -> Posting:
        posting = self.get_by_id(posting_id)
        if posting is None:
            raise NotFoundError(f"posting {posting_id} does not exist")
        return posting


class InMemoryPostingStore(PostingStore):
    """Keeps live posting objects in catalog (insertion) order."""

    def __init__(self, postings: list[Posting] | None = None) -> None:
        self._postings: dict[str, Posting] = {}
        for p in postings or []:
            self._postings[p.id] = p

    def get_all(self) -> list[Posting]:
        return list(self._postings.values())

    def get_by_id(self, posting_id: str) -> Posting | None:
        return self._postings.get(posting_id)

    def add(self, posting: Posting) -> None:
        self._postings[posting.id] = posting

    def persist(self, posting: Posting) -> None:
        # live objects; nothing to write back
        self._postings[posting.id] = posting


HEADERS: list[str] = [
    "id", "title", "description", "level", "preferred_major", "company_name",
    "owner_rep_id", "capacity", "confirmed_count", "visible",
    "open_date", "close_date", "status",
]


@contextmanager
def _file_lock(f, exclusive: bool = True) -> Iterator[None]:
    """Hold an advisory fcntl lock on ``f`` for the block.

    Filesystems without flock support (some network mounts) run unlocked.
    """
    locked = True
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
    except OSError as exc:
        locked = False
        log.debug("No advisory lock on %s: %s", getattr(f, "name", f), exc)
    try:
        yield
    finally:
        if locked:
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)


def _parse_date(raw: str) -> date | None:
    raw = (raw or "").strip()
    return date.fromisoformat(raw) if raw else None


def posting_to_row(p: Posting) -> dict[str, str]:
    return {
        "id": p.id,
        "title": p.title,
        "description": p.description,
        "level": p.level.value,
        "preferred_major": p.preferred_major or "",
        "company_name": p.company_name,
        "owner_rep_id": p.owner_rep_id,
        "capacity": str(p.capacity),
        "confirmed_count": str(p.confirmed_count),
        "visible": "true" if p.visible else "false",
        "open_date": p.open_date.isoformat() if p.open_date else "",
        "close_date": p.close_date.isoformat() if p.close_date else "",
        "status": p.status.value,
    }


def posting_from_row(row: dict[str, str]) -> Posting:
    return Posting(
        id=row["id"],
        title=row.get("title", ""),
        description=row.get("description", ""),
        level=PostingLevel(row.get("level", "BASIC").strip().upper()),
        preferred_major=row.get("preferred_major") or None,
        company_name=row.get("company_name", ""),
        owner_rep_id=row.get("owner_rep_id", ""),
        capacity=int(row.get("capacity") or 1),
        confirmed_count=int(row.get("confirmed_count") or 0),
        visible=row.get("visible", "true").strip().lower() in ("1", "true", "yes"),
        open_date=_parse_date(row.get("open_date", "")),
        close_date=_parse_date(row.get("close_date", "")),
        status=PostingStatus(row.get("status", "PENDING").strip().upper()),
    )


class CsvPostingStore(InMemoryPostingStore):
    """Posting store backed by one CSV file, rewritten under an fcntl lock on persist."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(self._read())

    def _read(self) -> list[Posting]:
        if not self.path.exists():
            return []
        with open(self.path, "r", newline="", encoding="utf-8") as f:
            with _file_lock(f, exclusive=False):
                rows = list(csv.DictReader(f))
        postings = [posting_from_row(r) for r in rows if r.get("id")]
        log.info("Loaded %d postings from %s", len(postings), self.path.name)
        return postings

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", newline="", encoding="utf-8") as f:
            with _file_lock(f):
                w = csv.DictWriter(f, fieldnames=HEADERS)
                w.writeheader()
                w.writerows(posting_to_row(p) for p in self.get_all())

    def add(self, posting: Posting) -> None:
        super().add(posting)
        self._write()

    def persist(self, posting: Posting) -> None:
        super().persist(posting)
        self._write()
        log.debug("Persisted %s → %s", posting.id, self.path.name)


# --- Applications ---


class ApplicationStore(ABC):
    """Snapshot storage for the ledger: read everything once, write everything back."""

    @abstractmethod
    def get_all(self) -> list[Application]:
        pass

    @abstractmethod
    def save_all(self, applications: list[Application]) -> None:
        pass


class InMemoryApplicationStore(ApplicationStore):
    def __init__(self, applications: list[Application] | None = None) -> None:
        self._rows = [application_to_row(a) for a in applications or []]

    def get_all(self) -> list[Application]:
        return [application_from_row(r) for r in self._rows]

    def save_all(self, applications: list[Application]) -> None:
        self._rows = [application_to_row(a) for a in applications]


APPLICATION_HEADERS: list[str] = [
    "id", "student_id", "posting_id", "status", "withdrawal_requested",
]


def application_to_row(a: Application) -> dict[str, str]:
    return {
        "id": a.id,
        "student_id": a.student_id,
        "posting_id": a.posting_id,
        "status": a.status.value,
        "withdrawal_requested": "true" if a.withdrawal_requested else "false",
    }


def application_from_row(row: dict[str, str]) -> Application:
    return Application(
        id=row["id"],
        student_id=row.get("student_id", ""),
        posting_id=row.get("posting_id", ""),
        status=ApplicationStatus(row.get("status", "PENDING").strip().upper()),
        withdrawal_requested=row.get("withdrawal_requested", "").strip().lower() in ("1", "true", "yes"),
    )


class CsvApplicationStore(ApplicationStore):
    """All applications in one CSV file, rewritten whole on every save."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def get_all(self) -> list[Application]:
        if not self.path.exists():
            return []
        with open(self.path, "r", newline="", encoding="utf-8") as f:
            with _file_lock(f, exclusive=False):
                rows = list(csv.DictReader(f))
        apps = [application_from_row(r) for r in rows if r.get("id")]
        log.info("Loaded %d applications from %s", len(apps), self.path.name)
        return apps

    def save_all(self, applications: list[Application]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", newline="", encoding="utf-8") as f:
            with _file_lock(f):
                w = csv.DictWriter(f, fieldnames=APPLICATION_HEADERS)
                w.writeheader()
                w.writerows(application_to_row(a) for a in applications)
        log.debug("Saved %d applications → %s", len(applications), self.path.name)


# --- Accounts ---


class AccountStore:
    """Keyed lookup of student, representative and staff accounts."""

    def __init__(
        self,
        students: list[StudentProfile] | None = None,
        reps: list[RepProfile] | None = None,
        staff_ids: list[str] | None = None,
    ) -> None:
        self._students = {s.id: s for s in students or []}
        self._reps = {r.id: r for r in reps or []}
        self._staff = set(staff_ids or [])

    def get_student(self, student_id: str) -> StudentProfile:
        student = self._students.get(student_id)
        if student is None:
            raise NotFoundError(f"student {student_id} does not exist")
        return student

    def find_student(self, student_id: str) -> StudentProfile | None:
        return self._students.get(student_id)

    def get_rep(self, rep_id: str) -> RepProfile:
        rep = self._reps.get(rep_id)
        if rep is None:
            raise NotFoundError(f"representative {rep_id} does not exist")
        return rep

    def find_rep(self, rep_id: str) -> RepProfile | None:
        return self._reps.get(rep_id)

    def is_staff(self, user_id: str) -> bool:
        return user_id in self._staff

    def add_student(self, student: StudentProfile) -> None:
        self._students[student.id] = student

    def add_rep(self, rep: RepProfile) -> None:
        self._reps[rep.id] = rep
