"""Eligibility strategies: the major policy and the year/level rule."""
from __future__ import annotations

from abc import ABC, abstractmethod

from placement.models import Posting, PostingLevel, StudentProfile


class EligibilityPolicy(ABC):
    @abstractmethod
    def is_eligible(self, student: StudentProfile, posting: Posting) -> bool:
        pass


class MajorEligibilityPolicy(EligibilityPolicy):
    """Rejects only when the posting names a different preferred major."""

    def is_eligible(self, student: StudentProfile, posting: Posting) -> bool:
        preferred = (posting.preferred_major or "").strip()
        if not preferred:
            return True
        return preferred.casefold() == (student.major or "").strip().casefold()


class LevelRule(ABC):
    @abstractmethod
    def allows(self, student: StudentProfile, posting: Posting) -> bool:
        pass


class YearLevelRule(LevelRule):
    """Students at or below ``junior_year_cutoff`` may only take BASIC postings."""

    def __init__(self, junior_year_cutoff: int = 2) -> None:
        self.junior_year_cutoff = junior_year_cutoff

    def allows(self, student: StudentProfile, posting: Posting) -> bool:
        if student.year <= self.junior_year_cutoff:
            return posting.level == PostingLevel.BASIC
        return True
