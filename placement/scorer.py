"""Score and rank postings for a student using preference weights."""
from __future__ import annotations

from datetime import date

from placement.filters import keyword_in_posting
from placement.log import get_logger
from placement.models import Posting, RankingWeights, ScoredPosting, StudentProfile

log = get_logger(__name__)

CLOSING_WINDOW_DAYS = 30


def _major_points(posting: Posting, student: StudentProfile, weight: int) -> int:
    preferred = (posting.preferred_major or "").strip()
    if not preferred or preferred.casefold() == (student.major or "").strip().casefold():
        return weight
    return 0


def _closing_soon_points(
    posting: Posting, today: date, weight: int, window: int = CLOSING_WINDOW_DAYS
) -> int:
    """Full weight when closing today, tapering linearly to 0 at ``window`` days out.

    Rounds half up in integer arithmetic so the result never depends on
    float representation.
    """
    if posting.close_date is None or window <= 0:
        return 0
    days = (posting.close_date - today).days
    if days < 0 or days >= window:
        return 0
    return (2 * weight * (window - days) + window) // (2 * window)


def _level_fit_points(posting: Posting, weights: RankingWeights) -> int:
    if not weights.level_set or posting.level in weights.level_set:
        return weights.level_fit
    return 0


def _keyword_points(posting: Posting, weights: RankingWeights) -> int:
    kw = (weights.keyword_text or "").strip()
    if kw and keyword_in_posting(posting, kw):
        return weights.keyword
    return 0


def score_posting(
    posting: Posting,
    student: StudentProfile,
    weights: RankingWeights,
    today: date,
    window: int = CLOSING_WINDOW_DAYS,
) -> int:
    score = 0
    score += _major_points(posting, student, weights.major)                  # 0 – weights.major
    score += _closing_soon_points(posting, today, weights.closing_soon, window)  # 0 – weights.closing_soon
    score += _level_fit_points(posting, weights)                             # 0 – weights.level_fit
    score += _keyword_points(posting, weights)                               # 0 – weights.keyword
    return score


def rank_postings(
    postings: list[Posting],
    student: StudentProfile,
    weights: RankingWeights,
    today: date,
    *,
    enabled: bool = True,
    window: int = CLOSING_WINDOW_DAYS,
) -> list[ScoredPosting]:
    """Score every posting, then sort descending; ties keep catalog order."""
    if not enabled:
        return [ScoredPosting(posting=p, score=0) for p in postings]

    scored = [
        ScoredPosting(posting=p, score=score_posting(p, student, weights, today, window))
        for p in postings
    ]
    result = sorted(scored, key=lambda s: -s.score)
    log.debug(
        "Ranked %d postings for %s (top score %s)",
        len(result), student.id, result[0].score if result else "-",
    )
    return result
