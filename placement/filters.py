"""Posting filters: a pure predicate over one posting and a filter config."""
from __future__ import annotations

from placement.log import get_logger
from placement.models import FilterConfig, Posting

log = get_logger(__name__)


def _normalize(s: str | None) -> str:
    return (s or "").strip().casefold()


def keyword_in_posting(posting: Posting, keyword: str) -> bool:
    """Case-insensitive substring match on title, company or description."""
    kw = _normalize(keyword)
    if not kw:
        return False
    return any(
        kw in (text or "").casefold()
        for text in (posting.title, posting.company_name, posting.description)
    )


def matches(posting: Posting, config: FilterConfig | None) -> bool:
    if config is None:
        return True
    if config.status is not None and posting.status != config.status:
        return False
    if config.level is not None and posting.level != config.level:
        return False

    major = _normalize(config.major)
    if major and _normalize(posting.preferred_major) != major:
        return False

    company = _normalize(config.company)
    if company and _normalize(posting.company_name) != company:
        return False

    if _normalize(config.keyword) and not keyword_in_posting(posting, config.keyword or ""):
        return False

    if config.level_set and posting.level not in config.level_set:
        return False
    return True


def apply_filters(postings: list[Posting], config: FilterConfig | None) -> list[Posting]:
    if config is None or config.is_empty():
        return list(postings)
    result = [p for p in postings if matches(p, config)]
    log.debug("Filter kept %d of %d postings", len(result), len(postings))
    return result
