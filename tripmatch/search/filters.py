"""Client-side compatibility filters for candidate itineraries.

The remote store only applies coarse equality and range hints. Every raw
record is run through the predicate chain below, in order, and dropped at
the first predicate that rejects it. Nothing here raises: malformed input
either drops the record or skips a predicate.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Protocol

from pydantic import ValidationError

from tripmatch.models import Itinerary
from tripmatch.predicates import age, overlaps

logger = logging.getLogger(__name__)


@dataclass
class FilterContext:
    """Pre-computed view of the searching user for predicate evaluation."""

    current_user_id: str
    # Searching user's trip window in epoch ms; None when unparseable
    user_start_ms: Optional[int] = None
    user_end_ms: Optional[int] = None
    # Age range the searching user wants in a match
    lower_range: Optional[int] = None
    upper_range: Optional[int] = None
    # Searching user's own age, only used by the symmetric check
    user_age: Optional[int] = None
    viewed_ids: frozenset[str] = field(default_factory=frozenset)
    blocked_ids: frozenset[str] = field(default_factory=frozenset)
    today: Optional[datetime.date] = None


def build_context(
    current_itinerary: Itinerary,
    current_user_id: str,
    viewed_ids: Iterable[str] = (),
    today: Optional[datetime.date] = None,
) -> FilterContext:
    user_dob = current_itinerary.user_info.dob if current_itinerary.user_info else None
    return FilterContext(
        current_user_id=current_user_id,
        user_start_ms=current_itinerary.start_ms,
        user_end_ms=current_itinerary.end_ms,
        lower_range=current_itinerary.lower_range,
        upper_range=current_itinerary.upper_range,
        user_age=age(user_dob, today),
        viewed_ids=frozenset(i for i in viewed_ids if isinstance(i, str)),
        blocked_ids=frozenset(current_itinerary.blocked_user_ids),
        today=today,
    )


class CandidatePredicate(Protocol):
    """A single accept/reject check on a parsed candidate."""

    name: str

    def accepts(self, candidate: Itinerary, context: FilterContext) -> bool: ...


class HasOwner:
    name = "has_owner"

    def accepts(self, candidate, context) -> bool:
        return candidate.owner_uid is not None


class NotSelf:
    name = "not_self"

    def accepts(self, candidate, context) -> bool:
        return candidate.owner_uid != context.current_user_id


class NotBlocked:
    """Neither side may have blocked the other."""

    name = "not_blocked"

    def accepts(self, candidate, context) -> bool:
        if candidate.owner_uid in context.blocked_ids:
            return False
        return context.current_user_id not in candidate.blocked_user_ids


class NotViewed:
    name = "not_viewed"

    def accepts(self, candidate, context) -> bool:
        return candidate.id not in context.viewed_ids


class DatesOverlap:
    """Trip windows must overlap; skipped when either side lacks dates."""

    name = "dates_overlap"

    def accepts(self, candidate, context) -> bool:
        if candidate.start_day is None or candidate.end_day is None:
            return True
        if context.user_start_ms is None or context.user_end_ms is None:
            return True
        return overlaps(
            context.user_start_ms, context.user_end_ms, candidate.start_day, candidate.end_day
        )


class CandidateAgeInRange:
    """The candidate's age must fall inside the searching user's range."""

    name = "candidate_age_in_range"

    def accepts(self, candidate, context) -> bool:
        if context.lower_range is None or context.upper_range is None:
            return True
        dob = candidate.user_info.dob if candidate.user_info else None
        candidate_age = age(dob, context.today)
        if candidate_age is None:
            return True
        return context.lower_range <= candidate_age <= context.upper_range


class UserAgeInCandidateRange:
    """The searching user's age must fall inside the candidate's range.

    Off by default; enabled with ``FilterOptions(bidirectional_age=True)``.
    """

    name = "user_age_in_candidate_range"

    def accepts(self, candidate, context) -> bool:
        if candidate.lower_range is None or candidate.upper_range is None:
            return True
        if context.user_age is None:
            return True
        return candidate.lower_range <= context.user_age <= candidate.upper_range


@dataclass(frozen=True)
class FilterOptions:
    bidirectional_age: bool = False


_BASE_CHAIN: tuple[CandidatePredicate, ...] = (
    HasOwner(),
    NotSelf(),
    NotBlocked(),
    NotViewed(),
    DatesOverlap(),
    CandidateAgeInRange(),
)


def predicate_chain(options: FilterOptions = FilterOptions()) -> list[CandidatePredicate]:
    chain = list(_BASE_CHAIN)
    if options.bidirectional_age:
        chain.append(UserAgeInCandidateRange())
    return chain


def parse_candidate(raw: Any) -> Optional[Itinerary]:
    """Structural validity check. Returns None for malformed records."""
    if isinstance(raw, Itinerary):
        return raw
    if not isinstance(raw, dict):
        return None
    try:
        return Itinerary.model_validate(raw)
    except ValidationError as exc:
        logger.debug(
            "Dropping malformed record %r: %s",
            raw.get("id"),
            "; ".join(f"{'.'.join(str(x) for x in e['loc'])}: {e['msg']}" for e in exc.errors()),
        )
        return None


def filter_candidates(
    candidates: Iterable[Any],
    current_itinerary: Itinerary,
    current_user_id: str,
    viewed_ids: Iterable[str] = (),
    options: FilterOptions = FilterOptions(),
    today: Optional[datetime.date] = None,
) -> list[Itinerary]:
    """Return the candidates that pass every predicate, in input order.

    ``candidates`` may be raw wire dicts or parsed Itinerary models; inputs
    are never mutated.
    """
    context = build_context(current_itinerary, current_user_id, viewed_ids, today)
    chain = predicate_chain(options)

    survivors: list[Itinerary] = []
    total = 0
    for raw in candidates:
        total += 1
        candidate = parse_candidate(raw)
        if candidate is None:
            continue
        rejected_by = next((p.name for p in chain if not p.accepts(candidate, context)), None)
        if rejected_by is not None:
            logger.debug("Excluded %s: %s", candidate.id, rejected_by)
            continue
        survivors.append(candidate)

    logger.info("Client-side filters kept %d of %d candidates", len(survivors), total)
    return survivors


def dedupe_by_destination(candidates: Iterable[Itinerary]) -> list[Itinerary]:
    """Keep the first candidate per destination (and per id), preserving order."""
    seen_ids: set[str] = set()
    seen_destinations: set[str] = set()
    unique: list[Itinerary] = []
    for candidate in candidates:
        if candidate.id in seen_ids or candidate.destination in seen_destinations:
            continue
        seen_ids.add(candidate.id)
        seen_destinations.add(candidate.destination)
        unique.append(candidate)
    return unique
