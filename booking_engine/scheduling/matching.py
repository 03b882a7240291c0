"""
Professional matching for admin assignment.

Each candidate is classified into the strongest match it has with the
booking (same pincode, same city, same state, or merely offering the
requested service). Matches are tagged variants ranked by an explicit
ordering, so adding a new kind of match means adding a class and a rank.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from booking_engine.schemas.booking_schema import Location
from booking_engine.schemas.directory_schema import Professional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PincodeMatch:
    pincode: str


@dataclass(frozen=True)
class CityMatch:
    city: str


@dataclass(frozen=True)
class StateMatch:
    state: str


@dataclass(frozen=True)
class ServiceMatch:
    service: str


MatchType = Union[PincodeMatch, CityMatch, StateMatch, ServiceMatch]

# Lower rank sorts first.
_MATCH_RANK: dict[type, int] = {
    PincodeMatch: 0,
    CityMatch: 1,
    StateMatch: 2,
    ServiceMatch: 3,
}


def match_rank(match: MatchType) -> int:
    return _MATCH_RANK[type(match)]


@dataclass(frozen=True)
class RankedProfessional:
    professional: Professional
    match: MatchType

    @property
    def rank(self) -> int:
        return match_rank(self.match)


def _same(a: str, b: str) -> bool:
    return bool(a.strip()) and a.strip().lower() == b.strip().lower()


def _offers(professional: Professional, service: str) -> bool:
    wanted = service.strip().lower()
    return any(
        wanted == offered.lower() or wanted in offered.lower() or offered.lower() in wanted
        for offered in professional.services
        if offered.strip()
    )


def classify_match(
    professional: Professional, location: Location, service: Optional[str] = None
) -> Optional[MatchType]:
    """Return the strongest match, or None when the professional is unrelated.

    Location matches require the professional to offer ``service`` when one
    is given.
    """
    if service and professional.services and not _offers(professional, service):
        return None
    if _same(location.pincode, professional.pincode):
        return PincodeMatch(location.pincode.strip())
    if _same(location.city, professional.city):
        return CityMatch(location.city.strip())
    if _same(location.state, professional.state):
        return StateMatch(location.state.strip())
    if service and _offers(professional, service):
        return ServiceMatch(service.strip())
    return None


def rank_professionals(
    candidates: list[Professional], location: Location, service: Optional[str] = None
) -> list[RankedProfessional]:
    """Classify and order candidates: best match first, then most bookings."""
    ranked = []
    for professional in candidates:
        match = classify_match(professional, location, service)
        if match is not None:
            ranked.append(RankedProfessional(professional=professional, match=match))
    ranked.sort(key=lambda r: (r.rank, -r.professional.total_bookings, r.professional.id))
    logger.debug("Ranked %d of %d candidate(s)", len(ranked), len(candidates))
    return ranked
