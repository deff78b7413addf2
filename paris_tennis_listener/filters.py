import logging
from typing import Iterable, List, Mapping

from paris_tennis_listener.models import FilteredFacility, RawFeature


def total_courts(facilities: List[FilteredFacility]) -> int:
    return sum(len(f.courts) for f in facilities)


def filter_by_facilities(
    raw: Iterable[RawFeature], facility_names: List[str], logger: logging.Logger
) -> List[FilteredFacility]:
    """Keeps available features whose name is one of `facility_names`.

    Names are matched exactly (case and accents included). Upstream order is
    kept. A feature listing no courts is left out.
    """
    logger.info("Applying facility and availability filters...")

    wanted = set(facility_names)
    filtered = [
        FilteredFacility(facility=feature.facility_name, facility_id=feature.facility_id, courts=feature.courts)
        for feature in raw
        if feature.available and feature.facility_name in wanted and feature.courts
    ]

    logger.info(
        f"After facility filter: {len(filtered)} facilities matched with {total_courts(filtered)} courts total"
    )
    return filtered


def filter_by_court_numbers(
    facilities: List[FilteredFacility],
    court_numbers: Mapping[str, Iterable[int]] | None,
    logger: logging.Logger,
) -> List[FilteredFacility]:
    """Restricts each facility to its configured court numbers.

    A facility with no entry, or an empty one, keeps all its courts. Facilities
    left without courts are dropped.
    """
    if not court_numbers:
        return facilities

    logger.info("Applying court number filter...")

    filtered = []
    for facility in facilities:
        allowed = set(court_numbers.get(facility.facility) or ())
        if allowed:
            courts = [court for court in facility.courts if court.court_number in allowed]
            facility = facility.model_copy(update={"courts": courts})
        if facility.courts:
            filtered.append(facility)

    logger.info(f"After court number filter: {len(filtered)} facilities with {total_courts(filtered)} courts")
    return filtered


def filter_by_covered(facilities: List[FilteredFacility], logger: logging.Logger) -> List[FilteredFacility]:
    """Keeps covered courts only, dropping facilities without any."""
    logger.info("Applying covered courts filter...")

    filtered = []
    for facility in facilities:
        courts = [court for court in facility.courts if court.is_covered]
        if courts:
            filtered.append(facility.model_copy(update={"courts": courts}))

    logger.info(f"After covered filter: {len(filtered)} facilities with {total_courts(filtered)} covered courts")
    return filtered
