import logging
from datetime import date, timedelta
from typing import Dict, List, Set

from paris_tennis_listener import filters, scraper
from paris_tennis_listener.log import SEPARATOR
from paris_tennis_listener.models import (
    Court,
    DetailedFacility,
    FilteredFacility,
    NetworkError,
    PlanningData,
    SearchCriteria,
    court_label_number,
)
from paris_tennis_listener.scraper import Transport

CATALOG_DAYS_AHEAD = 30


def get_availability(
    criteria: SearchCriteria,
    logger: logging.Logger,
    transport: Transport | None = None,
    cors_proxy: str | None = None,
) -> List[FilteredFacility]:
    """Fast mode: facility-level availability with all filters applied."""
    raw = scraper.fetch_availability(criteria, logger, transport=transport, cors_proxy=cors_proxy)

    facilities = filters.filter_by_facilities(raw, criteria.facilities, logger)
    facilities = filters.filter_by_court_numbers(facilities, criteria.court_numbers, logger)
    if criteria.covered_only:
        facilities = filters.filter_by_covered(facilities, logger)

    logger.info(SEPARATOR)
    logger.info(f"Final result: {len(facilities)} facilities with {filters.total_courts(facilities)} courts")
    for facility in facilities:
        logger.info(f"  - {facility.facility}: {len(facility.courts)} courts")
    return facilities


def allowed_court_numbers(facility: FilteredFacility, criteria: SearchCriteria) -> Set[int]:
    """Court numbers of `facility` that pass the number and covered filters."""
    allowed = set(facility.court_numbers)

    requested = criteria.court_numbers.get(facility.facility)
    if requested:
        allowed &= set(requested)

    if criteria.covered_only:
        allowed &= {court.court_number for court in facility.courts if court.is_covered}

    return allowed


def reconcile_planning(
    facility: FilteredFacility, planning: PlanningData, criteria: SearchCriteria
) -> DetailedFacility | None:
    """Narrows a planning table to the requested hours and courts.

    Returns None when no remaining (timeslot, court) pair is free.
    """
    allowed = allowed_court_numbers(facility, criteria)
    courts = [label for label in planning.courts if court_label_number(label) in allowed]
    kept = set(courts)

    timeslots = []
    for slot in planning.timeslots:
        hour = slot.start_hour
        if hour is None or not criteria.hour_range_start <= hour < criteria.hour_range_end:
            continue
        statuses = {label: status for label, status in slot.courts.items() if label in kept}
        if statuses:
            timeslots.append(slot.model_copy(update={"courts": statuses}))

    detailed = DetailedFacility(
        facility=facility.facility,
        facility_id=facility.facility_id,
        date=planning.date,
        courts=courts,
        timeslots=timeslots,
    )
    return detailed if detailed.has_availability else None


def get_detailed_availability(
    criteria: SearchCriteria,
    logger: logging.Logger,
    transport: Transport | None = None,
    cors_proxy: str | None = None,
) -> List[DetailedFacility]:
    """Detailed mode: per-court, per-timeslot availability.

    Planning pages are fetched one facility at a time. A facility whose page
    cannot be fetched is skipped, the others are still reported.
    """
    logger.info(SEPARATOR)
    logger.info("=== Fetching Detailed Court Availability ===")

    facilities = get_availability(criteria, logger, transport=transport, cors_proxy=cors_proxy)
    if not facilities:
        logger.info("No facilities with availability found.")
        return []

    logger.info("Fetching detailed planning for each facility...")
    detailed: List[DetailedFacility] = []
    for facility in facilities:
        try:
            planning = scraper.fetch_court_planning(
                facility.facility, criteria, logger, transport=transport, cors_proxy=cors_proxy
            )
        except NetworkError as e:
            logger.warning(f"Could not fetch detailed planning for {facility.facility}: {e}")
            continue
        except Exception as e:
            logger.warning(f"Unexpected error fetching planning for {facility.facility}: {e}", exc_info=True)
            continue

        if not planning.timeslots:
            logger.warning(f"No planning data found for {facility.facility}")
            continue

        result = reconcile_planning(facility, planning, criteria)
        if result is None:
            logger.info(f"{facility.facility}: no free court in the requested range")
            continue
        detailed.append(result)

    logger.info(SEPARATOR)
    logger.info(f"Detailed availability: {len(detailed)} facilities")
    for facility in detailed:
        logger.info(
            f"  - {facility.facility}: {len(facility.courts)} courts, {facility.available_slot_count} available slots"
        )
    return detailed


def list_facilities(
    logger: logging.Logger,
    transport: Transport | None = None,
    cors_proxy: str | None = None,
    today: date | None = None,
) -> Dict[str, List[Court]]:
    """Lists every facility known upstream with its courts, sorted by name and number."""
    when = (today or date.today()) + timedelta(days=CATALOG_DAYS_AHEAD)
    criteria = SearchCriteria(
        hour_range_start=9,
        hour_range_end=22,
        when_day=when.day,
        when_month=when.month,
        when_year=when.year,
    )
    features = scraper.fetch_availability(criteria, logger, transport=transport, cors_proxy=cors_proxy)

    catalog: Dict[str, Dict[int, Court]] = {}
    for feature in features:
        courts = catalog.setdefault(feature.facility_name, {})
        for court in feature.courts:
            courts.setdefault(court.court_number, court)

    return {
        name: [courts[number] for number in sorted(courts)]
        for name, courts in sorted(catalog.items())
    }
