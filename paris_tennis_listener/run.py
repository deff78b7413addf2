import json
import logging
from datetime import date
from typing import List

from paris_tennis_listener import availability, config, notifier, persist
from paris_tennis_listener.log import SEPARATOR
from paris_tennis_listener.models import ListenerError, SearchCriteria
from paris_tennis_listener.persist import FingerprintStore
from paris_tennis_listener.scraper import Transport

logger = logging.getLogger(__name__)

EMPTY_RESULT = "[]"


def is_date_in_past(criteria: SearchCriteria, today: date | None = None) -> bool:
    return criteria.target_date < (today or date.today())


def log_criteria(criteria: SearchCriteria, detailed: bool):
    if criteria.court_numbers:
        numbers = {name: sorted(values) for name, values in criteria.court_numbers.items()}
        logger.info(f"Court Numbers Filter: {json.dumps(numbers, ensure_ascii=False)}")
    if criteria.covered_only:
        logger.info("Covered Courts Only: Yes")
    if detailed:
        logger.info("Detailed Availability Mode: Enabled")


def collect_results(
    criteria: SearchCriteria,
    detailed: bool,
    transport: Transport | None = None,
    cors_proxy: str | None = None,
) -> List:
    """Runs the fast or detailed pipeline."""
    if detailed:
        return availability.get_detailed_availability(criteria, logger, transport=transport, cors_proxy=cors_proxy)
    return availability.get_availability(criteria, logger, transport=transport, cors_proxy=cors_proxy)


def render_results(results: List) -> str:
    """Human-readable JSON written to stdout for the scheduler."""
    return json.dumps(persist.to_jsonable(results), indent=2, ensure_ascii=False)


def run(
    detailed: bool | None = None,
    notify: bool = True,
    store: FingerprintStore | None = None,
    transport: Transport | None = None,
) -> int:
    """Core orchestration logic. Fetches, filters and reconciles availability,
    prints the JSON result, and notifies when it changed since the last run.

    Returns the process exit code. On a fatal error the empty result is still
    printed, so that downstream consumers always receive well-formed output.
    """
    try:
        criteria = config.load_criteria()
        if detailed is None:
            detailed = config.is_detailed_mode()
        log_criteria(criteria, detailed)

        if is_date_in_past(criteria):
            logger.info(f"Date {criteria.formatted_date} is in the past. Skipping availability check.")
            print(EMPTY_RESULT)
            return 0

        results = collect_results(criteria, detailed, transport=transport, cors_proxy=config.CORS_PROXY)
        output = render_results(results)
        change = persist.detect_change(results, store or persist.FileFingerprintStore(), logger)
    except ListenerError as e:
        logger.error(f"Error: {e}", exc_info=True)
        print(EMPTY_RESULT)
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        print(EMPTY_RESULT)
        return 1

    if change.changed:
        logger.info(SEPARATOR)
        logger.info(f"New value:\n{output}")

    print(output)

    if change.changed and notify:
        notifier.send_google_chat_message(notifier.format_message(results, criteria, detailed))
    return 0
