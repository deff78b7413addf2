import logging
from typing import List, Sequence

import requests

from paris_tennis_listener import config
from paris_tennis_listener.models import DetailedFacility, FilteredFacility, SearchCriteria

logger = logging.getLogger(__name__)


def _court_label(court) -> str:
    suffix = " (covered)" if court.is_covered else ""
    return f"Court {court.court_number}{suffix}"


def format_facility_lines(results: Sequence[FilteredFacility]) -> List[str]:
    return [f"• {f.facility}: " + ", ".join(_court_label(c) for c in f.courts) for f in results]


def format_detailed_lines(results: Sequence[DetailedFacility]) -> List[str]:
    lines = []
    for facility in results:
        lines.append(f"• {facility.facility} ({facility.available_slot_count} free slots)")
        for slot in facility.timeslots:
            free = [court for court, status in slot.courts.items() if status.available]
            if free:
                lines.append(f"    {slot.time}: {', '.join(free)}")
    return lines


def format_message(results: Sequence, criteria: SearchCriteria, detailed: bool) -> str:
    """Builds the chat message announcing a change in availability."""
    lines = [
        "🎾 Tennis listener update (changed)",
        "",
        "📋 Search Parameters:",
        f"• Courts: {', '.join(criteria.facilities)}",
        f"• Date: {criteria.formatted_date}",
        f"• Time range: {criteria.hour_range_start}:00 - {criteria.hour_range_end}:00",
    ]
    if criteria.covered_only:
        lines.append("• Covered courts only")
    if criteria.court_numbers:
        lines.append("• Specific court numbers filtered")

    lines += ["", "🎾 Facilities with Availability:"]
    if not results:
        lines.append("None")
    elif detailed:
        lines += format_detailed_lines(results)
    else:
        lines += format_facility_lines(results)
        lines += [
            "",
            "⚠️ IMPORTANT: These are facilities with SOME availability during the time range.",
            f"Specific court/time availability must be verified on {config.SITE_URL}",
        ]
    return "\n".join(lines)


def send_google_chat_message(message: str, webhook_url: str | None = None):
    """Sends a message to the configured Google Chat webhook."""
    url = webhook_url or config.GOOGLE_CHAT_WEBHOOK

    if not url:
        logger.warning("Google Chat webhook missing. Skipping notification.")
        return

    payload = {"text": message[: config.MAX_MESSAGE_LENGTH]}

    try:
        response = requests.post(url, json=payload, timeout=config.request_timeout())
        response.raise_for_status()
        logger.info("Google Chat notification sent successfully.")
    except requests.exceptions.RequestException as e:
        logger.error(f"Failed to send Google Chat message: {e}")
