import logging
from typing import Any, Callable, Dict, List, Protocol
from urllib.parse import urlencode, urlsplit

import cloudscraper
import requests

from paris_tennis_listener import config, planning
from paris_tennis_listener.log import SEPARATOR
from paris_tennis_listener.models import NetworkError, PlanningData, RawFeature, SearchCriteria


class Response(Protocol):
    status_code: int
    text: str

    def json(self) -> Any: ...


# (url, method, body, headers) -> response
Transport = Callable[[str, str, str, Dict[str, str]], Response]


def cloudscraper_transport(url: str, method: str, body: str, headers: Dict[str, str]) -> Response:
    """Default transport: a cloudscraper session with a bounded timeout."""
    scraper = cloudscraper.create_scraper()
    return scraper.request(method, url, data=body.encode("utf-8"), headers=headers, timeout=config.request_timeout())


def proxied_url(url: str, cors_proxy: str | None) -> str:
    """Routes a tennis.paris.fr URL through a CORS proxy prefix, if any."""
    if not cors_proxy:
        return url
    parts = urlsplit(url)
    query = f"?{parts.query}" if parts.query else ""
    return f"{cors_proxy.rstrip('/')}{parts.path}{query}"


def build_availability_form(criteria: SearchCriteria) -> str:
    """Encodes the availability search form, with repeated coating/in-out fields."""
    fields = [
        ("hourRange", f"{criteria.hour_range_start}-{criteria.hour_range_end}"),
        ("when", criteria.formatted_date),
    ]
    fields += [("selCoating[]", code) for code in config.API_COATING_TYPES]
    fields += [("selInOut[]", code) for code in config.API_IN_OUT_TYPES]
    return urlencode(fields)


def build_planning_form(facility_name: str, criteria: SearchCriteria) -> str:
    return urlencode([("date_selected", criteria.formatted_date), ("name_tennis", facility_name)])


def _post(url: str, body: str, headers: Dict[str, str], transport: Transport | None, logger: logging.Logger) -> Response:
    send = transport or cloudscraper_transport
    logger.debug(f"POST {url} | {body}")
    try:
        response = send(url, "POST", body, headers)
    except requests.exceptions.Timeout as e:
        raise NetworkError(f"Request to {url} timed out: {e}") from e
    except (requests.exceptions.RequestException, cloudscraper.exceptions.CloudflareException) as e:
        raise NetworkError(f"Request to {url} failed: {e}") from e

    logger.debug(f"Response status: {response.status_code}")
    if not 200 <= response.status_code < 300:
        if response.status_code == 403:
            logger.error("Cloudflare blocked the request even with cloudscraper.")
        raise NetworkError(f"HTTP error! status: {response.status_code}")
    return response


def parse_features(data: Any) -> List[RawFeature]:
    """Validates the availability JSON body into RawFeature records."""
    if not isinstance(data, dict) or not isinstance(data.get("features"), list):
        raise NetworkError("Unexpected JSON format. 'features' list missing.")
    try:
        return [RawFeature.from_api(feature) for feature in data["features"]]
    except (KeyError, TypeError, ValueError) as e:
        raise NetworkError(f"Unexpected feature format in availability response: {e!r}") from e


def fetch_availability(
    criteria: SearchCriteria,
    logger: logging.Logger,
    transport: Transport | None = None,
    cors_proxy: str | None = None,
) -> List[RawFeature]:
    """Fetches facility-level availability from tennis.paris.fr.

    The upstream `available` flag only tells that a facility has SOME free
    court in the hour range, not which one.
    """
    logger.info(SEPARATOR)
    logger.info("=== Tennis Court Availability Check ===")
    logger.info(f"Date: {criteria.formatted_date}")
    logger.info(f"Time Range: {criteria.hour_range_start}:00 - {criteria.hour_range_end}:00")
    logger.info("Fetching data from tennis.paris.fr API...")

    url = proxied_url(config.API_URL, cors_proxy)
    response = _post(url, build_availability_form(criteria), config.FORM_HEADERS, transport, logger)

    try:
        data = response.json()
    except ValueError as e:
        raise NetworkError(f"Availability response is not valid JSON: {e}") from e

    features = parse_features(data)
    available = sum(1 for feature in features if feature.available)
    logger.info(f"API Response: {len(features)} facilities total, {available} with some availability")
    return features


def fetch_court_planning(
    facility_name: str,
    criteria: SearchCriteria,
    logger: logging.Logger,
    transport: Transport | None = None,
    cors_proxy: str | None = None,
) -> PlanningData:
    """Fetches and parses the per-court planning table of one facility."""
    logger.info(f"Fetching detailed planning for {facility_name} on {criteria.formatted_date}...")

    url = proxied_url(config.API_PLANNING_URL, cors_proxy)
    response = _post(url, build_planning_form(facility_name, criteria), config.PLANNING_HEADERS, transport, logger)

    parsed = planning.parse_planning_html(response.text)
    result = parsed.model_copy(update={"facility": facility_name, "date": criteria.formatted_date})
    logger.info(f"Fetched planning: {len(result.courts)} courts, {len(result.timeslots)} time slots")
    return result
