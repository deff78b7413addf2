import json
import logging
import os
from datetime import date
from typing import Dict, List, Mapping, Set

from dotenv import load_dotenv
from pydantic import ValidationError

from paris_tennis_listener.models import ConfigError, SearchCriteria

logger = logging.getLogger(__name__)

load_dotenv()

# --- File Paths ---
DATA_DIR = os.environ.get("STATE_DIR", "state")
STATE_FILE = os.path.join(DATA_DIR, "last_hash.json")

# --- URLs & API ---
SITE_URL = "https://tennis.paris.fr"
API_URL = f"{SITE_URL}/tennis/jsp/site/Portal.jsp?page=recherche&action=ajax_disponibilite_map"
API_PLANNING_URL = f"{SITE_URL}/tennis/jsp/site/Portal.jsp?page=recherche&action=ajax_load_planning"

# Surface and indoor/outdoor codes sent with every availability query.
API_COATING_TYPES: List[str] = ["96", "2095", "94", "1324", "2016", "92"]
API_IN_OUT_TYPES: List[str] = ["V", "F"]

CORS_PROXY = os.environ.get("CORS_PROXY") or None
DEFAULT_REQUEST_TIMEOUT = 10.0

COMMON_HEADERS: Dict[str, str] = {
    "User-Agent": os.environ.get(
        "SCRAPER_USER_AGENT",
        (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/129.0.0.0 Safari/537.36"
        ),
    ),
    "Accept-Language": "fr-FR,fr;q=0.9,en;q=0.8",
    "Origin": SITE_URL,
}
FORM_HEADERS: Dict[str, str] = {
    **COMMON_HEADERS,
    "Content-Type": "application/x-www-form-urlencoded",
}
PLANNING_HEADERS: Dict[str, str] = {
    **COMMON_HEADERS,
    "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
    "X-Requested-With": "XMLHttpRequest",
    "Accept": "*/*",
}

# --- Search defaults ---
DEFAULT_FACILITIES = "Philippe Auguste,Candie,Thiéré,La Faluère"
DEFAULT_HOUR_RANGE_START = 9
DEFAULT_HOUR_RANGE_END = 22

# --- Google Chat ---
GOOGLE_CHAT_WEBHOOK = os.environ.get("GOOGLE_CHAT_WEBHOOK")
if not GOOGLE_CHAT_WEBHOOK:
    logger.debug("GOOGLE_CHAT_WEBHOOK not set. Notifications will be skipped.")
MAX_MESSAGE_LENGTH = 3500


def _parse_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw, 10)
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from e


def request_timeout(environ: Mapping[str, str] | None = None) -> float:
    """Seconds allowed for each HTTP call, from REQUEST_TIMEOUT."""
    env = os.environ if environ is None else environ
    raw = env.get("REQUEST_TIMEOUT", "").strip()
    if not raw:
        return DEFAULT_REQUEST_TIMEOUT
    try:
        timeout = float(raw)
    except ValueError as e:
        raise ConfigError(f"REQUEST_TIMEOUT must be a number of seconds, got {raw!r}") from e
    if timeout <= 0:
        raise ConfigError(f"REQUEST_TIMEOUT must be positive, got {raw!r}")
    return timeout


def _parse_bool(environ: Mapping[str, str], key: str) -> bool:
    return environ.get(key, "").strip().lower() == "true"


def parse_court_numbers(raw: str | None) -> Dict[str, Set[int]]:
    """Parses COURT_NUMBERS, e.g. '{"La Faluère": [5, 6, 7]}'.

    An empty value or "{}" means no restriction.
    """
    if raw is None or not raw.strip() or raw.strip() == "{}":
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"COURT_NUMBERS is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("COURT_NUMBERS must be a JSON object mapping facility names to court numbers")

    court_numbers: Dict[str, Set[int]] = {}
    for facility, numbers in data.items():
        if not isinstance(numbers, list) or not all(isinstance(n, int) and not isinstance(n, bool) for n in numbers):
            raise ConfigError(f"COURT_NUMBERS[{facility!r}] must be a list of integers")
        court_numbers[facility] = set(numbers)
    return court_numbers


def parse_facilities(raw: str) -> List[str]:
    return [name.strip() for name in raw.split(",") if name.strip()]


def load_criteria(environ: Mapping[str, str] | None = None, today: date | None = None) -> SearchCriteria:
    """Builds the search criteria from environment variables.

    The date defaults to today. Raises ConfigError on any invalid value.
    """
    env = os.environ if environ is None else environ
    today = today or date.today()

    try:
        return SearchCriteria(
            hour_range_start=_parse_int(env, "HOUR_RANGE_START", DEFAULT_HOUR_RANGE_START),
            hour_range_end=_parse_int(env, "HOUR_RANGE_END", DEFAULT_HOUR_RANGE_END),
            when_day=_parse_int(env, "WHEN_DAY", today.day),
            when_month=_parse_int(env, "WHEN_MONTH", today.month),
            when_year=_parse_int(env, "WHEN_YEAR", today.year),
            facilities=parse_facilities(env.get("COURTS") or DEFAULT_FACILITIES),
            court_numbers=parse_court_numbers(env.get("COURT_NUMBERS")),
            covered_only=_parse_bool(env, "COVERED_ONLY"),
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid search configuration: {e}") from e


def is_detailed_mode(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return _parse_bool(env, "DETAILED_AVAILABILITY")
