import argparse
import logging
import sys

from paris_tennis_listener import availability, config, run
from paris_tennis_listener.log import setup_logging
from paris_tennis_listener.models import ListenerError

logger = logging.getLogger(__name__)


def parse_arguments(argv=None):
    """Parses command line arguments. Search criteria come from the environment (.env)."""
    parser = argparse.ArgumentParser(description="Watch tennis.paris.fr for free tennis courts.")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--detailed",
        dest="detailed",
        action="store_true",
        default=None,
        help="Check per-court, per-timeslot availability. Defaults to DETAILED_AVAILABILITY.",
    )
    mode.add_argument("--fast", dest="detailed", action="store_false", help="Facility-level availability only.")
    parser.add_argument("--no-notify", action="store_true", help="Do not send a Google Chat notification.")
    parser.add_argument(
        "--list-facilities", action="store_true", help="Print every facility with its courts and exit."
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")
    parser.set_defaults(detailed=None)
    return parser.parse_args(argv)


def print_facilities() -> int:
    try:
        catalog = availability.list_facilities(logger, cors_proxy=config.CORS_PROXY)
    except ListenerError as e:
        logger.error(f"Error fetching facilities: {e}")
        return 1

    print(f"Found {len(catalog)} facilities\n")
    for name, courts in catalog.items():
        covered = sum(1 for court in courts if court.is_covered)
        numbers = ", ".join(str(court.court_number) for court in courts)
        print(f"{name}: {len(courts)} courts ({covered} covered) [{numbers}]")
    return 0


def main(argv=None):
    args = parse_arguments(argv)
    setup_logging(args.verbose)
    if args.list_facilities:
        sys.exit(print_facilities())
    sys.exit(run.run(detailed=args.detailed, notify=not args.no_notify))
