import re
from datetime import date
from typing import Dict, List, Literal, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# Upstream court flag: "V" covered (indoor), "F" open air.
COVERED_FLAG = "V"
# Compared against the raw span text, surrounding whitespace included.
AVAILABLE_STATUS = "LIBRE"

# Results are written out with camelCase keys (facilityId, courtNumber, ...).
OUTPUT_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

TIMESLOT_PATTERN = re.compile(r"(\d{2})h - (\d{2})h")
COURT_LABEL_PATTERN = re.compile(r"Court (\d+)")


class ListenerError(Exception):
    """Base class for errors raised by the listener."""


class ConfigError(ListenerError):
    """Invalid configuration, detected before any network call."""


class NetworkError(ListenerError):
    """Failed HTTP call: non-2xx status, timeout or unexpected body."""


class SearchCriteria(BaseModel):
    model_config = ConfigDict(frozen=True)

    hour_range_start: int = Field(default=9, ge=0, le=23)
    hour_range_end: int = Field(default=22, ge=0, le=23)
    when_day: int
    when_month: int
    when_year: int
    facilities: List[str] = Field(default_factory=list)
    court_numbers: Dict[str, Set[int]] = Field(default_factory=dict)
    covered_only: bool = False

    @model_validator(mode="after")
    def _check_ranges(self):
        if self.hour_range_start >= self.hour_range_end:
            raise ValueError(
                f"hour range start ({self.hour_range_start}) must be lower than end ({self.hour_range_end})"
            )
        try:
            date(self.when_year, self.when_month, self.when_day)
        except ValueError as e:
            raise ValueError(f"invalid date {self.when_day}/{self.when_month}/{self.when_year}: {e}") from e
        return self

    @property
    def target_date(self) -> date:
        return date(self.when_year, self.when_month, self.when_day)

    @property
    def formatted_date(self) -> str:
        """Date as expected by tennis.paris.fr, e.g. 05/03/2026."""
        return self.target_date.strftime("%d/%m/%Y")


class Court(BaseModel):
    model_config = OUTPUT_CONFIG

    court_number: int
    court_name: str
    covered: Literal["V", "F"]

    @property
    def is_covered(self) -> bool:
        return self.covered == COVERED_FLAG


class RawFeature(BaseModel):
    model_config = ConfigDict(frozen=True)

    available: bool
    facility_name: str
    facility_id: str
    courts: List[Court]

    @field_validator("facility_id", mode="before")
    @classmethod
    def _id_as_string(cls, value):
        return str(value)

    @classmethod
    def from_api(cls, feature: Dict) -> "RawFeature":
        """Builds a record from one entry of the upstream `features` array.

        Raises KeyError, TypeError or ValueError when the entry does not have
        the expected shape.
        """
        properties = feature["properties"]
        general = properties["general"]
        courts = [
            Court(
                court_number=int(court["_formattedAirNum"]),
                court_name=court["_airNom"],
                covered=court["_airCvt"],
            )
            for court in properties.get("courts") or []
        ]
        return cls(
            available=bool(properties.get("available")),
            facility_name=general["_nomSrtm"],
            facility_id=general["_id"],
            courts=courts,
        )


class FilteredFacility(BaseModel):
    model_config = OUTPUT_CONFIG

    facility: str
    facility_id: str
    courts: List[Court]

    @property
    def court_numbers(self) -> List[int]:
        return [court.court_number for court in self.courts]


class CourtStatus(BaseModel):
    model_config = OUTPUT_CONFIG

    status: str
    available: bool

    @classmethod
    def from_status(cls, status: str) -> "CourtStatus":
        return cls(status=status, available=status == AVAILABLE_STATUS)


class Timeslot(BaseModel):
    model_config = OUTPUT_CONFIG

    time: str  # "08h - 09h"
    courts: Dict[str, CourtStatus]

    @property
    def start_hour(self) -> int | None:
        match = TIMESLOT_PATTERN.match(self.time)
        return int(match.group(1)) if match else None


class PlanningData(BaseModel):
    model_config = OUTPUT_CONFIG

    facility: str = ""
    date: str = ""
    courts: List[str] = Field(default_factory=list)
    timeslots: List[Timeslot] = Field(default_factory=list)


class DetailedFacility(BaseModel):
    model_config = OUTPUT_CONFIG

    facility: str
    facility_id: str
    date: str
    courts: List[str]
    timeslots: List[Timeslot]

    @property
    def available_slot_count(self) -> int:
        return sum(1 for slot in self.timeslots for status in slot.courts.values() if status.available)

    @property
    def has_availability(self) -> bool:
        return self.available_slot_count > 0


class ChangeResult(BaseModel):
    changed: bool
    fingerprint: str


def court_label_number(label: str) -> int | None:
    """Extracts 5 from a planning column label such as "Court 05"."""
    match = COURT_LABEL_PATTERN.search(label)
    return int(match.group(1)) if match else None
