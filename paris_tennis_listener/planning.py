"""Parsing of the tennis.paris.fr per-court planning table."""

from typing import Dict, Iterator, List, Tuple

from bs4 import BeautifulSoup, Tag

from paris_tennis_listener.models import (
    COURT_LABEL_PATTERN,
    TIMESLOT_PATTERN,
    CourtStatus,
    PlanningData,
    Timeslot,
)


def _court_headers(soup: BeautifulSoup) -> List[str]:
    """Court column labels, in the order the columns appear."""
    labels = []
    for span in soup.find_all("span", class_="title"):
        text = span.get_text(strip=True)
        if COURT_LABEL_PATTERN.fullmatch(text):
            labels.append(text)
    return labels


def _cell_status(cell: Tag) -> str | None:
    """Status text of one data cell.

    Free cells look like <td><span>LIBRE</span></td>. Reserved cells carry a
    title paragraph first: <td><p>PUBLIC</p><br/><span>Réservé le ...</span></td>.
    In both shapes the status is the last span of the cell, taken verbatim.
    """
    spans = cell.find_all("span")
    if not spans:
        return None
    return spans[-1].get_text()


def _row_statuses(cells: List[Tag], courts: List[str]) -> Iterator[Tuple[str, str]]:
    """Yields (court label, status) pairs for one row's data cells.

    A row with fewer cells than courts leaves the trailing courts out, and a
    cell without a status leaves its court out.
    """
    for court, cell in zip(courts, cells):
        status = _cell_status(cell)
        if status is not None:
            yield court, status


def parse_planning_html(html: str | None) -> PlanningData:
    """Parses a planning page into court columns and per-timeslot statuses.

    Never raises: a page without a recognisable table gives empty courts and
    timeslots, which callers treat as "no data". The facility and date fields
    are left for the caller to fill in.
    """
    if not html:
        return PlanningData()

    soup = BeautifulSoup(html, "html.parser")
    courts = _court_headers(soup)

    timeslots: List[Timeslot] = []
    for row in soup.find_all("tr"):
        cells = row.find_all("td", recursive=False)
        if not cells:
            continue
        label = cells[0].get_text(strip=True)
        if not TIMESLOT_PATTERN.fullmatch(label):
            continue

        statuses: Dict[str, CourtStatus] = {
            court: CourtStatus.from_status(status) for court, status in _row_statuses(cells[1:], courts)
        }
        timeslots.append(Timeslot(time=label, courts=statuses))

    return PlanningData(courts=courts, timeslots=timeslots)
