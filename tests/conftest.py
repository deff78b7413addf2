import json

import pytest

from paris_tennis_listener.log import null_logger
from paris_tennis_listener.models import Court, FilteredFacility, SearchCriteria

PLANNING_HTML = """
<table class="reservation">
    <thead>
        <tr>
            <th></th>
            <th class="sorttable_nosort">
                <span class="title">Court 01</span>
            </th>
            <th class="sorttable_nosort">
                <span class="title">Court 02</span>
            </th>
        </tr>
    </thead>
    <tbody>
        <tr>
            <td>09h - 10h</td>
            <td>
                <span>LIBRE</span>
            </td>
            <td>
                <span>LIBRE</span>
            </td>
        </tr>
        <tr>
            <td>10h - 11h</td>
            <td class="reservation-cell">
                <p class="title-cell">PUBLIC</p>
                <br/>
                <span>Réservé le 13.02.2026 09:01</span>
            </td>
            <td>
                <span>LIBRE</span>
            </td>
        </tr>
    </tbody>
</table>
"""

MIXED_HTML = """
<table><thead><tr><th></th>
    <th><span class="title">Court 05</span></th>
    <th><span class="title">Court 06</span></th>
    <th><span class="title">Court 07</span></th>
</tr></thead>
<tbody>
    <tr><td>08h - 09h</td><td><span>LIBRE</span></td><td><span>LIBRE</span></td><td><span>LIBRE</span></td></tr>
    <tr><td>09h - 10h</td><td><span>Réservé</span></td><td><span>LIBRE</span></td><td><span>Réservé</span></td></tr>
    <tr><td>10h - 11h</td><td><span>Réservé</span></td><td><span>Réservé</span></td><td><span>LIBRE</span></td></tr>
    <tr><td>11h - 12h</td><td><span>LIBRE</span></td><td><span>LIBRE</span></td><td><span>LIBRE</span></td></tr>
</tbody></table>
"""


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class FakeTransport:
    """Records calls and answers them from a queue of responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, url, method, body, headers):
        self.calls.append({"url": url, "method": method, "body": body, "headers": headers})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def api_feature(name, facility_id, courts, available=True):
    return {
        "properties": {
            "available": available,
            "general": {"_nomSrtm": name, "_id": facility_id},
            "courts": [
                {"_formattedAirNum": number, "_airNom": f"Court {number:02d}", "_airCvt": covered}
                for number, covered in courts
            ],
        }
    }


@pytest.fixture
def silent():
    return null_logger()


@pytest.fixture
def api_response():
    return {
        "features": [
            api_feature("La Faluère", 126, [(5, "F"), (6, "F")]),
            api_feature("Other Court", 999, [(1, "F")]),
            api_feature("Unavailable Court", 888, [], available=False),
        ]
    }


@pytest.fixture
def planning_html():
    return PLANNING_HTML


@pytest.fixture
def criteria():
    return SearchCriteria(
        hour_range_start=9,
        hour_range_end=22,
        when_day=13,
        when_month=2,
        when_year=2026,
        facilities=["La Faluère"],
    )


def make_facility(name="La Faluère", courts=((5, "F"), (6, "F"), (7, "F"), (8, "F")), facility_id="126"):
    return FilteredFacility(
        facility=name,
        facility_id=facility_id,
        courts=[Court(court_number=n, court_name=f"Court {n:02d}", covered=c) for n, c in courts],
    )
