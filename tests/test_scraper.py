import logging
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qsl

import pytest
import requests

from paris_tennis_listener import config, scraper
from paris_tennis_listener.models import NetworkError

from conftest import FakeResponse, FakeTransport, api_feature


def test_build_availability_form(criteria):
    fields = parse_qsl(scraper.build_availability_form(criteria))

    assert ("hourRange", "9-22") in fields
    assert ("when", "13/02/2026") in fields
    assert [v for k, v in fields if k == "selCoating[]"] == config.API_COATING_TYPES
    assert [v for k, v in fields if k == "selInOut[]"] == ["V", "F"]


def test_build_planning_form(criteria):
    fields = dict(parse_qsl(scraper.build_planning_form("La Faluère", criteria)))
    assert fields == {"date_selected": "13/02/2026", "name_tennis": "La Faluère"}


def test_proxied_url():
    assert scraper.proxied_url(config.API_URL, None) == config.API_URL
    assert scraper.proxied_url(config.API_URL, "https://proxy.example.com/api/") == (
        "https://proxy.example.com/api/tennis/jsp/site/Portal.jsp"
        "?page=recherche&action=ajax_disponibilite_map"
    )


def test_fetch_availability_success(criteria, api_response, silent):
    transport = FakeTransport(FakeResponse(payload=api_response))

    features = scraper.fetch_availability(criteria, silent, transport=transport)

    assert [f.facility_name for f in features] == ["La Faluère", "Other Court", "Unavailable Court"]
    assert features[0].courts[0].court_number == 5
    assert features[2].available is False
    call = transport.calls[0]
    assert call["url"] == config.API_URL
    assert call["method"] == "POST"
    assert call["headers"]["Content-Type"] == "application/x-www-form-urlencoded"


def test_fetch_availability_logs_summary(criteria, api_response, caplog):
    logger = logging.getLogger("tests.scraper")
    with caplog.at_level("INFO", logger=logger.name):
        scraper.fetch_availability(criteria, logger, transport=FakeTransport(FakeResponse(payload=api_response)))

    assert "Date: 13/02/2026" in caplog.text
    assert "API Response: 3 facilities total, 2 with some availability" in caplog.text


def test_fetch_availability_http_error(criteria, silent):
    transport = FakeTransport(FakeResponse(status_code=500, text="boom"))
    with pytest.raises(NetworkError, match="500"):
        scraper.fetch_availability(criteria, silent, transport=transport)


def test_fetch_availability_timeout(criteria, silent):
    transport = FakeTransport(requests.exceptions.Timeout("read timed out"))
    with pytest.raises(NetworkError, match="timed out"):
        scraper.fetch_availability(criteria, silent, transport=transport)


def test_fetch_availability_invalid_json(criteria, silent):
    transport = FakeTransport(FakeResponse(text="<html>maintenance</html>"))
    with pytest.raises(NetworkError):
        scraper.fetch_availability(criteria, silent, transport=transport)


def test_fetch_availability_unexpected_structure(criteria, silent):
    transport = FakeTransport(FakeResponse(payload={"features": [{"properties": {"available": True}}]}))
    with pytest.raises(NetworkError, match="Unexpected feature format"):
        scraper.fetch_availability(criteria, silent, transport=transport)

    transport = FakeTransport(FakeResponse(payload={"slots": []}))
    with pytest.raises(NetworkError, match="'features' list missing"):
        scraper.fetch_availability(criteria, silent, transport=transport)


def test_fetch_court_planning(criteria, planning_html, silent):
    transport = FakeTransport(FakeResponse(text=planning_html))

    result = scraper.fetch_court_planning("La Faluère", criteria, silent, transport=transport)

    assert result.facility == "La Faluère"
    assert result.date == "13/02/2026"
    assert result.courts == ["Court 01", "Court 02"]
    assert transport.calls[0]["url"] == config.API_PLANNING_URL
    assert transport.calls[0]["headers"]["X-Requested-With"] == "XMLHttpRequest"


def test_fetch_court_planning_http_error(criteria, silent):
    transport = FakeTransport(FakeResponse(status_code=403, text="Forbidden"))
    with pytest.raises(NetworkError):
        scraper.fetch_court_planning("La Faluère", criteria, silent, transport=transport)


@patch("paris_tennis_listener.scraper.cloudscraper.create_scraper")
def test_default_transport_uses_cloudscraper(mock_create_scraper, criteria, api_response, silent):
    mock_scraper_obj = MagicMock()
    mock_response = MagicMock()
    mock_response.status_code = 200
    mock_response.json.return_value = api_response
    mock_scraper_obj.request.return_value = mock_response
    mock_create_scraper.return_value = mock_scraper_obj

    features = scraper.fetch_availability(criteria, silent)

    assert len(features) == 3
    args, kwargs = mock_scraper_obj.request.call_args
    assert args == ("POST", config.API_URL)
    assert kwargs["timeout"] == config.DEFAULT_REQUEST_TIMEOUT


def test_fetch_availability_rejects_unknown_covered_flag(criteria, silent):
    transport = FakeTransport(FakeResponse(payload={"features": [api_feature("La Faluère", 126, [(5, "X")])]}))
    with pytest.raises(NetworkError, match="Unexpected feature format"):
        scraper.fetch_availability(criteria, silent, transport=transport)
