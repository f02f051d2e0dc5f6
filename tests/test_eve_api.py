"""Tests for the EVE API transport helpers."""

import pytest
import requests
from unittest.mock import patch, MagicMock
from urllib.parse import urlparse, parse_qs

import config
from characters.api_key import APIKey
from characters.errors import (
    FetchFailedError,
    MalformedDataError,
    ParseFailedError,
    RemoteAPIError,
)
from utils import eve_api


@pytest.fixture
def api_key():
    return APIKey(key_id=4012345, verification="abc&def")


def test_build_character_sheet_url(api_key):
    url = eve_api.build_character_sheet_url(api_key, 90000001)
    parsed = urlparse(url)
    assert f"{parsed.scheme}://{parsed.netloc}" == config.API_BASE_URL
    assert parsed.path == config.CHARACTER_SHEET_PATH
    # The verification code is escaped
    assert parse_qs(parsed.query) == {
        "keyID": ["4012345"],
        "vCode": ["abc&def"],
        "characterID": ["90000001"],
    }


def test_build_character_list_url(api_key):
    parsed = urlparse(eve_api.build_character_list_url(api_key))
    assert parsed.path == config.CHARACTER_LIST_PATH
    assert parse_qs(parsed.query) == {"keyID": ["4012345"], "vCode": ["abc&def"]}


def test_api_key_validation():
    with pytest.raises(TypeError):
        APIKey(key_id="4012345", verification="abc")
    with pytest.raises(ValueError, match="verification code cannot be empty"):
        APIKey(key_id=4012345, verification="")


@patch("utils.eve_api.requests.get")
def test_fetch_returns_body(mock_get):
    mock_get.return_value = MagicMock(text="<eveapi/>")

    assert eve_api.fetch("https://example.invalid/x") == "<eveapi/>"

    mock_get.assert_called_once_with(
        "https://example.invalid/x",
        headers={"User-Agent": config.USER_AGENT},
        timeout=config.REQUEST_TIMEOUT,
    )


@patch("utils.eve_api.requests.get")
def test_fetch_passes_custom_headers_and_timeout(mock_get):
    mock_get.return_value = MagicMock(text="ok")

    eve_api.fetch("https://example.invalid/x", headers={"X-Test": "1"}, timeout=2)

    mock_get.assert_called_once_with(
        "https://example.invalid/x", headers={"X-Test": "1"}, timeout=2
    )


@pytest.mark.parametrize(
    "error",
    [
        requests.ConnectionError("connection refused"),
        requests.Timeout("read timed out"),
    ],
)
@patch("utils.eve_api.requests.get")
def test_fetch_wraps_request_errors(mock_get, error):
    mock_get.side_effect = error
    with pytest.raises(eve_api.TransportError):
        eve_api.fetch("https://example.invalid/x")


@patch("utils.eve_api.requests.get")
def test_fetch_wraps_http_error_status(mock_get):
    response = MagicMock()
    response.raise_for_status.side_effect = requests.HTTPError("403 Forbidden")
    mock_get.return_value = response

    with pytest.raises(eve_api.TransportError, match="403"):
        eve_api.fetch("https://example.invalid/x")


# --- fetch_document ---


def test_fetch_document_returns_root():
    root = eve_api.fetch_document(
        "https://example.invalid/x", lambda url, headers: "<eveapi><result/></eveapi>"
    )
    assert root.tag == "eveapi"
    assert root.find("result") is not None


def test_fetch_document_sends_default_headers():
    seen = {}

    def fetcher(url, headers):
        seen.update(headers)
        return "<eveapi/>"

    eve_api.fetch_document("https://example.invalid/x", fetcher)
    assert seen == eve_api.default_headers()


@pytest.mark.parametrize(
    "body, expected_error",
    [
        ("", FetchFailedError),
        ("<eveapi>", ParseFailedError),
        ('<eveapi><error code="222">Key has expired.</error></eveapi>', RemoteAPIError),
        ("<eveapi><error>No code</error></eveapi>", MalformedDataError),
    ],
)
def test_fetch_document_failures(body, expected_error):
    with pytest.raises(expected_error):
        eve_api.fetch_document("https://example.invalid/x", lambda url, headers: body)


def test_fetch_document_transport_error():
    def fetcher(url, headers):
        raise eve_api.TransportError("timed out")

    with pytest.raises(FetchFailedError) as excinfo:
        eve_api.fetch_document("https://example.invalid/x", fetcher)
    assert isinstance(excinfo.value.__cause__, eve_api.TransportError)
