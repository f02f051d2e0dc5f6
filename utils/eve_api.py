"""EVE API transport: request building, fetching and response unwrapping."""

import logging
import xml.etree.ElementTree as ET
from typing import Callable, Dict, Optional
from urllib.parse import urlencode

import requests

# Import configuration settings
import config

from characters.api_key import APIKey
from characters.errors import (
    FetchFailedError,
    MalformedDataError,
    ParseFailedError,
    RemoteAPIError,
)

# fetch(url, headers) -> response text
Fetcher = Callable[[str, Dict[str, str]], str]


class TransportError(Exception):
    """Raised when a request fails at the network or HTTP level."""


def _build_url(path: str, params: Dict[str, str]) -> str:
    return f"{config.API_BASE_URL}{path}?{urlencode(params)}"


def build_character_sheet_url(api_key: APIKey, character_id: int) -> str:
    """Builds the CharacterSheet URL for one character of an API key.

    Args:
        api_key: The key authorizing the request.
        character_id: The ID of the character whose sheet is requested.
    """
    params = api_key.request_params()
    params["characterID"] = str(character_id)
    return _build_url(config.CHARACTER_SHEET_PATH, params)


def build_character_list_url(api_key: APIKey) -> str:
    """Builds the URL listing the characters an API key gives access to."""
    return _build_url(config.CHARACTER_LIST_PATH, api_key.request_params())


def default_headers() -> Dict[str, str]:
    """Returns the headers sent with every API request."""
    return {"User-Agent": config.USER_AGENT}


def fetch(
    url: str,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = config.REQUEST_TIMEOUT,
) -> str:
    """Performs a single GET request and returns the response body.

    Args:
        url: The full request URL.
        headers: Request headers; defaults to default_headers().
        timeout: Seconds to wait for connect and read.

    Returns:
        The response body as text.

    Raises:
        TransportError: On connection errors, timeouts or HTTP error statuses.
    """
    if headers is None:
        headers = default_headers()

    try:
        response = requests.get(url, headers=headers, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        # The URL includes the verification code
        logging.error("API request to %s failed: %s", config.API_BASE_URL, e)
        raise TransportError(str(e)) from e

    return response.text


def fetch_document(
    url: str, fetcher: Optional[Fetcher] = None, context: str = ""
) -> ET.Element:
    """Fetches an API document once and returns its root element.

    Args:
        url: The full request URL.
        fetcher: Callable performing the request, fetch() by default.
        context: Description of the request for log messages (key, character).

    Returns:
        The root element of a response that carries no <error> element.

    Raises:
        FetchFailedError: The request failed or returned an empty body.
        ParseFailedError: The body is not well-formed XML.
        RemoteAPIError: The API answered with an <error> element.
        MalformedDataError: The <error> element has no numeric code.
    """
    if fetcher is None:
        fetcher = fetch

    try:
        xml = fetcher(url, default_headers())
    except TransportError as e:
        raise FetchFailedError("Unable to fetch API data, please see logs.") from e
    if not xml:
        logging.error("Empty API response, %s", context)
        raise FetchFailedError("Unable to fetch API data, please see logs.")

    try:
        root = ET.fromstring(xml)
    except ET.ParseError as e:
        logging.error("Unparseable API response, %s: %s", context, e)
        raise ParseFailedError("Unable to parse data, please see logs.") from e

    error = root.find("error")
    if error is not None:
        try:
            code = int(error.get("code"))
        except (TypeError, ValueError) as e:
            logging.exception("Critical failure during API parsing, %s", context)
            raise MalformedDataError("Unable to parse data, please see logs.") from e
        text = error.text or ""
        logging.warning("API error #%s: %s, %s", code, text, context)
        raise RemoteAPIError(code, text)

    return root
