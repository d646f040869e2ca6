import pytest
from unittest.mock import MagicMock, patch

import requests

from siteinspector.fetcher import (
    FetchOutcome,
    FetchResponse,
    classify,
    declared_charset,
    fetch_url,
    is_html,
    primary_content_type,
)
from siteinspector.parser import parse_html


def make_response(status=200, content_type="text/html"):
    return FetchResponse(url="https://example.com/", final_url="https://example.com/",
                         status_code=status, elapsed_ms=1, content_type=content_type)


@pytest.mark.parametrize("header, expected", [
    ("text/html; charset=utf-8", "text/html"),
    ("Image/PNG", "image/png"),
    (None, ""),
])
def test_primary_content_type(header, expected):
    assert primary_content_type(header) == expected


def test_missing_content_type_treated_as_html():
    assert is_html("") is True
    assert is_html("application/xhtml+xml") is True
    assert is_html("application/json") is False


@pytest.mark.parametrize("status, content_type, outcome", [
    (200, "text/html", FetchOutcome.PAGE),
    (204, "", FetchOutcome.PAGE),
    (200, "image/png", FetchOutcome.ASSET),
    (404, "text/html", FetchOutcome.ERROR),
    (301, "text/html", FetchOutcome.ERROR),
    (503, "application/json", FetchOutcome.ERROR),
])
def test_classify(status, content_type, outcome):
    assert classify(make_response(status, content_type)) is outcome


def _mock_requests_response(status=200, content_type="text/html", body=b"<html></html>", length=None):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 400
    response.url = "https://example.com/final"
    response.encoding = "utf-8"
    headers = {"Content-Type": content_type, "X-Frame-Options": "DENY"}
    if length is not None:
        headers["Content-Length"] = str(length)
    response.headers = headers
    response.raw.read.return_value = body
    return response


@pytest.mark.asyncio
async def test_fetch_url_reads_html_body():
    with patch("siteinspector.fetcher.requests.get", return_value=_mock_requests_response()) as mock_get:
        result = await fetch_url("https://example.com/", user_agent="TestBot/1.0", follow_redirects=False)

    assert result.status_code == 200
    assert result.final_url == "https://example.com/final"
    assert result.body == "<html></html>"
    assert result.headers["x-frame-options"] == "DENY"
    kwargs = mock_get.call_args.kwargs
    assert kwargs["headers"]["User-Agent"] == "TestBot/1.0"
    assert kwargs["allow_redirects"] is False


@pytest.mark.asyncio
async def test_fetch_url_skips_asset_body():
    mocked = _mock_requests_response(content_type="image/png", length=512)
    with patch("siteinspector.fetcher.requests.get", return_value=mocked):
        result = await fetch_url("https://example.com/logo.png")

    assert result.body == ""
    assert result.size == 512
    mocked.raw.read.assert_not_called()
    mocked.close.assert_called_once()


@pytest.mark.asyncio
async def test_fetch_url_propagates_network_errors():
    with patch("siteinspector.fetcher.requests.get", side_effect=requests.Timeout("timed out")):
        with pytest.raises(requests.RequestException):
            await fetch_url("https://example.com/")


# --- body decoding ---

@pytest.mark.parametrize("header, expected", [
    ("text/html; charset=UTF-8", "utf-8"),
    ('text/html; charset="windows-1252"', "windows-1252"),
    ("text/html", None),
    (None, None),
])
def test_declared_charset(header, expected):
    assert declared_charset(header) == expected


@pytest.mark.asyncio
async def test_meta_charset_used_when_header_has_none():
    body = '<html><head><meta charset="utf-8"><title>Café Ünïcode</title></head></html>'.encode("utf-8")
    mocked = _mock_requests_response(content_type="text/html", body=body)
    # what requests reports for text/* without a charset parameter
    mocked.encoding = "ISO-8859-1"
    with patch("siteinspector.fetcher.requests.get", return_value=mocked):
        result = await fetch_url("https://example.com/")

    assert parse_html(result.body)["title"] == "Café Ünïcode"


@pytest.mark.asyncio
async def test_header_charset_wins():
    body = "<html><head><title>Café</title></head></html>".encode("latin-1")
    mocked = _mock_requests_response(content_type="text/html; charset=ISO-8859-1", body=body)
    with patch("siteinspector.fetcher.requests.get", return_value=mocked):
        result = await fetch_url("https://example.com/")

    assert parse_html(result.body)["title"] == "Café"
