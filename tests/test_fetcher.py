"""Tests for the HTTP fetcher."""

from unittest.mock import Mock

import pytest
import requests

from site_search.config import PARSER_CONFIG
from site_search.fetcher import FetchResult, PageFetcher

URL = "https://example.com/a"


def make_response(status=200, content_type="text/html; charset=utf-8", content=b"<html></html>", url=URL):
    response = Mock()
    response.url = url
    response.status_code = status
    response.headers = {"content-type": content_type}
    response.content = content
    return response


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.mark.unit
class TestPageFetcher:
    def test_successful_fetch(self, session):
        session.get.return_value = make_response()

        result = PageFetcher(session=session).fetch(URL)

        assert result.ok
        assert result.is_html
        assert result.status_code == 200
        assert result.content == b"<html></html>"

    def test_redirect_target_becomes_base_url(self, session):
        session.get.return_value = make_response(url=URL + "/")

        result = PageFetcher(session=session).fetch(URL)

        assert result.url == URL
        assert result.final_url == URL + "/"
        assert result.base_url == URL + "/"

    def test_base_url_defaults_to_requested_url(self):
        assert FetchResult(url=URL, status_code=200).base_url == URL

    def test_request_uses_fixed_headers_and_timeouts(self, session):
        session.get.return_value = make_response()

        PageFetcher(session=session).fetch(URL)

        _, kwargs = session.get.call_args
        assert kwargs["headers"]["User-Agent"] == PARSER_CONFIG["user_agent"]
        assert kwargs["headers"]["Referer"] == PARSER_CONFIG["referrer"]
        assert kwargs["timeout"] == (PARSER_CONFIG["connect_timeout"], PARSER_CONFIG["read_timeout"])

    def test_error_status_is_reported(self, session):
        session.get.return_value = make_response(status=404)

        result = PageFetcher(session=session).fetch(URL)

        assert not result.ok
        assert result.status_code == 404
        assert result.error == "HTTP status 404"

    def test_transport_error_has_zero_status(self, session):
        session.get.side_effect = requests.ConnectionError("connection refused")

        result = PageFetcher(session=session).fetch(URL)

        assert not result.ok
        assert result.status_code == 0
        assert "connection refused" in result.error

    def test_http_error_keeps_response_status(self, session):
        session.get.side_effect = requests.HTTPError("unavailable", response=Mock(status_code=503))

        result = PageFetcher(session=session).fetch(URL)

        assert result.status_code == 503
        assert not result.ok

    def test_too_large_content(self, session):
        session.get.return_value = make_response(content=b"x" * 100)
        config = dict(PARSER_CONFIG, max_content_length=10)

        result = PageFetcher(config=config, session=session).fetch(URL)

        assert not result.ok
        assert result.error.startswith("Content too large")

    def test_politeness_delay_within_bounds(self):
        config = dict(PARSER_CONFIG, delay_min=0.0, delay_max=0.002)
        delay = PageFetcher(config=config).politeness_delay()
        assert 0.0 <= delay <= 0.002

    def test_each_thread_gets_own_session(self):
        fetcher = PageFetcher()
        assert fetcher.session is fetcher.session
        assert isinstance(fetcher.session, requests.Session)


@pytest.mark.unit
class TestFetchResult:
    @pytest.mark.parametrize("content_type,is_html,is_binary", [
        ("text/html; charset=utf-8", True, False),
        ("TEXT/HTML", True, False),
        ("image/png", False, True),
        ("application/pdf", False, True),
        ("text/plain", False, False),
        ("", False, False),
    ])
    def test_content_classification(self, content_type, is_html, is_binary):
        result = FetchResult(url=URL, status_code=200, content_type=content_type)
        assert result.is_html == is_html
        assert result.is_binary == is_binary

    def test_error_is_not_ok_even_with_success_status(self):
        assert not FetchResult(url=URL, status_code=200, error="Content too large").ok
