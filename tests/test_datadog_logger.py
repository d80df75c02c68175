"""
Tests for the Datadog log handler: filtering, payload shape and shipping.

Run with:
    pytest tests/test_datadog_logger.py -v
"""
import json
import logging
import pytest
from unittest.mock import patch

import requests

from settings.datadog_logger import DatadogLogger


def make_record(name="api.maap", msg="hello", level=logging.INFO, **extra):
    record = logging.makeLogRecord({"name": name, "msg": msg, "levelno": level,
                                    "levelname": logging.getLevelName(level)})
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def handler():
    return DatadogLogger(service="maap-test", api_key="key-123", log_url="https://intake.test/v1/input",
                         env="test", include_loggers=[])


class TestShouldLog:
    def test_excluded_loggers_are_dropped(self, handler):
        assert handler.should_log(make_record(name="urllib3.connectionpool")) is False
        assert handler.should_log(make_record(name="httpcore.http11")) is False
        assert handler.should_log(make_record(name="api.maap.domain")) is True

    def test_allowlist_wins_when_configured(self):
        handler = DatadogLogger(service="maap-test", api_key="key", include_loggers=["maap_app", "uvicorn"])

        assert handler.should_log(make_record(name="maap_app")) is True
        assert handler.should_log(make_record(name="uvicorn.access")) is True
        assert handler.should_log(make_record(name="api.maap")) is False


class TestBuildPayload:
    def test_basic_fields(self, handler):
        payload = handler.build_payload(make_record(msg="Snapshot created", level=logging.WARNING))

        assert payload["message"] == "Snapshot created"
        assert payload["service"] == "maap-test"
        assert payload["status"] == "warning"
        assert payload["ddsource"] == "python"
        assert payload["ddtags"] == "env:test,service:maap-test"

    def test_structured_request_fields(self, handler):
        record = make_record(
            name="maap_app", msg="GET /x 200",
            **{"http.method": "GET", "http.url": "/x", "http.status_code": 200,
               "duration_ms": 1.5, "event_type": "http_request_complete"}
        )

        payload = handler.build_payload(record)

        assert payload["http.url"] == "/x"
        assert payload["duration_ms"] == 1.5
        assert payload["ddtags"] == (
            "env:test,service:maap-test,http.method:get,http.status_code:200,event_type:http_request_complete"
        )

    def test_uvicorn_access_line_is_parsed(self, handler):
        record = make_record(
            name="uvicorn.access", msg='10.0.0.7:51234 - "POST /organizations/1/observations?page=2 HTTP/1.1" 201'
        )

        payload = handler.build_payload(record)

        assert payload["http.method"] == "POST"
        assert payload["http.url"] == "/organizations/1/observations"
        assert payload["http.status_code"] == 201
        assert payload["http.client_ip"] == "10.0.0.7"
        assert payload["http.client_port"] == 51234

    def test_unparseable_access_line(self):
        assert DatadogLogger.parse_access_log("server started") == {}


class TestEmit:
    @patch("settings.datadog_logger.requests.post")
    def test_posts_to_intake(self, mock_post, handler):
        handler.emit(make_record(msg="shipped"))

        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        assert args[0] == "https://intake.test/v1/input"
        assert kwargs["headers"]["DD-API-KEY"] == "key-123"
        assert json.loads(kwargs["data"])["message"] == "shipped"
        assert kwargs["timeout"] == 2

    @patch("settings.datadog_logger.requests.post")
    def test_disabled_without_api_key(self, mock_post):
        handler = DatadogLogger(service="maap-test", api_key="", include_loggers=[])

        handler.emit(make_record())

        mock_post.assert_not_called()

    @patch("settings.datadog_logger.requests.post")
    def test_excluded_logger_is_not_shipped(self, mock_post, handler):
        handler.emit(make_record(name="multipart.multipart"))

        mock_post.assert_not_called()

    @patch("settings.datadog_logger.requests.post", side_effect=requests.ConnectionError("down"))
    def test_intake_failures_are_ignored(self, mock_post, handler):
        handler.emit(make_record())

        mock_post.assert_called_once()
