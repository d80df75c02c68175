import logging
import os
import json
import requests
import re
from typing import List, Optional

from settings.config import get_settings

# ONLY exclude very noisy internals
EXCLUDED_LOGGERS = {
    "multipart",   # form parsing internals
    "httpcore",    # low-level HTTP noise
    "urllib3",     # our own intake requests
}

# Extra attributes copied from the LogRecord when present
STRUCTURED_FIELDS = ("duration_ms", "event_type", "error.message", "error.type")

# Format: "IP:PORT - "METHOD PATH HTTP_VERSION" STATUS_CODE"
ACCESS_LOG_PATTERN = re.compile(
    r'(\d+\.\d+\.\d+\.\d+):(\d+)\s+-\s+"(\w+)\s+([^\s?]+)(?:\?[^"]*)?\s+HTTP/[^"]+"\s+(\d+)'
)


class DatadogLogger(logging.Handler):
    """Ships log records to the Datadog HTTP intake. Disabled when no API key is configured."""

    def __init__(self, service: str, api_key: Optional[str] = None, log_url: Optional[str] = None,
                 env: Optional[str] = None, include_loggers: Optional[List[str]] = None):
        super().__init__()
        settings = get_settings()
        self.service = service
        self.api_key = api_key if api_key is not None else settings.datadog_api_key
        self.log_url = log_url or settings.datadog_log_url
        self.env = env or settings.env
        self.include_loggers = include_loggers if include_loggers is not None else settings.include_logger_prefixes()

        # Uvicorn already formats access logs
        self.setFormatter(logging.Formatter("%(message)s"))

    @staticmethod
    def parse_access_log(message: str) -> dict:
        """
        Parse a uvicorn access log line into http.* fields.
        Returns an empty dict for anything else.
        """
        match = ACCESS_LOG_PATTERN.match(message)
        if not match:
            return {}

        client_ip, client_port, method, path, status_code = match.groups()
        return {
            "http.method": method,
            "http.url": path,
            "http.status_code": int(status_code),
            "http.client_ip": client_ip,
            "http.client_port": int(client_port),
        }

    def should_log(self, record: logging.LogRecord) -> bool:
        logger_name = record.name

        # Allowlist mode (if configured)
        if self.include_loggers:
            return any(logger_name.startswith(prefix) for prefix in self.include_loggers)

        return not any(logger_name.startswith(excluded) for excluded in EXCLUDED_LOGGERS)

    def build_payload(self, record: logging.LogRecord) -> dict:
        message = self.format(record)
        payload = {
            "message": message,
            "ddsource": "python",
            "service": self.service,
            "hostname": os.getenv("HOSTNAME"),
            "status": record.levelname.lower(),
            "logger": record.name,
        }

        # extra= fields land as attributes on the record
        http_fields = {
            attr: value for attr, value in vars(record).items()
            if attr.startswith("http.") and value is not None
        }
        if not http_fields and record.name == "uvicorn.access":
            http_fields = self.parse_access_log(message)
        payload.update(http_fields)

        for attr in STRUCTURED_FIELDS:
            value = getattr(record, attr, None)
            if value is not None:
                payload[attr] = value

        tags = [f"env:{self.env}", f"service:{self.service}"]
        if payload.get("http.method"):
            tags.append(f"http.method:{str(payload['http.method']).lower()}")
        if payload.get("http.status_code"):
            tags.append(f"http.status_code:{payload['http.status_code']}")
        if payload.get("event_type"):
            tags.append(f"event_type:{payload['event_type']}")
        payload["ddtags"] = ",".join(tags)
        return payload

    def emit(self, record: logging.LogRecord):
        if not self.api_key or not self.should_log(record):
            return

        try:
            requests.post(
                self.log_url,
                headers={
                    "Content-Type": "application/json",
                    "DD-API-KEY": self.api_key,
                },
                data=json.dumps(self.build_payload(record), default=str),
                timeout=2,
            )
        except requests.RequestException:
            # Never break the app because of logging
            pass
        except Exception:
            self.handleError(record)
