"""
Logging setup for the color diagnosis API.

Every line carries the service name and, inside a request, the short request
id the middleware assigns. Production emits one JSON object per line on
stderr; LOG_JSON=false switches to a plain text layout for local runs.
Caller IPs are masked before they reach a log line.
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

SERVICE_NAME = "color-diagnosis"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Libraries that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "pymongo", "google_genai")

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind a request id to the current context, generating one if needed."""
    request_id = request_id or uuid.uuid4().hex[:8]
    request_id_var.set(request_id)
    return request_id


class JSONFormatter(logging.Formatter):
    """One JSON object per record; keyword fields go under "data"."""

    def __init__(self, service_name: str = SERVICE_NAME):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }
        request_id = get_request_id()
        if request_id:
            entry["request_id"] = request_id
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        fields = getattr(record, "extra_data", None)
        if fields:
            entry["data"] = fields
        # Korean/Japanese prompts and replies stay readable
        return json.dumps(entry, ensure_ascii=False, default=str)


class StructuredLogger:
    """
    logging.Logger facade taking fields as keyword arguments.

        logger.info("Diagnosis complete", mode="data", client_ip=masked)
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log(self, level: int, message: str, fields: dict, exc_info: bool = False) -> None:
        extra = {"extra_data": fields} if fields else None
        self.logger.log(level, message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, **fields: Any) -> None:
        self._log(logging.DEBUG, message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._log(logging.INFO, message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log(logging.WARNING, message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._log(logging.ERROR, message, fields)

    def exception(self, message: str, **fields: Any) -> None:
        """ERROR with the active exception's traceback attached."""
        self._log(logging.ERROR, message, fields, exc_info=True)


def setup_logging(
    level: int | str = logging.INFO,
    service_name: str = SERVICE_NAME,
    use_json: bool = True
) -> None:
    """Replace the root handlers with a single stderr handler.

    Args:
        level: Root log level, as a number or a name such as "DEBUG"
        service_name: Value of the "service" field in JSON output
        use_json: JSON lines when True, TEXT_FORMAT otherwise
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter(service_name) if use_json else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    client_ip: Optional[str] = None,
) -> None:
    """Access-log line for one HTTP exchange; 5xx responses log at ERROR."""
    fields = {
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2),
    }
    if client_ip:
        fields["client_ip"] = mask_ip(client_ip)

    level = logging.ERROR if status_code >= 500 else logging.INFO
    StructuredLogger("http")._log(level, f"{method} {path} {status_code}", fields)


def mask_ip(ip: str) -> str:
    """Keep the first two IPv4 octets or IPv6 groups; anything else is "xxx"."""
    octets = ip.split(".")
    if len(octets) == 4:
        return f"{octets[0]}.{octets[1]}.xxx.xxx"
    groups = ip.split(":")
    if len(groups) > 2 and groups[0]:
        return f"{groups[0]}:{groups[1]}:xxxx"
    return "xxx"
