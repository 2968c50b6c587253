from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Mapping

from ..middlewares.request_id import principal_ctx_var, request_id_ctx_var


SECRET_KEYS = frozenset({"token", "authorization", "password", "auth_token"})


class JsonLogFormatter(logging.Formatter):
    """One JSON object per record, tagged with the request id and the operator fingerprint.

    Keys in ``extra_data`` that name a secret are masked; log a ``fingerprint``
    of a token instead.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = request_id_ctx_var.get()
        if request_id:
            payload["request_id"] = request_id
        principal = principal_ctx_var.get()
        if principal:
            payload["principal"] = principal
        extra = getattr(record, "extra_data", None)
        if isinstance(extra, Mapping):
            payload.update(
                (key, "[redacted]" if key.lower() in SECRET_KEYS else value) for key, value in extra.items()
            )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), default=str)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonLogFormatter())
    logging.root.handlers = [handler]
    logging.root.setLevel(level.upper())
    # httpx logs every request line at INFO; our client logs the interesting ones.
    logging.getLogger("httpx").setLevel(logging.WARNING)
