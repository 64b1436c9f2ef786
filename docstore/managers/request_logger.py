"""
Request logging for managers.

A RequestLogger copies a one-line summary of every request a manager makes,
plus a bounded preview of the content sent or received, to a text stream.
It is separate from module logging: module loggers record what the client
does for operators, a request logger records what a caller asked for so
it can be inspected while debugging an application.
"""

import logging
import sys
from typing import Any, Optional, TextIO

logger = logging.getLogger(__name__)

NO_CONTENT = 0
ALL_CONTENT = -1


class RequestLogger:
    """Writes request summaries and content previews to ``out``.

    ``content_max`` bounds the preview: NO_CONTENT logs no content,
    ALL_CONTENT logs it whole, any positive number logs at most that many
    bytes.
    """

    def __init__(
        self, out: Optional[TextIO] = None, content_max: int = NO_CONTENT
    ) -> None:
        if content_max < ALL_CONTENT:
            raise ValueError(f"Invalid content_max: {content_max}")
        self.out = out if out is not None else sys.stderr
        self.content_max = content_max

    def log_request(self, operation: str, **details: Any) -> None:
        fields = " ".join(
            f"{key}={value}" for key, value in details.items() if value is not None
        )
        self.out.write(f"{operation} {fields}".rstrip() + "\n")

    def copy_content(self, content: Optional[bytes]) -> None:
        if content is None or self.content_max == NO_CONTENT:
            return
        if self.content_max == ALL_CONTENT or len(content) <= self.content_max:
            preview = content
            suffix = ""
        else:
            preview = content[: self.content_max]
            suffix = f"... ({len(content)} bytes)"
        self.out.write(preview.decode("utf-8", errors="replace") + suffix + "\n")

    def flush(self) -> None:
        self.out.flush()


class RequestLoggingMixin:
    """Lets a manager copy its requests to a RequestLogger."""

    request_logger: Optional[RequestLogger] = None

    def start_logging(self, request_logger: RequestLogger) -> None:
        logger.debug(
            "Request logging started",
            extra={"manager": type(self).__name__},
        )
        self.request_logger = request_logger

    def stop_logging(self) -> None:
        if self.request_logger is not None:
            self.request_logger.flush()
        self.request_logger = None

    def _log_request(self, operation: str, **details: Any) -> None:
        if self.request_logger is not None:
            self.request_logger.log_request(operation, **details)

    def _log_content(self, content: Optional[bytes]) -> None:
        if self.request_logger is not None:
            self.request_logger.copy_content(content)
