"""Structured logging helpers and outbound HTTP debug dumps."""

import logging
from collections.abc import MutableMapping
from typing import Any

import httpx

_MASKED_HEADERS = {"authorization"}
_MASKED_PARAMS = ("appid",)


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that supports structured logging with extra fields.

    Usage:
        logger = get_structured_logger(__name__)
        logger.info("Fetch complete", source="thermostat", elapsed=0.21)
    """

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        """Process log message and extract extra fields."""
        standard_kwargs = {"exc_info", "stack_info", "stacklevel", "extra"}
        extra = kwargs.pop("extra", {})

        # Move non-standard kwargs to extra
        for key in list(kwargs.keys()):
            if key not in standard_kwargs:
                extra[key] = kwargs.pop(key)

        if self.extra:
            extra = {**self.extra, **extra}

        kwargs["extra"] = extra
        if extra:
            fields = " ".join(f"{k}={v}" for k, v in extra.items())
            msg = f"{msg} [{fields}]"
        return msg, kwargs


def get_structured_logger(name: str, **default_extra: Any) -> StructuredLoggerAdapter:
    """
    Get a structured logger that supports extra keyword arguments.

    Args:
        name: Logger name (usually __name__)
        **default_extra: Default extra fields to include in all logs

    Returns:
        A StructuredLoggerAdapter instance
    """
    base_logger = logging.getLogger(name)
    return StructuredLoggerAdapter(base_logger, default_extra)


def _mask_url(url: httpx.URL) -> httpx.URL:
    for param in _MASKED_PARAMS:
        if param in url.params:
            url = url.copy_set_param(param, "masked")
    return url


def _format_headers(headers: httpx.Headers) -> str:
    lines = []
    for key, value in headers.items():
        if key.lower() in _MASKED_HEADERS:
            value = value.split(" ", 1)[0] + " ****"
        lines.append(f"{key}: {value}")
    return "\n".join(lines)


def debug_event_hooks(logger: logging.Logger) -> dict[str, list]:
    """
    Build httpx event hooks that dump every outbound request and response.

    Credentials in the Authorization header and the appid query parameter
    are masked.
    """

    async def log_request(request: httpx.Request) -> None:
        logger.debug(
            "%s %s\n%s\n\n",
            request.method,
            _mask_url(request.url),
            _format_headers(request.headers),
        )

    async def log_response(response: httpx.Response) -> None:
        body = await response.aread()
        logger.debug(
            "HTTP %s from %s\n%s\n\n%s",
            response.status_code,
            _mask_url(response.request.url),
            _format_headers(response.headers),
            body.decode("utf-8", errors="replace"),
        )

    return {"request": [log_request], "response": [log_response]}
