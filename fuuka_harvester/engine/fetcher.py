"""HTTP fetching against the archive with server-directed rate limiting."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict

import httpx
import structlog

from ..config import GlobalConfig

DEFAULT_RETRY_AFTER = 30


class TransportError(Exception):
    """Non-success response or network failure for a single request."""

    def __init__(self, status_code: int | None, reason: str) -> None:
        self.status_code = status_code
        self.reason = reason
        label = f"HTTP {status_code}" if status_code is not None else "Transport failure"
        super().__init__(f"{label}: {reason}")


class MalformedPayloadError(TransportError):
    """The response arrived but its body could not be decoded."""


@dataclass(slots=True)
class FetchResponse:
    """Standardised response wrapper."""

    url: str
    status_code: int
    text: str
    headers: Dict[str, str]
    raw: httpx.Response | None = field(repr=False, default=None)

    def json(self) -> Any:
        if self.raw is not None:
            try:
                return self.raw.json()
            except ValueError as exc:
                raise MalformedPayloadError(self.status_code, f"invalid JSON: {exc}") from exc
        raise MalformedPayloadError(self.status_code, "no body to decode")


def parse_retry_after(value: str | None) -> int:
    """Seconds to wait from a ``Retry-After`` header, 30 when absent or unusable."""

    if value is None:
        return DEFAULT_RETRY_AFTER
    text = value.strip()
    if not text.isdecimal():
        return DEFAULT_RETRY_AFTER
    try:
        return int(text)
    except ValueError:
        return DEFAULT_RETRY_AFTER


class Fetcher:
    """Issue GET requests with the ambient session and honour 429 directives.

    A 429 response is not a failure: the fetcher waits the number of seconds
    the server asked for and re-issues the same request, as many times as the
    server keeps asking. Every other non-2xx status raises ``TransportError``.
    """

    def __init__(
        self,
        global_config: GlobalConfig,
        logger: structlog.BoundLogger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.global_config = global_config
        self.logger = logger or structlog.get_logger("fuuka_harvester.fetcher")
        self._sleep = sleep
        self.rate_limit_waits = 0
        self._client = httpx.Client(
            base_url=global_config.base_url,
            follow_redirects=True,
            timeout=global_config.request_timeout,
            headers={"User-Agent": global_config.user_agent},
            cookies=global_config.cookies,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def get(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> FetchResponse:
        waits = 0
        while True:
            try:
                response = self._client.request("GET", path, params=params, headers=headers)
            except httpx.HTTPError as exc:
                raise TransportError(None, str(exc) or type(exc).__name__) from exc

            if response.status_code == 429:
                delay = parse_retry_after(response.headers.get("Retry-After"))
                waits += 1
                self.rate_limit_waits += 1
                self.logger.warning(
                    "rate_limited",
                    path=path,
                    retry_after=delay,
                    wait_number=waits,
                )
                self._sleep(delay)
                continue

            if not response.is_success:
                raise TransportError(response.status_code, response.reason_phrase or "")

            return FetchResponse(
                url=str(response.url),
                status_code=response.status_code,
                text=response.text,
                headers=dict(response.headers),
                raw=response,
            )


__all__ = [
    "DEFAULT_RETRY_AFTER",
    "FetchResponse",
    "Fetcher",
    "MalformedPayloadError",
    "TransportError",
    "parse_retry_after",
]
