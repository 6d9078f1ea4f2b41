"""Shared HTTP client for scraped sources (requests.Session with retries)."""

import time
from collections.abc import Callable
from typing import Any, Final

import requests

from src.config.logging_config import get_logger
from src.domain.exceptions import SourceFetchError

logger = get_logger(__name__)

DEFAULT_HTTP_TIMEOUT_SECONDS: Final[float] = 20.0
DEFAULT_HTTP_MAX_RETRIES: Final[int] = 3
RETRYABLE_STATUS_CODES: Final[frozenset[int]] = frozenset({429, 500, 502, 503, 504})
MAX_RETRY_AFTER_SECONDS: Final[int] = 300


def parse_retry_after(value: str | None) -> int | None:
    """Seconds from a Retry-After header, or None when absent or not numeric."""
    try:
        seconds = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return min(max(seconds, 0), MAX_RETRY_AFTER_SECONDS)


class HttpClient:
    """HTTP client with timeout, user agent and retry handling."""

    def __init__(
        self,
        *,
        user_agent: str,
        timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_HTTP_MAX_RETRIES,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize HTTP client.

        Args:
            user_agent: User-Agent header for every request
            timeout_seconds: Per-request timeout
            max_retries: Attempts for connection errors and retryable statuses
            session: Optional pre-built session (tests)
        """
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})
        self._timeout_seconds = timeout_seconds
        self._max_retries = max(max_retries, 1)

    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        *,
        display_url: str | None = None,
    ) -> requests.Response:
        """GET a URL, retrying transient failures.

        Args:
            url: Request URL
            headers: Extra request headers
            display_url: URL shown in logs and errors instead of `url`

        Raises:
            SourceFetchError: On non-2xx response or connection failure
        """
        return self._request(self.session.get, url, display_url, headers=headers)

    def get_text(self, url: str, headers: dict[str, str] | None = None) -> str:
        """GET a URL and return the body as text."""
        return self.get(url, headers=headers).text

    def get_json(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        *,
        display_url: str | None = None,
    ) -> Any:
        """GET a URL and decode the JSON body.

        Raises:
            SourceFetchError: On transport errors or a non-JSON body
        """
        response = self.get(url, headers=headers, display_url=display_url)
        return _decode_json(response, display_url or url)

    def post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        *,
        display_url: str | None = None,
    ) -> Any:
        """POST a JSON body and decode the JSON response.

        Raises:
            SourceFetchError: On transport errors or a non-JSON body
        """
        response = self._request(
            self.session.post, url, display_url, json=payload, headers=headers
        )
        return _decode_json(response, display_url or url)

    def close(self) -> None:
        """Close the underlying session."""
        self.session.close()

    def _request(
        self,
        send: Callable[..., requests.Response],
        url: str,
        display_url: str | None,
        **kwargs: Any,
    ) -> requests.Response:
        shown_url = display_url or url
        attempt = 0
        while True:
            attempt += 1
            try:
                response = send(url, timeout=self._timeout_seconds, **kwargs)
            except requests.RequestException as error:
                # requests puts the full URL into its messages
                reason = type(error).__name__ if display_url else str(error)
                if attempt >= self._max_retries:
                    raise SourceFetchError(shown_url, reason) from error
                self._backoff(shown_url, attempt, error=reason)
                continue

            if response.ok:
                return response

            if (
                response.status_code in RETRYABLE_STATUS_CODES
                and attempt < self._max_retries
            ):
                retry_after = None
                if response.status_code == 429:
                    retry_after = parse_retry_after(response.headers.get("Retry-After"))
                if retry_after is not None:
                    logger.warning(
                        "http_rate_limited",
                        url=shown_url,
                        attempt=attempt,
                        retry_after_seconds=retry_after,
                    )
                    time.sleep(retry_after)
                else:
                    self._backoff(shown_url, attempt, status_code=response.status_code)
                continue

            raise SourceFetchError(
                shown_url,
                f"HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

    def _backoff(self, url: str, attempt: int, **context: Any) -> None:
        backoff_seconds = 2**attempt
        logger.warning(
            "http_request_retry",
            url=url,
            attempt=attempt,
            max_retries=self._max_retries,
            backoff_seconds=backoff_seconds,
            **context,
        )
        time.sleep(backoff_seconds)


def _decode_json(response: requests.Response, url: str) -> Any:
    try:
        return response.json()
    except ValueError as error:
        raise SourceFetchError(url, "Response is not valid JSON") from error
