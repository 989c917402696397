"""
checkers/http_checker.py

Responsibility: Checks a single HTTP(S) URL with a bounded retry policy and
turns the result into a HealthVerdict.
Does NOT: read configuration, touch DNS records, or log to the database.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from checkers.health_checker import HealthVerdict
from exceptions import InvalidCheckUrlError

logger = logging.getLogger(__name__)

# Total attempts per check, including the first one
DEFAULT_MAX_ATTEMPTS = 3

# Timeout for a single attempt, in seconds
DEFAULT_TIMEOUT = 5.0

# Fixed pause between a failed attempt and the next one, in seconds
DEFAULT_RETRY_DELAY = 10.0


def status_line(response: httpx.Response) -> str:
    """Formats a response status the way HTTP prints it, e.g. "503 Service Unavailable"."""
    return f"{response.status_code} {response.reason_phrase}".strip()


class HttpHealthChecker:
    """
    Checks the primary endpoint with plain GET requests.

    Any 2xx response is healthy and ends the check at once. Transport errors
    and non-2xx responses (redirects are not followed) count as failed
    attempts; after the last failed attempt the verdict is unhealthy. Only a
    malformed URL raises.

    Worst-case duration is max_attempts * timeout + (max_attempts - 1) * retry_delay.

    Collaborators:
        - httpx.AsyncClient: injected; must be kept alive externally
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        url: str,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        timeout: float = DEFAULT_TIMEOUT,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> None:
        """
        Initialises the checker. The URL is validated on every check, not here.

        Args:
            http_client: A long-lived httpx.AsyncClient instance.
            url: The health-check URL of the primary endpoint.
            max_attempts: Attempts per check (at least 1).
            timeout: Per-attempt timeout in seconds.
            retry_delay: Seconds to wait between failed attempts.
        """
        self._client = http_client
        self.url = url
        self._max_attempts = max(1, max_attempts)
        self._timeout = timeout
        self._retry_delay = retry_delay

    async def check_health(self) -> HealthVerdict:
        """
        Requests the URL until one attempt is healthy or the attempts run out.

        Returns:
            HealthVerdict(True, status line) on the first 2xx response, or
            HealthVerdict(False, detail of the last attempt) otherwise.

        Raises:
            InvalidCheckUrlError: If the URL is malformed. No request is sent.
        """
        url = self._validated_url()

        detail = ""
        for attempt in range(1, self._max_attempts + 1):
            try:
                # NOTE: httpx timeouts apply per operation; wait_for caps the whole attempt.
                response = await asyncio.wait_for(self._attempt(url), self._timeout)
            except asyncio.TimeoutError:
                detail = f"attempt timed out after {self._timeout:g}s"
                logger.debug("Health check attempt %d/%d for %s timed out.",
                             attempt, self._max_attempts, self.url)
            except httpx.RequestError as exc:
                detail = str(exc) or exc.__class__.__name__
                logger.debug("Health check attempt %d/%d for %s failed: %s",
                             attempt, self._max_attempts, self.url, detail)
            else:
                detail = status_line(response)
                if response.is_success:
                    return HealthVerdict(healthy=True, detail=detail)
                logger.debug("Health check attempt %d/%d for %s returned %s",
                             attempt, self._max_attempts, self.url, detail)

            if attempt < self._max_attempts:
                await asyncio.sleep(self._retry_delay)

        return HealthVerdict(healthy=False, detail=detail)

    async def _attempt(self, url: httpx.URL) -> httpx.Response:
        return await self._client.get(url, timeout=self._timeout, follow_redirects=False)

    def _validated_url(self) -> httpx.URL:
        try:
            url = httpx.URL(self.url)
        except (httpx.InvalidURL, TypeError) as exc:
            raise InvalidCheckUrlError(f"invalid health check URL {self.url!r}: {exc}") from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise InvalidCheckUrlError(
                f"invalid health check URL {self.url!r}: expected an absolute http(s) URL"
            )
        return url
