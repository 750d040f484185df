"""async JSON fetching with retry on transient failures."""

import asyncio
import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class FetchError(Exception):
    """raised when a request keeps failing after all retries."""
    def __init__(self, url: str, cause: Exception, upstream_error: Optional[str] = None):
        self.url = url
        self.cause = cause
        self.upstream_error = upstream_error
        super().__init__(f"request to {url} failed: {upstream_error or cause}")

    @property
    def message(self) -> str:
        """the registry's own error message when it sent one."""
        return self.upstream_error or str(self.cause)


class Fetcher:
    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        backoff_multiplier: float = 2.0,
        timeout: float = 30.0,
    ):
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.backoff_multiplier = backoff_multiplier

    async def fetch_json(self, url: str, retries: bool = True) -> Any:
        """
        GET a url and decode its JSON body.

        error payloads (e.g. {"error": "Not found"} with a 404) are returned
        as decoded JSON, not raised; transport failures, retryable status
        codes and bodies that are not JSON are retried.

        raises:
            FetchError: if every attempt failed
        """
        attempts = self.max_retries + 1 if retries else 1
        delay = self.retry_delay
        last_error: Optional[Exception] = None
        upstream_error: Optional[str] = None

        for attempt in range(attempts):
            if attempt > 0:
                logger.info(f"retry attempt {attempt}/{self.max_retries} for {url} after {delay}s")
                await asyncio.sleep(delay)
                delay *= self.backoff_multiplier

            upstream_error = None
            try:
                response = await self.client.get(url)
                if response.status_code in RETRYABLE_STATUS_CODES:
                    upstream_error = _error_field(response)
                    raise httpx.HTTPStatusError(
                        f"server returned {response.status_code}",
                        request=response.request,
                        response=response,
                    )
                return response.json()
            except (httpx.TransportError, httpx.HTTPStatusError) as e:
                last_error = e
                logger.warning(f"request to {url} failed: {e}")
            except ValueError as e:
                # proxies answer with html error pages
                last_error = e
                logger.warning(f"response from {url} is not JSON: {e}")

        raise FetchError(url, last_error, upstream_error)

    async def close(self):
        await self.client.aclose()

    async def __aenter__(self) -> "Fetcher":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()


def _error_field(response: httpx.Response) -> Optional[str]:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return None
