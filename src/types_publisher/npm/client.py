import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, Set, TypeVar

from ..config import Settings
from ..domain.errors import CacheSessionError, NpmRegistryError
from ..domain.models import NpmInfo, normalize
from .cache import NpmInfoCache, NpmInfoCacheStore
from .fetcher import FetchError, Fetcher

logger = logging.getLogger(__name__)

T = TypeVar("T")

# npm resets the connection if the next request follows a fetch immediately.
POST_FETCH_DELAY = 0.01

NOT_FOUND = "Not found"


def escape_package_name(package_name: str) -> str:
    """encode the scope separator; the registry routes on path segments."""
    return package_name.replace("/", "%2f")


class UncachedNpmInfoClient:
    """reads package metadata straight from the registry."""

    def __init__(self, fetcher: Optional[Fetcher] = None, settings: Optional[Settings] = None):
        self.fetcher = fetcher or Fetcher()
        self.settings = settings or Settings()

    async def fetch_npm_info(self, package_name: str) -> Optional[NpmInfo]:
        raw = await self.fetch_raw_npm_info(package_name)
        await asyncio.sleep(POST_FETCH_DELAY)
        return None if raw is None else normalize(raw)

    async def fetch_raw_npm_info(self, package_name: str) -> Optional[Dict[str, Any]]:
        """
        fetch the registry document for a package.

        returns:
            the raw document, or None if the registry does not know the package

        raises:
            NpmRegistryError: on any other error payload or exhausted retries
        """
        url = f"{self.settings.registry_base}/{escape_package_name(package_name)}"
        try:
            info = await self.fetcher.fetch_json(url)
        except FetchError as e:
            raise NpmRegistryError(package_name, e.message) from e

        if isinstance(info, dict) and "error" in info:
            if info["error"] == NOT_FOUND:
                return None
            raise NpmRegistryError(package_name, str(info["error"]))
        return info

    async def get_downloads(self, package_name: str) -> int:
        """monthly download count; 0 when the stats endpoint has none."""
        url = f"{self.settings.api_base}/downloads/point/last-month/{package_name}"
        try:
            data = await self.fetcher.fetch_json(url)
        except FetchError as e:
            raise NpmRegistryError(package_name, e.message) from e

        # some packages aren't listed, so the body carries "error" instead
        downloads = data.get("downloads") if isinstance(data, dict) else None
        if isinstance(downloads, bool) or not isinstance(downloads, (int, float)):
            return 0
        return max(int(downloads), 0)

    async def close(self):
        await self.fetcher.close()

    async def __aenter__(self) -> "UncachedNpmInfoClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()


_active_cache_files: Set[Path] = set()


class CachedNpmInfoClient:
    """
    serves package metadata from a persistent cache when the cached document
    already contains a version with the requested content hash.

    use through `session` (or `run`) so the cache is written back exactly once.
    """

    def __init__(self, uncached_client: UncachedNpmInfoClient, cache: NpmInfoCache):
        self.uncached_client = uncached_client
        self.cache = cache

    @classmethod
    @asynccontextmanager
    async def session(
        cls, uncached_client: UncachedNpmInfoClient, cache_file: Path
    ) -> AsyncIterator["CachedNpmInfoClient"]:
        key = cache_file.resolve()
        if key in _active_cache_files:
            raise CacheSessionError(f"a session is already using {cache_file}")
        _active_cache_files.add(key)

        store = NpmInfoCacheStore(cache_file)
        try:
            client = cls(uncached_client, store.load())
            try:
                yield client
            finally:
                store.save(client.cache)
        finally:
            _active_cache_files.discard(key)

    @classmethod
    async def run(
        cls,
        uncached_client: UncachedNpmInfoClient,
        work: Callable[["CachedNpmInfoClient"], Awaitable[T]],
        cache_file: Path,
    ) -> T:
        async with cls.session(uncached_client, cache_file) as client:
            return await work(client)

    async def get_npm_info(self, package_name: str, content_hash: Optional[str]) -> Optional[NpmInfo]:
        cached = self.cache.get(package_name)
        if cached is not None and content_hash is not None and cached.has_content_hash(content_hash):
            logger.debug(f"cache hit for {package_name}")
            return cached

        info = await self.uncached_client.fetch_npm_info(package_name)
        # without a hash there is nothing to validate a later hit against
        if info is not None and content_hash is not None:
            self.cache[package_name] = info
        return info
