"""test suite for the retrying JSON fetcher."""
import pytest
import asyncio
import httpx
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from types_publisher.npm.fetcher import FetchError, Fetcher


def make_fetcher(handler, max_retries=3):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return Fetcher(client, max_retries=max_retries, retry_delay=0)


class TestFetcher:
    def test_returns_decoded_json(self):
        fetcher = make_fetcher(lambda request: httpx.Response(200, json={"ok": True}))
        assert asyncio.run(fetcher.fetch_json("https://registry.test/pkg")) == {"ok": True}

    def test_error_payload_is_not_raised(self):
        fetcher = make_fetcher(lambda request: httpx.Response(404, json={"error": "Not found"}))
        assert asyncio.run(fetcher.fetch_json("https://registry.test/pkg")) == {"error": "Not found"}

    def test_retries_server_errors(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"ok": True})

        fetcher = make_fetcher(handler)
        assert asyncio.run(fetcher.fetch_json("https://registry.test/pkg")) == {"ok": True}
        assert len(calls) == 3

    def test_gives_up_after_max_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection reset", request=request)

        fetcher = make_fetcher(handler, max_retries=2)
        with pytest.raises(FetchError):
            asyncio.run(fetcher.fetch_json("https://registry.test/pkg"))
        assert len(calls) == 3

    def test_non_json_body_raises_fetch_error(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, text="<html>bad gateway</html>")

        fetcher = make_fetcher(handler, max_retries=1)
        with pytest.raises(FetchError) as exc_info:
            asyncio.run(fetcher.fetch_json("https://registry.test/pkg"))
        assert isinstance(exc_info.value.cause, ValueError)
        assert len(calls) == 2

    def test_keeps_upstream_error_message(self):
        fetcher = make_fetcher(lambda request: httpx.Response(500, json={"error": "internal boom"}), max_retries=1)
        with pytest.raises(FetchError) as exc_info:
            asyncio.run(fetcher.fetch_json("https://registry.test/pkg"))
        assert exc_info.value.upstream_error == "internal boom"
        assert exc_info.value.message == "internal boom"

    def test_upstream_error_from_last_attempt_only(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(500, json={"error": "first"})
            raise httpx.ConnectError("reset", request=request)

        fetcher = make_fetcher(handler, max_retries=1)
        with pytest.raises(FetchError) as exc_info:
            asyncio.run(fetcher.fetch_json("https://registry.test/pkg"))
        assert exc_info.value.upstream_error is None
        assert "reset" in exc_info.value.message

    def test_context_manager_closes_client(self):
        fetcher = make_fetcher(lambda request: httpx.Response(200, json={}))

        async def use():
            async with fetcher as f:
                await f.fetch_json("https://registry.test/pkg")

        asyncio.run(use())
        assert fetcher.client.is_closed

    def test_no_retries_when_disabled(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        fetcher = make_fetcher(handler)
        with pytest.raises(FetchError):
            asyncio.run(fetcher.fetch_json("https://registry.test/pkg", retries=False))
        assert len(calls) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
