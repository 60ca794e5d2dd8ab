"""
Tests for feed source resolution.
"""
import httpx
import pytest

from m3u_catalog.config import Settings
from m3u_catalog.errors import FeedUnavailable
from m3u_catalog.services.feed_loader import FeedLoader, LocalFileSource, RemoteSource


def remote(handler, url="http://feed.example/get.php"):
    return RemoteSource(
        url,
        headers={"User-Agent": "Mozilla/5.0", "Referer": "http://localhost"},
        transport=httpx.MockTransport(handler),
    )


class TestFeedLoader:
    """Ordered fallback across sources."""

    @pytest.mark.asyncio
    async def test_first_local_file_wins(self, tmp_path, sample_m3u_file):
        loader = FeedLoader([
            LocalFileSource(tmp_path / "missing.m3u"),
            LocalFileSource(sample_m3u_file),
            remote(lambda request: pytest.fail("remote should not be called")),
        ])

        result = await loader.load()
        assert result.source == str(sample_m3u_file)
        assert result.content.startswith("#EXTM3U")

    @pytest.mark.asyncio
    async def test_falls_back_to_remote_with_headers(self, tmp_path):
        seen = {}

        def handler(request):
            seen["user_agent"] = request.headers.get("user-agent")
            seen["referer"] = request.headers.get("referer")
            return httpx.Response(200, text="#EXTM3U\n#EXTINF:-1,A\nhttp://x/a\n")

        empty = tmp_path / "empty.m3u"
        empty.write_text("   \n")
        loader = FeedLoader([LocalFileSource(tmp_path / "missing.m3u"), LocalFileSource(empty), remote(handler)])

        result = await loader.load()
        assert result.source == "http://feed.example/get.php"
        assert seen == {"user_agent": "Mozilla/5.0", "referer": "http://localhost"}

    @pytest.mark.asyncio
    async def test_all_sources_fail(self, tmp_path):
        """Every failure is collected; only then FeedUnavailable is raised."""
        loader = FeedLoader([
            LocalFileSource(tmp_path / "missing.m3u"),
            remote(lambda request: httpx.Response(404)),
        ])

        with pytest.raises(FeedUnavailable) as exc_info:
            await loader.load()

        failures = exc_info.value.failures
        assert [source for source, _ in failures] == [
            str(tmp_path / "missing.m3u"),
            "http://feed.example/get.php",
        ]
        assert "404" in failures[1][1]

    @pytest.mark.asyncio
    async def test_network_error_is_a_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FeedUnavailable):
            await FeedLoader([remote(handler)]).load()

    @pytest.mark.asyncio
    async def test_empty_remote_body_is_a_failure(self):
        with pytest.raises(FeedUnavailable):
            await FeedLoader([remote(lambda request: httpx.Response(200, text=""))]).load()

    @pytest.mark.asyncio
    async def test_no_sources(self):
        with pytest.raises(FeedUnavailable):
            await FeedLoader([]).load()

    def test_from_settings(self):
        settings = Settings(feed_paths=["a.m3u", "b.m3u"], feed_url="http://feed.example/list")
        loader = FeedLoader.from_settings(settings)

        assert [source.name for source in loader.sources] == ["a.m3u", "b.m3u", "http://feed.example/list"]
        assert loader.sources[-1].headers["Referer"] == "http://localhost"

    def test_from_settings_without_remote(self):
        loader = FeedLoader.from_settings(Settings(feed_paths=["a.m3u"], feed_url=""))
        assert len(loader.sources) == 1
