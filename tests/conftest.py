"""
Pytest configuration and fixtures for catalog backend tests.
"""
import pytest

from m3u_catalog.models.catalog import (
    CategorizedTree,
    EpisodeEntry,
    MediaEntry,
    SeriesEntry,
)


@pytest.fixture
def sample_m3u_content():
    """Sample playlist with movies, series and channels."""
    return """#EXTM3U
#EXTINF:-1 group-title="Filmes|Acao" tvg-logo="l.png",Matrix
http://x/matrix.mp4
#EXTINF:-1 tvg-name="Breaking Bad S01E02" tvg-logo="bb.png" group-title="Series|Drama",Breaking Bad S01E02
http://x/bb-s01e02.mp4
#EXTINF:-1 tvg-name="Breaking Bad S02E01" tvg-logo="bb.png" group-title="◆ Series | Suspense",Breaking Bad S02E01
http://x/bb-s02e01.mp4
#EXTINF:-1 tvg-logo="globo.png" group-title="Canais|Abertos",Globo HD
http://x/globo.m3u8
#EXTINF:-1 group-title="Esportes",Jogo Do Dia
http://x/jogo.m3u8
"""


@pytest.fixture
def sample_m3u_file(sample_m3u_content, tmp_path):
    """Create a temporary playlist file for testing."""
    m3u_file = tmp_path / "playlist.m3u"
    m3u_file.write_text(sample_m3u_content, encoding="utf-8")
    return m3u_file


def _episode(n, season_prefix="bb"):
    return EpisodeEntry(title=f"Episodio {n}", url=f"http://x/{season_prefix}-{n}.mp4")


@pytest.fixture
def sample_tree():
    """Categorized tree with one series shared by two subcategories."""
    return CategorizedTree(
        filmes={
            "Acao": [
                MediaEntry(title="Matrix", url="http://x/matrix.mp4", logo="l.png"),
                MediaEntry(title="John Wick", url="http://x/wick.mp4"),
            ],
            "Comedia": [MediaEntry(title="Todo Mundo Em Panico", url="http://x/tmp.mp4")],
        },
        series={
            "Drama": {
                "breaking bad": SeriesEntry(
                    display_name="Breaking Bad",
                    logo="bb.png",
                    seasons={"1": [_episode(1), _episode(2)]},
                ),
                "the crown": SeriesEntry(
                    display_name="The Crown",
                    seasons={"1": [_episode(1, "crown")]},
                ),
            },
            "Suspense": {
                "breaking bad": SeriesEntry(
                    display_name="Breaking Bad",
                    seasons={"1": [_episode(2), _episode(3)], "2": [_episode(1, "bb-s2")]},
                ),
            },
        },
        tv={
            "Abertos": [MediaEntry(title="Globo HD", url="http://x/globo.m3u8")],
            "Outros": [MediaEntry(title="Jogo Do Dia", url="http://x/jogo.m3u8")],
        },
    )
