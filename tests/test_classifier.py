"""
Tests for the heuristic classifier.
"""
import pytest

from m3u_catalog.errors import ClassificationError
from m3u_catalog.models.catalog import ChannelRecord, Domain
from m3u_catalog.services.catalog_builder import CatalogBuilder
from m3u_catalog.services.classifier import (
    Classifier,
    Rule,
    has_episode_pattern,
    looks_like_linear_channel,
    normalize_title,
    parse_group,
    split_episode,
)
from m3u_catalog.services.m3u_parser import parse_playlist


def record(title, group="", url="http://x/stream", logo=""):
    return ChannelRecord(title=title, group_raw=group, url=url, logo=logo)


class TestHelpers:
    """Group parsing, title normalization and signals."""

    def test_parse_group_strips_glyphs(self):
        assert parse_group("◆ Series | Drama") == ("series", "Drama")

    def test_parse_group_defaults_sub(self):
        assert parse_group("Filmes") == ("filmes", "Outros")
        assert parse_group("Filmes|") == ("filmes", "Outros")
        assert parse_group("") == ("", "Outros")

    def test_normalize_title(self):
        assert normalize_title("  the matrix reloaded ") == "The Matrix Reloaded"
        assert normalize_title("") == "Sem Título"
        assert normalize_title(None) == "Sem Título"

    def test_episode_pattern(self):
        assert has_episode_pattern("Breaking Bad S01E02")
        assert has_episode_pattern("Chaves Temporada 3")
        assert has_episode_pattern("Novela Episódio 10")
        assert not has_episode_pattern("Matrix")

    def test_linear_channel_pattern(self):
        assert looks_like_linear_channel("Globo HD")
        assert looks_like_linear_channel("Show Ao Vivo")
        assert looks_like_linear_channel("BBB 24h")
        assert not looks_like_linear_channel("Matrix")
        # Whole words only
        assert not looks_like_linear_channel("Mixed Feelings")

    def test_split_episode_numbered(self):
        assert split_episode("Breaking Bad S01E02") == ("Breaking Bad", "1", "Episodio 2")
        assert split_episode("Lost - S04E11") == ("Lost", "4", "Episodio 11")

    def test_split_episode_keywords(self):
        name, season, episode_title = split_episode("chaves temporada 2 episodio 5")
        assert name == "Chaves"
        assert season == "2"
        assert episode_title == "Chaves Temporada 2 Episodio 5"

        assert split_episode("Chaves Episodio 7")[1] == "1"


class TestClassifier:
    """Placement of records into the categorized tree."""

    def test_movie_example(self):
        """A movie lands in filmes[sub] with normalized fields."""
        tree = Classifier().classify_all(parse_playlist(
            '#EXTINF:-1 group-title="Filmes|Acao" tvg-logo="l.png",Matrix\nhttp://x/matrix.mp4'
        ))

        assert list(tree.filmes) == ["Acao"]
        entry = tree.filmes["Acao"][0]
        assert entry.model_dump() == {"title": "Matrix", "url": "http://x/matrix.mp4", "logo": "l.png"}
        assert not tree.series and not tree.tv

    def test_series_example(self):
        """Series episodes are grouped by key and season."""
        builder = CatalogBuilder()
        placement = Classifier().classify(builder, record("Breaking Bad S01E02", "Series|Drama"))
        tree = builder.build()

        assert placement == (Domain.SERIES, "Drama")
        series = tree.series["Drama"]["breaking bad"]
        assert series.display_name == "Breaking Bad"
        assert [episode.title for episode in series.seasons["1"]] == ["Episodio 2"]
        assert not tree.tv and not tree.filmes

    def test_series_episodes_accumulate(self):
        classifier = Classifier()
        builder = CatalogBuilder()
        for title in ["Lost S01E01", "Lost S01E02", "Lost S02E01"]:
            classifier.classify(builder, record(title, "Séries|Drama", url=f"http://x/{title}"))

        series = builder.build().series["Drama"]["lost"]
        assert len(series.seasons["1"]) == 2
        assert len(series.seasons["2"]) == 1

    def test_channel_group_goes_to_tv(self):
        builder = CatalogBuilder()
        assert Classifier().classify(builder, record("Globo", "Canais|Abertos")) == (Domain.TV, "Abertos")

    def test_linear_title_overrides_movie_group(self):
        """Linear-looking titles are channels even in a movie group."""
        builder = CatalogBuilder()
        assert Classifier().classify(builder, record("Telecine Action HD", "Filmes|Acao")) == (Domain.TV, "Acao")

    def test_short_movie_title_goes_to_tv(self):
        builder = CatalogBuilder()
        assert Classifier().classify(builder, record("Up", "Filmes|Animacao")) == (Domain.TV, "Animacao")

    def test_series_without_episode_pattern_goes_to_tv(self):
        builder = CatalogBuilder()
        assert Classifier().classify(builder, record("Friends Especial", "Series|Comedia")) == (Domain.TV, "Comedia")

    def test_unknown_group_goes_to_fallback(self):
        builder = CatalogBuilder()
        assert Classifier().classify(builder, record("Jogo Do Dia", "Esportes|Futebol")) == (Domain.TV, "Outros")

    def test_missing_url_goes_to_fallback(self):
        builder = CatalogBuilder()
        placement = Classifier().classify(builder, record("Matrix Reloaded", "Filmes|Acao", url=""))
        assert placement == (Domain.TV, "Outros")

    def test_failing_rule_routes_to_fallback(self):
        """An exception in one record doesn't stop the batch."""
        def explode(builder, ctx):
            raise ValueError("boom")

        classifier = Classifier(rules=[Rule("explode", lambda c: c.title == "bad", explode),
                                       *Classifier().rules])
        tree = classifier.classify_all([
            record("bad", "Filmes|Acao"),
            record("Matrix", "Filmes|Acao"),
        ])

        assert [entry.title for entry in tree.tv["Outros"]] == ["Bad"]
        assert [entry.title for entry in tree.filmes["Acao"]] == ["Matrix"]
        assert classifier.failures == 1

    def test_place_raises_classification_error(self):
        with pytest.raises(ClassificationError):
            Classifier(rules=[]).place(CatalogBuilder(), record("Matrix"))

    def test_full_playlist(self, sample_m3u_content):
        tree = Classifier().classify_all(parse_playlist(sample_m3u_content))

        assert set(tree.filmes) == {"Acao"}
        assert set(tree.series) == {"Drama", "Suspense"}
        assert tree.series["Suspense"]["breaking bad"].seasons["2"][0].url == "http://x/bb-s02e01.mp4"
        assert set(tree.tv) == {"Abertos", "Outros"}
