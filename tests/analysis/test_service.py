import pytest

from core.config import get_settings
from core.models import FixtureStatus, Market
from analysis.report import build_narrative_context, render_report
from analysis.service import analyze_fixture, find_fixture, split_teams

MR = Market.MATCH_RESULT
ODDS = {MR: {"1": 2.00, "X": 3.20, "2": 3.50}}


@pytest.fixture(autouse=True)
def env(monkeypatch):
    monkeypatch.setenv("SIMILARITY_THRESHOLD", "0.05")
    monkeypatch.setenv("MIN_SIMILAR_CATEGORIES", "1")


def test_split_teams() -> None:
    assert split_teams("Galatasaray vs Fenerbahçe") == ("Galatasaray", "Fenerbahçe")
    assert split_teams("Beşiktaş - Trabzonspor") == ("Beşiktaş", "Trabzonspor")
    assert split_teams("Galatasaray") is None


def test_find_fixture_by_id_and_fuzzy_names(make_fixture) -> None:
    past = make_fixture(home="Galatasaray", away="Fenerbahce", fixture_id="100", ft="1-0")
    upcoming = make_fixture(
        home="Galatasaray", away="Fenerbahçe", fixture_id="200", status=FixtureStatus.NOT_STARTED
    )
    other = make_fixture(home="Besiktas", away="Konyaspor", fixture_id="300", ft="0-0")
    corpus = [past, upcoming, other]

    assert find_fixture(corpus, "300") is other
    assert find_fixture(corpus, "galatasaray vs fenerbahçe") is upcoming
    assert find_fixture(corpus, "Beşiktaş vs Konyaspor", cutoff=70) is other
    assert find_fixture(corpus, "Real Madrid vs Barcelona") is None
    assert find_fixture(corpus, "") is None


def test_find_fixture_filters_by_date(make_fixture) -> None:
    a = make_fixture(home="Alanyaspor", away="Sivasspor", date="2024-05-01", ft="1-0")
    b = make_fixture(home="Alanyaspor", away="Sivasspor", date="2024-05-08", ft="2-0")
    assert find_fixture([a, b], "Alanyaspor vs Sivasspor", date="2024-05-08") is b


def test_analyze_fixture_excludes_target_and_uses_settings(make_fixture) -> None:
    target = make_fixture(odds=ODDS, ft="3-0", fixture_id="target")
    similar = make_fixture(odds={MR: {"1": 2.03, "X": 3.18, "2": 3.52}}, ft="1-1")
    far = make_fixture(odds={MR: {"1": 1.20, "X": 6.00, "2": 11.0}}, ft="2-0")

    result = analyze_fixture(target, [target, similar, far], get_settings())

    assert [m.fixture.id for m in result.matched] == [similar.id]
    assert result.config.min_matched_markets == 1
    assert result.table.get(MR, "X").percentage == 100.0
    payload = result.to_dict(max_listed=5)
    assert payload["matched_count"] == 1
    assert payload["frequencies"]["summary"] == "Based on 1 similar-odds historical fixtures"


def test_narrative_context_block(make_fixture) -> None:
    target = make_fixture(odds=ODDS, status=FixtureStatus.NOT_STARTED, home="Rize", away="Kasımpaşa")
    corpus = [make_fixture(odds=ODDS, ft="2-1", ht="1-0", home=f"H{i}", away=f"A{i}") for i in range(3)]
    result = analyze_fixture(target, corpus)

    text = build_narrative_context(result, max_listed=2)

    assert "Rize vs Kasımpaşa" in text
    assert "Based on 3 similar-odds historical fixtures" in text
    assert "- Maç Sonucu: 1 100.0% (3/3), X 0.0% (0/3), 2 0.0% (0/3)" in text
    assert "H0 vs A0 2-1 (IY 1-0) [1 mercati]" in text
    assert "... e altre 1 partite" in text


def test_narrative_context_without_matches(make_fixture) -> None:
    target = make_fixture(odds=ODDS, status=FixtureStatus.NOT_STARTED)
    text = build_narrative_context(analyze_fixture(target, []))
    assert "No similar-odds historical fixtures found" in text
    assert "Frequenze esiti" not in text


class _StaticGenerator:
    def __init__(self, text):
        self.text = text

    def generate(self, context, table):
        return self.text


def test_render_report_appends_narrative(make_fixture) -> None:
    target = make_fixture(odds=ODDS, status=FixtureStatus.NOT_STARTED)
    result = analyze_fixture(target, [make_fixture(odds=ODDS, ft="1-0")])
    context = build_narrative_context(result)

    assert render_report(result) == context
    assert render_report(result, _StaticGenerator("  ")) == context
    assert render_report(result, _StaticGenerator("Testo")) == f"{context}\n\nAnalisi:\nTesto"
