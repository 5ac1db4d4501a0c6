from concurrent.futures import ThreadPoolExecutor
import json
from pathlib import Path

import pytest

from core.models import FixtureRecord, FixtureStatus, Market, MatchScore
from core.persistence import Corpus, CorpusStore, ingest, merge_fixture


def _fx(fid, status=FixtureStatus.NOT_STARTED, result=None, odds=None, time="19:00"):
    return FixtureRecord(
        id=fid,
        date="2024-05-25",
        time=time,
        home_team="A",
        away_team="B",
        status=status,
        result=result,
        odds=odds or {},
    )


def test_load_missing_returns_empty(tmp_path):
    corpus = CorpusStore(tmp_path / "historic_matches.json").load()
    assert len(corpus) == 0
    assert corpus.last_update is None


def test_save_and_load_round_trip(tmp_path):
    store = CorpusStore(tmp_path / "data" / "historic_matches.json")
    corpus, _ = ingest(Corpus(), "2024-05-25", [_fx("1"), _fx("2", odds={(Market.MATCH_RESULT, "1"): 2.1})])
    store.save(corpus)
    loaded = store.load()
    assert loaded.snapshot() == corpus.snapshot()
    assert loaded.last_update == corpus.last_update
    raw = json.loads(store.path.read_text(encoding="utf-8"))
    assert raw["matches"]["2024-05-25"][1]["odds"] == {"Maç Sonucu_1": 2.1}


def test_save_normalizes_time(tmp_path):
    store = CorpusStore(tmp_path / "historic_matches.json")
    corpus, _ = ingest(Corpus(), "2024-05-25", [_fx("1", time="19:00:00")])
    store.save(corpus)
    assert store.load().snapshot()[0].time == "19:00"


def test_invalid_json_returns_empty_and_warn(tmp_path, caplog):
    target = Path(tmp_path) / "historic_matches.json"
    target.write_text("{not-valid-json", encoding="utf-8")
    assert len(CorpusStore(target).load()) == 0
    assert any("corrupt" in m.lower() for m in caplog.messages)


def test_missing_matches_key_returns_empty_and_warn(tmp_path, caplog):
    target = Path(tmp_path) / "historic_matches.json"
    target.write_text(json.dumps({"last_update": "x"}), encoding="utf-8")
    assert len(CorpusStore(target).load()) == 0
    assert any("invalid structure" in m.lower() for m in caplog.messages)


def test_empty_file_returns_empty(tmp_path):
    target = Path(tmp_path) / "historic_matches.json"
    target.write_text("", encoding="utf-8")
    assert len(CorpusStore(target).load()) == 0


def test_default_path_from_settings(monkeypatch, tmp_path):
    monkeypatch.setenv("BET_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("HISTORIC_DATA_FILE", raising=False)
    assert CorpusStore().path == tmp_path / "historic_matches.json"


def test_snapshot_is_date_ordered_and_flat():
    corpus, _ = ingest(Corpus(), "2024-05-26", [_fx("c")])
    corpus, _ = ingest(corpus, "2024-05-25", [_fx("a"), _fx("b")])
    assert [f.id for f in corpus.snapshot()] == ["a", "b", "c"]
    assert isinstance(corpus.snapshot(), tuple)
    assert corpus.get("b").id == "b"
    assert corpus.get("zzz") is None


def test_ingest_is_copy_on_write():
    original, _ = ingest(Corpus(), "2024-05-25", [_fx("1")])
    before = original.snapshot()
    updated, stats = ingest(original, "2024-05-25", [_fx("2")])
    assert original.snapshot() == before
    assert len(updated) == 2
    assert stats == {"added": 1, "updated": 0, "unchanged": 0}


def test_merge_updates_status_and_scores():
    existing = _fx("1", odds={(Market.MATCH_RESULT, "1"): 2.0})
    finished = _fx(
        "1",
        status=FixtureStatus.FINISHED,
        result=MatchScore(ft_home=2, ft_away=0),
        odds={(Market.MATCH_RESULT, "1"): 2.2},
    )
    merged, changed = merge_fixture(existing, finished)
    assert changed
    assert merged.status is FixtureStatus.FINISHED
    assert merged.result.full_time == (2, 0)
    # quote aggiornate finché la partita non risultava terminata
    assert merged.odds[(Market.MATCH_RESULT, "1")] == 2.2


def test_merge_never_erases_known_scores():
    existing = _fx(
        "1",
        status=FixtureStatus.FINISHED,
        result=MatchScore(ft_home=1, ft_away=1, ht_home=0, ht_away=1),
        odds={(Market.MATCH_RESULT, "1"): 2.0},
    )
    incoming = _fx(
        "1",
        status=FixtureStatus.FINISHED,
        result=MatchScore(ft_home=1, ft_away=1),
        odds={(Market.MATCH_RESULT, "1"): 9.9},
    )
    merged, changed = merge_fixture(existing, incoming)
    assert not changed
    assert merged.result.half_time == (0, 1)
    assert merged.odds[(Market.MATCH_RESULT, "1")] == 2.0


def test_stores_share_write_lock(tmp_path):
    assert CorpusStore(tmp_path / "a.json")._lock is CorpusStore(tmp_path / "b.json")._lock


def test_concurrent_saves_from_separate_stores(tmp_path):
    target = tmp_path / "historic_matches.json"
    corpora = []
    for n in range(8):
        corpus, _ = ingest(Corpus(), "2024-05-25", [_fx(str(i)) for i in range(n + 1)])
        corpora.append(corpus)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda c: CorpusStore(target).save(c), corpora))

    loaded = CorpusStore(target).load()
    assert 1 <= len(loaded) <= 8
    assert [p.name for p in tmp_path.iterdir()] == ["historic_matches.json"]


def test_corpus_snapshot_cannot_be_mutated():
    corpus, _ = ingest(Corpus(), "2024-05-25", [_fx("1", odds={(Market.MATCH_RESULT, "1"): 2.0})])
    with pytest.raises(TypeError):
        corpus.matches["2024-05-26"] = ()
    with pytest.raises(TypeError):
        corpus.snapshot()[0].odds[(Market.MATCH_RESULT, "1")] = 9.9
    assert isinstance(corpus.matches["2024-05-25"], tuple)
