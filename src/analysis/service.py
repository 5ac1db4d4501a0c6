from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from rapidfuzz import fuzz

from core.config import Settings, get_settings
from core.logging import get_logger
from core.models import FixtureRecord
from analysis.markets import MARKET_DEFINITIONS, MarketDefinition
from analysis.similarity import MatchedRecord, SimilarityConfig, find_similar
from analysis.statistics import FrequencyTable, aggregate

logger = get_logger("analysis.service")

_VS_SEPARATORS = (" vs ", " - ", " v ")


@dataclass(frozen=True)
class AnalysisResult:
    target: FixtureRecord
    matched: Tuple[MatchedRecord, ...]
    table: FrequencyTable
    config: SimilarityConfig

    def to_dict(self, max_listed: Optional[int] = None) -> Dict[str, Any]:
        listed = self.matched if max_listed is None else self.matched[:max_listed]
        return {
            "fixture": self.target.to_dict(),
            "tolerance": self.config.tolerance,
            "min_matched_markets": self.config.min_matched_markets,
            "matched_count": len(self.matched),
            "matched": [m.to_dict() for m in listed],
            "frequencies": self.table.to_dict(),
        }


def split_teams(query: str) -> Optional[Tuple[str, str]]:
    """'Galatasaray vs Fenerbahçe' -> ('Galatasaray', 'Fenerbahçe')."""
    lowered = query.lower()
    for sep in _VS_SEPARATORS:
        pos = lowered.find(sep)
        if pos > 0:
            home = query[:pos].strip()
            away = query[pos + len(sep):].strip()
            if home and away:
                return home, away
    return None


def _team_score(query: str, name: Optional[str]) -> float:
    if not name:
        return 0.0
    return fuzz.WRatio(query.lower(), name.lower())


def find_fixture(
    corpus: Sequence[FixtureRecord],
    query: str,
    *,
    date: Optional[str] = None,
    cutoff: Optional[int] = None,
) -> Optional[FixtureRecord]:
    """
    Risolve una partita nel corpus per id o per "Casa vs Ospite".
    Nomi confrontati con rapidfuzz; entrambe le squadre devono superare il
    cutoff. A parità di punteggio si preferiscono le partite non iniziate.
    """
    query = (query or "").strip()
    if not query:
        return None
    candidates = [f for f in corpus if date is None or f.date == date]

    for fx in candidates:
        if fx.id == query:
            return fx

    teams = split_teams(query)
    if teams is None:
        return None
    home_q, away_q = teams
    threshold = get_settings().team_match_cutoff if cutoff is None else cutoff

    best: Optional[FixtureRecord] = None
    best_key: Tuple[float, int] = (-1.0, -1)
    for fx in candidates:
        home_s = _team_score(home_q, fx.home_team)
        away_s = _team_score(away_q, fx.away_team)
        if home_s < threshold or away_s < threshold:
            continue
        key = (home_s + away_s, 0 if fx.is_finished else 1)
        if key > best_key:
            best, best_key = fx, key
    if best is None:
        logger.info("Nessuna partita trovata per '%s'", query)
    return best


def analyze_fixture(
    target: FixtureRecord,
    corpus: Sequence[FixtureRecord],
    settings: Optional[Settings] = None,
    markets: Sequence[MarketDefinition] = MARKET_DEFINITIONS,
) -> AnalysisResult:
    """Ricerca partite simili + tabella frequenze sugli stessi mercati."""
    settings = settings or get_settings()
    config = SimilarityConfig.from_settings(settings)
    started = time.perf_counter()
    # La partita analizzata non è mai evidenza di se stessa
    history = [f for f in corpus if f.id != target.id]
    matched: List[MatchedRecord] = find_similar(target, history, config, markets)
    table = aggregate(matched, markets)
    logger.info(
        "Analisi %s completata in %.1f ms: %s",
        target.label,
        (time.perf_counter() - started) * 1000,
        table.summary,
    )
    return AnalysisResult(target=target, matched=tuple(matched), table=table, config=config)


__all__ = ["AnalysisResult", "split_teams", "find_fixture", "analyze_fixture"]
