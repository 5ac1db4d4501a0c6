from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from core.logging import get_logger
from core.models import FixtureRecord, Market
from analysis.markets import MARKET_DEFINITIONS, MarketDefinition

logger = get_logger("analysis.similarity")

# Confine inclusivo solo contro il rumore binario (1.05 - 1.00 = 0.050000000000000044)
_BOUNDARY_REL_TOL = 1e-9
_BOUNDARY_ABS_TOL = 1e-12


@dataclass(frozen=True)
class SimilarityConfig:
    tolerance: float = 0.05
    min_matched_markets: int = 3

    def __post_init__(self) -> None:
        if self.tolerance < 0:
            raise ValueError(f"tolerance deve essere >= 0 (valore: {self.tolerance!r})")
        if self.min_matched_markets < 1:
            raise ValueError(
                f"min_matched_markets deve essere >= 1 (valore: {self.min_matched_markets!r})"
            )

    @classmethod
    def from_settings(cls, settings: Any) -> "SimilarityConfig":
        return cls(
            tolerance=settings.similarity_threshold,
            min_matched_markets=settings.min_similar_categories,
        )


@dataclass(frozen=True)
class OutcomeComparison:
    outcome: str
    target: float
    historical: float
    difference: float


@dataclass(frozen=True)
class MatchedRecord:
    fixture: FixtureRecord
    matched_market_count: int
    details: Mapping[Market, Tuple[OutcomeComparison, ...]]

    def to_dict(self) -> Dict[str, Any]:
        score = self.fixture.scores()
        return {
            "fixture_id": self.fixture.id,
            "match": self.fixture.label,
            "date": self.fixture.date,
            "league": self.fixture.league or "-",
            "ft_score": score.ft_score,
            "ht_score": score.ht_score,
            "matched_market_count": self.matched_market_count,
            "matched_odds": {
                market.value: [
                    {
                        "outcome": c.outcome,
                        "today": c.target,
                        "historical": c.historical,
                        "difference": round(c.difference, 6),
                    }
                    for c in comparisons
                ]
                for market, comparisons in self.details.items()
            },
        }


def _is_price(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _within_tolerance(difference: float, tolerance: float) -> bool:
    if difference <= tolerance:
        return True
    return math.isclose(difference, tolerance, rel_tol=_BOUNDARY_REL_TOL, abs_tol=_BOUNDARY_ABS_TOL)


def _compare_market(
    definition: MarketDefinition,
    target_odds: Mapping[Any, Any],
    past_odds: Mapping[Any, Any],
    tolerance: float,
) -> Optional[Tuple[OutcomeComparison, ...]]:
    """
    Confronta un mercato tra la partita target e una storica.
    Ritorna i dettagli se TUTTI gli esiti presenti nel target sono entro
    tolleranza, None altrimenti (nessun credito parziale).
    """
    keys = [k for k in definition.keys() if k in target_odds]
    comparisons: List[OutcomeComparison] = []
    for key in keys:
        today = target_odds.get(key)
        past = past_odds.get(key)
        if not _is_price(today) or not _is_price(past):
            return None
        difference = abs(today - past)
        if not _within_tolerance(difference, tolerance):
            return None
        comparisons.append(
            OutcomeComparison(outcome=key[1], target=today, historical=past, difference=difference)
        )
    return tuple(comparisons)


def _applicable_markets(
    target_odds: Mapping[Any, Any], markets: Iterable[MarketDefinition]
) -> List[MarketDefinition]:
    # Mercato senza esiti nel target = "non applicabile", non "fallito"
    return [m for m in markets if any(k in target_odds for k in m.keys())]


def find_similar(
    target: FixtureRecord,
    corpus: Sequence[FixtureRecord],
    config: SimilarityConfig,
    markets: Sequence[MarketDefinition] = MARKET_DEFINITIONS,
) -> List[MatchedRecord]:
    """
    Cerca nel corpus le partite terminate con quote simili al target.

    Una partita storica è "simile" se almeno config.min_matched_markets
    mercati combaciano interamente entro config.tolerance.
    Ordinamento: numero di mercati combacianti decrescente, stabile a parità.
    Dati malformati vengono esclusi in silenzio, mai sollevati.
    """
    target_odds = target.odds or {}
    if not target_odds:
        logger.warning("Quote della partita %s non disponibili, nessun confronto possibile.", target.label)
        return []

    applicable = _applicable_markets(target_odds, markets)
    matches: List[MatchedRecord] = []
    scanned = 0

    for past in corpus:
        if not past.is_finished or not past.odds:
            continue
        scanned += 1
        details: Dict[Market, Tuple[OutcomeComparison, ...]] = {}
        for definition in applicable:
            compared = _compare_market(definition, target_odds, past.odds, config.tolerance)
            if compared is not None:
                details[definition.market] = compared
        if len(details) >= config.min_matched_markets:
            matches.append(
                MatchedRecord(fixture=past, matched_market_count=len(details), details=details)
            )

    matches.sort(key=lambda m: m.matched_market_count, reverse=True)

    logger.info(
        "%s: %d partite simili su %d confrontabili (soglia=%s, min_mercati=%d)",
        target.label,
        len(matches),
        scanned,
        config.tolerance,
        config.min_matched_markets,
        extra={
            "match_stats": {
                "fixture_id": target.id,
                "corpus_size": len(corpus),
                "scanned": scanned,
                "matched": len(matches),
                "tolerance": config.tolerance,
                "min_matched_markets": config.min_matched_markets,
            }
        },
    )
    return matches


__all__ = ["SimilarityConfig", "OutcomeComparison", "MatchedRecord", "find_similar"]
