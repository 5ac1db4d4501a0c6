from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from core.logging import get_logger
from core.models import Market, OddsKey
from analysis.markets import MARKET_DEFINITIONS, MarketDefinition, Period
from analysis.outcomes import derive_outcome
from analysis.similarity import MatchedRecord

logger = get_logger("analysis.statistics")


@dataclass
class OutcomeFrequency:
    realized: int = 0
    total: int = 0
    percentage: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"realized": self.realized, "total": self.total, "percentage": self.percentage}


@dataclass
class FrequencyTable:
    entries: Dict[OddsKey, OutcomeFrequency] = field(default_factory=dict)
    sample_size: int = 0
    summary: str = ""

    def get(self, market: Market, outcome: str) -> OutcomeFrequency:
        return self.entries[(market, outcome)]

    def for_market(self, market: Market) -> Dict[str, OutcomeFrequency]:
        return {outcome: freq for (m, outcome), freq in self.entries.items() if m is market}

    def markets(self) -> List[Market]:
        seen: List[Market] = []
        for m, _ in self.entries:
            if m not in seen:
                seen.append(m)
        return seen

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "sample_size": self.sample_size,
            "stats": {
                market.value: {o: f.to_dict() for o, f in self.for_market(market).items()}
                for market in self.markets()
            },
        }


def _summary(count: int) -> str:
    if count == 0:
        return "No similar-odds historical fixtures found"
    return f"Based on {count} similar-odds historical fixtures"


def aggregate(
    matched: Sequence[MatchedRecord],
    markets: Sequence[MarketDefinition] = MARKET_DEFINITIONS,
) -> FrequencyTable:
    """
    Conta quante volte ogni esito si è realizzato tra le partite simili.

    Il denominatore (total) è il numero di partite simili, anche quelle con
    punteggio sconosciuto: non contribuiscono a realized ma restano in total.
    Gli esiti di primo tempo si contano solo se il punteggio HT è noto.
    """
    count = len(matched)
    table = FrequencyTable(sample_size=count, summary=_summary(count))
    for definition in markets:
        for key in definition.keys():
            table.entries[key] = OutcomeFrequency(realized=0, total=count)

    skipped = 0
    for record in matched:
        score = record.fixture.scores()
        ft_home, _ = score.full_time
        if ft_home is None:
            skipped += 1
            continue
        ht_known = score.half_time[0] is not None
        for definition in markets:
            if definition.period is Period.HALF_TIME and not ht_known:
                continue
            outcome = derive_outcome(definition, score)
            if outcome is None:
                continue
            freq = table.entries.get((definition.market, outcome))
            if freq is not None:
                freq.realized += 1

    for freq in table.entries.values():
        freq.percentage = round(freq.realized / freq.total * 100, 1) if freq.total > 0 else 0.0

    if skipped:
        logger.info("%d partite simili senza punteggio finale valido (incluse nel totale).", skipped)
    return table


__all__ = ["OutcomeFrequency", "FrequencyTable", "aggregate"]
