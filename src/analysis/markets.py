from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from core.models import Market, OddsKey

OVER = "Üst"
UNDER = "Alt"
BTTS_YES = "Var"
BTTS_NO = "Yok"

_RESULT_OUTCOMES = ("1", "X", "2")
_OVER_UNDER_OUTCOMES = (OVER, UNDER)
_HALF_FULL_OUTCOMES = tuple(f"{h}/{f}" for h in _RESULT_OUTCOMES for f in _RESULT_OUTCOMES)
_GOAL_BAND_OUTCOMES = ("0-1", "2-3", "4-5", "6+")


class Derivation(str, Enum):
    """Come si ricava l'esito realizzato di un mercato dal punteggio."""

    RESULT = "result"
    BOTH_TEAMS_SCORE = "both_teams_score"
    OVER_UNDER = "over_under"
    HALF_FULL = "half_full"
    GOAL_BAND = "goal_band"


class Period(str, Enum):
    FULL_TIME = "full_time"
    HALF_TIME = "half_time"


class GoalSide(str, Enum):
    TOTAL = "total"
    HOME = "home"
    AWAY = "away"


@dataclass(frozen=True)
class MarketDefinition:
    market: Market
    outcomes: Tuple[str, ...]
    derivation: Derivation
    period: Period = Period.FULL_TIME
    line: Optional[float] = None
    side: GoalSide = GoalSide.TOTAL
    provider_code: Optional[int] = None

    @property
    def label(self) -> str:
        return self.market.value

    def keys(self) -> List[OddsKey]:
        return [(self.market, outcome) for outcome in self.outcomes]


# Unico insieme di mercati: matcher e aggregatore DEVONO usare lo stesso.
MARKET_DEFINITIONS: Tuple[MarketDefinition, ...] = (
    MarketDefinition(Market.MATCH_RESULT, _RESULT_OUTCOMES, Derivation.RESULT, provider_code=1),
    MarketDefinition(
        Market.HALF_TIME_RESULT,
        _RESULT_OUTCOMES,
        Derivation.RESULT,
        period=Period.HALF_TIME,
        provider_code=3,
    ),
    MarketDefinition(
        Market.BOTH_TEAMS_SCORE, (BTTS_YES, BTTS_NO), Derivation.BOTH_TEAMS_SCORE, provider_code=6
    ),
    MarketDefinition(
        Market.OVER_UNDER_2_5, _OVER_UNDER_OUTCOMES, Derivation.OVER_UNDER, line=2.5, provider_code=10
    ),
    MarketDefinition(
        Market.HALF_TIME_OVER_UNDER_1_5,
        _OVER_UNDER_OUTCOMES,
        Derivation.OVER_UNDER,
        period=Period.HALF_TIME,
        line=1.5,
        provider_code=11,
    ),
    MarketDefinition(
        Market.HOME_OVER_UNDER_1_5,
        _OVER_UNDER_OUTCOMES,
        Derivation.OVER_UNDER,
        line=1.5,
        side=GoalSide.HOME,
        provider_code=14,
    ),
    MarketDefinition(
        Market.AWAY_OVER_UNDER_1_5,
        _OVER_UNDER_OUTCOMES,
        Derivation.OVER_UNDER,
        line=1.5,
        side=GoalSide.AWAY,
        provider_code=15,
    ),
    MarketDefinition(
        Market.HALF_FULL,
        _HALF_FULL_OUTCOMES,
        Derivation.HALF_FULL,
        period=Period.HALF_TIME,
        provider_code=8,
    ),
    MarketDefinition(Market.TOTAL_GOALS, _GOAL_BAND_OUTCOMES, Derivation.GOAL_BAND, provider_code=13),
)


def definitions_by_provider_code(
    markets: Iterable[MarketDefinition] = MARKET_DEFINITIONS,
) -> Dict[int, MarketDefinition]:
    return {m.provider_code: m for m in markets if m.provider_code is not None}


def get_definition(market: Market) -> MarketDefinition:
    for definition in MARKET_DEFINITIONS:
        if definition.market is market:
            return definition
    raise KeyError(market)


__all__ = [
    "OVER",
    "UNDER",
    "BTTS_YES",
    "BTTS_NO",
    "Derivation",
    "Period",
    "GoalSide",
    "MarketDefinition",
    "MARKET_DEFINITIONS",
    "definitions_by_provider_code",
    "get_definition",
]
