from __future__ import annotations

from typing import Optional

from core.models import MatchScore
from analysis.markets import (
    BTTS_NO,
    BTTS_YES,
    OVER,
    UNDER,
    Derivation,
    GoalSide,
    MarketDefinition,
    Period,
)

# Tutte le funzioni propagano lo "sconosciuto": input None -> output None.


def match_result(home: Optional[int], away: Optional[int]) -> Optional[str]:
    if home is None or away is None:
        return None
    if home > away:
        return "1"
    if home == away:
        return "X"
    return "2"


def total_goals(home: Optional[int], away: Optional[int]) -> Optional[int]:
    if home is None or away is None:
        return None
    return home + away


def both_teams_scored(home: Optional[int], away: Optional[int]) -> Optional[bool]:
    if home is None or away is None:
        return None
    return home > 0 and away > 0


def over_under(goals: Optional[int], line: float) -> Optional[str]:
    if goals is None:
        return None
    return OVER if goals > line else UNDER


def half_full_combo(
    ht_home: Optional[int],
    ht_away: Optional[int],
    ft_home: Optional[int],
    ft_away: Optional[int],
) -> Optional[str]:
    half = match_result(ht_home, ht_away)
    full = match_result(ft_home, ft_away)
    if half is None or full is None:
        return None
    return f"{half}/{full}"


def goal_band(goals: Optional[int]) -> Optional[str]:
    """Fascia del mercato "Toplam Gol": 0-1, 2-3, 4-5, 6+."""
    if goals is None:
        return None
    if goals <= 1:
        return "0-1"
    if goals <= 3:
        return "2-3"
    if goals <= 5:
        return "4-5"
    return "6+"


def derive_outcome(definition: MarketDefinition, score: MatchScore) -> Optional[str]:
    """
    Esito realizzato di un mercato dato il punteggio di una partita.
    None se il periodo richiesto dal mercato non è noto.
    """
    ft_home, ft_away = score.full_time
    ht_home, ht_away = score.half_time
    if definition.period is Period.HALF_TIME:
        home, away = ht_home, ht_away
    else:
        home, away = ft_home, ft_away

    kind = definition.derivation
    if kind is Derivation.RESULT:
        return match_result(home, away)
    if kind is Derivation.BOTH_TEAMS_SCORE:
        scored = both_teams_scored(home, away)
        if scored is None:
            return None
        return BTTS_YES if scored else BTTS_NO
    if kind is Derivation.OVER_UNDER:
        if definition.line is None:
            return None
        if definition.side is GoalSide.HOME:
            goals = home
        elif definition.side is GoalSide.AWAY:
            goals = away
        else:
            goals = total_goals(home, away)
        return over_under(goals, definition.line)
    if kind is Derivation.HALF_FULL:
        return half_full_combo(ht_home, ht_away, ft_home, ft_away)
    if kind is Derivation.GOAL_BAND:
        return goal_band(total_goals(home, away))
    return None


__all__ = [
    "match_result",
    "total_goals",
    "both_teams_scored",
    "over_under",
    "half_full_combo",
    "goal_band",
    "derive_outcome",
]
