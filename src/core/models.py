from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from analysis.scores import parse_score


class Market(str, Enum):
    """Mercati di scommessa nel vocabolario del feed (etichette originali)."""

    MATCH_RESULT = "Maç Sonucu"
    HALF_TIME_RESULT = "İlk Yarı"
    BOTH_TEAMS_SCORE = "Karşılıklı Gol"
    HALF_FULL = "IY/MS"
    OVER_UNDER_2_5 = "A/U 2.5"
    HALF_TIME_OVER_UNDER_1_5 = "IY 1.5"
    TOTAL_GOALS = "Toplam Gol"
    HOME_OVER_UNDER_1_5 = "EV 1.5"
    AWAY_OVER_UNDER_1_5 = "DEP 1.5"


class FixtureStatus(str, Enum):
    NOT_STARTED = "not_started"
    FINISHED = "finished"


# Chiave composita (mercato, esito): mai una stringa formattata
OddsKey = Tuple[Market, str]

_ODDS_KEY_SEPARATOR = "_"


def odds_key_to_str(key: OddsKey) -> str:
    """Forma di serializzazione su disco ("Maç Sonucu_1"), usata solo dalla persistenza."""
    market, outcome = key
    return f"{market.value}{_ODDS_KEY_SEPARATOR}{outcome}"


def odds_key_from_str(raw: str) -> Optional[OddsKey]:
    label, sep, outcome = raw.partition(_ODDS_KEY_SEPARATOR)
    if not sep or not outcome:
        return None
    try:
        return Market(label), outcome
    except ValueError:
        return None


def as_int(v: Any) -> Optional[int]:
    if v is None or isinstance(v, bool):
        return None
    try:
        value = int(v)
    except (ValueError, TypeError):
        return None
    return value if value >= 0 else None


def as_price(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        value = float(v)
    except (ValueError, TypeError):
        return None
    if not math.isfinite(value):
        return None
    return value


@dataclass(frozen=True)
class MatchScore:
    """
    Punteggi di una partita conclusa. None = sconosciuto.
    Le coppie parziali (un lato noto, l'altro no) vengono trattate come
    interamente sconosciute da full_time / half_time.
    """

    ft_home: Optional[int] = None
    ft_away: Optional[int] = None
    ht_home: Optional[int] = None
    ht_away: Optional[int] = None

    @property
    def full_time(self) -> Tuple[Optional[int], Optional[int]]:
        if self.ft_home is None or self.ft_away is None:
            return None, None
        return self.ft_home, self.ft_away

    @property
    def half_time(self) -> Tuple[Optional[int], Optional[int]]:
        if self.ht_home is None or self.ht_away is None:
            return None, None
        return self.ht_home, self.ht_away

    @property
    def ft_score(self) -> Optional[str]:
        h, a = self.full_time
        return f"{h}-{a}" if h is not None else None

    @property
    def ht_score(self) -> Optional[str]:
        h, a = self.half_time
        return f"{h}-{a}" if h is not None else None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "MatchScore":
        ft_home, ft_away = as_int(raw.get("ftScoreA")), as_int(raw.get("ftScoreB"))
        if ft_home is None or ft_away is None:
            ft_home, ft_away = parse_score(raw.get("ftScore"))
        ht_home, ht_away = as_int(raw.get("htScoreA")), as_int(raw.get("htScoreB"))
        if ht_home is None or ht_away is None:
            ht_home, ht_away = parse_score(raw.get("htScore"))
        return cls(ft_home=ft_home, ft_away=ft_away, ht_home=ht_home, ht_away=ht_away)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ftScore": self.ft_score,
            "htScore": self.ht_score,
            "ftScoreA": self.ft_home,
            "ftScoreB": self.ft_away,
            "htScoreA": self.ht_home,
            "htScoreB": self.ht_away,
        }


@dataclass(frozen=True)
class FixtureRecord:
    id: str
    date: Optional[str] = None
    time: Optional[str] = None
    league: Optional[str] = None
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    status: FixtureStatus = FixtureStatus.NOT_STARTED
    result: Optional[MatchScore] = None
    odds: Mapping[OddsKey, float] = field(default_factory=dict)
    uuid: Optional[str] = None

    def __post_init__(self) -> None:
        # Quote in sola lettura: il record condiviso dagli snapshot non cambia
        object.__setattr__(self, "odds", MappingProxyType(dict(self.odds or {})))

    @property
    def is_finished(self) -> bool:
        return self.status is FixtureStatus.FINISHED

    @property
    def label(self) -> str:
        return f"{self.home_team or '?'} vs {self.away_team or '?'}"

    def scores(self) -> MatchScore:
        """Punteggi noti; FINISHED senza result equivale a 'sconosciuti'."""
        return self.result if self.result is not None else MatchScore()

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Optional["FixtureRecord"]:
        """
        Ricostruisce un record dal formato persistito.
        Ritorna None se manca l'identificativo (record inutilizzabile).
        """
        fid = raw.get("id")
        if fid is None or fid == "":
            return None

        status_raw = raw.get("status")
        # Compat: il formato storico usa 3 = terminata, 1 = non iniziata
        if status_raw in (3, "3", FixtureStatus.FINISHED.value):
            status = FixtureStatus.FINISHED
        else:
            status = FixtureStatus.NOT_STARTED

        result = None
        result_raw = raw.get("result")
        if status is FixtureStatus.FINISHED and isinstance(result_raw, Mapping):
            result = MatchScore.from_dict(result_raw)

        odds: Dict[OddsKey, float] = {}
        odds_raw = raw.get("odds")
        if isinstance(odds_raw, Mapping):
            for k, v in odds_raw.items():
                key = odds_key_from_str(str(k))
                price = as_price(v)
                if key is None or price is None:
                    continue
                odds[key] = price

        return cls(
            id=str(fid),
            date=raw.get("date"),
            time=raw.get("time"),
            league=raw.get("league"),
            home_team=raw.get("homeTeam"),
            away_team=raw.get("awayTeam"),
            status=status,
            result=result,
            odds=odds,
            uuid=raw.get("uuid"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "uuid": self.uuid,
            "league": self.league,
            "date": self.date,
            "time": self.time,
            "homeTeam": self.home_team,
            "awayTeam": self.away_team,
            "status": self.status.value,
            "result": self.result.to_dict() if self.result is not None else None,
            "odds": {odds_key_to_str(k): v for k, v in self.odds.items()},
        }


# Snapshot immutabile del corpus passato esplicitamente a matcher/aggregatore
CorpusSnapshot = Tuple[FixtureRecord, ...]


__all__ = [
    "Market",
    "FixtureStatus",
    "OddsKey",
    "MatchScore",
    "FixtureRecord",
    "CorpusSnapshot",
    "odds_key_to_str",
    "odds_key_from_str",
    "as_int",
    "as_price",
]
