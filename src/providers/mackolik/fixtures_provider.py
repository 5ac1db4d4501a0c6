from __future__ import annotations

from typing import Any, Dict, List, Optional

from core.logging import get_logger
from core.models import FixtureRecord, FixtureStatus, MatchScore, OddsKey, as_int, as_price
from analysis.markets import definitions_by_provider_code
from .base import FixtureSourceBase
from .exceptions import RateLimitError, TokenError, TransientAPIError
from .http_client import BULLETIN_API_URL, MATCHES_API_URL, MackolikHttpClient, get_http_client

log = get_logger(__name__)

_BULLETIN_STATUS_FINISHED = 3
_BULLETIN_STATUS_POSTPONED = 5
_DETAILS_STATUS_PLAYED = "Played"
_DETAILS_STATUS_POSTPONED = "Postponed"
_TR_UTC_OFFSET_HOURS = 3


def match_time_tr(details: Dict[str, Any]) -> str:
    """Orario HH:MM del feed (UTC) convertito in ora turca (+3). Default "00:00"."""
    raw = details.get("match_time") or details.get("time")
    if not isinstance(raw, str) or ":" not in raw:
        return "00:00"
    hour_s, _, minute_s = raw.partition(":")
    try:
        hour = int(hour_s)
        minute = int(minute_s[:2])
    except ValueError:
        log.warning("Orario non interpretabile: %s", raw)
        return "00:00"
    return f"{(hour + _TR_UTC_OFFSET_HOURS) % 24:02d}:{minute:02d}"


def _index_details(payload: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    out: Dict[str, Dict[str, Any]] = {}
    areas = ((payload or {}).get("data") or {}).get("areas") or []
    for area in areas:
        for competition in area.get("competitions") or []:
            for match in competition.get("matches") or []:
                mid = match.get("id")
                if mid is None or match.get("status") == _DETAILS_STATUS_POSTPONED:
                    continue
                out[str(mid)] = match
    return out


def _parse_odds(markets: Any) -> Dict[OddsKey, float]:
    by_code = definitions_by_provider_code()
    odds: Dict[OddsKey, float] = {}
    for market in markets or []:
        definition = by_code.get(as_int(market.get("i")))
        if definition is None:
            continue
        # Solo il primo set di quote (di norma l'unico)
        odds_sets = market.get("o") or []
        first = (odds_sets[0] or {}).get("l") if odds_sets else None
        for outcome in first or []:
            name = outcome.get("n")
            price = as_price(outcome.get("v"))
            if name is None or price is None:
                continue
            odds[(definition.market, str(name))] = price
    return odds


def build_fixture(
    match: Dict[str, Any], details: Dict[str, Any], league: Optional[str], date: str
) -> FixtureRecord:
    finished = (
        details.get("status") == _DETAILS_STATUS_PLAYED
        or match.get("status") == _BULLETIN_STATUS_FINISHED
    )
    result = None
    if finished:
        result = MatchScore(
            ft_home=as_int(details.get("fts_A")),
            ft_away=as_int(details.get("fts_B")),
            ht_home=as_int(details.get("hts_A")),
            ht_away=as_int(details.get("hts_B")),
        )
    return FixtureRecord(
        id=str(match.get("id")),
        uuid=match.get("uuid"),
        league=league,
        date=date,
        time=match_time_tr(details),
        home_team=match.get("team_A"),
        away_team=match.get("team_B"),
        status=FixtureStatus.FINISHED if finished else FixtureStatus.NOT_STARTED,
        result=result,
        odds=_parse_odds(match.get("markets")),
    )


class MackolikFixturesProvider(FixtureSourceBase):
    """
    Sorgente fixture Mackolik:
    - feed dettagli (punteggi, stato reale, orario)
    - feed bulletin (squadre, lega, quote)
    Le partite rinviate o assenti dai dettagli vengono scartate.
    Errori di rete: log + lista vuota (la resilienza resta qui, non nel core).
    """

    def __init__(self, client: Optional[MackolikHttpClient] = None) -> None:
        self._client = client or get_http_client()

    def _details_params(self, date: str) -> Dict[str, Any]:
        return {
            "language": "tr",
            "country": "tr",
            "add_playing": 1,
            "extended_period": 1,
            "date": date,
            "tz": "3.0",
            "application": "com.kokteyl.mackolik",
            "migration_status": "perform",
        }

    def _bulletin_params(self, date: str) -> Dict[str, Any]:
        return {
            "date": date,
            "tz": 3,
            "language": "tr",
            "real_country": "tr",
            "application": "com.kokteyl.mackolik",
            "migration_status": "perform",
        }

    def fetch_fixtures(self, date: str) -> List[FixtureRecord]:
        log.info("Scarico fixture Mackolik per %s", date)
        try:
            details_payload = self._client.api_get(MATCHES_API_URL, params=self._details_params(date))
            details = _index_details(details_payload)
            bulletin_payload = self._client.api_get(
                BULLETIN_API_URL, params=self._bulletin_params(date)
            )
        except (TokenError, RateLimitError, TransientAPIError, ValueError, RuntimeError) as e:
            log.error("Errore recupero dati Mackolik per %s: %s", date, e)
            return []

        fixtures: List[FixtureRecord] = []
        areas = ((bulletin_payload or {}).get("data") or {}).get("soccer") or []
        for area in areas:
            league = area.get("title")
            for match in area.get("matches") or []:
                mid = match.get("id")
                if mid is None or match.get("status") == _BULLETIN_STATUS_POSTPONED:
                    continue
                match_details = details.get(str(mid))
                if match_details is None:
                    continue
                fixtures.append(build_fixture(match, match_details, league, date))

        fixtures.sort(key=lambda f: (f.league or "", f.time or "00:00"))
        log.info(
            "%s: %d partite elaborate (%d dettagli)",
            date,
            len(fixtures),
            len(details),
            extra={"fetch_stats": self._client.get_stats()},
        )
        return fixtures


__all__ = ["MackolikFixturesProvider", "build_fixture", "match_time_tr"]
